from dataclasses import dataclass, field


@dataclass(frozen=True)
class Actor:
    """Authenticated caller, as carried by the bearer token's sub and roles claims."""

    id: str
    roles: tuple = field(default_factory=tuple)

    @property
    def is_admin(self) -> bool:
        return "admin" in {str(r).lower() for r in self.roles}

    def has_role(self, *allowed: str) -> bool:
        roles = {str(r).lower() for r in self.roles}
        return not roles.isdisjoint({a.lower() for a in allowed})
