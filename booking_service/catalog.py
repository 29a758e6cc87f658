from dataclasses import dataclass, field
from typing import Optional

import httpx

from .config import SPORT_SERVICE_URL, CLUB_SERVICE_URL, HTTP_TIMEOUT


@dataclass(frozen=True)
class ServiceDefinition:
    id: str
    club_id: Optional[str]
    name: str
    hourly_price: float
    is_active: bool = True
    available_days: frozenset = field(default_factory=frozenset)
    opening_time: str = "00:00"
    closing_time: str = "00:00"
    slot_duration_minutes: int = 60

    @classmethod
    def from_payload(cls, data: dict) -> "ServiceDefinition":
        club = data.get("club")
        if isinstance(club, dict):
            club = club.get("id") or club.get("_id")
        return cls(
            id=str(data.get("id") or data.get("_id")),
            club_id=str(club) if club else None,
            name=data.get("name") or "",
            hourly_price=float(data.get("hourlyPrice") or 0),
            is_active=bool(data.get("isActive", True)),
            available_days=frozenset(data.get("availableDays") or []),
            opening_time=data.get("openingTime") or "00:00",
            closing_time=data.get("closingTime") or "00:00",
            slot_duration_minutes=int(data.get("slotDurationMinutes") or 60),
        )

    def snapshot(self) -> dict:
        return {
            "id": self.id,
            "club_id": self.club_id,
            "name": self.name,
            "hourly_price": self.hourly_price,
            "slot_duration_minutes": self.slot_duration_minutes,
        }


@dataclass(frozen=True)
class ClubRecord:
    id: str
    owner_id: Optional[str]
    name: str = ""

    @classmethod
    def from_payload(cls, data: dict) -> "ClubRecord":
        owner = data.get("owner")
        if isinstance(owner, dict):
            owner = owner.get("id") or owner.get("_id")
        return cls(
            id=str(data.get("id") or data.get("_id")),
            owner_id=str(owner) if owner else None,
            name=data.get("name") or "",
        )


async def _get_json(url: str) -> dict | None:
    async with httpx.AsyncClient(timeout=HTTP_TIMEOUT) as client:
        r = await client.get(url)
        if r.status_code == 404:
            return None
        r.raise_for_status()
        return r.json()


class ServiceCatalogClient:
    """Read-only view of the sport-service catalog."""

    def __init__(self, base_url: str = SPORT_SERVICE_URL):
        self.base_url = base_url.rstrip("/")

    async def get_service(self, service_id: str) -> ServiceDefinition | None:
        data = await _get_json(f"{self.base_url}/services/{service_id}")
        if not data:
            return None
        return ServiceDefinition.from_payload(data)


class ClubDirectoryClient:
    def __init__(self, base_url: str = CLUB_SERVICE_URL):
        self.base_url = base_url.rstrip("/")

    async def find_club(self, club_id: str) -> ClubRecord | None:
        data = await _get_json(f"{self.base_url}/clubs/{club_id}")
        if not data:
            return None
        return ClubRecord.from_payload(data)
