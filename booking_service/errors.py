class BookingError(Exception):
    """Base for every failure the booking core surfaces to its caller."""

    status_code = 500

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class NotFound(BookingError):
    status_code = 404


class BadRequest(BookingError):
    status_code = 400


class Conflict(BookingError):
    status_code = 409


class Forbidden(BookingError):
    status_code = 403
