from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .statuses import BookingStatus


class CreateBookingRequest(BaseModel):
    service_id: str
    booking_date: str  # YYYY-MM-DD
    start_time: str  # HH:MM
    end_time: str
    notes: Optional[str] = Field(default=None, max_length=500)
    reschedule_of: Optional[str] = None


class RescheduleRequest(BaseModel):
    service_id: str
    booking_date: str
    start_time: str
    end_time: str
    notes: Optional[str] = Field(default=None, max_length=500)

    def to_booking_request(self, original_id: str) -> CreateBookingRequest:
        return CreateBookingRequest(**self.model_dump(), reschedule_of=original_id)


class UpdateBookingRequest(BaseModel):
    status: Optional[BookingStatus] = None
    notes: Optional[str] = Field(default=None, max_length=500)


class BookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    booking_id: str
    customer_id: str
    club_id: str
    service_id: str
    reschedule_of: Optional[str] = None
    booking_date: date
    start_time: str
    end_time: str
    duration_hours: float
    total_price: float
    status: str
    payment_status: str
    notes: Optional[str] = None
    created_at: Optional[datetime] = None


class CreateBookingResponse(BaseModel):
    message: str
    booking_id: str
    status: str


class BookingStatusResponse(BaseModel):
    booking_id: str
    status: str


class AvailableSlotsResponse(BaseModel):
    service_id: str
    date: str
    slots: List[str]


class ExpirySweepResponse(BaseModel):
    expired: int
