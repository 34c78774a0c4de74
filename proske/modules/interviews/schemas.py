from pydantic import BaseModel, field_validator
from typing import Optional, List
from datetime import date, datetime

INTERVIEW_TIME_SLOTS = [f"{hour:02d}:00" for hour in range(7, 22)]
# How many days ahead an interview can be booked
BOOKING_WINDOW_DAYS = 7
ACTIVE_INTERVIEW_STATUSES = ("pending", "confirmed")


class InterviewCreate(BaseModel):
    scheduled_date: date
    scheduled_time: str

    @field_validator("scheduled_time")
    @classmethod
    def check_slot(cls, value: str) -> str:
        if value not in INTERVIEW_TIME_SLOTS:
            raise ValueError(f"Time must be one of {', '.join(INTERVIEW_TIME_SLOTS)}")
        return value


class InterviewResponse(BaseModel):
    id: str
    user_id: str
    scheduled_date: date
    scheduled_time: str
    status: str
    confirmed_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MyInterviewsResponse(BaseModel):
    schedules: List[InterviewResponse]
    interview_required: bool
