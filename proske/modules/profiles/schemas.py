from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime


class StudyScheduleSlot(BaseModel):
    """One weekly study slot; serialized with the camelCase keys stored in profiles.study_schedule."""
    model_config = ConfigDict(populate_by_name=True)

    day_of_week: int = Field(alias="dayOfWeek", ge=0, le=6, description="0 = Sunday")
    time: str = Field(pattern=r"^([01]\d|2[0-3]):[0-5]\d$", description="HH:mm")
    topic: Optional[str] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    phone: Optional[str] = None
    city: Optional[str] = None
    bio: Optional[str] = Field(default=None, max_length=500)
    study_goals: Optional[List[str]] = None
    study_days: Optional[List[int]] = None
    study_schedule: Optional[List[StudyScheduleSlot]] = None
    monitoring_frequency: Optional[str] = None
    monitoring_day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    monitoring_time: Optional[str] = None


class AdminProfileUpdate(ProfileUpdate):
    email: Optional[str] = None
    weekly_submissions_limit: Optional[int] = Field(default=None, ge=0)


class ProfileResponse(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    bio: Optional[str] = None
    avatar_url: Optional[str] = None
    study_goals: Optional[List[str]] = None
    study_days: Optional[List[int]] = None
    study_schedule: Optional[list] = None
    monitoring_frequency: Optional[str] = None
    monitoring_day_of_week: Optional[int] = None
    monitoring_time: Optional[str] = None
    weekly_submissions_limit: Optional[int] = None
    last_active_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
