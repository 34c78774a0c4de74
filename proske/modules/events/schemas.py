from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal, Union, Annotated
from datetime import datetime, date, time, timezone

ScheduledEventType = Literal["interview", "mentoring", "group_study", "live"]
RSVPStatus = Literal["pending", "accepted", "declined"]
StudyStatus = Literal["pending", "completed", "rescheduled"]

INDIVIDUAL_STUDY = "individual_study"


def combine_date_time(day: date, at: time) -> datetime:
    """Datetime of a date and a time of day; a time without tzinfo is taken as UTC"""
    combined = datetime.combine(day, at)
    if combined.tzinfo is None:
        combined = combined.replace(tzinfo=timezone.utc)
    return combined


class EventCreate(BaseModel):
    title: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    event_date: date
    event_time: time
    group_ids: List[str] = Field(min_length=1, description="Select at least one group")
    event_type: ScheduledEventType = "group_study"
    social_media_link: Optional[str] = None
    duration_minutes: Optional[int] = Field(default=None, ge=1)

    @model_validator(mode="after")
    def check_fields(self):
        self.title = self.title.strip()
        if len(self.title) < 3:
            raise ValueError("Title must have at least 3 characters")
        if self.social_media_link == "":
            self.social_media_link = None
        if self.social_media_link and not self.social_media_link.startswith(("http://", "https://")):
            raise ValueError("Invalid link")
        self.group_ids = list(dict.fromkeys(self.group_ids))
        return self

    @property
    def starts_at(self) -> datetime:
        return combine_date_time(self.event_date, self.event_time)


class EventUpdate(EventCreate):
    event_type: Optional[ScheduledEventType] = None


class RSVPRequest(BaseModel):
    status: Literal["accepted", "declined"]


class StudyCreate(BaseModel):
    event_date: date
    event_time: time
    duration_minutes: int = Field(ge=15, description="At least 15 minutes")
    study_topic: str = Field(min_length=1, max_length=200)
    description: Optional[str] = Field(default=None, max_length=500)

    @property
    def starts_at(self) -> datetime:
        return combine_date_time(self.event_date, self.event_time)


class StudyComplete(BaseModel):
    actual_start_time: datetime
    actual_end_time: datetime
    actual_study_notes: str = Field(min_length=1, description="Describe what was studied")

    @model_validator(mode="after")
    def check_times(self):
        if self.actual_end_time <= self.actual_start_time:
            raise ValueError("End time must be after start time")
        if not self.actual_study_notes.strip():
            raise ValueError("Describe what was studied")
        return self


class StudyReschedule(BaseModel):
    event_date: date
    event_time: time

    @property
    def starts_at(self) -> datetime:
        return combine_date_time(self.event_date, self.event_time)


class ParticipantResponse(BaseModel):
    user_id: str
    status: RSVPStatus
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class _EventBase(BaseModel):
    id: str
    community_id: str
    title: str
    description: Optional[str] = None
    event_date: datetime
    duration_minutes: int
    created_by: str
    created_at: Optional[datetime] = None


class ScheduledEvent(_EventBase):
    kind: Literal["scheduled"] = "scheduled"
    event_type: ScheduledEventType
    social_media_link: Optional[str] = None
    group_ids: List[str] = []
    group_names: List[str] = []
    my_status: Optional[RSVPStatus] = None


class IndividualStudy(_EventBase):
    kind: Literal["individual_study"] = "individual_study"
    study_status: StudyStatus = "pending"
    study_topic: Optional[str] = None
    actual_start_time: Optional[datetime] = None
    actual_end_time: Optional[datetime] = None
    actual_study_notes: Optional[str] = None


EventView = Annotated[Union[ScheduledEvent, IndividualStudy], Field(discriminator="kind")]


def event_from_row(row: dict, **extra) -> Union[ScheduledEvent, IndividualStudy]:
    """The only place the event_type tag of a stored row is interpreted"""
    if row.get("event_type") == INDIVIDUAL_STUDY:
        fields = {k: v for k, v in row.items() if k in IndividualStudy.model_fields and k != "kind"}
        fields["study_status"] = row.get("study_status") or "pending"
        return IndividualStudy(**fields)
    fields = {k: v for k, v in row.items() if k in ScheduledEvent.model_fields and k != "kind"}
    return ScheduledEvent(**{**fields, **extra})


class MyEventsResponse(BaseModel):
    upcoming: List[EventView]
    past: List[EventView]


class ScheduledStudiesResult(BaseModel):
    message: str
    total_created: int
    profiles_processed: int
