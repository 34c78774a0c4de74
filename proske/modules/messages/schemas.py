from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator
from typing import Optional, List, Literal, Union, Annotated
from datetime import datetime


class PlainPayload(BaseModel):
    type: Literal["plain"] = "plain"


class TaskSubmissionPayload(BaseModel):
    type: Literal["task_submission"] = "task_submission"
    submission_id: str
    task_name: str
    video_url: Optional[str] = None
    song_name: Optional[str] = None


class TaskAssignedPayload(BaseModel):
    type: Literal["task_assigned"] = "task_assigned"
    task_id: str
    title: str
    deadline: Optional[datetime] = None


class TaskReviewedPayload(BaseModel):
    type: Literal["task_reviewed"] = "task_reviewed"
    submission_id: str
    grade: int = Field(ge=0, le=100)
    task_name: Optional[str] = None


MessagePayload = Annotated[
    Union[PlainPayload, TaskSubmissionPayload, TaskAssignedPayload, TaskReviewedPayload],
    Field(discriminator="type")
]

_payload_adapter = TypeAdapter(MessagePayload)


def parse_payload(message_type: Optional[str], metadata) -> MessagePayload:
    """Build the typed payload of a stored message; anything unknown or malformed reads as plain."""
    if not message_type or message_type == "plain" or not isinstance(metadata, dict):
        return PlainPayload()
    try:
        return _payload_adapter.validate_python({**metadata, "type": message_type})
    except ValidationError:
        return PlainPayload()


def payload_to_columns(payload: Optional[MessagePayload]) -> dict:
    """Split a payload into the message_type and metadata columns"""
    if payload is None or payload.type == "plain":
        return {"message_type": "plain", "metadata": None}
    return {
        "message_type": payload.type,
        "metadata": payload.model_dump(mode="json", exclude={"type"})
    }


class MessageCreate(BaseModel):
    # Typed payloads are only posted by the task flows
    model_config = ConfigDict(extra="forbid")

    content: str = Field(min_length=1, max_length=2000)

    @field_validator("content", mode="before")
    @classmethod
    def strip_content(cls, value):
        return value.strip() if isinstance(value, str) else value


class MessageAuthor(BaseModel):
    name: str = "Usuário"
    avatar_url: Optional[str] = None


class MessageResponse(BaseModel):
    id: str
    group_id: Optional[str] = None
    community_id: str
    user_id: str
    content: str
    payload: MessagePayload
    author: MessageAuthor
    created_at: datetime


class UnreadCountResponse(BaseModel):
    group_id: str
    unread_count: int


class MarkReadResponse(BaseModel):
    group_id: str
    marked: int
