from pydantic import BaseModel, Field, field_validator
from typing import Optional, List, Literal
from datetime import datetime

ItemType = Literal["leads", "users"]
UNTAGGED_COLUMN_ID = "no-tag"


class TagCreate(BaseModel):
    name: str = Field(min_length=1, max_length=50)
    color: str = Field(default="#3b82f6", pattern=r"^#[0-9a-fA-F]{6}$")

    @field_validator("name", mode="before")
    @classmethod
    def strip_name(cls, value):
        return value.strip() if isinstance(value, str) else value


class TagUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=50)
    color: Optional[str] = Field(default=None, pattern=r"^#[0-9a-fA-F]{6}$")


class TagResponse(BaseModel):
    id: str
    name: str
    color: str
    order_index: int

    class Config:
        from_attributes = True


class TagOrderUpdate(BaseModel):
    tag_ids: List[str] = Field(min_length=1)


class LeadCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    tag_ids: List[str] = []

    @field_validator("email", "phone", "city", mode="before")
    @classmethod
    def blank_to_none(cls, value):
        if isinstance(value, str):
            return value.strip() or None
        return value


class LeadUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None


class ItemTagsUpdate(BaseModel):
    tag_ids: List[str]


class CRMCard(BaseModel):
    id: str
    kind: Literal["lead", "user"]
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    avatar_url: Optional[str] = None
    tag_ids: List[str] = []


class KanbanColumn(BaseModel):
    id: str
    name: str
    color: str
    items: List[CRMCard]


class NoteCreate(BaseModel):
    note: str = Field(min_length=1, max_length=5000)

    @field_validator("note", mode="before")
    @classmethod
    def strip_note(cls, value):
        return value.strip() if isinstance(value, str) else value


class NoteResponse(BaseModel):
    id: str
    note: str
    lead_id: Optional[str] = None
    user_id: Optional[str] = None
    created_by: Optional[str] = None
    author_name: Optional[str] = None
    author_avatar: Optional[str] = None
    created_at: datetime
