from pydantic import BaseModel, Field, model_validator
from proske.modules.roles.schemas import AppRole
from typing import Optional, List
from datetime import datetime
import re

PHONE_PATTERN = re.compile(r"^\(\d{2}\)\s?\d{4,5}-\d{4}$")


class GroupCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_visible: bool = True
    students_can_message: bool = True
    allowed_message_roles: Optional[List[AppRole]] = None


class GroupUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    description: Optional[str] = Field(default=None, max_length=500)
    is_visible: Optional[bool] = None
    students_can_message: Optional[bool] = None
    allowed_message_roles: Optional[List[AppRole]] = None


class GroupResponse(BaseModel):
    id: str
    community_id: str
    name: str
    description: Optional[str] = None
    is_visible: bool = True
    students_can_message: bool = True
    allowed_message_roles: Optional[List[str]] = None
    created_by: Optional[str] = None
    member_count: Optional[int] = None
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class GroupMemberAdd(BaseModel):
    """Add by user id, or by contact: an email or a phone like (11) 99999-9999"""
    user_id: Optional[str] = None
    contact: Optional[str] = None

    @model_validator(mode="after")
    def check_target(self):
        if bool(self.user_id) == bool(self.contact):
            raise ValueError("Provide either user_id or contact")
        if self.contact:
            self.contact = self.contact.strip()
            if "@" not in self.contact and not PHONE_PATTERN.match(self.contact):
                raise ValueError("Enter a valid email or a phone in the format (11) 99999-9999")
        return self


class GroupMemberResponse(BaseModel):
    id: str
    group_id: str
    user_id: str
    joined_at: Optional[datetime] = None
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class GroupInfoResponse(GroupResponse):
    members: List[GroupMemberResponse] = []


class SidebarGroup(BaseModel):
    id: str
    name: str
    community_id: str
    community_name: Optional[str] = None
    unread_count: int = 0
    order_index: int = 0
    required_plan_ids: List[str] = []
    required_plan_names: List[str] = []
    has_access: bool = True


class GroupOrderUpdate(BaseModel):
    group_ids: List[str] = Field(min_length=1)
