from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime


class CommunityCreate(BaseModel):
    name: str = Field(min_length=3, max_length=100)
    subject: str = Field(min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)

    @field_validator("name", "subject", "description", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value


class CommunityUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3, max_length=100)
    subject: Optional[str] = Field(default=None, min_length=2, max_length=50)
    description: Optional[str] = Field(default=None, max_length=500)


class CommunityResponse(BaseModel):
    id: str
    name: str
    subject: str
    description: Optional[str] = None
    cover_image_url: Optional[str] = None
    created_by: str
    created_at: datetime
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CommunityMemberResponse(BaseModel):
    id: str
    community_id: str
    user_id: str
    joined_at: Optional[datetime] = None
    name: Optional[str] = None
    email: Optional[str] = None
    avatar_url: Optional[str] = None


class InviteCreateResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    invite_code: str = Field(serialization_alias="inviteCode")
    invite_url: str


class GenerateInviteRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    community_id: str = Field(alias="communityId")


class InviterInfo(BaseModel):
    id: str
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class InviteDetailsResponse(BaseModel):
    invite_code: str
    community: CommunityResponse
    inviter: Optional[InviterInfo] = None


class InviteAcceptResponse(BaseModel):
    community_id: str
    user_id: str
    already_member: bool
