from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class NotificationResponse(BaseModel):
    id: str
    type: str
    title: str
    message: str
    description: str
    action: Optional[str] = None
    related_id: Optional[str] = None
    synthetic: bool = False
    created_at: Optional[datetime] = None


class NotificationCreate(BaseModel):
    user_id: str
    type: str
    title: str
    message: str
    description: str
    action: Optional[str] = None
    related_id: Optional[str] = None
