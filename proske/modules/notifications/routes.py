from fastapi import APIRouter, Depends
from proske.database.supabase_client import get_supabase
from proske.modules.notifications.schemas import NotificationResponse
from proske.modules.notifications.service import NotificationService
from proske.core.dependencies import get_current_user_id
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/notifications", tags=["notifications"])


def get_notification_service(supabase: Client = Depends(get_supabase)) -> NotificationService:
    return NotificationService(supabase)


@router.get("", response_model=List[NotificationResponse])
async def list_notifications(
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    """Profile-completeness notices and unread notifications of the current user"""
    return service.list_notifications(user_data["id"])


@router.post("/{notification_id}/read", status_code=204)
async def mark_notification_read(
    notification_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: NotificationService = Depends(get_notification_service)
):
    """Mark a notification as read"""
    service.mark_read(notification_id, user_data["id"])
    return None
