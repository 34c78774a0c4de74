from supabase import Client
from proske.modules.notifications.schemas import NotificationResponse, NotificationCreate
from typing import List, Optional
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

PROFILE_NOTICES = {
    "avatar": {
        "message": "⚠️ Perfil Incompleto: Colocar foto de perfil",
        "title": "Adicione sua foto de perfil",
        "description": "Uma foto de perfil ajuda outros membros da comunidade a reconhecer você.",
    },
    "city": {
        "message": "⚠️ Perfil Incompleto: Informar cidade",
        "title": "Informe sua cidade",
        "description": "Adicionar sua cidade permite que você se conecte com membros da sua região.",
    },
    "monitoring": {
        "message": "⚠️ Perfil Incompleto: Informar data e hora de monitoria",
        "title": "Configure seu horário de monitoria",
        "description": "Defina quando você prefere realizar suas monitorias para receber lembretes.",
    },
}


def profile_notices(profile: Optional[dict]) -> List[NotificationResponse]:
    """Notices derived from missing profile fields; they have fixed ids and are never stored"""
    if not profile:
        return []
    missing = []
    if not profile.get("avatar_url"):
        missing.append("avatar")
    if not profile.get("city"):
        missing.append("city")
    if (not profile.get("monitoring_frequency")
            or profile.get("monitoring_day_of_week") is None
            or not profile.get("monitoring_time")):
        missing.append("monitoring")
    return [
        NotificationResponse(id=key, type="profile", action="/profile", synthetic=True, **PROFILE_NOTICES[key])
        for key in missing
    ]


class NotificationService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_notifications(self, user_id: str) -> List[NotificationResponse]:
        """Profile notices first, then unread stored notifications, newest first"""
        try:
            profile_result = self.supabase.table("profiles")\
                .select("avatar_url, city, monitoring_frequency, monitoring_day_of_week, monitoring_time")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()
            notices = profile_notices(profile_result.data[0] if profile_result.data else None)

            result = self.supabase.table("notifications")\
                .select("*")\
                .eq("user_id", user_id)\
                .eq("is_read", False)\
                .order("created_at", desc=True)\
                .execute()

            return notices + [NotificationResponse(**row) for row in result.data]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_read(self, notification_id: str, user_id: str) -> bool:
        """Mark a stored notification read; profile notices are ignored"""
        if notification_id in PROFILE_NOTICES:
            return False
        try:
            result = self.supabase.table("notifications")\
                .update({"is_read": True})\
                .eq("id", notification_id)\
                .eq("user_id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Notification not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def notify(self, notification: NotificationCreate) -> None:
        """Store a notification; failures are logged, never raised"""
        try:
            self.supabase.table("notifications").insert(notification.model_dump()).execute()
        except Exception as e:
            logger.warning(f"Failed to notify user {notification.user_id}: {e}")
