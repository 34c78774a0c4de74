from supabase import Client
from proske.modules.interviews.schemas import (
    InterviewCreate, InterviewResponse, MyInterviewsResponse,
    BOOKING_WINDOW_DAYS, ACTIVE_INTERVIEW_STATUSES
)
from typing import List, Optional
from datetime import date, datetime, timedelta, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def interview_required(roles: List[str], schedules: List[dict]) -> bool:
    """Guests need a pending or confirmed interview"""
    if "guest" not in roles:
        return False
    return not any(s.get("status") in ACTIVE_INTERVIEW_STATUSES for s in schedules)


class InterviewService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _user_schedules(self, user_id: str) -> List[dict]:
        result = self.supabase.table("interview_schedules")\
            .select("*")\
            .eq("user_id", user_id)\
            .order("created_at", desc=True)\
            .execute()
        return result.data

    def schedule(self, interview_data: InterviewCreate, user_id: str, today: Optional[date] = None) -> InterviewResponse:
        """Book an interview slot within the booking window; one active booking per user"""
        today = today or datetime.now(timezone.utc).date()
        try:
            if not today <= interview_data.scheduled_date <= today + timedelta(days=BOOKING_WINDOW_DAYS):
                raise HTTPException(
                    status_code=400,
                    detail=f"Interview date must be within the next {BOOKING_WINDOW_DAYS} days"
                )
            if any(s["status"] in ACTIVE_INTERVIEW_STATUSES for s in self._user_schedules(user_id)):
                raise HTTPException(status_code=409, detail="You already have an interview scheduled")

            result = self.supabase.table("interview_schedules").insert({
                "user_id": user_id,
                "scheduled_date": interview_data.scheduled_date.isoformat(),
                "scheduled_time": interview_data.scheduled_time,
                "status": "pending"
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to schedule interview")
            logger.info(f"Interview scheduled for user {user_id} on {interview_data.scheduled_date}")
            return InterviewResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to schedule interview: {str(e)}")

    def my_interviews(self, user_data: dict) -> MyInterviewsResponse:
        try:
            schedules = self._user_schedules(user_data["id"])
            return MyInterviewsResponse(
                schedules=[InterviewResponse(**s) for s in schedules],
                interview_required=interview_required(user_data.get("roles", []), schedules)
            )
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_interviews(self, status: Optional[str] = None) -> List[InterviewResponse]:
        try:
            query = self.supabase.table("interview_schedules").select("*")
            if status:
                query = query.eq("status", status)
            result = query.order("scheduled_date").execute()
            return [InterviewResponse(**s) for s in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def confirm(self, interview_id: str, admin_id: str) -> InterviewResponse:
        try:
            result = self.supabase.table("interview_schedules")\
                .update({
                    "status": "confirmed",
                    "confirmed_by": admin_id,
                    "updated_at": datetime.now(timezone.utc).isoformat()
                })\
                .eq("id", interview_id)\
                .eq("status", "pending")\
                .execute()
            if not result.data:
                existing = self.supabase.table("interview_schedules")\
                    .select("id")\
                    .eq("id", interview_id)\
                    .limit(1)\
                    .execute()
                if not existing.data:
                    raise HTTPException(status_code=404, detail="Interview not found")
                raise HTTPException(status_code=409, detail="Only pending interviews can be confirmed")
            return InterviewResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
