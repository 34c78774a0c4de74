from fastapi import APIRouter, Depends, Query
from proske.database.supabase_client import get_supabase
from proske.modules.interviews.schemas import InterviewCreate, InterviewResponse, MyInterviewsResponse
from proske.modules.interviews.service import InterviewService
from proske.core.dependencies import get_current_user, require_capability
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/interviews", tags=["interviews"])


def get_interview_service(supabase: Client = Depends(get_supabase)) -> InterviewService:
    return InterviewService(supabase)


@router.post("", response_model=InterviewResponse, status_code=201)
async def schedule_interview(
    interview_data: InterviewCreate,
    user_data: Dict = Depends(require_capability("interviews:create")),
    service: InterviewService = Depends(get_interview_service)
):
    """Book an interview slot"""
    return service.schedule(interview_data, user_data["id"])


@router.get("", response_model=List[InterviewResponse])
async def list_interviews(
    status: Optional[str] = Query(None),
    user_data: Dict = Depends(require_capability("interviews:confirm")),
    service: InterviewService = Depends(get_interview_service)
):
    """All interview bookings (admin only)"""
    return service.list_interviews(status)


@router.get("/me", response_model=MyInterviewsResponse)
async def my_interviews(
    user_data: Dict = Depends(get_current_user),
    service: InterviewService = Depends(get_interview_service)
):
    """Bookings of the current user and whether an interview is still required"""
    return service.my_interviews(user_data)


@router.post("/{interview_id}/confirm", response_model=InterviewResponse)
async def confirm_interview(
    interview_id: str,
    user_data: Dict = Depends(require_capability("interviews:confirm")),
    service: InterviewService = Depends(get_interview_service)
):
    """Confirm a pending interview (admin only)"""
    return service.confirm(interview_id, user_data["id"])
