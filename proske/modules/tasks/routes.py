from fastapi import APIRouter, Depends, Query
from proske.database.supabase_client import get_supabase
from proske.modules.tasks.schemas import (
    SubmissionCreate, SubmissionReview, SubmissionResponse,
    AssignedTaskCreate, AssignedTaskResponse, MyAssignedTask, AssignmentStatusUpdate
)
from proske.modules.tasks.service import TaskService
from proske.core.dependencies import (
    get_current_user, require_capability, check_community_access, check_community_manager
)
from supabase import Client
from typing import List, Dict, Optional, Literal

router = APIRouter(prefix="/submissions", tags=["tasks"])
community_router = APIRouter(prefix="/communities", tags=["tasks"])
assigned_router = APIRouter(prefix="/assigned-tasks", tags=["tasks"])


def get_task_service(supabase: Client = Depends(get_supabase)) -> TaskService:
    return TaskService(supabase)


@community_router.post("/{community_id}/submissions", response_model=SubmissionResponse, status_code=201)
async def create_submission(
    community_id: str,
    submission_data: SubmissionCreate,
    user_data: Dict = Depends(require_capability("submissions:create")),
    supabase: Client = Depends(get_supabase),
    service: TaskService = Depends(get_task_service)
):
    """Submit a recorded task for review"""
    check_community_access(community_id, user_data, supabase)
    return service.create_submission(community_id, submission_data, user_data)


@community_router.get("/{community_id}/submissions", response_model=List[SubmissionResponse])
async def list_submissions(
    community_id: str,
    status: Optional[Literal["pending", "reviewed"]] = Query(None),
    user_data: Dict = Depends(get_current_user),
    supabase: Client = Depends(get_supabase),
    service: TaskService = Depends(get_task_service)
):
    """Community submissions; students only see their own"""
    check_community_access(community_id, user_data, supabase)
    return service.list_submissions(community_id, user_data, status)


@router.get("/mine", response_model=List[SubmissionResponse])
async def my_submissions(
    user_data: Dict = Depends(get_current_user),
    service: TaskService = Depends(get_task_service)
):
    """Submissions of the current user"""
    return service.my_submissions(user_data["id"])


@router.get("/{submission_id}", response_model=SubmissionResponse)
async def get_submission(
    submission_id: str,
    user_data: Dict = Depends(get_current_user),
    service: TaskService = Depends(get_task_service)
):
    """Get submission by ID"""
    return service.get_submission(submission_id, user_data)


@router.post("/{submission_id}/review", response_model=SubmissionResponse)
async def review_submission(
    submission_id: str,
    review: SubmissionReview,
    user_data: Dict = Depends(require_capability("submissions:review")),
    service: TaskService = Depends(get_task_service)
):
    """Grade a pending submission (teachers and admins)"""
    return service.review_submission(submission_id, review, user_data)


@community_router.post("/{community_id}/assigned-tasks", response_model=AssignedTaskResponse, status_code=201)
async def create_assigned_task(
    community_id: str,
    task_data: AssignedTaskCreate,
    user_data: Dict = Depends(require_capability("assigned_tasks:create")),
    supabase: Client = Depends(get_supabase),
    service: TaskService = Depends(get_task_service)
):
    """Assign a task to selected students"""
    check_community_manager(community_id, user_data, supabase)
    return service.create_assigned_task(community_id, task_data, user_data)


@community_router.get("/{community_id}/assigned-tasks", response_model=List[AssignedTaskResponse])
async def list_assigned_tasks(
    community_id: str,
    user_data: Dict = Depends(require_capability("assigned_tasks:create")),
    supabase: Client = Depends(get_supabase),
    service: TaskService = Depends(get_task_service)
):
    """Tasks assigned in a community"""
    check_community_manager(community_id, user_data, supabase)
    return service.list_assigned_tasks(community_id)


@assigned_router.get("/mine", response_model=List[MyAssignedTask])
async def my_assigned_tasks(
    user_data: Dict = Depends(get_current_user),
    service: TaskService = Depends(get_task_service)
):
    """Tasks assigned to the current user"""
    return service.my_assigned_tasks(user_data["id"])


@assigned_router.put("/{assignment_id}/status", response_model=MyAssignedTask)
async def set_assignment_status(
    assignment_id: str,
    status_data: AssignmentStatusUpdate,
    user_data: Dict = Depends(get_current_user),
    service: TaskService = Depends(get_task_service)
):
    """Mark an assignment completed or pending"""
    return service.set_assignment_status(assignment_id, status_data.status, user_data["id"])
