from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status
from proske.database.supabase_client import get_supabase
from proske.modules.profiles.schemas import ProfileUpdate, AdminProfileUpdate, ProfileResponse
from proske.modules.profiles.service import ProfileService
from proske.core.dependencies import get_current_user, get_current_user_id, require_capability, is_teacher_or_admin
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/profiles", tags=["profiles"])


def get_profile_service(supabase: Client = Depends(get_supabase)) -> ProfileService:
    return ProfileService(supabase)


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Get the caller's profile"""
    return service.get_profile(user_data["id"])


@router.put("/me", response_model=ProfileResponse)
async def update_my_profile(
    profile_data: ProfileUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Update the caller's profile"""
    return service.update_profile(user_data["id"], profile_data)


@router.post("/me/avatar", response_model=ProfileResponse)
async def upload_my_avatar(
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Upload a new avatar image"""
    content = await file.read()
    return service.upload_avatar(user_data["id"], content, file.content_type or "")


@router.post("/me/activity", status_code=204)
async def touch_my_activity(
    user_data: Dict = Depends(get_current_user_id),
    service: ProfileService = Depends(get_profile_service)
):
    """Record that the caller is active"""
    service.touch_activity(user_data["id"])
    return None


@router.get("", response_model=List[ProfileResponse])
async def list_profiles(
    search: Optional[str] = None,
    limit: int = 50,
    offset: int = 0,
    user_data: Dict = Depends(require_capability("profiles:read")),
    service: ProfileService = Depends(get_profile_service)
):
    """List profiles (teachers and admins)"""
    return service.list_profiles(search=search, limit=limit, offset=offset)


@router.get("/{user_id}", response_model=ProfileResponse)
async def get_profile(
    user_id: str,
    user_data: Dict = Depends(get_current_user),
    service: ProfileService = Depends(get_profile_service)
):
    """Get a profile (self, or anyone for teachers/admins)"""
    if user_id != user_data["id"] and not is_teacher_or_admin(user_data):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")
    return service.get_profile(user_id)


@router.put("/{user_id}", response_model=ProfileResponse)
async def update_profile(
    user_id: str,
    profile_data: AdminProfileUpdate,
    user_data: Dict = Depends(require_capability("profiles:manage")),
    service: ProfileService = Depends(get_profile_service)
):
    """Update any profile (admin)"""
    return service.update_profile(user_id, profile_data)


@router.delete("/{user_id}", status_code=204)
async def delete_profile(
    user_id: str,
    user_data: Dict = Depends(require_capability("profiles:manage")),
    service: ProfileService = Depends(get_profile_service)
):
    """Delete a profile (admin)"""
    service.delete_profile(user_id)
    return None
