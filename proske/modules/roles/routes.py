from fastapi import APIRouter, Depends, HTTPException, status
from proske.database.supabase_client import get_supabase
from proske.modules.roles.schemas import RoleUpdate, UserRolesResponse
from proske.modules.roles.service import RoleService
from proske.core.dependencies import get_current_user, require_capability, is_teacher_or_admin
from supabase import Client
from typing import Dict

router = APIRouter(prefix="/roles", tags=["roles"])


def get_role_service(supabase: Client = Depends(get_supabase)) -> RoleService:
    return RoleService(supabase)


@router.get("/users/{user_id}", response_model=UserRolesResponse)
async def get_user_roles(
    user_id: str,
    user_data: Dict = Depends(get_current_user),
    service: RoleService = Depends(get_role_service)
):
    """Get roles of a user (self, or any user for teachers/admins)"""
    if user_id != user_data["id"] and not is_teacher_or_admin(user_data):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User not accessible")
    return service.get_user_roles(user_id)


@router.put("/users/{user_id}", response_model=UserRolesResponse)
async def set_user_role(
    user_id: str,
    role_data: RoleUpdate,
    user_data: Dict = Depends(require_capability("profiles:manage")),
    service: RoleService = Depends(get_role_service)
):
    """Replace the role of a user (admin)"""
    return service.set_user_role(user_id, role_data.role)
