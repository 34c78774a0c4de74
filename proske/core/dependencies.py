"""
Core dependencies for route protection and role checking
"""

from fastapi import Depends, HTTPException, Request, Security, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from proske.database.supabase_client import get_supabase
from proske.config.roles_config import roles_with_capability
from proske.modules.auth.service import AuthService
from proske.modules.roles.service import normalize_roles
from supabase import Client
from typing import List, Optional, Dict, Any
import logging

logger = logging.getLogger(__name__)

security = HTTPBearer()

MANAGER_ROLES = ("teacher", "admin")


def _get_request_cache(request: Request) -> Dict[str, Any]:
    """Return request-scoped cache for access data (roles)."""
    if not hasattr(request.state, "access_cache"):
        request.state.access_cache = {}
    return request.state.access_cache


def get_auth_service(supabase: Client = Depends(get_supabase)) -> AuthService:
    return AuthService(supabase)


def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Security(security),
    auth_service: AuthService = Depends(get_auth_service)
) -> dict:
    """Extract current user info from JWT token"""
    token = credentials.credentials
    user_data = auth_service.get_current_user(token)
    return user_data


def get_user_roles(user_id: str, supabase: Client, cache: Optional[Dict[str, Any]] = None) -> List[str]:
    """Return the user's app roles from user_roles. Uses request-scoped cache when provided."""
    if cache is not None and "roles" in cache:
        return cache["roles"]
    try:
        result = supabase.table("user_roles")\
            .select("role")\
            .eq("user_id", user_id)\
            .execute()
        roles = normalize_roles([r["role"] for r in (result.data or [])])
        if cache is not None:
            cache["roles"] = roles
        return roles
    except Exception as e:
        logger.error(f"Error getting user roles: {e}")
        return []


def is_admin(user_data: dict) -> bool:
    return "admin" in user_data.get("roles", [])


def is_teacher_or_admin(user_data: dict) -> bool:
    return any(role in MANAGER_ROLES for role in user_data.get("roles", []))


def get_current_user(
    request: Request,
    user_data: dict = Depends(get_current_user_id),
    supabase: Client = Depends(get_supabase)
) -> dict:
    """Current user with their roles attached under "roles"."""
    roles = get_user_roles(user_data["id"], supabase, _get_request_cache(request))
    return {**user_data, "roles": roles}


def require_capability(capability: str):
    """Factory function to create a role check dependency"""
    def check_capability(user_data: dict = Depends(get_current_user)) -> dict:
        allowed = roles_with_capability(capability)
        if not set(user_data["roles"]).intersection(allowed):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Insufficient permissions. Required: {capability}"
            )
        return user_data
    return check_capability


def check_community_manager(community_id: str, user_data: dict, supabase: Client) -> dict:
    """Allow the community creator or a teacher/admin. Returns the community row."""
    result = supabase.table("communities")\
        .select("*")\
        .eq("id", community_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Community not found"
        )
    community = result.data[0]
    if community.get("created_by") == user_data["id"] or is_teacher_or_admin(user_data):
        return community
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be the community creator, a teacher or an admin to perform this action"
    )


def is_group_member(group_id: str, user_id: str, supabase: Client) -> bool:
    result = supabase.table("group_members")\
        .select("id")\
        .eq("group_id", group_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    return bool(result.data)


def check_group_access(group_id: str, user_data: dict, supabase: Client) -> dict:
    """Allow group members and teachers/admins. Returns the group row."""
    result = supabase.table("conversation_groups")\
        .select("*")\
        .eq("id", group_id)\
        .limit(1)\
        .execute()
    if not result.data:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Group not found"
        )
    group = result.data[0]
    if is_teacher_or_admin(user_data) or is_group_member(group_id, user_data["id"], supabase):
        return group
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this group"
    )


def is_community_member(community_id: str, user_id: str, supabase: Client) -> bool:
    result = supabase.table("community_members")\
        .select("id")\
        .eq("community_id", community_id)\
        .eq("user_id", user_id)\
        .limit(1)\
        .execute()
    return bool(result.data)


def check_community_access(community_id: str, user_data: dict, supabase: Client) -> None:
    """Allow community members and teachers/admins"""
    if is_teacher_or_admin(user_data) or is_community_member(community_id, user_data["id"], supabase):
        return
    raise HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail="You must be a member of this community"
    )
