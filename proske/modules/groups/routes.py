from fastapi import APIRouter, Depends
from proske.database.supabase_client import get_supabase
from proske.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupInfoResponse,
    GroupMemberAdd, GroupMemberResponse, SidebarGroup, GroupOrderUpdate
)
from proske.modules.groups.service import GroupService
from proske.core.dependencies import (
    get_current_user, get_current_user_id, check_community_manager, check_group_access, is_teacher_or_admin
)
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/groups", tags=["groups"])
community_router = APIRouter(prefix="/communities", tags=["groups"])


def get_group_service(supabase: Client = Depends(get_supabase)) -> GroupService:
    return GroupService(supabase)


@community_router.post("/{community_id}/groups", response_model=GroupResponse, status_code=201)
async def create_group(
    community_id: str,
    group_data: GroupCreate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Create a group in a community (community creator, teachers and admins)"""
    check_community_manager(community_id, user_data, supabase)
    return service.create_group(community_id, group_data, user_data["id"])


@community_router.get("/{community_id}/groups", response_model=List[GroupResponse])
async def list_community_groups(
    community_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """List the groups of a community; students only see visible ones"""
    return service.list_community_groups(community_id, visible_only=not is_teacher_or_admin(user_data))


@router.get("/mine", response_model=List[GroupResponse])
async def list_my_groups(
    user_data: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Groups the caller is a member of"""
    return service.list_my_groups(user_data["id"])


@router.get("/sidebar", response_model=List[SidebarGroup])
async def get_sidebar(
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service)
):
    """Groups for the navigation sidebar with access, unread counts and custom order"""
    return service.get_sidebar(user_data)


@router.put("/order", status_code=200)
async def set_group_order(
    order_data: GroupOrderUpdate,
    user_data: Dict = Depends(get_current_user_id),
    service: GroupService = Depends(get_group_service)
):
    """Save the caller's sidebar order"""
    saved = service.set_order(user_data["id"], order_data.group_ids)
    return {"message": "Order saved", "count": saved}


@router.get("/{group_id}", response_model=GroupResponse)
async def get_group(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Get group by ID (only if user is a member)"""
    check_group_access(group_id, user_data, supabase)
    return service.get_group(group_id)


@router.get("/{group_id}/info", response_model=GroupInfoResponse)
async def get_group_info(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Group with its members (only if user is a member)"""
    check_group_access(group_id, user_data, supabase)
    return service.get_group_info(group_id)


@router.put("/{group_id}", response_model=GroupResponse)
async def update_group(
    group_id: str,
    group_data: GroupUpdate,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Update group (community creator, teachers and admins)"""
    group = service.get_group(group_id)
    check_community_manager(group.community_id, user_data, supabase)
    return service.update_group(group_id, group_data)


@router.delete("/{group_id}", status_code=204)
async def delete_group(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete group (community creator, teachers and admins)"""
    group = service.get_group(group_id)
    check_community_manager(group.community_id, user_data, supabase)
    service.delete_group(group_id)
    return None


@router.post("/{group_id}/members", response_model=GroupMemberResponse, status_code=201)
async def add_member(
    group_id: str,
    member_data: GroupMemberAdd,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Add a member by user id, email or phone"""
    group = service.get_group(group_id)
    check_community_manager(group.community_id, user_data, supabase)
    return service.add_member(group_id, member_data)


@router.get("/{group_id}/members", response_model=List[GroupMemberResponse])
async def list_members(
    group_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """List all members of a group (only if user is a member)"""
    check_group_access(group_id, user_data, supabase)
    return service.list_members(group_id)


@router.delete("/{group_id}/members/{user_id}", status_code=204)
async def remove_member(
    group_id: str,
    user_id: str,
    user_data: Dict = Depends(get_current_user),
    service: GroupService = Depends(get_group_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member from the group"""
    group = service.get_group(group_id)
    check_community_manager(group.community_id, user_data, supabase)
    service.remove_member(group_id, user_id)
    return None
