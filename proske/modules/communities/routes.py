from fastapi import APIRouter, Depends, File, UploadFile
from proske.database.supabase_client import get_supabase
from proske.modules.communities.schemas import (
    CommunityCreate, CommunityUpdate, CommunityResponse, CommunityMemberResponse,
    InviteCreateResponse, GenerateInviteRequest, InviteDetailsResponse, InviteAcceptResponse
)
from proske.modules.communities.service import CommunityService
from proske.core.dependencies import get_current_user, get_current_user_id, require_capability, check_community_manager
from supabase import Client
from typing import List, Dict

router = APIRouter(prefix="/communities", tags=["communities"])
invites_router = APIRouter(prefix="/invites", tags=["invites"])
functions_router = APIRouter(prefix="/functions", tags=["functions"])


def get_community_service(supabase: Client = Depends(get_supabase)) -> CommunityService:
    return CommunityService(supabase)


@router.post("", response_model=CommunityResponse, status_code=201)
async def create_community(
    community_data: CommunityCreate,
    user_data: Dict = Depends(require_capability("communities:create")),
    service: CommunityService = Depends(get_community_service)
):
    """Create a new community (teachers and admins)"""
    return service.create_community(community_data, user_data["id"])


@router.get("", response_model=List[CommunityResponse])
async def list_communities(
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service)
):
    """List communities visible to the caller"""
    return service.list_communities(user_data)


@router.get("/{community_id}", response_model=CommunityResponse)
async def get_community(
    community_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    """Get community by ID"""
    return service.get_community(community_id)


@router.put("/{community_id}", response_model=CommunityResponse)
async def update_community(
    community_id: str,
    community_data: CommunityUpdate,
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
    supabase: Client = Depends(get_supabase)
):
    """Update community (creator, teachers and admins)"""
    check_community_manager(community_id, user_data, supabase)
    return service.update_community(community_id, community_data)


@router.delete("/{community_id}", status_code=204)
async def delete_community(
    community_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
    supabase: Client = Depends(get_supabase)
):
    """Delete community (creator, teachers and admins)"""
    check_community_manager(community_id, user_data, supabase)
    service.delete_community(community_id)
    return None


@router.post("/{community_id}/cover", response_model=CommunityResponse)
async def upload_cover(
    community_id: str,
    file: UploadFile = File(...),
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
    supabase: Client = Depends(get_supabase)
):
    """Upload the community cover image"""
    check_community_manager(community_id, user_data, supabase)
    content = await file.read()
    return service.upload_cover(community_id, content, file.content_type or "")


@router.get("/{community_id}/members", response_model=List[CommunityMemberResponse])
async def list_members(
    community_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
    supabase: Client = Depends(get_supabase)
):
    """List community members (creator, teachers and admins)"""
    check_community_manager(community_id, user_data, supabase)
    return service.list_members(community_id)


@router.delete("/{community_id}/members/{user_id}", status_code=204)
async def remove_member(
    community_id: str,
    user_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service),
    supabase: Client = Depends(get_supabase)
):
    """Remove a member from the community"""
    check_community_manager(community_id, user_data, supabase)
    service.remove_member(community_id, user_id)
    return None


@router.post("/{community_id}/invites", response_model=InviteCreateResponse, status_code=201)
async def create_invite(
    community_id: str,
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service)
):
    """Generate a shareable invite code"""
    return service.generate_invite(community_id, user_data)


@functions_router.post("/generate-invite", response_model=InviteCreateResponse)
async def generate_invite(
    request_data: GenerateInviteRequest,
    user_data: Dict = Depends(get_current_user),
    service: CommunityService = Depends(get_community_service)
):
    """Function-style endpoint: {communityId} -> {inviteCode, invite_url}"""
    return service.generate_invite(request_data.community_id, user_data)


@invites_router.get("/{invite_code}", response_model=InviteDetailsResponse)
async def get_invite(
    invite_code: str,
    service: CommunityService = Depends(get_community_service)
):
    """Public invite preview: community and inviter"""
    return service.get_invite(invite_code)


@invites_router.post("/{invite_code}/accept", response_model=InviteAcceptResponse)
async def accept_invite(
    invite_code: str,
    user_data: Dict = Depends(get_current_user_id),
    service: CommunityService = Depends(get_community_service)
):
    """Accept an invite and join its community"""
    return service.accept_invite(invite_code, user_data["id"])
