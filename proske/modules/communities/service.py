from supabase import Client
from proske.core.dependencies import check_community_manager, is_teacher_or_admin
from proske.config import settings
from proske.database.errors import is_unique_violation
from proske.database.storage import MediaStorage
from proske.modules.communities.schemas import (
    CommunityCreate, CommunityUpdate, CommunityResponse, CommunityMemberResponse,
    InviteCreateResponse, InviteDetailsResponse, InviterInfo, InviteAcceptResponse
)
from proske.modules.profiles.service import ProfileService, validate_image
from typing import List
from datetime import datetime, timezone
from fastapi import HTTPException
import uuid
import logging

logger = logging.getLogger(__name__)


def generate_invite_code() -> str:
    """First block of a random uuid4: 8 lowercase hex chars"""
    return str(uuid.uuid4()).split("-")[0]


class CommunityService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _get_row(self, community_id: str) -> dict:
        result = self.supabase.table("communities")\
            .select("*")\
            .eq("id", community_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Community not found")
        return result.data[0]

    def create_community(self, community_data: CommunityCreate, user_id: str) -> CommunityResponse:
        """Create a community; the creator joins it as a member"""
        try:
            result = self.supabase.table("communities").insert({
                "name": community_data.name,
                "subject": community_data.subject,
                "description": community_data.description or None,
                "created_by": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create community")

            community = result.data[0]
            self.add_member(community["id"], user_id)
            logger.info(f"Community {community['id']} created by {user_id}")
            return CommunityResponse(**community)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_community(self, community_id: str) -> CommunityResponse:
        """Get community by ID"""
        try:
            return CommunityResponse(**self._get_row(community_id))
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_communities(self, user_data: dict) -> List[CommunityResponse]:
        """Teachers/admins see every community; others the ones they created or joined"""
        try:
            query = self.supabase.table("communities").select("*")
            if not is_teacher_or_admin(user_data):
                members_result = self.supabase.table("community_members")\
                    .select("community_id")\
                    .eq("user_id", user_data["id"])\
                    .execute()
                created_result = self.supabase.table("communities")\
                    .select("id")\
                    .eq("created_by", user_data["id"])\
                    .execute()
                community_ids = {m["community_id"] for m in members_result.data}
                community_ids.update(c["id"] for c in created_result.data)
                if not community_ids:
                    return []
                query = query.in_("id", list(community_ids))
            result = query.order("created_at", desc=True).execute()
            return [CommunityResponse(**c) for c in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_community(self, community_id: str, community_data: CommunityUpdate) -> CommunityResponse:
        """Update community"""
        try:
            update_data = community_data.model_dump(exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("communities")\
                .update(update_data)\
                .eq("id", community_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Community not found")

            return CommunityResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_community(self, community_id: str) -> bool:
        """Delete community (groups, events and members cascade in the database)"""
        try:
            result = self.supabase.table("communities")\
                .delete()\
                .eq("id", community_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Community not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def upload_cover(self, community_id: str, content: bytes, content_type: str) -> CommunityResponse:
        """Store a cover image in the media bucket and save its public URL"""
        extension = validate_image(content, content_type)
        try:
            path = f"communities/{community_id}/cover-{uuid.uuid4().hex[:8]}.{extension}"
            url = MediaStorage(self.supabase).upload(path, content, content_type)
            result = self.supabase.table("communities")\
                .update({"cover_image_url": url, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", community_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Community not found")
            return CommunityResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Cover upload failed: {str(e)}")

    def add_member(self, community_id: str, user_id: str) -> bool:
        """Add a community member; returns False when they already were one"""
        existing = self.supabase.table("community_members")\
            .select("id")\
            .eq("community_id", community_id)\
            .eq("user_id", user_id)\
            .limit(1)\
            .execute()
        if existing.data:
            return False
        try:
            self.supabase.table("community_members").insert({
                "community_id": community_id,
                "user_id": user_id
            }).execute()
        except Exception as e:
            if is_unique_violation(e):
                return False
            raise
        return True

    def list_members(self, community_id: str) -> List[CommunityMemberResponse]:
        """List community members with their profile info"""
        try:
            result = self.supabase.table("community_members")\
                .select("*")\
                .eq("community_id", community_id)\
                .order("joined_at")\
                .execute()
            profiles = ProfileService(self.supabase).get_profiles_by_ids([m["user_id"] for m in result.data])
            members = []
            for member in result.data:
                profile = profiles.get(member["user_id"], {})
                members.append(CommunityMemberResponse(
                    **member,
                    name=profile.get("name"),
                    email=profile.get("email"),
                    avatar_url=profile.get("avatar_url")
                ))
            return members
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, community_id: str, user_id: str) -> bool:
        """Remove a member from the community"""
        try:
            result = self.supabase.table("community_members")\
                .delete()\
                .eq("community_id", community_id)\
                .eq("user_id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def generate_invite(self, community_id: str, user_data: dict) -> InviteCreateResponse:
        """Create a one-time invite code (community creator, teachers and admins)"""
        check_community_manager(community_id, user_data, self.supabase)
        try:
            invite_code = generate_invite_code()
            self.supabase.table("community_invitations").insert({
                "community_id": community_id,
                "invited_by": user_data["id"],
                "invite_code": invite_code
            }).execute()
            logger.info(f"Invite {invite_code} created for community {community_id}")
            return InviteCreateResponse(invite_code=invite_code, invite_url=settings.invite_url(invite_code))
        except Exception as e:
            logger.error(f"Invite creation error: {e}")
            raise HTTPException(status_code=500, detail=f"Failed to create invite: {str(e)}")

    def _get_invite(self, invite_code: str) -> dict:
        result = self.supabase.table("community_invitations")\
            .select("*")\
            .eq("invite_code", invite_code)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Invalid invite")
        return result.data[0]

    def get_invite(self, invite_code: str) -> InviteDetailsResponse:
        """Community and inviter behind an unused invite code"""
        try:
            invite = self._get_invite(invite_code)
            if invite.get("used_by"):
                raise HTTPException(status_code=409, detail="This invite has already been used")
            community = self._get_row(invite["community_id"])
            inviter = ProfileService(self.supabase).get_profiles_by_ids([invite["invited_by"]]).get(invite["invited_by"])
            return InviteDetailsResponse(
                invite_code=invite_code,
                community=CommunityResponse(**community),
                inviter=InviterInfo(**inviter) if inviter else None
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _claim_invite(self, invite: dict, user_id: str) -> None:
        """Set used_by only while the invite is still unused"""
        claimed = self.supabase.table("community_invitations")\
            .update({"used_by": user_id, "used_at": datetime.now(timezone.utc).isoformat()})\
            .eq("id", invite["id"])\
            .is_("used_by", "null")\
            .execute()
        if claimed.data:
            return
        current = self._get_invite(invite["invite_code"])
        if current.get("used_by") != user_id:
            raise HTTPException(status_code=409, detail="This invite has already been used")

    def accept_invite(self, invite_code: str, user_id: str) -> InviteAcceptResponse:
        """Mark the invite used by the caller and join its community. Re-accepting is a no-op."""
        try:
            invite = self._get_invite(invite_code)
            used_by = invite.get("used_by")
            if used_by and used_by != user_id:
                raise HTTPException(status_code=409, detail="This invite has already been used")
            if not used_by:
                self._claim_invite(invite, user_id)
            added = self.add_member(invite["community_id"], user_id)
            return InviteAcceptResponse(
                community_id=invite["community_id"],
                user_id=user_id,
                already_member=not added
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
