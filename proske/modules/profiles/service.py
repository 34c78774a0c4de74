from supabase import Client
from proske.database.storage import MediaStorage
from proske.modules.profiles.schemas import ProfileUpdate, ProfileResponse
from typing import List, Optional
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

ALLOWED_IMAGE_TYPES = {"image/jpeg": "jpg", "image/png": "png", "image/webp": "webp", "image/gif": "gif"}
MAX_IMAGE_BYTES = 5 * 1024 * 1024


def format_name(name: str) -> str:
    """Lower-case the name, then capitalize every space separated word."""
    words = name.lower().split(" ")
    return " ".join(word[:1].upper() + word[1:] for word in words).strip()


def validate_image(content: bytes, content_type: str) -> str:
    """Return the file extension for an accepted image upload"""
    if content_type not in ALLOWED_IMAGE_TYPES:
        raise HTTPException(status_code=400, detail="Only JPEG, PNG, WEBP or GIF images are allowed")
    if not content:
        raise HTTPException(status_code=400, detail="Empty file")
    if len(content) > MAX_IMAGE_BYTES:
        raise HTTPException(status_code=400, detail="Image must be at most 5MB")
    return ALLOWED_IMAGE_TYPES[content_type]


class ProfileService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def get_profile(self, user_id: str) -> ProfileResponse:
        """Get profile by user ID"""
        try:
            result = self.supabase.table("profiles")\
                .select("*")\
                .eq("id", user_id)\
                .limit(1)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_profiles_by_ids(self, user_ids: List[str]) -> dict:
        """Map user id -> profile row (id, name, avatar_url, email)"""
        if not user_ids:
            return {}
        result = self.supabase.table("profiles")\
            .select("id, name, avatar_url, email")\
            .in_("id", list(set(user_ids)))\
            .execute()
        return {p["id"]: p for p in (result.data or [])}

    def update_profile(self, user_id: str, profile_data: ProfileUpdate) -> ProfileResponse:
        """Update the given profile fields"""
        try:
            update_data = profile_data.model_dump(exclude_none=True, by_alias=True)
            if "name" in update_data:
                update_data["name"] = format_name(update_data["name"])
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("profiles")\
                .update(update_data)\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")

            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def upload_avatar(self, user_id: str, content: bytes, content_type: str) -> ProfileResponse:
        """Store the avatar in the media bucket and save its public URL on the profile"""
        extension = validate_image(content, content_type)
        try:
            path = f"{user_id}/avatar.{extension}"
            url = MediaStorage(self.supabase).upload(path, content, content_type)
            result = self.supabase.table("profiles")\
                .update({"avatar_url": url, "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", user_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")
            return ProfileResponse(**result.data[0])
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Avatar upload failed: {str(e)}")

    def touch_activity(self, user_id: str) -> None:
        """Set last_active_at to now"""
        try:
            self.supabase.table("profiles")\
                .update({"last_active_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", user_id)\
                .execute()
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_profiles(
        self,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0
    ) -> List[ProfileResponse]:
        """List profiles ordered by name, optionally filtered by a name fragment"""
        try:
            query = self.supabase.table("profiles").select("*")
            if search:
                query = query.ilike("name", f"%{search.strip()}%")
            result = query.order("name")\
                .limit(limit)\
                .offset(offset)\
                .execute()
            return [ProfileResponse(**p) for p in result.data]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_profile(self, user_id: str) -> bool:
        """Delete a profile with its memberships and roles"""
        try:
            for table in ("group_members", "community_members", "user_roles"):
                self.supabase.table(table)\
                    .delete()\
                    .eq("user_id", user_id)\
                    .execute()

            result = self.supabase.table("profiles")\
                .delete()\
                .eq("id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Profile not found")
            logger.info(f"Deleted profile {user_id}")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
