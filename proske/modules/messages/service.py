from supabase import Client
from proske.core.dependencies import MANAGER_ROLES
from proske.database.errors import is_unique_violation
from proske.modules.messages.schemas import (
    MessageCreate, MessageResponse, MessageAuthor, MessagePayload,
    parse_payload, payload_to_columns
)
from proske.modules.profiles.service import ProfileService
from typing import List, Optional, Iterable
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

DEFAULT_AUTHOR_NAME = "Usuário"


def check_can_send(group: dict, roles: Iterable[str], is_member: bool) -> None:
    """Raise 403 unless the caller may post in the group"""
    roles = set(roles)
    is_manager = bool(roles.intersection(MANAGER_ROLES))
    if not is_member and not is_manager:
        raise HTTPException(status_code=403, detail="You must be a member of this group")
    if not is_manager and group.get("students_can_message") is False:
        raise HTTPException(status_code=403, detail="Students cannot send messages in this group")
    allowed = group.get("allowed_message_roles") or []
    if allowed and not roles.intersection(allowed):
        raise HTTPException(
            status_code=403,
            detail=f"Only {', '.join(allowed)} can send messages in this group"
        )


def to_message_response(row: dict, profile: Optional[dict]) -> MessageResponse:
    author = MessageAuthor(
        name=(profile or {}).get("name") or DEFAULT_AUTHOR_NAME,
        avatar_url=(profile or {}).get("avatar_url")
    )
    return MessageResponse(
        id=row["id"],
        group_id=row.get("group_id"),
        community_id=row["community_id"],
        user_id=row["user_id"],
        content=row["content"],
        payload=parse_payload(row.get("message_type"), row.get("metadata")),
        author=author,
        created_at=row["created_at"]
    )


class MessageService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def list_messages(self, group_id: str, limit: int = 200) -> List[MessageResponse]:
        """The latest messages of the group, oldest first, with author profiles"""
        try:
            result = self.supabase.table("messages")\
                .select("*")\
                .eq("group_id", group_id)\
                .order("created_at", desc=True)\
                .limit(limit)\
                .execute()
            rows = list(reversed(result.data))
            profiles = ProfileService(self.supabase).get_profiles_by_ids([m["user_id"] for m in rows])
            return [to_message_response(m, profiles.get(m["user_id"])) for m in rows]
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def post_message(
        self,
        group: dict,
        user_id: str,
        content: str,
        payload: Optional[MessagePayload] = None
    ) -> MessageResponse:
        """Insert a message into the group without permission checks"""
        try:
            result = self.supabase.table("messages").insert({
                "group_id": group["id"],
                "community_id": group["community_id"],
                "user_id": user_id,
                "content": content,
                **payload_to_columns(payload)
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to send message")

            profile = ProfileService(self.supabase).get_profiles_by_ids([user_id]).get(user_id)
            return to_message_response(result.data[0], profile)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to send message: {str(e)}")

    def send_message(self, group: dict, user_data: dict, is_member: bool, message_data: MessageCreate) -> MessageResponse:
        """Post a message after checking the group's messaging permissions"""
        check_can_send(group, user_data.get("roles", []), is_member)
        return self.post_message(group, user_data["id"], message_data.content)

    def _unread_message_ids(self, group_id: str, user_id: str) -> List[str]:
        messages_result = self.supabase.table("messages")\
            .select("id")\
            .eq("group_id", group_id)\
            .neq("user_id", user_id)\
            .execute()
        message_ids = [m["id"] for m in messages_result.data]
        if not message_ids:
            return []
        reads_result = self.supabase.table("message_reads")\
            .select("message_id")\
            .eq("group_id", group_id)\
            .eq("user_id", user_id)\
            .execute()
        read_ids = {r["message_id"] for r in reads_result.data}
        return [mid for mid in message_ids if mid not in read_ids]

    def count_unread(self, group_id: str, user_id: str) -> int:
        """Messages of other users in the group the user has not read"""
        try:
            return len(self._unread_message_ids(group_id, user_id))
        except Exception as e:
            logger.warning(f"Unread count failed for group {group_id}: {e}")
            return 0

    def mark_read(self, group_id: str, user_id: str) -> int:
        """Mark every message of the group read for the user; returns how many were new"""
        try:
            unread = self._unread_message_ids(group_id, user_id)
            if not unread:
                return 0
            rows = [{"group_id": group_id, "message_id": mid, "user_id": user_id} for mid in unread]
            try:
                self.supabase.table("message_reads").insert(rows).execute()
            except Exception as e:
                if not is_unique_violation(e):
                    raise
                # A concurrent call marked some of them first
                self.supabase.table("message_reads")\
                    .upsert(rows, on_conflict="message_id,user_id", ignore_duplicates=True)\
                    .execute()
            return len(unread)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
