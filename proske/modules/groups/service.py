from supabase import Client
from proske.core.dependencies import is_teacher_or_admin
from proske.database.errors import is_unique_violation
from proske.modules.groups.schemas import (
    GroupCreate, GroupUpdate, GroupResponse, GroupInfoResponse,
    GroupMemberAdd, GroupMemberResponse, SidebarGroup
)
from proske.modules.messages.service import MessageService
from proske.modules.profiles.service import ProfileService
from typing import List, Dict
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


class GroupService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _member_counts(self, group_ids: List[str]) -> Dict[str, int]:
        if not group_ids:
            return {}
        result = self.supabase.table("group_members")\
            .select("group_id")\
            .in_("group_id", group_ids)\
            .execute()
        counts = {gid: 0 for gid in group_ids}
        for row in result.data:
            counts[row["group_id"]] = counts.get(row["group_id"], 0) + 1
        return counts

    def _with_counts(self, groups: List[dict]) -> List[GroupResponse]:
        counts = self._member_counts([g["id"] for g in groups])
        return [GroupResponse(**{**g, "member_count": counts.get(g["id"], 0)}) for g in groups]

    def _get_row(self, group_id: str) -> dict:
        result = self.supabase.table("conversation_groups")\
            .select("*")\
            .eq("id", group_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Group not found")
        return result.data[0]

    def create_group(self, community_id: str, group_data: GroupCreate, user_id: str) -> GroupResponse:
        """Create a conversation group in a community"""
        try:
            data = group_data.model_dump(mode="json")
            result = self.supabase.table("conversation_groups").insert({
                **data,
                "description": data.get("description") or None,
                "community_id": community_id,
                "created_by": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create group")

            logger.info(f"Group {result.data[0]['id']} created in community {community_id}")
            return GroupResponse(**{**result.data[0], "member_count": 0})
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group(self, group_id: str) -> GroupResponse:
        """Get group by ID with its member count"""
        try:
            return self._with_counts([self._get_row(group_id)])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_group_info(self, group_id: str) -> GroupInfoResponse:
        """Group with its member list"""
        group = self.get_group(group_id)
        members = self.list_members(group_id)
        return GroupInfoResponse(**group.model_dump(), members=members)

    def list_community_groups(self, community_id: str, visible_only: bool = False) -> List[GroupResponse]:
        """Groups of a community, newest first, each with member_count"""
        try:
            query = self.supabase.table("conversation_groups")\
                .select("*")\
                .eq("community_id", community_id)
            if visible_only:
                query = query.eq("is_visible", True)
            result = query.order("created_at", desc=True).execute()
            return self._with_counts(result.data)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def update_group(self, group_id: str, group_data: GroupUpdate) -> GroupResponse:
        """Update group"""
        try:
            update_data = group_data.model_dump(mode="json", exclude_none=True)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("conversation_groups")\
                .update(update_data)\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")

            return self._with_counts(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_group(self, group_id: str) -> bool:
        """Delete group"""
        try:
            # Delete group members first
            self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .execute()

            result = self.supabase.table("conversation_groups")\
                .delete()\
                .eq("id", group_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Group not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def resolve_member(self, member_data: GroupMemberAdd) -> str:
        """User id behind a user_id or an email/phone contact"""
        query = self.supabase.table("profiles").select("id")
        if member_data.user_id:
            query = query.eq("id", member_data.user_id)
        elif "@" in member_data.contact:
            query = query.eq("email", member_data.contact.lower())
        else:
            query = query.eq("phone", member_data.contact)
        result = query.limit(1).execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="User not found with this email/phone")
        return result.data[0]["id"]

    def add_member(self, group_id: str, member_data: GroupMemberAdd) -> GroupMemberResponse:
        """Add a member to the group"""
        try:
            # Verify group exists
            self._get_row(group_id)
            user_id = self.resolve_member(member_data)

            result = self.supabase.table("group_members").insert({
                "group_id": group_id,
                "user_id": user_id
            }).execute()

            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to add member")

            profile = ProfileService(self.supabase).get_profiles_by_ids([user_id]).get(user_id, {})
            return GroupMemberResponse(
                **result.data[0],
                name=profile.get("name"),
                email=profile.get("email"),
                avatar_url=profile.get("avatar_url")
            )
        except HTTPException:
            raise
        except Exception as e:
            if is_unique_violation(e):
                raise HTTPException(status_code=409, detail="User is already a member of this group")
            raise HTTPException(status_code=500, detail=str(e))

    def remove_member(self, group_id: str, user_id: str) -> bool:
        """Remove a member from the group"""
        try:
            result = self.supabase.table("group_members")\
                .delete()\
                .eq("group_id", group_id)\
                .eq("user_id", user_id)\
                .execute()

            if not result.data:
                raise HTTPException(status_code=404, detail="Member not found")
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_members(self, group_id: str) -> List[GroupMemberResponse]:
        """List all members of a group with their profiles"""
        try:
            result = self.supabase.table("group_members")\
                .select("*")\
                .eq("group_id", group_id)\
                .execute()
            profiles = ProfileService(self.supabase).get_profiles_by_ids([m["user_id"] for m in result.data])
            members = []
            for member in result.data:
                profile = profiles.get(member["user_id"], {})
                members.append(GroupMemberResponse(
                    **member,
                    name=profile.get("name"),
                    email=profile.get("email"),
                    avatar_url=profile.get("avatar_url")
                ))
            members.sort(key=lambda m: (m.name or "").lower())
            return members
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_my_groups(self, user_id: str) -> List[GroupResponse]:
        """Groups the user belongs to, each with member_count"""
        try:
            members_result = self.supabase.table("group_members")\
                .select("group_id")\
                .eq("user_id", user_id)\
                .execute()
            group_ids = [m["group_id"] for m in members_result.data]
            if not group_ids:
                return []
            result = self.supabase.table("conversation_groups")\
                .select("*")\
                .in_("id", group_ids)\
                .order("created_at", desc=True)\
                .execute()
            return self._with_counts(result.data)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def _active_plan_id(self, user_id: str):
        result = self.supabase.table("user_subscriptions")\
            .select("plan_id")\
            .eq("user_id", user_id)\
            .eq("status", "active")\
            .limit(1)\
            .execute()
        return result.data[0]["plan_id"] if result.data else None

    def _plan_requirements(self) -> Dict[str, dict]:
        """group_id -> {"plan_ids": [...], "plan_names": [...]} from plan_default_groups"""
        links = self.supabase.table("plan_default_groups")\
            .select("group_id, plan_id")\
            .execute()
        plan_ids = list({link["plan_id"] for link in links.data})
        names = {}
        if plan_ids:
            plans = self.supabase.table("subscription_plans")\
                .select("id, name")\
                .in_("id", plan_ids)\
                .execute()
            names = {p["id"]: p["name"] for p in plans.data}
        requirements: Dict[str, dict] = {}
        for link in links.data:
            req = requirements.setdefault(link["group_id"], {"plan_ids": [], "plan_names": []})
            req["plan_ids"].append(link["plan_id"])
            if link["plan_id"] in names:
                req["plan_names"].append(names[link["plan_id"]])
        return requirements

    def get_sidebar(self, user_data: dict) -> List[SidebarGroup]:
        """Sidebar groups: teachers/admins see all; others see visible groups with plan-based access"""
        try:
            user_id = user_data["id"]
            manager = is_teacher_or_admin(user_data)
            query = self.supabase.table("conversation_groups").select("*")
            if not manager:
                query = query.eq("is_visible", True)
            groups = query.order("created_at", desc=True).execute().data

            community_ids = list({g["community_id"] for g in groups})
            community_names = {}
            if community_ids:
                communities = self.supabase.table("communities")\
                    .select("id, name")\
                    .in_("id", community_ids)\
                    .execute()
                community_names = {c["id"]: c["name"] for c in communities.data}

            requirements = {} if manager else self._plan_requirements()
            plan_id = None if manager else self._active_plan_id(user_id)

            order_result = self.supabase.table("user_menu_order")\
                .select("item_id, order_index")\
                .eq("user_id", user_id)\
                .eq("item_type", "group")\
                .execute()
            order_map = {o["item_id"]: o["order_index"] for o in order_result.data}

            messages = MessageService(self.supabase)
            sidebar = []
            for index, group in enumerate(groups):
                req = requirements.get(group["id"], {"plan_ids": [], "plan_names": []})
                has_access = not req["plan_ids"] or plan_id in req["plan_ids"]
                sidebar.append(SidebarGroup(
                    id=group["id"],
                    name=group["name"],
                    community_id=group["community_id"],
                    community_name=community_names.get(group["community_id"]),
                    unread_count=messages.count_unread(group["id"], user_id),
                    order_index=order_map.get(group["id"], index),
                    required_plan_ids=req["plan_ids"],
                    required_plan_names=req["plan_names"],
                    has_access=has_access
                ))
            sidebar.sort(key=lambda g: g.order_index)
            return sidebar
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_order(self, user_id: str, group_ids: List[str]) -> int:
        """Persist the user's sidebar order of groups"""
        try:
            rows = [
                {"user_id": user_id, "item_type": "group", "item_id": gid, "order_index": index}
                for index, gid in enumerate(group_ids)
            ]
            self.supabase.table("user_menu_order")\
                .upsert(rows, on_conflict="user_id,item_type,item_id")\
                .execute()
            return len(rows)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
