from supabase import Client
from proske.database.errors import is_unique_violation
from proske.modules.plans.schemas import (
    PlanCreate, PlanUpdate, PlanResponse,
    SubscriptionCreate, SubscriptionResponse, SubscriptionAssignResult
)
from typing import List, Optional, Tuple
from datetime import datetime, timezone
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)

# Attempts at replacing the active subscription when a concurrent request wins the unique index
REPLACE_ATTEMPTS = 3


class PlanService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _default_groups(self, plan_ids: List[str]) -> dict:
        if not plan_ids:
            return {}
        result = self.supabase.table("plan_default_groups")\
            .select("plan_id, group_id")\
            .in_("plan_id", plan_ids)\
            .execute()
        groups = {}
        for link in result.data:
            groups.setdefault(link["plan_id"], []).append(link["group_id"])
        return groups

    def _to_responses(self, plans: List[dict]) -> List[PlanResponse]:
        groups = self._default_groups([p["id"] for p in plans])
        return [PlanResponse(**p, default_group_ids=groups.get(p["id"], [])) for p in plans]

    def _get_row(self, plan_id: str) -> dict:
        result = self.supabase.table("subscription_plans")\
            .select("*")\
            .eq("id", plan_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Plan not found")
        return result.data[0]

    def list_plans(self) -> List[PlanResponse]:
        """Plans ordered by price, cheapest first"""
        try:
            result = self.supabase.table("subscription_plans")\
                .select("*")\
                .order("price")\
                .execute()
            return self._to_responses(result.data)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_plan(self, plan_id: str) -> PlanResponse:
        try:
            return self._to_responses([self._get_row(plan_id)])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_plan(self, plan_data: PlanCreate) -> PlanResponse:
        try:
            result = self.supabase.table("subscription_plans").insert(plan_data.model_dump()).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create plan")
            return self._to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create plan: {str(e)}")

    def update_plan(self, plan_id: str, plan_data: PlanUpdate) -> PlanResponse:
        try:
            update_data = plan_data.model_dump(exclude_none=True)
            if not update_data:
                return self.get_plan(plan_id)
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()
            result = self.supabase.table("subscription_plans")\
                .update(update_data)\
                .eq("id", plan_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Plan not found")
            return self._to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_plan(self, plan_id: str) -> bool:
        """Delete a plan that no active subscription uses"""
        try:
            self._get_row(plan_id)
            active = self.supabase.table("user_subscriptions")\
                .select("id")\
                .eq("plan_id", plan_id)\
                .eq("status", "active")\
                .limit(1)\
                .execute()
            if active.data:
                raise HTTPException(status_code=409, detail="Plan has active subscriptions")
            self.supabase.table("plan_default_groups").delete().eq("plan_id", plan_id).execute()
            self.supabase.table("subscription_plans").delete().eq("id", plan_id).execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def set_default_groups(self, plan_id: str, group_ids: List[str]) -> PlanResponse:
        """Replace the plan's default groups with the given ones"""
        try:
            self._get_row(plan_id)
            group_ids = list(dict.fromkeys(group_ids))
            if group_ids:
                found = self.supabase.table("conversation_groups")\
                    .select("id")\
                    .in_("id", group_ids)\
                    .execute()
                missing = set(group_ids) - {g["id"] for g in found.data}
                if missing:
                    raise HTTPException(status_code=400, detail=f"Unknown groups: {', '.join(sorted(missing))}")

            current = set(self._default_groups([plan_id]).get(plan_id, []))
            removed = list(current - set(group_ids))
            if removed:
                self.supabase.table("plan_default_groups")\
                    .delete()\
                    .eq("plan_id", plan_id)\
                    .in_("group_id", removed)\
                    .execute()
            added = [gid for gid in group_ids if gid not in current]
            if added:
                self.supabase.table("plan_default_groups")\
                    .upsert(
                        [{"plan_id": plan_id, "group_id": gid} for gid in added],
                        on_conflict="plan_id,group_id",
                        ignore_duplicates=True
                    )\
                    .execute()
            return self.get_plan(plan_id)
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))


class SubscriptionService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _to_responses(self, rows: List[dict]) -> List[SubscriptionResponse]:
        plan_ids = list({r["plan_id"] for r in rows})
        names = {}
        if plan_ids:
            plans = self.supabase.table("subscription_plans")\
                .select("id, name")\
                .in_("id", plan_ids)\
                .execute()
            names = {p["id"]: p["name"] for p in plans.data}
        return [SubscriptionResponse(**r, plan_name=names.get(r["plan_id"])) for r in rows]

    def _replace_active(self, data: SubscriptionCreate) -> dict:
        """
        Cancel every active subscription of the user and insert the new active one.
        The partial unique index on active rows rejects a concurrent insert, in which case
        the cancel and insert are retried.
        """
        row = {**data.model_dump(mode="json"), "status": "active"}
        for attempt in range(REPLACE_ATTEMPTS):
            now = datetime.now(timezone.utc).isoformat()
            self.supabase.table("user_subscriptions")\
                .update({"status": "cancelled", "updated_at": now})\
                .eq("user_id", data.user_id)\
                .eq("status", "active")\
                .execute()
            try:
                result = self.supabase.table("user_subscriptions").insert(row).execute()
            except Exception as e:
                if not is_unique_violation(e):
                    raise
                logger.warning(f"Concurrent subscription change for user {data.user_id}, retrying ({attempt + 1})")
                continue
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create subscription")
            return result.data[0]
        raise HTTPException(status_code=409, detail="Subscription is being changed concurrently, try again")

    def provision_default_groups(self, user_id: str, plan_id: str) -> Tuple[int, int]:
        """
        Add the user to every default group of the plan they are not in yet.
        Returns (provisioned, skipped); running it again provisions nothing.
        """
        links = self.supabase.table("plan_default_groups")\
            .select("group_id")\
            .eq("plan_id", plan_id)\
            .execute()
        group_ids = [link["group_id"] for link in links.data]
        if not group_ids:
            return 0, 0

        existing = self.supabase.table("group_members")\
            .select("group_id")\
            .eq("user_id", user_id)\
            .in_("group_id", group_ids)\
            .execute()
        present = {m["group_id"] for m in existing.data}

        provisioned = 0
        for group_id in group_ids:
            if group_id in present:
                continue
            try:
                self.supabase.table("group_members").insert({
                    "group_id": group_id,
                    "user_id": user_id
                }).execute()
                provisioned += 1
            except Exception as e:
                if not is_unique_violation(e):
                    raise
        return provisioned, len(group_ids) - provisioned

    def assign(self, data: SubscriptionCreate) -> SubscriptionAssignResult:
        """Make the plan the user's only active subscription, then join its default groups"""
        try:
            plan = self.supabase.table("subscription_plans")\
                .select("id")\
                .eq("id", data.plan_id)\
                .limit(1)\
                .execute()
            if not plan.data:
                raise HTTPException(status_code=404, detail="Plan not found")

            subscription = self._replace_active(data)
            provisioned, skipped = self.provision_default_groups(data.user_id, data.plan_id)
            logger.info(
                f"Subscription {subscription['id']} active for user {data.user_id}: "
                f"{provisioned} groups provisioned, {skipped} already present"
            )
            return SubscriptionAssignResult(
                subscription=self._to_responses([subscription])[0],
                provisioned_groups=provisioned,
                skipped_groups=skipped
            )
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to assign plan: {str(e)}")

    def active_subscription(self, user_id: str) -> Optional[SubscriptionResponse]:
        try:
            result = self.supabase.table("user_subscriptions")\
                .select("*")\
                .eq("user_id", user_id)\
                .eq("status", "active")\
                .limit(1)\
                .execute()
            return self._to_responses(result.data)[0] if result.data else None
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def list_user_subscriptions(self, user_id: str) -> List[SubscriptionResponse]:
        """Subscription history of a user, newest first"""
        try:
            result = self.supabase.table("user_subscriptions")\
                .select("*")\
                .eq("user_id", user_id)\
                .order("created_at", desc=True)\
                .execute()
            return self._to_responses(result.data)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def cancel(self, subscription_id: str) -> SubscriptionResponse:
        try:
            result = self.supabase.table("user_subscriptions")\
                .update({"status": "cancelled", "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("id", subscription_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Subscription not found")
            return self._to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
