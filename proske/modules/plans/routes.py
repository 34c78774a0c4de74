from fastapi import APIRouter, Depends
from proske.database.supabase_client import get_supabase
from proske.modules.plans.schemas import (
    PlanCreate, PlanUpdate, PlanResponse, DefaultGroupsUpdate,
    SubscriptionCreate, SubscriptionResponse, SubscriptionAssignResult
)
from proske.modules.plans.service import PlanService, SubscriptionService
from proske.core.dependencies import get_current_user_id, require_capability
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/plans", tags=["plans"])
subscriptions_router = APIRouter(prefix="/subscriptions", tags=["plans"])


def get_plan_service(supabase: Client = Depends(get_supabase)) -> PlanService:
    return PlanService(supabase)


def get_subscription_service(supabase: Client = Depends(get_supabase)) -> SubscriptionService:
    return SubscriptionService(supabase)


@router.get("", response_model=List[PlanResponse])
async def list_plans(
    user_data: Dict = Depends(get_current_user_id),
    service: PlanService = Depends(get_plan_service)
):
    """List subscription plans"""
    return service.list_plans()


@router.post("", response_model=PlanResponse, status_code=201)
async def create_plan(
    plan_data: PlanCreate,
    user_data: Dict = Depends(require_capability("plans:create")),
    service: PlanService = Depends(get_plan_service)
):
    """Create a plan (admin only)"""
    return service.create_plan(plan_data)


@router.get("/{plan_id}", response_model=PlanResponse)
async def get_plan(
    plan_id: str,
    user_data: Dict = Depends(get_current_user_id),
    service: PlanService = Depends(get_plan_service)
):
    """Get plan by ID"""
    return service.get_plan(plan_id)


@router.put("/{plan_id}", response_model=PlanResponse)
async def update_plan(
    plan_id: str,
    plan_data: PlanUpdate,
    user_data: Dict = Depends(require_capability("plans:update")),
    service: PlanService = Depends(get_plan_service)
):
    """Update plan (admin only)"""
    return service.update_plan(plan_id, plan_data)


@router.delete("/{plan_id}", status_code=204)
async def delete_plan(
    plan_id: str,
    user_data: Dict = Depends(require_capability("plans:delete")),
    service: PlanService = Depends(get_plan_service)
):
    """Delete plan (admin only)"""
    service.delete_plan(plan_id)
    return None


@router.put("/{plan_id}/default-groups", response_model=PlanResponse)
async def set_default_groups(
    plan_id: str,
    groups_data: DefaultGroupsUpdate,
    user_data: Dict = Depends(require_capability("plans:update")),
    service: PlanService = Depends(get_plan_service)
):
    """Replace the groups joined automatically by subscribers of the plan"""
    return service.set_default_groups(plan_id, groups_data.group_ids)


@subscriptions_router.post("", response_model=SubscriptionAssignResult, status_code=201)
async def assign_subscription(
    subscription_data: SubscriptionCreate,
    user_data: Dict = Depends(require_capability("plans:assign")),
    service: SubscriptionService = Depends(get_subscription_service)
):
    """Replace the user's active subscription and join the plan's default groups; safe to retry"""
    return service.assign(subscription_data)


@subscriptions_router.get("/me", response_model=Optional[SubscriptionResponse])
async def my_subscription(
    user_data: Dict = Depends(get_current_user_id),
    service: SubscriptionService = Depends(get_subscription_service)
):
    """Active subscription of the current user"""
    return service.active_subscription(user_data["id"])


@subscriptions_router.get("/users/{user_id}", response_model=List[SubscriptionResponse])
async def user_subscriptions(
    user_id: str,
    user_data: Dict = Depends(require_capability("plans:assign")),
    service: SubscriptionService = Depends(get_subscription_service)
):
    """Subscription history of a user (admin only)"""
    return service.list_user_subscriptions(user_id)


@subscriptions_router.post("/{subscription_id}/cancel", response_model=SubscriptionResponse)
async def cancel_subscription(
    subscription_id: str,
    user_data: Dict = Depends(require_capability("plans:assign")),
    service: SubscriptionService = Depends(get_subscription_service)
):
    """Cancel a subscription (admin only)"""
    return service.cancel(subscription_id)
