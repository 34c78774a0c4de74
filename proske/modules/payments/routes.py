from fastapi import APIRouter, Depends, Query
from proske.database.supabase_client import get_supabase
from proske.modules.payments.schemas import (
    PaymentCreate, PaymentUpdate, PaymentResponse, PaymentSummary, MarkOverdueResponse,
    PaymentStatus, LTVReport
)
from proske.modules.payments.service import PaymentService
from proske.core.dependencies import get_current_user_id, require_capability
from supabase import Client
from typing import List, Dict, Optional

router = APIRouter(prefix="/payments", tags=["payments"])
financial_router = APIRouter(prefix="/financial", tags=["payments"])


def get_payment_service(supabase: Client = Depends(get_supabase)) -> PaymentService:
    return PaymentService(supabase)


@router.get("", response_model=List[PaymentResponse])
async def list_payments(
    search: Optional[str] = Query(None, description="Search by user name or description"),
    status: Optional[PaymentStatus] = Query(None),
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """List payments (admin only)"""
    return service.list_payments(search=search, status=status)


@router.post("", response_model=PaymentResponse, status_code=201)
async def create_payment(
    payment_data: PaymentCreate,
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Create payment (admin only)"""
    return service.create_payment(payment_data, user_data["id"])


@router.get("/summary", response_model=PaymentSummary)
async def payment_summary(
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Totals and counts per payment status"""
    return service.summary()


@router.get("/mine", response_model=List[PaymentResponse])
async def my_payments(
    user_data: Dict = Depends(get_current_user_id),
    service: PaymentService = Depends(get_payment_service)
):
    """Payments of the current user"""
    return service.list_payments(user_id=user_data["id"])


@router.get("/users/{user_id}", response_model=List[PaymentResponse])
async def user_payments(
    user_id: str,
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Payments of a user (admin only)"""
    return service.list_payments(user_id=user_id)


@router.post("/mark-overdue", response_model=MarkOverdueResponse)
async def mark_overdue(
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Flag pending payments past their due date as overdue"""
    return MarkOverdueResponse(updated=service.mark_overdue())


@router.get("/{payment_id}", response_model=PaymentResponse)
async def get_payment(
    payment_id: str,
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Get payment by ID"""
    return service.get_payment(payment_id)


@router.put("/{payment_id}", response_model=PaymentResponse)
async def update_payment(
    payment_id: str,
    payment_data: PaymentUpdate,
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Update payment (admin only)"""
    return service.update_payment(payment_id, payment_data)


@router.delete("/{payment_id}", status_code=204)
async def delete_payment(
    payment_id: str,
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Delete payment (admin only)"""
    service.delete_payment(payment_id)
    return None


@financial_router.get("/ltv", response_model=LTVReport)
async def ltv_report(
    search: Optional[str] = Query(None),
    user_data: Dict = Depends(require_capability("payments:manage")),
    service: PaymentService = Depends(get_payment_service)
):
    """Lifetime value per student with totals"""
    return service.ltv_report(search)
