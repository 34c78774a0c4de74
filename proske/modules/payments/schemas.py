from pydantic import BaseModel, Field
from typing import Optional, List, Literal
from datetime import date, datetime

PaymentStatus = Literal["pending", "confirmed", "overdue", "cancelled"]


class PaymentCreate(BaseModel):
    user_id: str
    amount: float = Field(gt=0)
    amount_paid: Optional[float] = Field(default=None, ge=0)
    fees: Optional[float] = Field(default=None, ge=0)
    due_date: date
    status: PaymentStatus = "pending"
    paid_at: Optional[datetime] = None
    description: Optional[str] = None
    plan_id: Optional[str] = None
    community_id: Optional[str] = None


class PaymentUpdate(BaseModel):
    user_id: Optional[str] = None
    amount: Optional[float] = Field(default=None, gt=0)
    amount_paid: Optional[float] = Field(default=None, ge=0)
    fees: Optional[float] = Field(default=None, ge=0)
    due_date: Optional[date] = None
    status: Optional[PaymentStatus] = None
    paid_at: Optional[datetime] = None
    description: Optional[str] = None
    plan_id: Optional[str] = None
    community_id: Optional[str] = None


class PaymentResponse(BaseModel):
    id: str
    user_id: str
    user_name: Optional[str] = None
    amount: float
    amount_paid: Optional[float] = None
    fees: Optional[float] = None
    due_date: date
    status: PaymentStatus
    paid_at: Optional[datetime] = None
    description: Optional[str] = None
    plan_id: Optional[str] = None
    community_id: Optional[str] = None
    community_name: Optional[str] = None
    created_by: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


class PaymentSummary(BaseModel):
    total_receivable: float
    confirmed_total: float
    pending_total: float
    overdue_total: float
    expected_total: float
    confirmed_count: int
    pending_count: int
    overdue_count: int


class MarkOverdueResponse(BaseModel):
    updated: int


class StudentLTV(BaseModel):
    user_id: str
    student_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    user_role: Optional[str] = None
    current_plan_name: Optional[str] = None
    current_plan_price: Optional[float] = None
    subscription_start_date: Optional[date] = None
    subscription_end_date: Optional[date] = None
    subscription_status: Optional[str] = None
    total_paid: float = 0
    total_pending: float = 0
    months_active: float = 0
    projected_12m_revenue: float = 0
    days_to_next_payment: Optional[int] = None
    ltv: float = 0
    customer_since: Optional[datetime] = None


class LTVSummary(BaseModel):
    students: int
    active_students: int
    total_ltv: float
    total_paid: float
    total_projected_12m: float
    average_ltv: float


class LTVReport(BaseModel):
    rows: List[StudentLTV]
    summary: LTVSummary
