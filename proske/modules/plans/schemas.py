from pydantic import BaseModel, Field, model_validator
from typing import Optional, List, Literal
from datetime import date, datetime

BillingFrequency = Literal["monthly", "quarterly", "semiannual", "yearly"]
MonitoringFrequency = Literal["weekly", "biweekly", "monthly"]


class PlanCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    price: float = Field(ge=0)
    billing_frequency: Optional[BillingFrequency] = "monthly"
    monitoring_frequency: Optional[MonitoringFrequency] = None
    weekly_corrections_limit: Optional[int] = Field(default=None, ge=0)
    monthly_corrections_limit: Optional[int] = Field(default=None, ge=0)
    monthly_monitorings_limit: Optional[int] = Field(default=None, ge=0)
    checkout_url: Optional[str] = None


class PlanUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    description: Optional[str] = None
    price: Optional[float] = Field(default=None, ge=0)
    billing_frequency: Optional[BillingFrequency] = None
    monitoring_frequency: Optional[MonitoringFrequency] = None
    weekly_corrections_limit: Optional[int] = Field(default=None, ge=0)
    monthly_corrections_limit: Optional[int] = Field(default=None, ge=0)
    monthly_monitorings_limit: Optional[int] = Field(default=None, ge=0)
    checkout_url: Optional[str] = None


class PlanResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    price: float
    billing_frequency: Optional[str] = None
    monitoring_frequency: Optional[str] = None
    weekly_corrections_limit: Optional[int] = None
    monthly_corrections_limit: Optional[int] = None
    monthly_monitorings_limit: Optional[int] = None
    checkout_url: Optional[str] = None
    default_group_ids: List[str] = []
    created_at: datetime

    class Config:
        from_attributes = True


class DefaultGroupsUpdate(BaseModel):
    group_ids: List[str]


class SubscriptionCreate(BaseModel):
    user_id: str
    plan_id: str
    start_date: date
    end_date: date
    custom_price: Optional[float] = Field(default=None, ge=0)
    due_day: Optional[int] = Field(default=None, ge=1, le=31)

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("End date must be on or after the start date")
        return self


class SubscriptionResponse(BaseModel):
    id: str
    user_id: str
    plan_id: str
    plan_name: Optional[str] = None
    status: str
    start_date: date
    end_date: date
    custom_price: Optional[float] = None
    due_day: Optional[int] = None
    created_at: datetime

    class Config:
        from_attributes = True


class SubscriptionAssignResult(BaseModel):
    subscription: SubscriptionResponse
    provisioned_groups: int
    skipped_groups: int
