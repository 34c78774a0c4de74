from supabase import Client
from proske.modules.payments.schemas import (
    PaymentCreate, PaymentUpdate, PaymentResponse, PaymentSummary,
    StudentLTV, LTVSummary, LTVReport
)
from proske.modules.profiles.service import ProfileService
from typing import List, Optional, Iterable
from datetime import date, datetime, timezone
from decimal import Decimal
from fastapi import HTTPException
import logging

logger = logging.getLogger(__name__)


def _money(value) -> Decimal:
    return Decimal(str(value or 0))


def fill_confirmation(data: dict, amount, now: Optional[datetime] = None) -> dict:
    """A confirmed payment without paid_at/amount_paid is taken as fully paid now"""
    if data.get("status") != "confirmed":
        return data
    data = dict(data)
    if not data.get("paid_at"):
        data["paid_at"] = (now or datetime.now(timezone.utc)).isoformat()
    if data.get("amount_paid") is None:
        data["amount_paid"] = amount
    return data


def summarize(payments: Iterable[dict]) -> PaymentSummary:
    """Totals per status over the amount due of each payment"""
    totals = {"confirmed": Decimal(0), "pending": Decimal(0), "overdue": Decimal(0)}
    counts = {"confirmed": 0, "pending": 0, "overdue": 0}
    receivable = Decimal(0)
    for payment in payments:
        status = payment.get("status")
        if status == "cancelled":
            continue
        amount = _money(payment.get("amount"))
        receivable += amount
        if status in totals:
            totals[status] += amount
            counts[status] += 1
    return PaymentSummary(
        total_receivable=float(receivable),
        confirmed_total=float(totals["confirmed"]),
        pending_total=float(totals["pending"]),
        overdue_total=float(totals["overdue"]),
        expected_total=float(totals["pending"] + totals["confirmed"]),
        confirmed_count=counts["confirmed"],
        pending_count=counts["pending"],
        overdue_count=counts["overdue"]
    )


def summarize_ltv(rows: List[StudentLTV]) -> LTVSummary:
    total_ltv = sum(_money(r.ltv) for r in rows)
    return LTVSummary(
        students=len(rows),
        active_students=sum(1 for r in rows if r.subscription_status == "active"),
        total_ltv=float(total_ltv),
        total_paid=float(sum(_money(r.total_paid) for r in rows)),
        total_projected_12m=float(sum(_money(r.projected_12m_revenue) for r in rows)),
        average_ltv=float(round(total_ltv / len(rows), 2)) if rows else 0.0
    )


class PaymentService:
    def __init__(self, supabase: Client):
        self.supabase = supabase

    def _to_responses(self, rows: List[dict]) -> List[PaymentResponse]:
        profiles = ProfileService(self.supabase).get_profiles_by_ids(list({r["user_id"] for r in rows}))
        community_ids = list({r["community_id"] for r in rows if r.get("community_id")})
        communities = {}
        if community_ids:
            result = self.supabase.table("communities")\
                .select("id, name")\
                .in_("id", community_ids)\
                .execute()
            communities = {c["id"]: c["name"] for c in result.data}
        return [
            PaymentResponse(
                **r,
                user_name=(profiles.get(r["user_id"]) or {}).get("name"),
                community_name=communities.get(r.get("community_id"))
            )
            for r in rows
        ]

    def _get_row(self, payment_id: str) -> dict:
        result = self.supabase.table("payments")\
            .select("*")\
            .eq("id", payment_id)\
            .limit(1)\
            .execute()
        if not result.data:
            raise HTTPException(status_code=404, detail="Payment not found")
        return result.data[0]

    def list_payments(
        self,
        search: Optional[str] = None,
        status: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> List[PaymentResponse]:
        """Payments by due date, latest first; search matches user name or description"""
        try:
            query = self.supabase.table("payments").select("*")
            if status:
                query = query.eq("status", status)
            if user_id:
                query = query.eq("user_id", user_id)
            payments = self._to_responses(query.order("due_date", desc=True).execute().data)
            if search:
                term = search.lower()
                payments = [
                    p for p in payments
                    if term in (p.user_name or "").lower() or term in (p.description or "").lower()
                ]
            return payments
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def get_payment(self, payment_id: str) -> PaymentResponse:
        try:
            return self._to_responses([self._get_row(payment_id)])[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def create_payment(self, payment_data: PaymentCreate, created_by: str) -> PaymentResponse:
        try:
            insert_data = fill_confirmation(payment_data.model_dump(mode="json"), payment_data.amount)
            result = self.supabase.table("payments").insert({
                **insert_data,
                "created_by": created_by
            }).execute()
            if not result.data:
                raise HTTPException(status_code=500, detail="Failed to create payment")
            return self._to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=f"Failed to create payment: {str(e)}")

    def update_payment(self, payment_id: str, payment_data: PaymentUpdate) -> PaymentResponse:
        try:
            current = self._get_row(payment_id)
            update_data = payment_data.model_dump(mode="json", exclude_none=True)
            if not update_data:
                return self._to_responses([current])[0]
            if update_data.get("status") == "confirmed" and current["status"] != "confirmed":
                update_data = fill_confirmation(update_data, update_data.get("amount", current["amount"]))
            update_data["updated_at"] = datetime.now(timezone.utc).isoformat()

            result = self.supabase.table("payments")\
                .update(update_data)\
                .eq("id", payment_id)\
                .execute()
            if not result.data:
                raise HTTPException(status_code=404, detail="Payment not found")
            return self._to_responses(result.data)[0]
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def delete_payment(self, payment_id: str) -> bool:
        try:
            self._get_row(payment_id)
            self.supabase.table("payments").delete().eq("id", payment_id).execute()
            return True
        except HTTPException:
            raise
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def summary(self) -> PaymentSummary:
        try:
            result = self.supabase.table("payments").select("amount, status").execute()
            return summarize(result.data)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def mark_overdue(self, today: Optional[date] = None) -> int:
        """Pending payments past their due date become overdue"""
        today = today or datetime.now(timezone.utc).date()
        try:
            result = self.supabase.table("payments")\
                .update({"status": "overdue", "updated_at": datetime.now(timezone.utc).isoformat()})\
                .eq("status", "pending")\
                .lt("due_date", today.isoformat())\
                .execute()
            updated = len(result.data or [])
            if updated:
                logger.info(f"Marked {updated} payments overdue")
            return updated
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))

    def ltv_report(self, search: Optional[str] = None) -> LTVReport:
        """Rows of the student_ltv_analysis view with totals; search covers name, email, phone and city"""
        try:
            result = self.supabase.table("student_ltv_analysis").select("*").execute()
            rows = [StudentLTV(**r) for r in result.data]
            summary = summarize_ltv(rows)
            if search:
                term = search.lower()
                rows = [
                    r for r in rows
                    if any(term in (v or "").lower() for v in (r.student_name, r.email, r.phone, r.city))
                ]
            return LTVReport(rows=rows, summary=summary)
        except Exception as e:
            raise HTTPException(status_code=500, detail=str(e))
