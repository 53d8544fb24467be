"""Payment-related Pydantic schemas."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from ..models.payment import PaymentStatus


class ProcessPaymentRequest(BaseModel):
    """Request schema for settling a confirmed booking."""

    booking_id: UUID = Field(..., description="Booking to pay for")
    payment_method: str = Field(..., min_length=1, max_length=50, description="Payment method, e.g. card")
    transaction_id: Optional[str] = Field(None, max_length=255, description="External transaction reference")


class RefundPaymentRequest(BaseModel):
    """Request schema for refunding a payment."""

    payment_id: UUID = Field(..., description="Payment to refund")
    reason: Optional[str] = Field(None, max_length=1000, description="Why the payment is refunded")


class GetPaymentRequest(BaseModel):
    """Request schema for getting a payment."""

    payment_id: UUID = Field(..., description="Payment to retrieve")


class HostEarningsRequest(BaseModel):
    """Request schema for monthly host earnings."""

    start_date: Optional[date] = Field(None, description="First day included; defaults to 2020-01-01")
    end_date: Optional[date] = Field(None, description="Last day included; defaults to today")

    @model_validator(mode="after")
    def validate_range(self) -> "HostEarningsRequest":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class Payment(BaseModel):
    """Payment response schema."""

    id: UUID
    booking_id: UUID
    payer_id: UUID
    amount: Decimal
    platform_fee: Decimal
    host_amount: Decimal
    payment_method: str
    status: PaymentStatus
    transaction_id: Optional[str] = None
    refund_reason: Optional[str] = None
    refunded_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class PaymentList(BaseModel):
    """List of payments."""

    items: list[Payment]
    count: int


class MonthlyEarnings(BaseModel):
    """Host earnings for one calendar month."""

    month: str = Field(..., pattern=r"^\d{4}-\d{2}$", description="Month as YYYY-MM")
    total_earnings: Decimal
    total_fees: Decimal
    total_payments: int


class HostEarnings(BaseModel):
    """Monthly earnings, newest month first."""

    items: list[MonthlyEarnings]


class EarningsSummary(BaseModel):
    """All-time and current-month earnings for a host."""

    total_earnings: Decimal
    total_payments: int
    average_per_booking: Decimal
    this_month_earnings: Decimal
