"""Approval request schemas.

Creation payloads form a discriminated union on ``type`` so that each
request kind validates only the fields it carries. Decision payloads check
the payment terms before the service touches the database.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Literal, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    field_validator,
    model_validator,
)

from ..core.enums import (
    INSTALLMENT_STATUS_LABELS,
    PAYMENT_TYPE_LABELS,
    InstallmentStatus,
    PaymentType,
)
from .attachment import AttachmentInput, AttachmentRead
from .common import coerce_label

INSTALLMENT_SUM_TOLERANCE = 0.01


class _ApprovalRequestBase(BaseModel):
    subject: str = Field(min_length=5, max_length=100)
    description: str | None = Field(default=None, max_length=2000)
    attachments: list[AttachmentInput] = Field(default_factory=list)

    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    @field_validator("description", mode="before")
    @classmethod
    def _blank_description(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class PurchaseRequestCreate(_ApprovalRequestBase):
    type: Literal["Purchase"]
    item_description: str = Field(min_length=3, max_length=200)
    estimated_price: float | None = Field(default=None, gt=0)
    supplier: str | None = Field(default=None, max_length=100)

    @field_validator("supplier", mode="before")
    @classmethod
    def _blank_supplier(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ProviderPaymentRequestCreate(_ApprovalRequestBase):
    type: Literal["ProviderPayment"]
    supplier: str = Field(min_length=3, max_length=100)
    total_amount_to_pay: float = Field(gt=0)

    @field_validator("description")
    @classmethod
    def _description_detail(cls, value):
        if value is not None and len(value) < 10:
            raise ValueError("Description must be at least 10 characters.")
        return value


ApprovalRequestCreate = Annotated[
    Union[PurchaseRequestCreate, ProviderPaymentRequestCreate],
    Field(discriminator="type"),
]
APPROVAL_REQUEST_CREATE_ADAPTER: TypeAdapter[ApprovalRequestCreate] = TypeAdapter(
    ApprovalRequestCreate
)


class InstallmentInput(BaseModel):
    amount: float = Field(gt=0)
    due_date: date

    model_config = ConfigDict(allow_inf_nan=False)


class ApprovePayload(BaseModel):
    """Approver decision; payment terms only apply to provider payments."""

    comment: str | None = Field(default=None, max_length=2000)
    approved_payment_type: PaymentType | None = None
    approved_amount: float | None = None
    installments: list[InstallmentInput] = Field(default_factory=list)

    model_config = ConfigDict(str_strip_whitespace=True, allow_inf_nan=False)

    @field_validator("approved_payment_type", mode="before")
    @classmethod
    def _payment_type_from_label(cls, value):
        if value == "":
            return None
        return coerce_label(PAYMENT_TYPE_LABELS, value)

    @model_validator(mode="after")
    def _check_payment_terms(self) -> "ApprovePayload":
        if self.approved_payment_type is None:
            return self
        if self.approved_amount is None or self.approved_amount <= 0:
            raise ValueError("Approved amount must be greater than zero.")
        if self.approved_payment_type is PaymentType.FULL_PAYMENT:
            if self.installments:
                raise ValueError("A full payment cannot carry installments.")
            return self
        if not self.installments:
            raise ValueError("At least one installment is required.")
        total = sum(installment.amount for installment in self.installments)
        if abs(total - self.approved_amount) > INSTALLMENT_SUM_TOLERANCE:
            raise ValueError(
                f"Installments add up to {total:.2f} but the approved amount is "
                f"{self.approved_amount:.2f}."
            )
        return self

    @property
    def has_payment_terms(self) -> bool:
        return (
            self.approved_payment_type is not None
            or self.approved_amount is not None
            or bool(self.installments)
        )


class DecisionCommentPayload(BaseModel):
    """Reject and request-info both require a reason for the requester."""

    comment: str = Field(max_length=2000)

    @field_validator("comment")
    @classmethod
    def _comment_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("A comment is required for this action.")
        return value

    @model_validator(mode="before")
    @classmethod
    def _missing_comment(cls, data):
        if isinstance(data, dict) and data.get("comment") is None:
            return {**data, "comment": ""}
        return data


class InstallmentStatusUpdate(BaseModel):
    status: InstallmentStatus

    @field_validator("status", mode="before")
    @classmethod
    def _status_from_label(cls, value):
        return coerce_label(INSTALLMENT_STATUS_LABELS, value)


class InstallmentRead(BaseModel):
    id: int
    display_id: str
    amount: float
    due_date: date
    status: str
    days_overdue: int
    paid_at: datetime | None

    model_config = ConfigDict(from_attributes=True)


class ActivityLogRead(BaseModel):
    id: int
    action: str
    user_id: int
    user_name: str
    comment: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApprovalRequestSummary(BaseModel):
    id: int
    display_id: str
    type: str
    subject: str
    status: str
    requester_id: int
    requester_name: str
    supplier: str | None
    estimated_price: float | None
    total_amount_to_pay: float | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ApprovalRequestRead(ApprovalRequestSummary):
    description: str | None
    requester_email: str | None
    item_description: str | None
    approver_id: int | None
    approver_name: str | None
    approver_comment: str | None
    approved_at: datetime | None
    rejected_at: datetime | None
    info_requested_at: datetime | None
    approved_payment_type: str | None
    approved_amount: float | None
    total_paid_amount: float
    remaining_amount: float
    next_due_date: date | None
    has_overdue_payments: bool
    updated_at: datetime
    attachments: list[AttachmentRead] = Field(default_factory=list)
    activity_log: list[ActivityLogRead] = Field(default_factory=list)
    installments: list[InstallmentRead] = Field(default_factory=list)


__all__ = [
    "APPROVAL_REQUEST_CREATE_ADAPTER",
    "ActivityLogRead",
    "ApprovalRequestCreate",
    "ApprovalRequestRead",
    "ApprovalRequestSummary",
    "ApprovePayload",
    "DecisionCommentPayload",
    "INSTALLMENT_SUM_TOLERANCE",
    "InstallmentInput",
    "InstallmentRead",
    "InstallmentStatusUpdate",
    "ProviderPaymentRequestCreate",
    "PurchaseRequestCreate",
]
