"""Approval request models."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class ApprovalRequest(Base):
    """A purchase or provider-payment request awaiting a decision."""

    __tablename__ = "approval_requests"
    __table_args__ = (
        CheckConstraint(
            "type IN ('Purchase','ProviderPayment')",
            name="ck_approval_requests_type_valid",
        ),
        CheckConstraint(
            "status IN ('Pending','Approved','Rejected','InfoRequested')",
            name="ck_approval_requests_status_valid",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False, index=True)
    type: Mapped[str] = mapped_column(String(32), nullable=False)
    subject: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(Text)
    status: Mapped[str] = mapped_column(String(32), nullable=False, default="Pending", index=True)

    requester_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    requester_name: Mapped[str] = mapped_column(String(255), nullable=False)
    requester_email: Mapped[str | None] = mapped_column(String(255))

    approver_id: Mapped[int | None] = mapped_column(ForeignKey("users.id"))
    approver_name: Mapped[str | None] = mapped_column(String(255))
    approver_comment: Mapped[str | None] = mapped_column(Text)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    info_requested_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Purchase
    item_description: Mapped[str | None] = mapped_column(String(200))
    estimated_price: Mapped[float | None] = mapped_column(Float)
    # Purchase (optional) and ProviderPayment (required)
    supplier: Mapped[str | None] = mapped_column(String(100))
    # ProviderPayment
    total_amount_to_pay: Mapped[float | None] = mapped_column(Float)

    approved_payment_type: Mapped[str | None] = mapped_column(String(32))
    approved_amount: Mapped[float | None] = mapped_column(Float)

    total_paid_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    remaining_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0)
    next_due_date: Mapped[date | None] = mapped_column(Date)
    has_overdue_payments: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="0"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    requester: Mapped["User"] = relationship(
        "User", back_populates="approval_requests", foreign_keys=[requester_id]
    )
    attachments: Mapped[list["Attachment"]] = relationship(
        "Attachment", back_populates="approval_request", cascade="all, delete-orphan"
    )
    activity_log: Mapped[list["ApprovalActivityLogEntry"]] = relationship(
        "ApprovalActivityLogEntry",
        back_populates="approval_request",
        order_by="ApprovalActivityLogEntry.id.desc()",
    )
    installments: Mapped[list["PaymentInstallment"]] = relationship(
        "PaymentInstallment",
        back_populates="approval_request",
        order_by="PaymentInstallment.due_date",
    )


class PaymentInstallment(Base):
    """One scheduled partial payment of an approved provider payment."""

    __tablename__ = "payment_installments"
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_payment_installments_amount_positive"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    display_id: Mapped[str] = mapped_column(String(32), unique=True, nullable=False)
    approval_request_id: Mapped[int] = mapped_column(
        ForeignKey("approval_requests.id"), nullable=False, index=True
    )
    amount: Mapped[float] = mapped_column(Float, nullable=False)
    due_date: Mapped[date] = mapped_column(Date, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, default="Pending")
    days_overdue: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    paid_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    approval_request: Mapped["ApprovalRequest"] = relationship(
        "ApprovalRequest", back_populates="installments"
    )


class ApprovalActivityLogEntry(Base):
    """Immutable record of one action taken on an approval request."""

    __tablename__ = "approval_activity_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    approval_request_id: Mapped[int] = mapped_column(
        ForeignKey("approval_requests.id"), nullable=False, index=True
    )
    action: Mapped[str] = mapped_column(String(100), nullable=False)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False)
    user_name: Mapped[str] = mapped_column(String(255), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    approval_request: Mapped["ApprovalRequest"] = relationship(
        "ApprovalRequest", back_populates="activity_log"
    )


__all__ = ["ApprovalActivityLogEntry", "ApprovalRequest", "PaymentInstallment"]
