"""ORM models exposed for easy imports."""

from .approval import ApprovalActivityLogEntry, ApprovalRequest, PaymentInstallment
from .attachment import Attachment
from .audit import AuditLogEntry
from .failure import FailureLogEntry, FailureReport
from .id_counter import IdCounter
from .inventory import InventoryItem
from .maintenance import MaintenanceCase, MaintenanceLogEntry
from .ticket import Comment, Ticket
from .user import User

__all__ = [
    "ApprovalActivityLogEntry",
    "ApprovalRequest",
    "Attachment",
    "AuditLogEntry",
    "Comment",
    "FailureLogEntry",
    "FailureReport",
    "IdCounter",
    "InventoryItem",
    "MaintenanceCase",
    "MaintenanceLogEntry",
    "PaymentInstallment",
    "Ticket",
    "User",
]
