"""Stored enum values and their client-facing labels.

Every enum persisted by the models has exactly one :class:`LabelMap` that
translates between the stored value and the Spanish label shown to clinic
staff. The maps are built at import time and refuse to load when a member
is missing a label or two members share one.
"""

from __future__ import annotations

import unicodedata
from enum import Enum
from typing import Generic, Mapping, TypeVar

E = TypeVar("E", bound=Enum)


def normalize_label(value: str) -> str:
    """Return a case, whitespace and accent insensitive lookup key."""

    decomposed = unicodedata.normalize("NFD", str(value))
    stripped = "".join(char for char in decomposed if not unicodedata.combining(char))
    return "".join(stripped.lower().split())


class LabelMap(Generic[E]):
    """Bidirectional mapping between an enum and its display labels."""

    def __init__(self, enum_cls: type[E], labels: Mapping[E, str]) -> None:
        missing = [member.name for member in enum_cls if member not in labels]
        if missing:
            raise ValueError(
                f"{enum_cls.__name__} members without a label: {', '.join(missing)}"
            )
        foreign = [key for key in labels if not isinstance(key, enum_cls)]
        if foreign:
            raise ValueError(f"{enum_cls.__name__} label map has foreign keys: {foreign}")

        lookup: dict[str, E] = {}
        for member in enum_cls:
            for candidate in (labels[member], member.value):
                key = normalize_label(candidate)
                existing = lookup.get(key)
                if existing is not None and existing is not member:
                    raise ValueError(
                        f"{enum_cls.__name__} label {candidate!r} is ambiguous "
                        f"between {existing.name} and {member.name}"
                    )
                lookup[key] = member

        self.enum_cls = enum_cls
        self._labels: dict[E, str] = dict(labels)
        self._lookup = lookup

    def label(self, member: E | str) -> str:
        """Return the display label for a member or stored value."""

        return self._labels[self.enum_cls(member)]

    def lookup(self, label: str | None) -> E | None:
        """Return the member matching a label or stored value, if any."""

        if label is None:
            return None
        return self._lookup.get(normalize_label(label))

    def from_label(self, label: str) -> E:
        member = self.lookup(label)
        if member is None:
            raise ValueError(f"Unknown {self.enum_cls.__name__} label: {label!r}")
        return member

    def options(self) -> list[dict[str, str]]:
        """Return ``value``/``label`` pairs in declaration order."""

        return [
            {"value": member.value, "label": self._labels[member]}
            for member in self.enum_cls
        ]


class UserRole(str, Enum):
    USER = "user"
    ADMIN = "admin"
    PRESIDENT = "president"


class TicketPriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"


class TicketStatus(str, Enum):
    OPEN = "Open"
    IN_PROGRESS = "InProgress"
    RESOLVED = "Resolved"
    CLOSED = "Closed"


class InventoryCategory(str, Enum):
    COMPUTER = "Computer"
    MONITOR = "Monitor"
    KEYBOARD = "Keyboard"
    MOUSE = "Mouse"
    PRINTER = "Printer"
    SCANNER = "Scanner"
    ROUTER = "Router"
    SWITCH = "Switch"
    SERVER = "Server"
    LAPTOP = "Laptop"
    TABLET = "Tablet"
    PROJECTOR = "Projector"
    IP_PHONE = "IpPhone"
    OTHER_PERIPHERAL = "OtherPeripheral"
    SOFTWARE = "Software"
    LICENSE = "License"
    OTHER = "Other"


class InventoryStatus(str, Enum):
    IN_USE = "InUse"
    IN_STORAGE = "InStorage"
    IN_REPAIR = "InRepair"
    RETIRED = "Retired"
    LOST = "Lost"


class RamOption(str, Enum):
    NOT_SPECIFIED = "NotSpecified"
    GB_2 = "2GB"
    GB_4 = "4GB"
    GB_8 = "8GB"
    GB_12 = "12GB"
    GB_16 = "16GB"
    GB_32 = "32GB"
    GB_64 = "64GB"
    OTHER = "Other"


class StorageType(str, Enum):
    HDD = "HDD"
    SSD = "SSD"


class ApprovalRequestType(str, Enum):
    PURCHASE = "Purchase"
    PROVIDER_PAYMENT = "ProviderPayment"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    INFO_REQUESTED = "InfoRequested"


DECIDABLE_APPROVAL_STATUSES = (ApprovalStatus.PENDING, ApprovalStatus.INFO_REQUESTED)


class PaymentType(str, Enum):
    FULL_PAYMENT = "FullPayment"
    INSTALLMENTS = "Installments"


class InstallmentStatus(str, Enum):
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


class MaintenanceStatus(str, Enum):
    REGISTERED = "Registered"
    PENDING_QUOTE = "PendingQuote"
    QUOTE_APPROVED = "QuoteApproved"
    IN_SERVICE = "InService"
    PENDING_BACKUP = "PendingBackup"
    RESOLVED = "Resolved"


class MaintenancePriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class FailureSeverity(str, Enum):
    CRITICAL = "Critical"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"


class FailureType(str, Enum):
    ELECTRICAL = "Electrical"
    MECHANICAL = "Mechanical"
    SOFTWARE = "Software"
    CALIBRATION = "Calibration"
    USER_ERROR = "UserError"
    OTHER = "Other"


class FailureStatus(str, Enum):
    REPORTED = "Reported"
    IN_DIAGNOSIS = "InDiagnosis"
    PENDING_PART = "PendingPart"
    INTERNAL_REPAIR = "InternalRepair"
    ESCALATED_EXTERNAL = "EscalatedExternal"
    IN_CALIBRATION = "InCalibration"
    RESOLVED = "Resolved"
    CLOSED = "Closed"
    DUPLICATE = "Duplicate"
    NOT_REPRODUCIBLE = "NotReproducible"


CLOSED_FAILURE_STATUSES = (
    FailureStatus.CLOSED,
    FailureStatus.DUPLICATE,
    FailureStatus.NOT_REPRODUCIBLE,
)


USER_ROLE_LABELS = LabelMap(
    UserRole,
    {
        UserRole.USER: "Usuario",
        UserRole.ADMIN: "Administrador",
        UserRole.PRESIDENT: "Presidente IEQ",
    },
)

TICKET_PRIORITY_LABELS = LabelMap(
    TicketPriority,
    {
        TicketPriority.LOW: "Baja",
        TicketPriority.MEDIUM: "Media",
        TicketPriority.HIGH: "Alta",
    },
)

TICKET_STATUS_LABELS = LabelMap(
    TicketStatus,
    {
        TicketStatus.OPEN: "Abierto",
        TicketStatus.IN_PROGRESS: "En Progreso",
        TicketStatus.RESOLVED: "Resuelto",
        TicketStatus.CLOSED: "Cerrado",
    },
)

INVENTORY_CATEGORY_LABELS = LabelMap(
    InventoryCategory,
    {
        InventoryCategory.COMPUTER: "Computadora",
        InventoryCategory.MONITOR: "Monitor",
        InventoryCategory.KEYBOARD: "Teclado",
        InventoryCategory.MOUSE: "Mouse",
        InventoryCategory.PRINTER: "Impresora",
        InventoryCategory.SCANNER: "Escaner",
        InventoryCategory.ROUTER: "Router",
        InventoryCategory.SWITCH: "Switch",
        InventoryCategory.SERVER: "Servidor",
        InventoryCategory.LAPTOP: "Laptop",
        InventoryCategory.TABLET: "Tablet",
        InventoryCategory.PROJECTOR: "Proyector",
        InventoryCategory.IP_PHONE: "Telefono IP",
        InventoryCategory.OTHER_PERIPHERAL: "Otro Periferico",
        InventoryCategory.SOFTWARE: "Software",
        InventoryCategory.LICENSE: "Licencia",
        InventoryCategory.OTHER: "Otro",
    },
)

INVENTORY_STATUS_LABELS = LabelMap(
    InventoryStatus,
    {
        InventoryStatus.IN_USE: "En Uso",
        InventoryStatus.IN_STORAGE: "En Almacen",
        InventoryStatus.IN_REPAIR: "En Reparacion",
        InventoryStatus.RETIRED: "De Baja",
        InventoryStatus.LOST: "Perdido",
    },
)

RAM_OPTION_LABELS = LabelMap(
    RamOption,
    {
        RamOption.NOT_SPECIFIED: "No Especificado",
        RamOption.GB_2: "2GB",
        RamOption.GB_4: "4GB",
        RamOption.GB_8: "8GB",
        RamOption.GB_12: "12GB",
        RamOption.GB_16: "16GB",
        RamOption.GB_32: "32GB",
        RamOption.GB_64: "64GB",
        RamOption.OTHER: "Otro",
    },
)

STORAGE_TYPE_LABELS = LabelMap(
    StorageType,
    {StorageType.HDD: "HDD", StorageType.SSD: "SSD"},
)

APPROVAL_TYPE_LABELS = LabelMap(
    ApprovalRequestType,
    {
        ApprovalRequestType.PURCHASE: "Compra",
        ApprovalRequestType.PROVIDER_PAYMENT: "Pago a Proveedor",
    },
)

APPROVAL_STATUS_LABELS = LabelMap(
    ApprovalStatus,
    {
        ApprovalStatus.PENDING: "Pendiente",
        ApprovalStatus.APPROVED: "Aprobado",
        ApprovalStatus.REJECTED: "Rechazado",
        ApprovalStatus.INFO_REQUESTED: "Información Solicitada",
    },
)

PAYMENT_TYPE_LABELS = LabelMap(
    PaymentType,
    {
        PaymentType.FULL_PAYMENT: "Contado",
        PaymentType.INSTALLMENTS: "Cuotas",
    },
)

INSTALLMENT_STATUS_LABELS = LabelMap(
    InstallmentStatus,
    {
        InstallmentStatus.PENDING: "Pendiente",
        InstallmentStatus.PAID: "Pagada",
        InstallmentStatus.OVERDUE: "Vencida",
        InstallmentStatus.CANCELLED: "Cancelada",
    },
)

MAINTENANCE_STATUS_LABELS = LabelMap(
    MaintenanceStatus,
    {
        MaintenanceStatus.REGISTERED: "Registrado",
        MaintenanceStatus.PENDING_QUOTE: "Pendiente Presupuesto",
        MaintenanceStatus.QUOTE_APPROVED: "Presupuesto Aprobado",
        MaintenanceStatus.IN_SERVICE: "En Servicio/Reparación",
        MaintenanceStatus.PENDING_BACKUP: "Pendiente Respaldo",
        MaintenanceStatus.RESOLVED: "Resuelto",
    },
)

MAINTENANCE_PRIORITY_LABELS = LabelMap(
    MaintenancePriority,
    {
        MaintenancePriority.LOW: "Baja",
        MaintenancePriority.MEDIUM: "Media",
        MaintenancePriority.HIGH: "Alta",
        MaintenancePriority.CRITICAL: "Crítica",
    },
)

FAILURE_SEVERITY_LABELS = LabelMap(
    FailureSeverity,
    {
        FailureSeverity.CRITICAL: "Crítica",
        FailureSeverity.HIGH: "Alta",
        FailureSeverity.MEDIUM: "Media",
        FailureSeverity.LOW: "Baja",
    },
)

FAILURE_TYPE_LABELS = LabelMap(
    FailureType,
    {
        FailureType.ELECTRICAL: "Eléctrica",
        FailureType.MECHANICAL: "Mecánica",
        FailureType.SOFTWARE: "Software",
        FailureType.CALIBRATION: "Calibración",
        FailureType.USER_ERROR: "Error de Uso",
        FailureType.OTHER: "Otra",
    },
)

FAILURE_STATUS_LABELS = LabelMap(
    FailureStatus,
    {
        FailureStatus.REPORTED: "Reportada",
        FailureStatus.IN_DIAGNOSIS: "En Diagnóstico",
        FailureStatus.PENDING_PART: "Pendiente de Pieza",
        FailureStatus.INTERNAL_REPAIR: "En Reparación Interna",
        FailureStatus.ESCALATED_EXTERNAL: "Escalada a Externo",
        FailureStatus.IN_CALIBRATION: "En Calibración",
        FailureStatus.RESOLVED: "Resuelta",
        FailureStatus.CLOSED: "Cerrada",
        FailureStatus.DUPLICATE: "Duplicada",
        FailureStatus.NOT_REPRODUCIBLE: "No se Reproduce",
    },
)

LABEL_MAPS: dict[str, LabelMap] = {
    "user_role": USER_ROLE_LABELS,
    "ticket_priority": TICKET_PRIORITY_LABELS,
    "ticket_status": TICKET_STATUS_LABELS,
    "inventory_category": INVENTORY_CATEGORY_LABELS,
    "inventory_status": INVENTORY_STATUS_LABELS,
    "ram_option": RAM_OPTION_LABELS,
    "storage_type": STORAGE_TYPE_LABELS,
    "approval_type": APPROVAL_TYPE_LABELS,
    "approval_status": APPROVAL_STATUS_LABELS,
    "payment_type": PAYMENT_TYPE_LABELS,
    "installment_status": INSTALLMENT_STATUS_LABELS,
    "maintenance_status": MAINTENANCE_STATUS_LABELS,
    "maintenance_priority": MAINTENANCE_PRIORITY_LABELS,
    "failure_severity": FAILURE_SEVERITY_LABELS,
    "failure_type": FAILURE_TYPE_LABELS,
    "failure_status": FAILURE_STATUS_LABELS,
}


__all__ = [
    "APPROVAL_STATUS_LABELS",
    "APPROVAL_TYPE_LABELS",
    "ApprovalRequestType",
    "ApprovalStatus",
    "CLOSED_FAILURE_STATUSES",
    "DECIDABLE_APPROVAL_STATUSES",
    "FAILURE_SEVERITY_LABELS",
    "FAILURE_STATUS_LABELS",
    "FAILURE_TYPE_LABELS",
    "FailureSeverity",
    "FailureStatus",
    "FailureType",
    "INSTALLMENT_STATUS_LABELS",
    "INVENTORY_CATEGORY_LABELS",
    "INVENTORY_STATUS_LABELS",
    "InstallmentStatus",
    "InventoryCategory",
    "InventoryStatus",
    "LABEL_MAPS",
    "LabelMap",
    "MAINTENANCE_PRIORITY_LABELS",
    "MAINTENANCE_STATUS_LABELS",
    "MaintenancePriority",
    "MaintenanceStatus",
    "PAYMENT_TYPE_LABELS",
    "PaymentType",
    "RAM_OPTION_LABELS",
    "RamOption",
    "STORAGE_TYPE_LABELS",
    "StorageType",
    "TICKET_PRIORITY_LABELS",
    "TICKET_STATUS_LABELS",
    "TicketPriority",
    "TicketStatus",
    "USER_ROLE_LABELS",
    "UserRole",
    "normalize_label",
]
