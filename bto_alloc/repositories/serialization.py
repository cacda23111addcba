"""Shared encoders and decoders for the persistence collaborators."""

from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable

from bto_alloc.engine.ledger import InventoryLedger, SlotLedger, StockCount
from bto_alloc.models.base import Window
from bto_alloc.models.housing import (
    Application,
    ApplicationStatus,
    Enquiry,
    EnquiryReply,
    FlatCategory,
    Listing,
    Manager,
    MaritalStatus,
    RegistrationStatus,
    Requester,
    Role,
    Staff,
    StaffRegistration,
    Unit,
    WithdrawalRequest,
    WithdrawalStatus,
)


def to_dict(obj: Any) -> dict:
    """Convert object to dictionary."""
    if is_dataclass(obj):
        return dataclass_to_dict(obj)
    elif isinstance(obj, dict):
        return {serialize_key(k): serialize_value(v) for k, v in obj.items()}
    else:
        return {"value": str(obj)}


def dataclass_to_dict(obj: Any) -> dict:
    """Convert dataclass to dict with proper serialization."""
    result = {}
    for key, value in asdict(obj).items():
        result[key] = serialize_value(value)
    return result


def serialize_key(key: Any) -> Any:
    return key.value if isinstance(key, Enum) else key


def serialize_value(value: Any) -> Any:
    """Serialize a value for JSON output."""
    if isinstance(value, Enum):
        return value.value
    elif isinstance(value, datetime):
        return value.isoformat()
    elif isinstance(value, date):
        return value.isoformat()
    elif isinstance(value, dict):
        return {serialize_key(k): serialize_value(v) for k, v in value.items()}
    elif isinstance(value, (set, frozenset)):
        return sorted(serialize_value(v) for v in value)
    elif isinstance(value, (list, tuple)):
        return [serialize_value(v) for v in value]
    return value


# Decoders


def _datetime(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def window_from_dict(data: dict) -> Window:
    return Window(
        open_date=date.fromisoformat(data["open_date"]),
        close_date=date.fromisoformat(data["close_date"]),
    )


def unit_from_dict(data: dict | None) -> Unit | None:
    if data is None:
        return None
    return Unit(
        unit_id=data["unit_id"],
        listing_id=data["listing_id"],
        category=FlatCategory(data["category"]),
        application_id=data.get("application_id"),
    )


def listing_from_dict(data: dict) -> Listing:
    listing_id = data["listing_id"]
    stock = {
        FlatCategory(category): StockCount(total=count["total"], available=count["available"])
        for category, count in data["inventory"]["stock"].items()
    }
    slots = data["staff_slots"]
    return Listing(
        listing_id=listing_id,
        name=data["name"],
        neighborhood=data["neighborhood"],
        window=window_from_dict(data["window"]),
        manager_id=data["manager_id"],
        inventory=InventoryLedger(listing_id=listing_id, stock=stock),
        staff_slots=SlotLedger(listing_id=listing_id, total=slots["total"], available=slots["available"]),
        visible=data.get("visible", True),
        assigned_staff=set(data.get("assigned_staff", [])),
        created_at=_datetime(data.get("created_at")),
    )


def requester_from_dict(data: dict) -> Requester:
    return Requester(
        requester_id=data["requester_id"],
        name=data["name"],
        age=int(data["age"]),
        marital_status=MaritalStatus(data["marital_status"]),
        created_at=_datetime(data.get("created_at")),
    )


def staff_from_dict(data: dict) -> Staff:
    return Staff(
        staff_id=data["staff_id"],
        name=data["name"],
        age=int(data["age"]),
        marital_status=MaritalStatus(data["marital_status"]),
        handling=set(data.get("handling", [])),
        created_at=_datetime(data.get("created_at")),
    )


def manager_from_dict(data: dict) -> Manager:
    return Manager(
        manager_id=data["manager_id"],
        name=data["name"],
        created_at=_datetime(data.get("created_at")),
    )


def application_from_dict(data: dict) -> Application:
    return Application(
        application_id=data["application_id"],
        requester_id=data["requester_id"],
        listing_id=data["listing_id"],
        category=FlatCategory(data["category"]),
        status=ApplicationStatus(data["status"]),
        submitted_at=datetime.fromisoformat(data["submitted_at"]),
        status_changed_at=datetime.fromisoformat(data["status_changed_at"]),
        reserved_unit=unit_from_dict(data.get("reserved_unit")),
        booked_unit=unit_from_dict(data.get("booked_unit")),
    )


def registration_from_dict(data: dict) -> StaffRegistration:
    return StaffRegistration(
        registration_id=data["registration_id"],
        staff_id=data["staff_id"],
        listing_id=data["listing_id"],
        status=RegistrationStatus(data["status"]),
        requested_at=datetime.fromisoformat(data["requested_at"]),
        decided_at=_datetime(data.get("decided_at")),
        decided_by=data.get("decided_by"),
    )


def withdrawal_from_dict(data: dict) -> WithdrawalRequest:
    return WithdrawalRequest(
        request_id=data["request_id"],
        application_id=data["application_id"],
        reason=data.get("reason", ""),
        status=WithdrawalStatus(data["status"]),
        requested_at=datetime.fromisoformat(data["requested_at"]),
        decided_at=_datetime(data.get("decided_at")),
        decided_by=data.get("decided_by"),
    )


def enquiry_from_dict(data: dict) -> Enquiry:
    return Enquiry(
        enquiry_id=data["enquiry_id"],
        requester_id=data["requester_id"],
        listing_id=data["listing_id"],
        content=data["content"],
        submitted_at=datetime.fromisoformat(data["submitted_at"]),
        updated_at=_datetime(data.get("updated_at")),
        replies=[
            EnquiryReply(
                responder_id=reply["responder_id"],
                role=Role(reply["role"]),
                text=reply["text"],
                replied_at=datetime.fromisoformat(reply["replied_at"]),
            )
            for reply in data.get("replies", [])
        ],
    )


DECODERS: dict[str, Callable[[dict], Any]] = {
    "listings": listing_from_dict,
    "requesters": requester_from_dict,
    "staff": staff_from_dict,
    "managers": manager_from_dict,
    "applications": application_from_dict,
    "registrations": registration_from_dict,
    "withdrawals": withdrawal_from_dict,
    "enquiries": enquiry_from_dict,
}

# Primary key of each collection's records
ID_FIELDS: dict[str, str] = {
    "listings": "listing_id",
    "requesters": "requester_id",
    "staff": "staff_id",
    "managers": "manager_id",
    "applications": "application_id",
    "registrations": "registration_id",
    "withdrawals": "request_id",
    "enquiries": "enquiry_id",
}
