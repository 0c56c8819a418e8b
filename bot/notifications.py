# bot/notifications.py
"""
Admin notification payloads.

Each notification type carries only the fields it needs. The ``type`` tag is
the discriminator, so the JSON stored in the database is parsed back into
the right model with ``parse_payload``.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter


class NotificationType(str, Enum):
    NEW_ORDER = "new_order"
    CONTACT = "contact"
    SELLER_APPLICATION = "seller_application"
    PRODUCT_APPROVAL = "product_approval"


class NotificationStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    RESPONDED = "responded"
    CLOSED = "closed"


class NewOrderPayload(BaseModel):
    type: Literal["new_order"] = "new_order"
    order_id: int = Field(..., description="Yangi buyurtma id si")


class ContactPayload(BaseModel):
    type: Literal["contact"] = "contact"
    telegram_id: int = Field(..., description="Javob yuboriladigan Telegram chat")
    username: Optional[str] = None
    phone: Optional[str] = None
    full_name: Optional[str] = None


class SellerApplicationPayload(BaseModel):
    type: Literal["seller_application"] = "seller_application"
    account_id: int = Field(..., description="Sotuvchi bo'lmoqchi bo'lgan foydalanuvchi")
    company_name: Optional[str] = None


class ProductApprovalPayload(BaseModel):
    type: Literal["product_approval"] = "product_approval"
    product_id: int
    seller_id: Optional[int] = None


NotificationPayload = Annotated[
    Union[NewOrderPayload, ContactPayload, SellerApplicationPayload, ProductApprovalPayload],
    Field(discriminator="type"),
]

_payload_adapter = TypeAdapter(NotificationPayload)


def parse_payload(data: Dict[str, Any]) -> NotificationPayload:
    """Raises pydantic.ValidationError for unknown types or missing fields."""
    return _payload_adapter.validate_python(data)


def dump_payload(payload: NotificationPayload) -> Dict[str, Any]:
    return payload.model_dump(mode="json")


@dataclass
class NotificationRecord:
    id: int
    payload: NotificationPayload
    title: str
    content: str
    status: NotificationStatus = NotificationStatus.PENDING
    admin_response: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    resolved_at: Optional[datetime] = None

    @property
    def type(self) -> NotificationType:
        return NotificationType(self.payload.type)

    @property
    def is_pending(self) -> bool:
        return self.status is NotificationStatus.PENDING
