# bot/models.py
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class OrderStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class OrderType(str, Enum):
    TELEGRAM = "telegram"
    WEBSITE = "website"
    ANONYMOUS = "anonymous"


@dataclass(frozen=True)
class OrderState:
    """
    Buyurtmaning holatga oid qismi: status + uchta tri-state flag.
    Lifecycle funksiyalari faqat shu bilan ishlaydi.
    """
    status: OrderStatus = OrderStatus.PENDING
    is_agree: Optional[bool] = None
    is_client_went: Optional[bool] = None
    is_client_claimed: Optional[bool] = None
    pickup_address: Optional[str] = None
    seller_notes: Optional[str] = None
    client_notes: Optional[str] = None


@dataclass(frozen=True)
class ProductInfo:
    id: int
    name: str
    price: int
    stock_quantity: int
    has_delivery: bool = False
    delivery_price: int = 0
    seller_id: Optional[int] = None
    order_count: int = 0
    description: str = ""
    image_url: Optional[str] = None

    @property
    def effective_delivery_price(self) -> int:
        return self.delivery_price if self.has_delivery else 0


@dataclass(frozen=True)
class AccountInfo:
    id: int
    telegram_id: Optional[int] = None
    full_name: Optional[str] = None
    username: Optional[str] = None
    phone: Optional[str] = None
    is_admin: bool = False
    is_seller: bool = False
    pickup_address: Optional[str] = None


@dataclass
class OrderRecord:
    id: int
    product_id: int
    product_name: str
    full_name: str
    phone: str
    address: str
    quantity: int
    total_amount: int
    status: OrderStatus = OrderStatus.PENDING
    is_agree: Optional[bool] = None
    is_client_went: Optional[bool] = None
    is_client_claimed: Optional[bool] = None
    pickup_address: Optional[str] = None
    seller_notes: Optional[str] = None
    client_notes: Optional[str] = None
    seller_id: Optional[int] = None
    buyer_id: Optional[int] = None
    birthdate: Optional[str] = None
    delivery_price: int = 0
    order_type: OrderType = OrderType.TELEGRAM
    anon_temp_id: Optional[str] = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def state(self) -> OrderState:
        return OrderState(
            status=self.status,
            is_agree=self.is_agree,
            is_client_went=self.is_client_went,
            is_client_claimed=self.is_client_claimed,
            pickup_address=self.pickup_address,
            seller_notes=self.seller_notes,
            client_notes=self.client_notes,
        )

    @property
    def short_id(self) -> str:
        return str(self.id)[-8:]
