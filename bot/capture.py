# bot/capture.py
"""
Order capture: buyer answers sequential free-text prompts
(quantity -> full name -> [birthdate] -> phone -> address).

Each step is its own frozen builder holding only what was collected so far;
``step(builder, text)`` is pure and never touches the transport or storage.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import ClassVar, Optional, Union

from .exceptions import OutOfStock
from .models import ProductInfo
from .utils.formatting import esc, format_price
from .utils.phones import normalize_uz_phone_strict

MIN_NAME_LENGTH = 2
MAX_NAME_LENGTH = 255
MIN_ADDRESS_LENGTH = 5

BIRTHDATE_REGEX = re.compile(r"^\d{2}\.\d{2}\.\d{4}$")

PROMPT_FULL_NAME = "👤 To'liq ism-familiyangizni kiriting:"
PROMPT_BIRTHDATE = "📅 Tug'ilgan sanangizni kiriting:\n(Masalan: 01.01.1990)"
PROMPT_PHONE = "📞 Telefon raqamingizni kiriting:\n(Masalan: +998901234567)"
PROMPT_ADDRESS = "📍 To'liq yetkazib berish manzilini kiriting:"

ERROR_NAME = "❌ Ism-familiya juda qisqa. Qaytadan kiriting:"
ERROR_NAME_TOO_LONG = f"❌ Ism-familiya juda uzun (ko'pi bilan {MAX_NAME_LENGTH} belgi). Qaytadan kiriting:"
ERROR_BIRTHDATE = "❌ Noto'g'ri format. Qaytadan kiriting:\n(Masalan: 01.01.1990)"
ERROR_PHONE = "❌ Noto'g'ri telefon raqam. Qaytadan kiriting:\n(Masalan: +998901234567)"
ERROR_ADDRESS = "❌ Manzil juda qisqa. Qaytadan kiriting:"


class CaptureStep(str, Enum):
    QUANTITY = "quantity"
    FULL_NAME = "full_name"
    BIRTHDATE = "birthdate"
    PHONE = "phone"
    ADDRESS = "address"


# =========================
# BUILDERS (one per step)
# =========================

@dataclass(frozen=True)
class AwaitingQuantity:
    step: ClassVar[CaptureStep] = CaptureStep.QUANTITY
    product: ProductInfo
    ask_birthdate: bool = True


@dataclass(frozen=True)
class AwaitingFullName:
    step: ClassVar[CaptureStep] = CaptureStep.FULL_NAME
    product: ProductInfo
    quantity: int
    ask_birthdate: bool = True


@dataclass(frozen=True)
class AwaitingBirthdate:
    step: ClassVar[CaptureStep] = CaptureStep.BIRTHDATE
    product: ProductInfo
    quantity: int
    full_name: str


@dataclass(frozen=True)
class AwaitingPhone:
    step: ClassVar[CaptureStep] = CaptureStep.PHONE
    product: ProductInfo
    quantity: int
    full_name: str
    birthdate: Optional[str] = None


@dataclass(frozen=True)
class AwaitingAddress:
    step: ClassVar[CaptureStep] = CaptureStep.ADDRESS
    product: ProductInfo
    quantity: int
    full_name: str
    phone: str
    birthdate: Optional[str] = None


Builder = Union[AwaitingQuantity, AwaitingFullName, AwaitingBirthdate, AwaitingPhone, AwaitingAddress]


@dataclass(frozen=True)
class OrderDraft:
    product: ProductInfo
    quantity: int
    full_name: str
    phone: str
    address: str
    birthdate: Optional[str] = None

    @property
    def items_total(self) -> int:
        return self.product.price * self.quantity

    @property
    def delivery_price(self) -> int:
        return self.product.effective_delivery_price

    @property
    def total_amount(self) -> int:
        return self.items_total + self.delivery_price


# =========================
# RESULTS
# =========================

@dataclass(frozen=True)
class Continue:
    builder: Builder
    prompt: str


@dataclass(frozen=True)
class Complete:
    draft: OrderDraft


@dataclass(frozen=True)
class Reject:
    builder: Builder
    error: str


StepResult = Union[Continue, Complete, Reject]


def quantity_prompt(product: ProductInfo) -> str:
    return (
        "🛒 Buyurtma berish\n\n"
        f"📦 Mahsulot: {esc(product.name)}\n"
        f"💰 Narx: {format_price(product.price)}\n\n"
        f"❓ Nechta dona kerak? (1-{product.stock_quantity})"
    )


def start_capture(product: ProductInfo, ask_birthdate: bool = True) -> Continue:
    if product.stock_quantity <= 0:
        raise OutOfStock(product.id, requested=1, available=product.stock_quantity)
    builder = AwaitingQuantity(product=product, ask_birthdate=ask_birthdate)
    return Continue(builder=builder, prompt=quantity_prompt(product))


def _parse_quantity(text: str) -> Optional[int]:
    raw = (text or "").strip()
    if not raw.isdecimal():
        return None
    try:
        return int(raw)
    except ValueError:
        return None


def _valid_birthdate(text: str) -> bool:
    if not BIRTHDATE_REGEX.match(text):
        return False
    try:
        datetime.strptime(text, "%d.%m.%Y")
    except ValueError:
        return False
    return True


def step(builder: Builder, text: str) -> StepResult:
    text = (text or "").strip()

    if isinstance(builder, AwaitingQuantity):
        max_quantity = builder.product.stock_quantity
        quantity = _parse_quantity(text)
        if quantity is None or quantity < 1 or quantity > max_quantity:
            return Reject(builder, f"❌ Noto'g'ri miqdor. 1 dan {max_quantity} gacha son kiriting.")
        return Continue(
            AwaitingFullName(product=builder.product, quantity=quantity, ask_birthdate=builder.ask_birthdate),
            PROMPT_FULL_NAME,
        )

    if isinstance(builder, AwaitingFullName):
        if len(text) < MIN_NAME_LENGTH:
            return Reject(builder, ERROR_NAME)
        if len(text) > MAX_NAME_LENGTH:
            return Reject(builder, ERROR_NAME_TOO_LONG)
        if builder.ask_birthdate:
            return Continue(
                AwaitingBirthdate(product=builder.product, quantity=builder.quantity, full_name=text),
                PROMPT_BIRTHDATE,
            )
        return Continue(
            AwaitingPhone(product=builder.product, quantity=builder.quantity, full_name=text),
            PROMPT_PHONE,
        )

    if isinstance(builder, AwaitingBirthdate):
        if not _valid_birthdate(text):
            return Reject(builder, ERROR_BIRTHDATE)
        return Continue(
            AwaitingPhone(
                product=builder.product,
                quantity=builder.quantity,
                full_name=builder.full_name,
                birthdate=text,
            ),
            PROMPT_PHONE,
        )

    if isinstance(builder, AwaitingPhone):
        phone = normalize_uz_phone_strict(text)
        if phone is None:
            return Reject(builder, ERROR_PHONE)
        return Continue(
            AwaitingAddress(
                product=builder.product,
                quantity=builder.quantity,
                full_name=builder.full_name,
                phone=phone,
                birthdate=builder.birthdate,
            ),
            PROMPT_ADDRESS,
        )

    if isinstance(builder, AwaitingAddress):
        if len(text) < MIN_ADDRESS_LENGTH:
            return Reject(builder, ERROR_ADDRESS)
        return Complete(
            OrderDraft(
                product=builder.product,
                quantity=builder.quantity,
                full_name=builder.full_name,
                phone=builder.phone,
                address=text,
                birthdate=builder.birthdate,
            )
        )

    raise TypeError(f"Unknown capture builder: {type(builder).__name__}")
