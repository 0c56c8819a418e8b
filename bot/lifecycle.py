# bot/lifecycle.py
"""
Buyurtma hayot sikli (stage/status modeli).

Holat uchta tri-state flag (is_agree, is_client_went, is_client_claimed)
va status orqali saqlanadi, lekin barcha qarorlar aniq ``Stage`` enum va
``apply_action`` funksiyasi orqali qabul qilinadi:

    (OrderState, Action) -> OrderState | TransitionError

Bu modul sof (pure): I/O yo'q, shuning uchun bot va REST endpoint
bir xil validatsiyadan o'tadi.
"""
from dataclasses import replace
from enum import Enum
from typing import FrozenSet, Optional

from .exceptions import TransitionError
from .models import OrderState, OrderStatus


class Stage(str, Enum):
    AWAITING_SELLER_DECISION = "awaiting_seller_decision"
    AWAITING_PICKUP = "awaiting_pickup"
    AWAITING_HANDOVER = "awaiting_handover"
    COMPLETED = "completed"
    REJECTED = "rejected"
    CANCELLED = "cancelled"

    @property
    def number(self) -> int:
        return _STAGE_NUMBERS[self]

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STAGES


_STAGE_NUMBERS = {
    Stage.AWAITING_SELLER_DECISION: 1,
    Stage.AWAITING_PICKUP: 2,
    Stage.AWAITING_HANDOVER: 3,
    Stage.COMPLETED: 4,
    Stage.REJECTED: 0,
    Stage.CANCELLED: 0,
}

TERMINAL_STAGES: FrozenSet[Stage] = frozenset({Stage.COMPLETED, Stage.REJECTED, Stage.CANCELLED})

TOTAL_STAGES = 4


class Action(str, Enum):
    AGREE = "agree"
    REJECT = "reject"
    CLIENT_WENT = "client_went"
    CLIENT_NOT_WENT = "client_not_went"
    PRODUCT_GIVEN = "product_given"
    PRODUCT_NOT_GIVEN = "product_not_given"
    REORDER = "reorder"


SELLER_ACTIONS = frozenset({Action.AGREE, Action.REJECT, Action.PRODUCT_GIVEN, Action.PRODUCT_NOT_GIVEN})
BUYER_ACTIONS = frozenset({Action.CLIENT_WENT, Action.CLIENT_NOT_WENT, Action.REORDER})


class OverridePolicy(str, Enum):
    KEEP_FLAGS = "keep_flags"
    RECONCILE = "reconcile"


OVERRIDE_TARGETS = frozenset({OrderStatus.PROCESSING, OrderStatus.COMPLETED, OrderStatus.CANCELLED})


# =========================
# DERIVED VIEW
# =========================

def derive_stage(state: OrderState) -> Stage:
    if state.status is OrderStatus.CANCELLED:
        if state.is_agree is False:
            return Stage.REJECTED
        return Stage.CANCELLED

    # completed status always wins (admin override may leave flags unset)
    if state.status is OrderStatus.COMPLETED:
        return Stage.COMPLETED

    # pending / processing: flags decide
    if state.is_agree is None:
        return Stage.AWAITING_SELLER_DECISION
    if state.is_agree is False:
        return Stage.REJECTED
    if state.is_client_went is True:
        return Stage.AWAITING_HANDOVER
    return Stage.AWAITING_PICKUP


def progress(state: OrderState) -> float:
    """Foiz: stage/4*100, bekor qilingan buyurtma uchun doim 0."""
    return derive_stage(state).number / TOTAL_STAGES * 100


_LABELS = {
    Stage.AWAITING_SELLER_DECISION: "Sotuvchi javobini kutmoqda",
    Stage.AWAITING_PICKUP: "Qabul qilingan",
    Stage.AWAITING_HANDOVER: "Mijoz keldi",
    Stage.COMPLETED: "Yakunlandi",
    Stage.REJECTED: "Rad etilgan",
    Stage.CANCELLED: "Bekor qilingan",
}


def stage_label(state: OrderState) -> str:
    stage = derive_stage(state)
    if stage is Stage.AWAITING_PICKUP and state.is_client_went is False:
        return "Mijoz kelmadi"
    return _LABELS[stage]


# =========================
# TRANSITIONS
# =========================

def allowed_actions(state: OrderState) -> FrozenSet[Action]:
    stage = derive_stage(state)

    if stage is Stage.AWAITING_SELLER_DECISION:
        return frozenset({Action.AGREE, Action.REJECT})

    if stage is Stage.AWAITING_PICKUP:
        # "bormadim" dan keyin ham mijoz kelishi mumkin, lekin ikki marta "bormadim" emas
        if state.is_client_went is None:
            return frozenset({Action.CLIENT_WENT, Action.CLIENT_NOT_WENT})
        return frozenset({Action.CLIENT_WENT})

    if stage is Stage.AWAITING_HANDOVER:
        return frozenset({Action.PRODUCT_GIVEN, Action.PRODUCT_NOT_GIVEN})

    return frozenset({Action.REORDER})


def apply_action(
        state: OrderState,
        action: Action,
        *,
        notes: Optional[str] = None,
        pickup_address: Optional[str] = None,
) -> OrderState:
    action = Action(action)
    stage = derive_stage(state)

    if action not in allowed_actions(state):
        raise TransitionError(action.value, f"'{stage_label(state)}' bosqichida mumkin emas")

    if action is Action.AGREE:
        return replace(
            state,
            is_agree=True,
            pickup_address=pickup_address or state.pickup_address,
            seller_notes=notes,
        )

    if action is Action.REJECT:
        return replace(state, is_agree=False, status=OrderStatus.CANCELLED, seller_notes=notes)

    if action is Action.CLIENT_WENT:
        return replace(state, is_client_went=True, client_notes=notes or state.client_notes)

    if action is Action.CLIENT_NOT_WENT:
        return replace(state, is_client_went=False, client_notes=notes or state.client_notes)

    if action is Action.PRODUCT_GIVEN:
        return replace(
            state,
            is_client_claimed=True,
            status=OrderStatus.COMPLETED,
            seller_notes=notes or state.seller_notes,
        )

    if action is Action.PRODUCT_NOT_GIVEN:
        return replace(
            state,
            is_client_claimed=False,
            status=OrderStatus.CANCELLED,
            seller_notes=notes or state.seller_notes,
        )

    # REORDER: eski buyurtma o'zgarmaydi, yangisini coordinator yaratadi
    return state


def apply_override(
        state: OrderState,
        status: OrderStatus,
        policy: OverridePolicy = OverridePolicy.KEEP_FLAGS,
) -> OrderState:
    """
    Admin uchun "escape hatch": statusni flag modelini chetlab o'rnatadi.

    KEEP_FLAGS  - flaglar tegilmaydi (desinxron bo'lishi mumkin).
    RECONCILE   - flaglar yangi statusga eng yaqin to'g'ri kombinatsiyaga keltiriladi.
    """
    status = OrderStatus(status)
    policy = OverridePolicy(policy)

    if status not in OVERRIDE_TARGETS:
        raise TransitionError("override", f"'{status.value}' holatiga o'tkazib bo'lmaydi")
    if state.status is status:
        raise TransitionError("override", "buyurtma allaqachon shu holatda")

    new_state = replace(state, status=status)
    if policy is OverridePolicy.KEEP_FLAGS:
        return new_state

    if status is OrderStatus.COMPLETED:
        return replace(new_state, is_agree=True, is_client_went=True, is_client_claimed=True)

    if status is OrderStatus.CANCELLED:
        if state.is_agree is None:
            return replace(new_state, is_agree=False)
        return new_state

    # PROCESSING: qayta ochilgan buyurtma
    if state.is_agree is False:
        return replace(new_state, is_agree=None, is_client_went=None, is_client_claimed=None)
    if state.is_client_claimed is not None:
        return replace(new_state, is_client_claimed=None)
    return new_state
