import unittest
from dataclasses import replace

from bot.exceptions import TransitionError
from bot.lifecycle import (
    Action,
    OverridePolicy,
    Stage,
    allowed_actions,
    apply_action,
    apply_override,
    derive_stage,
    progress,
    stage_label,
)
from bot.models import OrderState, OrderStatus

STAGE1 = OrderState()
STAGE2 = OrderState(is_agree=True, pickup_address="Chilonzor 5")
STAGE2_NOT_WENT = replace(STAGE2, is_client_went=False)
STAGE3 = replace(STAGE2, is_client_went=True)
COMPLETED = replace(STAGE3, is_client_claimed=True, status=OrderStatus.COMPLETED)
REJECTED = OrderState(is_agree=False, status=OrderStatus.CANCELLED)


class DeriveStageTestCase(unittest.TestCase):
    def test_stages_from_flags(self):
        self.assertIs(derive_stage(STAGE1), Stage.AWAITING_SELLER_DECISION)
        self.assertIs(derive_stage(STAGE2), Stage.AWAITING_PICKUP)
        self.assertIs(derive_stage(STAGE2_NOT_WENT), Stage.AWAITING_PICKUP)
        self.assertIs(derive_stage(STAGE3), Stage.AWAITING_HANDOVER)
        self.assertIs(derive_stage(COMPLETED), Stage.COMPLETED)
        self.assertIs(derive_stage(REJECTED), Stage.REJECTED)

    def test_progress_by_stage(self):
        self.assertEqual(progress(STAGE1), 25)
        self.assertEqual(progress(STAGE2), 50)
        self.assertEqual(progress(STAGE3), 75)
        self.assertEqual(progress(COMPLETED), 100)

    def test_progress_is_zero_for_every_cancelled_order(self):
        for before in (STAGE1, STAGE2, STAGE2_NOT_WENT, STAGE3, COMPLETED):
            cancelled = replace(before, status=OrderStatus.CANCELLED)
            with self.subTest(before=before):
                self.assertEqual(progress(cancelled), 0)
                self.assertTrue(derive_stage(cancelled).is_terminal)

    def test_completed_status_wins_over_unset_flags(self):
        forced = OrderState(status=OrderStatus.COMPLETED)
        self.assertIs(derive_stage(forced), Stage.COMPLETED)
        self.assertEqual(progress(forced), 100)

    def test_labels(self):
        self.assertEqual(stage_label(STAGE1), "Sotuvchi javobini kutmoqda")
        self.assertEqual(stage_label(STAGE2), "Qabul qilingan")
        self.assertEqual(stage_label(STAGE2_NOT_WENT), "Mijoz kelmadi")
        self.assertEqual(stage_label(STAGE3), "Mijoz keldi")
        self.assertEqual(stage_label(COMPLETED), "Yakunlandi")
        self.assertEqual(stage_label(REJECTED), "Rad etilgan")
        self.assertEqual(stage_label(OrderState(status=OrderStatus.CANCELLED)), "Bekor qilingan")


class ApplyActionTestCase(unittest.TestCase):
    def test_accept_sets_flag_and_pickup_but_stays_pending(self):
        new = apply_action(STAGE1, Action.AGREE, notes="Ertaga keling", pickup_address="Yunusobod 1")
        self.assertIs(new.is_agree, True)
        self.assertEqual(new.pickup_address, "Yunusobod 1")
        self.assertEqual(new.seller_notes, "Ertaga keling")
        self.assertIs(new.status, OrderStatus.PENDING)

    def test_accept_twice_is_rejected(self):
        accepted = apply_action(STAGE1, Action.AGREE, pickup_address="Yunusobod 1")
        with self.assertRaises(TransitionError):
            apply_action(accepted, Action.AGREE, pickup_address="Yunusobod 1")

    def test_reject_cancels(self):
        new = apply_action(STAGE1, Action.REJECT, notes="Tugagan")
        self.assertIs(new.is_agree, False)
        self.assertIs(new.status, OrderStatus.CANCELLED)
        self.assertIs(derive_stage(new), Stage.REJECTED)

    def test_buyer_did_not_go_keeps_order_open(self):
        new = apply_action(STAGE2, Action.CLIENT_NOT_WENT)
        self.assertIs(new.status, OrderStatus.PENDING)
        self.assertIs(new.is_client_went, False)
        # keyinroq baribir borishi mumkin, lekin ikkinchi marta "bormadim" emas
        self.assertEqual(allowed_actions(new), frozenset({Action.CLIENT_WENT}))
        with self.assertRaises(TransitionError):
            apply_action(new, Action.CLIENT_NOT_WENT)
        self.assertIs(apply_action(new, Action.CLIENT_WENT).is_client_went, True)

    def test_product_given_completes_in_one_step(self):
        new = apply_action(STAGE3, Action.PRODUCT_GIVEN)
        self.assertIs(new.is_client_claimed, True)
        self.assertIs(new.status, OrderStatus.COMPLETED)

    def test_product_not_given_cancels(self):
        new = apply_action(STAGE3, Action.PRODUCT_NOT_GIVEN, notes="Kelmadi")
        self.assertIs(new.is_client_claimed, False)
        self.assertIs(new.status, OrderStatus.CANCELLED)
        self.assertEqual(progress(new), 0)

    def test_actions_outside_their_stage_are_rejected(self):
        cases = [
            (STAGE1, Action.CLIENT_WENT),
            (STAGE1, Action.PRODUCT_GIVEN),
            (STAGE2, Action.REJECT),
            (STAGE2, Action.PRODUCT_NOT_GIVEN),
            (STAGE3, Action.CLIENT_NOT_WENT),
            (REJECTED, Action.AGREE),
            (COMPLETED, Action.PRODUCT_GIVEN),
            (STAGE2, Action.REORDER),
        ]
        for state, action in cases:
            with self.subTest(action=action, stage=derive_stage(state)):
                with self.assertRaises(TransitionError) as ctx:
                    apply_action(state, action)
                self.assertEqual(ctx.exception.action, action.value)

    def test_reorder_allowed_only_on_terminal_orders(self):
        for state in (REJECTED, COMPLETED, OrderState(status=OrderStatus.CANCELLED)):
            self.assertEqual(allowed_actions(state), frozenset({Action.REORDER}))
            self.assertEqual(apply_action(state, Action.REORDER), state)

    def test_string_actions_are_accepted(self):
        new = apply_action(STAGE1, "reject")
        self.assertIs(new.status, OrderStatus.CANCELLED)


class ApplyOverrideTestCase(unittest.TestCase):
    def test_keep_flags_only_changes_status(self):
        new = apply_override(STAGE1, OrderStatus.COMPLETED, OverridePolicy.KEEP_FLAGS)
        self.assertIs(new.status, OrderStatus.COMPLETED)
        self.assertIsNone(new.is_agree)
        self.assertIsNone(new.is_client_went)
        self.assertIsNone(new.is_client_claimed)

    def test_reconcile_completed_sets_all_flags(self):
        new = apply_override(STAGE1, OrderStatus.COMPLETED, OverridePolicy.RECONCILE)
        self.assertEqual((new.is_agree, new.is_client_went, new.is_client_claimed), (True, True, True))

    def test_reconcile_cancel_from_stage_one_marks_rejected(self):
        new = apply_override(STAGE1, OrderStatus.CANCELLED, OverridePolicy.RECONCILE)
        self.assertIs(new.is_agree, False)
        self.assertEqual(progress(new), 0)

    def test_reconcile_processing_reopens_rejected_order(self):
        new = apply_override(REJECTED, OrderStatus.PROCESSING, OverridePolicy.RECONCILE)
        self.assertIs(derive_stage(new), Stage.AWAITING_SELLER_DECISION)

    def test_override_to_same_status_or_pending_is_rejected(self):
        with self.assertRaises(TransitionError):
            apply_override(REJECTED, OrderStatus.CANCELLED)
        with self.assertRaises(TransitionError):
            apply_override(STAGE2, OrderStatus.PENDING)


if __name__ == "__main__":
    unittest.main()
