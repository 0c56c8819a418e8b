import unittest

from bot.capture import (
    AwaitingAddress,
    AwaitingBirthdate,
    AwaitingFullName,
    AwaitingPhone,
    AwaitingQuantity,
    CaptureStep,
    Complete,
    Continue,
    Reject,
    start_capture,
    step,
)
from bot.exceptions import OutOfStock
from bot.models import ProductInfo

PRODUCT = ProductInfo(id=7, name="Choynak", price=10000, stock_quantity=5)


def _advance(builder, *inputs):
    result = None
    for text in inputs:
        result = step(builder, text)
        if isinstance(result, Continue):
            builder = result.builder
    return result


class StartCaptureTestCase(unittest.TestCase):
    def test_starts_at_quantity_with_stock_in_prompt(self):
        result = start_capture(PRODUCT)
        self.assertIsInstance(result.builder, AwaitingQuantity)
        self.assertIs(result.builder.step, CaptureStep.QUANTITY)
        self.assertIn("(1-5)", result.prompt)

    def test_out_of_stock_product_cannot_start(self):
        with self.assertRaises(OutOfStock):
            start_capture(ProductInfo(id=1, name="X", price=1, stock_quantity=0))


class QuantityStepTestCase(unittest.TestCase):
    def test_valid_quantity_advances(self):
        result = step(AwaitingQuantity(PRODUCT), " 3 ")
        self.assertIsInstance(result, Continue)
        self.assertIsInstance(result.builder, AwaitingFullName)
        self.assertEqual(result.builder.quantity, 3)

    def test_invalid_quantities_stay_on_step(self):
        builder = AwaitingQuantity(PRODUCT)
        for text in ("0", "6", "-1", "2.5", "abc", "", "uch", "²", "①", "3²"):
            with self.subTest(text=text):
                result = step(builder, text)
                self.assertIsInstance(result, Reject)
                self.assertIs(result.builder, builder)
                self.assertIn("1 dan 5 gacha", result.error)

    def test_upper_bound_is_inclusive(self):
        self.assertIsInstance(step(AwaitingQuantity(PRODUCT), "5"), Continue)


class FieldStepsTestCase(unittest.TestCase):
    def test_short_name_is_rejected(self):
        builder = AwaitingFullName(PRODUCT, quantity=2)
        self.assertIsInstance(step(builder, " A "), Reject)
        self.assertIsInstance(step(builder, "Ali"), Continue)

    def test_too_long_name_is_rejected(self):
        builder = AwaitingFullName(PRODUCT, quantity=2)
        result = step(builder, "A" * 256)
        self.assertIsInstance(result, Reject)
        self.assertIs(result.builder, builder)
        self.assertIn("255", result.error)
        self.assertIsInstance(step(builder, "A" * 255), Continue)

    def test_birthdate_step_can_be_skipped(self):
        with_birthdate = step(AwaitingFullName(PRODUCT, quantity=2, ask_birthdate=True), "Ali Valiyev")
        without = step(AwaitingFullName(PRODUCT, quantity=2, ask_birthdate=False), "Ali Valiyev")
        self.assertIsInstance(with_birthdate.builder, AwaitingBirthdate)
        self.assertIsInstance(without.builder, AwaitingPhone)

    def test_birthdate_must_be_real_date(self):
        builder = AwaitingBirthdate(PRODUCT, quantity=1, full_name="Ali")
        for text in ("1990-01-01", "32.01.1990", "29.02.2023", "1.1.1990"):
            with self.subTest(text=text):
                self.assertIsInstance(step(builder, text), Reject)
        result = step(builder, "29.02.2024")
        self.assertIsInstance(result, Continue)
        self.assertEqual(result.builder.birthdate, "29.02.2024")

    def test_phone_is_normalized(self):
        builder = AwaitingPhone(PRODUCT, quantity=1, full_name="Ali")
        for text in ("+998 90 123-45-67", "998901234567", "8901234567", "(90) 123 45 67"):
            with self.subTest(text=text):
                result = step(builder, text)
                self.assertIsInstance(result, Continue)
                self.assertEqual(result.builder.phone, "+998901234567")

    def test_invalid_phone_three_times_stays_on_phone_step(self):
        builder = AwaitingPhone(PRODUCT, quantity=3, full_name="Ali Valiyev", birthdate="01.01.1990")
        current = builder
        for text in ("12345", "+7 999 123 45 67", "telefon yo'q"):
            result = step(current, text)
            self.assertIsInstance(result, Reject)
            current = result.builder
        self.assertIs(current.step, CaptureStep.PHONE)
        self.assertEqual(current.quantity, 3)
        self.assertEqual(current.full_name, "Ali Valiyev")
        self.assertEqual(current, builder)

    def test_short_address_is_rejected(self):
        builder = AwaitingAddress(PRODUCT, quantity=1, full_name="Ali", phone="+998901234567")
        self.assertIsInstance(step(builder, "abcd"), Reject)
        self.assertIsInstance(step(builder, "  abcde  "), Complete)


class FullFlowTestCase(unittest.TestCase):
    def test_complete_draft_and_total(self):
        result = _advance(
            start_capture(PRODUCT).builder,
            "3", "Ali Valiyev", "01.01.1990", "+998 90 123 45 67", "Toshkent, Chilonzor 5",
        )
        self.assertIsInstance(result, Complete)
        draft = result.draft
        self.assertEqual(draft.quantity, 3)
        self.assertEqual(draft.phone, "+998901234567")
        self.assertEqual(draft.address, "Toshkent, Chilonzor 5")
        self.assertEqual(draft.total_amount, 30000)

    def test_delivery_price_added_only_when_product_has_delivery(self):
        product = ProductInfo(id=8, name="Gilam", price=10000, stock_quantity=5,
                              has_delivery=True, delivery_price=15000)
        no_flag = ProductInfo(id=9, name="Gilam", price=10000, stock_quantity=5,
                              has_delivery=False, delivery_price=15000)
        inputs = ("2", "Ali", "+998901234567", "Toshkent 12")
        with_delivery = _advance(start_capture(product, ask_birthdate=False).builder, *inputs)
        without = _advance(start_capture(no_flag, ask_birthdate=False).builder, *inputs)
        self.assertEqual(with_delivery.draft.total_amount, 35000)
        self.assertEqual(without.draft.total_amount, 20000)


if __name__ == "__main__":
    unittest.main()
