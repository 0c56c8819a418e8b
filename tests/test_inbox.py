import unittest

from bot.capture import OrderDraft
from bot.coordinator import OrderCoordinator
from bot.dispatcher import NotificationDispatcher
from bot.exceptions import PermissionDenied, TransitionError
from bot.inbox import AdminInbox
from bot.models import OrderStatus
from bot.notifications import (
    ContactPayload,
    NewOrderPayload,
    NotificationStatus,
    ProductApprovalPayload,
    SellerApplicationPayload,
    parse_payload,
)
from bot.notifier import CrossPartyNotifier
from tests.fakes import FakeBot, InMemoryRepository

ADMIN = 900
USER = 600


class PayloadTestCase(unittest.TestCase):
    def test_payload_is_parsed_by_type_tag(self):
        payload = parse_payload({"type": "seller_application", "account_id": 5, "company_name": "Baraka"})
        self.assertIsInstance(payload, SellerApplicationPayload)
        self.assertEqual(payload.account_id, 5)

    def test_unknown_type_is_rejected(self):
        with self.assertRaises(ValueError):
            parse_payload({"type": "promo", "order_id": 1})
        with self.assertRaises(ValueError):
            parse_payload({"type": "new_order"})


class AdminInboxTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = InMemoryRepository()
        self.repo.add_account(telegram_id=ADMIN, is_admin=True)
        self.bot = FakeBot()
        notifier = CrossPartyNotifier(NotificationDispatcher(self.bot), self.repo)
        self.coordinator = OrderCoordinator(self.repo, notifier)
        self.inbox = AdminInbox(self.repo, notifier, self.coordinator)

    async def test_submit_stores_and_broadcasts_with_controls(self):
        item = await self.inbox.submit(ProductApprovalPayload(product_id=3), "Yangi mahsulot", "Choynak")
        self.assertTrue(item.is_pending)
        [message] = self.bot.sent_to(ADMIN)
        callbacks = [b.callback_data for b in message["reply_markup"].inline_keyboard[0]]
        self.assertEqual(callbacks, [f"inbox:approve:{item.id}", f"inbox:reject:{item.id}"])

    async def test_only_admin_can_resolve(self):
        item = await self.inbox.submit(ProductApprovalPayload(product_id=3), "t", "c")
        with self.assertRaises(PermissionDenied):
            await self.inbox.resolve(item.id, approve=True, actor_id=USER)

    async def test_seller_application_approval_marks_seller(self):
        account = self.repo.add_account(telegram_id=USER)
        item = await self.inbox.submit(SellerApplicationPayload(account_id=account.id), "Ariza", "Baraka MCHJ")

        resolved = await self.inbox.resolve(item.id, approve=True, actor_id=ADMIN)

        self.assertEqual(resolved.status, NotificationStatus.APPROVED)
        self.assertTrue((await self.repo.get_account(account.id)).is_seller)

    async def test_rejected_seller_application_changes_nothing(self):
        account = self.repo.add_account(telegram_id=USER)
        item = await self.inbox.submit(SellerApplicationPayload(account_id=account.id), "Ariza", "")
        resolved = await self.inbox.resolve(item.id, approve=False, actor_id=ADMIN)
        self.assertEqual(resolved.status, NotificationStatus.REJECTED)
        self.assertFalse((await self.repo.get_account(account.id)).is_seller)

    async def test_product_approval(self):
        product = self.repo.add_product()
        self.repo.mark_unapproved(product.id)
        item = await self.inbox.submit(ProductApprovalPayload(product_id=product.id), "Mahsulot", "")

        await self.inbox.resolve(item.id, approve=True, actor_id=ADMIN)
        self.assertEqual((await self.repo.get_product(product.id)).id, product.id)

    async def test_new_order_decision_overrides_order_status(self):
        product = self.repo.add_product(stock_quantity=2)
        draft = OrderDraft(product=product, quantity=1, full_name="Ali", phone="+998901234567", address="Toshkent 5")
        order = await self.coordinator.create_order(draft, participant_id=USER)
        [item] = [n for n in self.repo.notifications() if isinstance(n.payload, NewOrderPayload)]

        await self.inbox.resolve(item.id, approve=False, actor_id=ADMIN)

        self.assertEqual((await self.repo.get_order(order.id)).status, OrderStatus.CANCELLED)

    async def test_contact_reply_is_sent_to_user(self):
        item = await self.inbox.submit(ContactPayload(telegram_id=USER, username="ali"), "Murojaat", "Savol")

        with self.assertRaises(TransitionError):
            await self.inbox.resolve(item.id, approve=True, actor_id=ADMIN)

        resolved = await self.inbox.resolve(item.id, approve=True, actor_id=ADMIN, response="Ha, bor")
        self.assertEqual(resolved.status, NotificationStatus.RESPONDED)
        self.assertIn("Ha, bor", self.bot.sent_to(USER)[0]["text"])

    async def test_second_resolve_is_rejected(self):
        item = await self.inbox.submit(ContactPayload(telegram_id=USER), "Murojaat", "Savol")
        resolved = await self.inbox.resolve(item.id, approve=False, actor_id=ADMIN)
        self.assertEqual(resolved.status, NotificationStatus.CLOSED)
        with self.assertRaises(TransitionError):
            await self.inbox.resolve(item.id, approve=False, actor_id=ADMIN)


if __name__ == "__main__":
    unittest.main()
