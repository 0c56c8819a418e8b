import unittest

from bot.dispatcher import NotificationDispatcher
from bot.lifecycle import Action
from bot.models import OrderRecord, OrderStatus
from bot.notifier import CrossPartyNotifier, make_correlation_token, parse_correlation_token
from tests.fakes import FakeBot, InMemoryRepository


class CorrelationTokenTestCase(unittest.TestCase):
    def test_round_trip(self):
        token = make_correlation_token(123456789, now_ms=1700000000000)
        self.assertEqual(token, "tg_123456789_1700000000000")
        self.assertEqual(parse_correlation_token(token), 123456789)

    def test_non_routable_tokens(self):
        for token in (None, "", "web_1700000000000_abc123", "tg_abc_1", "tg_123"):
            with self.subTest(token=token):
                self.assertIsNone(parse_correlation_token(token))


class FailingDirectory(InMemoryRepository):
    async def account_chat_id(self, account_id):
        raise RuntimeError("db down")


class CrossPartyNotifierTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.repo = InMemoryRepository()
        self.seller = self.repo.add_account(telegram_id=500, is_seller=True)
        self.buyer = self.repo.add_account(telegram_id=600)
        self.admin = self.repo.add_account(telegram_id=900, is_admin=True)
        self.bot = FakeBot()
        self.notifier = CrossPartyNotifier(NotificationDispatcher(self.bot), self.repo, extra_admin_ids=[901])

    def _order(self, **kwargs) -> OrderRecord:
        defaults = dict(
            id=77, product_id=1, product_name="Choynak", full_name="Ali", phone="+998901234567",
            address="Toshkent 5", quantity=1, total_amount=10000, seller_id=self.seller.id,
        )
        defaults.update(kwargs)
        return OrderRecord(**defaults)

    async def test_buyer_resolved_from_account_first(self):
        order = self._order(buyer_id=self.buyer.id, anon_temp_id="tg_111_1")
        self.assertEqual(await self.notifier.buyer_chat_id(order), 600)

    async def test_buyer_resolved_from_correlation_token(self):
        order = self._order(anon_temp_id="tg_111_1700000000000")
        self.assertEqual(await self.notifier.buyer_chat_id(order), 111)

    async def test_seller_actions_notify_buyer(self):
        order = self._order(anon_temp_id="tg_111_1", is_agree=True, pickup_address="Do'kon")
        deliveries = await self.notifier.transition_applied(order, Action.AGREE)

        self.assertEqual([d.chat_id for d in deliveries], [111])
        message = self.bot.sent_to(111)[0]
        self.assertIn("qabul qilindi", message["text"])
        callbacks = [b.callback_data for row in message["reply_markup"].inline_keyboard for b in row]
        self.assertEqual(callbacks, ["order:client_went:77", "order:client_not_went:77"])

    async def test_buyer_actions_notify_seller(self):
        order = self._order(anon_temp_id="tg_111_1", is_agree=True, is_client_went=True)
        await self.notifier.transition_applied(order, Action.CLIENT_WENT)
        self.assertEqual(len(self.bot.sent_to(500)), 1)
        self.assertEqual(self.bot.sent_to(111), [])

        await self.notifier.transition_applied(order, Action.CLIENT_NOT_WENT)
        self.assertEqual(len(self.bot.sent_to(500)), 2)

    async def test_fulfillment_actions_notify_buyer(self):
        order = self._order(buyer_id=self.buyer.id, status=OrderStatus.COMPLETED)
        await self.notifier.transition_applied(order, Action.PRODUCT_GIVEN)
        await self.notifier.transition_applied(order, Action.PRODUCT_NOT_GIVEN)
        self.assertEqual(len(self.bot.sent_to(600)), 2)
        self.assertEqual(self.bot.sent_to(500), [])

    async def test_order_created_broadcasts_admins_and_alerts_seller(self):
        deliveries = await self.notifier.order_created(self._order())
        self.assertEqual(sorted(d.chat_id for d in deliveries), [500, 900, 901])
        seller_kb = self.bot.sent_to(500)[0]["reply_markup"]
        self.assertEqual(seller_kb.inline_keyboard[0][0].callback_data, "order:agree:77")

    async def test_one_blocked_admin_does_not_stop_others(self):
        bot = FakeBot(fail_for={901})
        notifier = CrossPartyNotifier(NotificationDispatcher(bot), self.repo, extra_admin_ids=[901])
        deliveries = await notifier.notify_admins("test")
        outcome = {d.chat_id: d.ok for d in deliveries}
        self.assertEqual(outcome, {901: False, 900: True})

    async def test_unresolvable_buyer_is_skipped(self):
        order = self._order(anon_temp_id="web_1700000000000_abc")
        with self.assertLogs("bot.notifier", level="WARNING"):
            deliveries = await self.notifier.transition_applied(order, Action.REJECT)
        self.assertEqual(deliveries, [])
        self.assertEqual(self.bot.sent, [])

    async def test_directory_failure_never_raises(self):
        notifier = CrossPartyNotifier(NotificationDispatcher(self.bot), FailingDirectory())
        order = self._order(buyer_id=1)
        with self.assertLogs("bot.notifier", level="ERROR"):
            self.assertEqual(await notifier.transition_applied(order, Action.REJECT), [])
            self.assertEqual(await notifier.status_overridden(order), [])

    async def test_reorder_sends_nothing(self):
        order = self._order(anon_temp_id="tg_111_1", status=OrderStatus.CANCELLED)
        self.assertEqual(await self.notifier.transition_applied(order, Action.REORDER), [])


if __name__ == "__main__":
    unittest.main()
