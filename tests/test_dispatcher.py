import unittest

from aiogram.exceptions import TelegramBadRequest
from aiogram.methods import SendPhoto

from bot.dispatcher import NotificationDispatcher
from tests.fakes import BrokenSessionBot, FakeBot


class PhotoRejectingBot(FakeBot):
    async def send_photo(self, chat_id, photo, caption=None, reply_markup=None, **kwargs):
        raise TelegramBadRequest(
            method=SendPhoto(chat_id=chat_id, photo=photo),
            message="Bad Request: wrong file identifier",
        )


class NotificationDispatcherTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_send_ok(self):
        bot = FakeBot()
        delivery = await NotificationDispatcher(bot).send(10, "salom")
        self.assertTrue(delivery.ok)
        self.assertEqual(bot.sent_to(10)[0]["text"], "salom")

    async def test_blocked_chat_is_logged_and_swallowed(self):
        bot = FakeBot(fail_for={10})
        with self.assertLogs("bot.dispatcher", level="ERROR"):
            delivery = await NotificationDispatcher(bot).send(10, "salom")
        self.assertFalse(delivery.ok)
        self.assertIn("blocked", delivery.error)

    async def test_timeout_is_a_failed_delivery(self):
        bot = FakeBot(hang_for={10})
        delivery = await NotificationDispatcher(bot, timeout=0.01).send(10, "salom")
        self.assertFalse(delivery.ok)
        self.assertEqual(delivery.error, "TimeoutError")

    async def test_unexpected_error_is_a_failed_delivery(self):
        dispatcher = NotificationDispatcher(BrokenSessionBot())
        with self.assertLogs("bot.dispatcher", level="ERROR"):
            delivery = await dispatcher.send(10, "salom")
            photo = await dispatcher.send_photo(10, "file-id", "caption")
        self.assertFalse(delivery.ok)
        self.assertIn("Session is closed", delivery.error)
        self.assertFalse(photo.ok)

    async def test_broadcast_continues_after_partial_failure(self):
        bot = FakeBot(fail_for={2})
        deliveries = await NotificationDispatcher(bot).broadcast([1, 2, 3, 1], "yangi buyurtma")

        self.assertEqual([d.chat_id for d in deliveries], [1, 2, 3])
        self.assertEqual([d.ok for d in deliveries], [True, False, True])
        self.assertEqual(sorted(m["chat_id"] for m in bot.sent), [1, 3])

    async def test_broadcast_to_nobody(self):
        self.assertEqual(await NotificationDispatcher(FakeBot()).broadcast([], "x"), [])

    async def test_send_photo_falls_back_to_text(self):
        bot = PhotoRejectingBot()
        delivery = await NotificationDispatcher(bot).send_photo(5, "bad-file-id", "caption")
        self.assertTrue(delivery.ok)
        self.assertEqual(bot.sent_to(5)[0]["text"], "caption")


if __name__ == "__main__":
    unittest.main()
