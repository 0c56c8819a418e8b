# bot/exceptions.py


class OrderError(Exception):
    """Base class for order coordinator errors."""


class OrderNotFound(OrderError):
    def __init__(self, order_id):
        super().__init__(f"Buyurtma topilmadi: {order_id}")
        self.order_id = order_id


class ProductNotFound(OrderError):
    def __init__(self, product_id):
        super().__init__(f"Mahsulot topilmadi: {product_id}")
        self.product_id = product_id


class TransitionError(OrderError):
    """Action is not available from the order's current stage."""

    def __init__(self, action: str, reason: str):
        super().__init__(f"{action}: {reason}")
        self.action = action
        self.reason = reason


class OutOfStock(OrderError):
    def __init__(self, product_id, requested: int, available: int | None = None):
        msg = f"Yetarli mahsulot mavjud emas (so'ralgan: {requested}"
        if available is not None:
            msg += f", ombor: {available}"
        super().__init__(msg + ")")
        self.product_id = product_id
        self.requested = requested
        self.available = available


class PermissionDenied(OrderError):
    pass


class NotificationNotFound(OrderError):
    def __init__(self, notification_id):
        super().__init__(f"Murojaat topilmadi: {notification_id}")
        self.notification_id = notification_id
