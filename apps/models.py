# apps/models.py
from django.db import models


class Account(models.Model):
    telegram_id = models.BigIntegerField(unique=True, null=True, blank=True)
    full_name = models.CharField(max_length=255, null=True, blank=True)
    username = models.CharField(max_length=255, null=True, blank=True)
    phone = models.CharField(max_length=32, null=True, blank=True)

    is_admin = models.BooleanField(default=False)
    is_seller = models.BooleanField(default=False)
    pickup_address = models.TextField(null=True, blank=True)  # sotuvchining default olib ketish manzili

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.id} - {self.full_name or self.username or self.telegram_id}"


class Product(models.Model):
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")
    price = models.PositiveBigIntegerField()
    image_url = models.URLField(null=True, blank=True)

    stock_quantity = models.PositiveIntegerField(default=0)
    order_count = models.PositiveIntegerField(default=0)

    has_delivery = models.BooleanField(default=False)
    delivery_price = models.PositiveBigIntegerField(default=0)

    seller = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="products")
    is_active = models.BooleanField(default=True)
    is_approved = models.BooleanField(default=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return self.name


class Order(models.Model):
    class Status(models.TextChoices):
        PENDING = "pending", "Kutilmoqda"
        PROCESSING = "processing", "Tayyorlanmoqda"
        COMPLETED = "completed", "Bajarilgan"
        CANCELLED = "cancelled", "Bekor qilingan"

    class Type(models.TextChoices):
        TELEGRAM = "telegram", "Telegram"
        WEBSITE = "website", "Website"
        ANONYMOUS = "anonymous", "Anonim"

    product = models.ForeignKey(Product, on_delete=models.PROTECT, related_name="orders")
    buyer = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="orders")

    full_name = models.CharField(max_length=255)
    phone = models.CharField(max_length=32)
    address = models.TextField()
    birthdate = models.CharField(max_length=10, null=True, blank=True)  # DD.MM.YYYY

    quantity = models.PositiveIntegerField()
    total_amount = models.PositiveBigIntegerField()
    delivery_price = models.PositiveBigIntegerField(default=0)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    # null = hali qaror yo'q
    is_agree = models.BooleanField(null=True, blank=True)
    is_client_went = models.BooleanField(null=True, blank=True)
    is_client_claimed = models.BooleanField(null=True, blank=True)

    pickup_address = models.TextField(null=True, blank=True)
    seller_notes = models.TextField(null=True, blank=True)
    client_notes = models.TextField(null=True, blank=True)

    order_type = models.CharField(max_length=20, choices=Type.choices, default=Type.TELEGRAM)
    anon_temp_id = models.CharField(max_length=64, null=True, blank=True, db_index=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.id} - {self.full_name} ({self.status})"


class AdminNotification(models.Model):
    class Type(models.TextChoices):
        NEW_ORDER = "new_order", "Yangi buyurtma"
        CONTACT = "contact", "Murojaat"
        SELLER_APPLICATION = "seller_application", "Sotuvchi arizasi"
        PRODUCT_APPROVAL = "product_approval", "Mahsulot tasdiqlash"

    class Status(models.TextChoices):
        PENDING = "pending", "Kutilmoqda"
        APPROVED = "approved", "Tasdiqlangan"
        REJECTED = "rejected", "Rad etilgan"
        RESPONDED = "responded", "Javob berilgan"
        CLOSED = "closed", "Yopilgan"

    type = models.CharField(max_length=32, choices=Type.choices)
    status = models.CharField(max_length=20, choices=Status.choices, default=Status.PENDING)
    title = models.CharField(max_length=255)
    content = models.TextField(blank=True, default="")
    data = models.JSONField(default=dict)  # bot.notifications payload

    admin_response = models.TextField(null=True, blank=True)
    resolved_by = models.ForeignKey(Account, null=True, blank=True, on_delete=models.SET_NULL, related_name="+")

    created_at = models.DateTimeField(auto_now_add=True)
    resolved_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]

    def __str__(self):
        return f"{self.type} | {self.title}"
