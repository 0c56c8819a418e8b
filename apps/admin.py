# apps/admin.py
from django.contrib import admin

from apps.models import Account, AdminNotification, Order, Product


@admin.register(Account)
class AccountAdmin(admin.ModelAdmin):
    list_display = ("id", "telegram_id", "full_name", "username", "is_admin", "is_seller")
    list_filter = ("is_admin", "is_seller")
    search_fields = ("full_name", "username", "phone")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "price", "stock_quantity", "order_count", "seller", "is_active", "is_approved")
    list_filter = ("is_active", "is_approved", "has_delivery")
    search_fields = ("name",)


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ("id", "product", "full_name", "phone", "quantity", "total_amount", "status",
                    "is_agree", "is_client_went", "is_client_claimed", "created_at")
    list_filter = ("status", "order_type")
    search_fields = ("full_name", "phone", "anon_temp_id")


@admin.register(AdminNotification)
class AdminNotificationAdmin(admin.ModelAdmin):
    list_display = ("id", "type", "status", "title", "created_at", "resolved_at")
    list_filter = ("type", "status")
