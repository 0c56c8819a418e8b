from rest_framework import serializers
from rest_framework.serializers import ModelSerializer

from apps.models import Order
from bot.lifecycle import OVERRIDE_TARGETS, Action, derive_stage, progress, stage_label
from bot.models import OrderState, OrderStatus


def _state_of(order: Order) -> OrderState:
    return OrderState(
        status=OrderStatus(order.status),
        is_agree=order.is_agree,
        is_client_went=order.is_client_went,
        is_client_claimed=order.is_client_claimed,
    )


class OrderSerializer(ModelSerializer):
    product_name = serializers.CharField(source="product.name", read_only=True)
    stage = serializers.SerializerMethodField()
    stage_number = serializers.SerializerMethodField()
    progress = serializers.SerializerMethodField()
    stage_label = serializers.SerializerMethodField()

    class Meta:
        model = Order
        fields = "__all__"

    def get_stage(self, obj):
        return derive_stage(_state_of(obj)).value

    def get_stage_number(self, obj):
        return derive_stage(_state_of(obj)).number

    def get_progress(self, obj):
        return progress(_state_of(obj))

    def get_stage_label(self, obj):
        return stage_label(_state_of(obj))


class OrderActionSerializer(serializers.Serializer):
    orderId = serializers.IntegerField(min_value=1)
    action = serializers.ChoiceField(choices=[a.value for a in Action])
    actorId = serializers.IntegerField(required=False, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    pickupAddress = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class OrderOverrideSerializer(serializers.Serializer):
    orderId = serializers.IntegerField(min_value=1)
    status = serializers.ChoiceField(choices=sorted(s.value for s in OVERRIDE_TARGETS))
    actorId = serializers.IntegerField()
