# apps/views.py
import logging

from asgiref.sync import async_to_sync
from rest_framework import mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from apps import services
from apps.models import Order
from apps.serializers import OrderActionSerializer, OrderOverrideSerializer, OrderSerializer
from bot.exceptions import OrderError, OrderNotFound, OutOfStock, PermissionDenied, ProductNotFound, TransitionError

logger = logging.getLogger(__name__)


def _error(message: str, code: int) -> Response:
    return Response({"error": message}, status=code)


async def _perform(data: dict):
    async with services.coordinator_session() as coordinator:
        return await coordinator.perform(
            data["orderId"],
            data["action"],
            actor_id=data.get("actorId"),
            notes=data.get("notes") or None,
            pickup_address=data.get("pickupAddress") or None,
        )


async def _override(data: dict):
    async with services.coordinator_session() as coordinator:
        return await coordinator.admin_override(data["orderId"], data["status"], data["actorId"])


class OrderViewSet(
    mixins.RetrieveModelMixin,
    mixins.ListModelMixin,
    viewsets.GenericViewSet,
):
    queryset = Order.objects.select_related("product").all()
    serializer_class = OrderSerializer
    permission_classes = [AllowAny]

    def _run(self, coro_fn, serializer_class, request):
        serializer = serializer_class(data=request.data)
        if not serializer.is_valid():
            return Response({"error": serializer.errors}, status=status.HTTP_400_BAD_REQUEST)

        try:
            record = async_to_sync(coro_fn)(serializer.validated_data)
        except (OrderNotFound, ProductNotFound) as e:
            return _error(str(e), status.HTTP_404_NOT_FOUND)
        except PermissionDenied as e:
            return _error(str(e), status.HTTP_403_FORBIDDEN)
        except (TransitionError, OutOfStock) as e:
            return _error(str(e), status.HTTP_409_CONFLICT)
        except OrderError as e:
            logger.exception("Order mutation failed: %s", e)
            return _error(str(e), status.HTTP_400_BAD_REQUEST)

        order = Order.objects.select_related("product").get(pk=record.id)
        return Response(OrderSerializer(order).data, status=status.HTTP_200_OK)

    @action(detail=False, methods=["post"], url_path="action", url_name="action")
    def perform_action(self, request):
        return self._run(_perform, OrderActionSerializer, request)

    @action(detail=False, methods=["post"], url_path="override", url_name="override")
    def override(self, request):
        return self._run(_override, OrderOverrideSerializer, request)
