import logging

from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import generics, permissions, status
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from authentication.core.base_view import BaseAPIView
from authentication.core.permissions import IsAdmin, IsShopper, IsOwnerOrAdmin
from authentication.core.response import standardized_response

from .models import Discount, Order
from .serializers import (
    OrderSerializer,
    PlaceOrderSerializer,
    OrderStatusSerializer,
    DiscountSerializer,
    ValidateDiscountSerializer,
)
from .services import DiscountService, OrderService

logger = logging.getLogger(__name__)

ORDER_QUERYSET = Order.objects.select_related('customer', 'shipping_address').prefetch_related('order_items')


# ----------------------
# Order endpoints
# ----------------------
class PlaceOrderView(BaseAPIView):
    permission_classes = [permissions.IsAuthenticated, IsShopper]

    @swagger_auto_schema(
        tags=["Orders"],
        operation_description=(
            "Place an order from the current cart. Stock is re-checked for every line, "
            "items are snapshotted, stock is decremented and the cart is emptied."
        ),
        request_body=PlaceOrderSerializer,
        responses={201: OrderSerializer, 400: "Empty cart, insufficient stock or invalid discount", 403: "Admins cannot place orders"}
    )
    def post(self, request):
        serializer = PlaceOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.place_order(
            request.user,
            shipping_info=serializer.validated_data['shipping_info'],
            payment_method=serializer.validated_data['payment_method'],
            discount_code=serializer.validated_data['discount_code'],
        )
        order = ORDER_QUERYSET.get(pk=order.pk)
        return Response(
            standardized_response(data=OrderSerializer(order).data, message="Order placed successfully"),
            status=status.HTTP_201_CREATED
        )


class MyOrdersView(BaseAPIView, generics.ListAPIView):
    permission_classes = [permissions.IsAuthenticated]
    serializer_class = OrderSerializer
    pagination_class = None

    def get_queryset(self):
        return ORDER_QUERYSET.filter(customer=self.request.user).order_by('-ordered_at')

    @swagger_auto_schema(tags=["Orders"], responses={200: OrderSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response(standardized_response(data=serializer.data))


class AdminOrderListView(BaseAPIView, generics.ListAPIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    serializer_class = OrderSerializer
    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['status']

    def get_queryset(self):
        return ORDER_QUERYSET.order_by('-ordered_at')

    @swagger_auto_schema(
        tags=["Orders"],
        manual_parameters=[
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=Order.Status.values),
        ],
        responses={200: OrderSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return self.list(request, *args, **kwargs)


class OrderDetailView(BaseAPIView):
    def get_permissions(self):
        if self.request.method == 'DELETE':
            return [permissions.IsAuthenticated(), IsAdmin()]
        return [permissions.IsAuthenticated(), IsOwnerOrAdmin()]

    def get_object(self, order_id):
        order = get_object_or_404(ORDER_QUERYSET, order_id=order_id)
        self.check_object_permissions(self.request, order)
        return order

    @swagger_auto_schema(tags=["Orders"], responses={200: OrderSerializer, 403: "Not your order", 404: "Order not found"})
    def get(self, request, order_id):
        order = self.get_object(order_id)
        return Response(standardized_response(data=OrderSerializer(order).data))

    @swagger_auto_schema(tags=["Orders"], responses={200: "Order deleted", 404: "Order not found"})
    def delete(self, request, order_id):
        order = self.get_object(order_id)
        order.delete()
        logger.info(f"Order {order_id} deleted by {request.user.email}")
        return Response(standardized_response(message="Order deleted successfully"))


class OrderStatusUpdateView(BaseAPIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]

    @swagger_auto_schema(tags=["Orders"], request_body=OrderStatusSerializer, responses={200: OrderSerializer})
    def put(self, request, order_id):
        order = get_object_or_404(ORDER_QUERYSET, order_id=order_id)
        serializer = OrderStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        order = OrderService.update_status(order, serializer.validated_data['status'], admin_user=request.user)
        return Response(standardized_response(data=OrderSerializer(order).data, message="Order status updated"))


# ----------------------
# Discount endpoints
# ----------------------
class DiscountListCreateView(BaseAPIView, generics.ListCreateAPIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    queryset = Discount.objects.all()
    serializer_class = DiscountSerializer
    pagination_class = None

    @swagger_auto_schema(tags=["Discounts"], responses={200: DiscountSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response(standardized_response(data=serializer.data))

    @swagger_auto_schema(tags=["Discounts"], request_body=DiscountSerializer, responses={201: DiscountSerializer})
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        discount = serializer.save()
        logger.info(f"Discount {discount.code} created by {request.user.email}")
        return Response(
            standardized_response(data=serializer.data, message="Discount created successfully"),
            status=status.HTTP_201_CREATED
        )


class DiscountDetailView(BaseAPIView, generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [permissions.IsAuthenticated, IsAdmin]
    queryset = Discount.objects.all()
    serializer_class = DiscountSerializer
    http_method_names = ['get', 'put', 'patch', 'delete', 'options']

    @swagger_auto_schema(tags=["Discounts"], responses={200: DiscountSerializer})
    def get(self, request, *args, **kwargs):
        return Response(standardized_response(data=self.get_serializer(self.get_object()).data))

    @swagger_auto_schema(tags=["Discounts"], request_body=DiscountSerializer, responses={200: DiscountSerializer})
    def put(self, request, *args, **kwargs):
        return self._update(request)

    @swagger_auto_schema(tags=["Discounts"], request_body=DiscountSerializer, responses={200: DiscountSerializer})
    def patch(self, request, *args, **kwargs):
        return self._update(request)

    def _update(self, request):
        discount = self.get_object()
        serializer = self.get_serializer(discount, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Discount {discount.code} updated by {request.user.email}")
        return Response(standardized_response(data=serializer.data, message="Discount updated successfully"))

    @swagger_auto_schema(tags=["Discounts"], responses={200: "Discount deleted"})
    def delete(self, request, *args, **kwargs):
        discount = self.get_object()
        logger.info(f"Discount {discount.code} deleted by {request.user.email}")
        discount.delete()
        return Response(standardized_response(message="Discount deleted successfully"))


class ValidateDiscountView(BaseAPIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        tags=["Discounts"],
        request_body=ValidateDiscountSerializer,
        responses={200: "Discount amount and resulting total", 400: "Code cannot be applied"}
    )
    def post(self, request):
        serializer = ValidateDiscountSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = DiscountService.preview(
            serializer.validated_data['code'], serializer.validated_data['order_amount']
        )
        return Response(standardized_response(data=result, message="Discount code is valid"))
