import logging

from rest_framework import status, generics
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.parsers import MultiPartParser, FormParser, JSONParser
from rest_framework.response import Response
from django.shortcuts import get_object_or_404
from django_filters.rest_framework import DjangoFilterBackend
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from .models import Category, Product
from .filters import ProductFilter
from .services import CartService
from .serializers import (
    CategorySerializer, ProductSerializer, ProductImageSerializer,
    CartSerializer, AdminCartSerializer,
    AddToCartSerializer, SetCartQuantitySerializer, ChangeCartQuantitySerializer
)

from authentication.core.base_view import BaseAPIView
from authentication.core.response import standardized_response
from authentication.core.pagination import ProductPagination
from authentication.core.permissions import IsAdmin, IsAdminOrReadOnly

logger = logging.getLogger(__name__)

product_write_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        'name': openapi.Schema(type=openapi.TYPE_STRING, max_length=100),
        'description': openapi.Schema(type=openapi.TYPE_STRING, max_length=1000),
        'price': openapi.Schema(type=openapi.TYPE_NUMBER, minimum=0),
        'category': openapi.Schema(type=openapi.TYPE_STRING, description="Category name"),
        'stock': openapi.Schema(type=openapi.TYPE_INTEGER, minimum=0),
    },
    description="Send as multipart/form-data to include an `image` file."
)


# ---------------------------
# Products List & Filtering
# ---------------------------
class ProductListCreateView(BaseAPIView, generics.ListCreateAPIView):
    permission_classes = [IsAdminOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    queryset = Product.objects.select_related('category', 'created_by')
    serializer_class = ProductSerializer
    pagination_class = ProductPagination
    filter_backends = [DjangoFilterBackend]
    filterset_class = ProductFilter

    @swagger_auto_schema(
        tags=["Products"],
        operation_description="Paginated product listing. Search matches name or description; `category=All` disables the category filter.",
        manual_parameters=[
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Page number (default 1)"),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Page size (default 6)"),
        ],
        responses={200: ProductSerializer(many=True)}
    )
    def get(self, request, *args, **kwargs):
        return self.list(request, *args, **kwargs)

    @swagger_auto_schema(
        tags=["Products"],
        operation_description="Create a product (admin only).",
        request_body=product_write_schema,
        responses={201: ProductSerializer, 400: "Invalid input", 403: "Admin role required"}
    )
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        product = serializer.save(created_by=request.user)
        logger.info(f"Product '{product.name}' ({product.pk}) created by {request.user.email}")
        return Response(
            standardized_response(data=self.get_serializer(product).data, message="Product created successfully"),
            status=status.HTTP_201_CREATED
        )


class ProductDetailView(BaseAPIView, generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [IsAdminOrReadOnly]
    parser_classes = [JSONParser, MultiPartParser, FormParser]
    queryset = Product.objects.select_related('category', 'created_by')
    serializer_class = ProductSerializer

    @swagger_auto_schema(tags=["Products"], responses={200: ProductSerializer, 404: "Product not found"})
    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_object())
        return Response(standardized_response(data=serializer.data))

    @swagger_auto_schema(tags=["Products"], request_body=product_write_schema, responses={200: ProductSerializer})
    def put(self, request, *args, **kwargs):
        return self._update(request)

    @swagger_auto_schema(tags=["Products"], request_body=product_write_schema, responses={200: ProductSerializer})
    def patch(self, request, *args, **kwargs):
        return self._update(request)

    def _update(self, request):
        product = self.get_object()
        serializer = self.get_serializer(product, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Product {product.pk} updated by {request.user.email}")
        return Response(standardized_response(data=serializer.data, message="Product updated successfully"))

    @swagger_auto_schema(tags=["Products"], responses={200: "Product deleted", 404: "Product not found"})
    def delete(self, request, *args, **kwargs):
        product = self.get_object()
        product_id = product.pk
        product.delete()
        logger.info(f"Product {product_id} deleted by {request.user.email}")
        return Response(standardized_response(message="Product deleted successfully"))


class ProductImageUploadView(BaseAPIView):
    permission_classes = [IsAuthenticated, IsAdmin]
    parser_classes = [MultiPartParser, FormParser]

    @swagger_auto_schema(
        tags=["Products"],
        request_body=ProductImageSerializer,
        responses={200: ProductSerializer, 400: "Invalid image"}
    )
    def post(self, request, pk):
        product = get_object_or_404(Product, pk=pk)
        serializer = ProductImageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        product.image = serializer.validated_data['image']
        product.save()
        logger.info(f"Image uploaded for product {product.pk}: {product.image.name}")
        return Response(standardized_response(
            data=ProductSerializer(product, context={'request': request}).data,
            message="Product image uploaded successfully"
        ))


# ======================================================
# CATEGORY VIEWS
# ======================================================
class CategoryListCreateView(BaseAPIView, generics.ListCreateAPIView):
    permission_classes = [IsAdminOrReadOnly]
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    pagination_class = None

    @swagger_auto_schema(tags=["Categories"], responses={200: CategorySerializer(many=True)})
    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response(standardized_response(data=serializer.data))

    @swagger_auto_schema(tags=["Categories"], request_body=CategorySerializer, responses={201: CategorySerializer})
    def post(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        category = serializer.save()
        logger.info(f"Category '{category.name}' created by {request.user.email}")
        return Response(
            standardized_response(data=serializer.data, message="Category created successfully"),
            status=status.HTTP_201_CREATED
        )


class CategoryDetailView(BaseAPIView, generics.RetrieveUpdateDestroyAPIView):
    permission_classes = [IsAdminOrReadOnly]
    queryset = Category.objects.all()
    serializer_class = CategorySerializer
    http_method_names = ['get', 'put', 'delete', 'options']

    @swagger_auto_schema(tags=["Categories"], responses={200: CategorySerializer})
    def get(self, request, *args, **kwargs):
        return Response(standardized_response(data=self.get_serializer(self.get_object()).data))

    @swagger_auto_schema(tags=["Categories"], request_body=CategorySerializer, responses={200: CategorySerializer})
    def put(self, request, *args, **kwargs):
        category = self.get_object()
        serializer = self.get_serializer(category, data=request.data)
        serializer.is_valid(raise_exception=True)
        serializer.save()
        logger.info(f"Category {category.pk} renamed to '{category.name}'")
        return Response(standardized_response(data=serializer.data, message="Category updated successfully"))

    @swagger_auto_schema(tags=["Categories"], responses={200: "Category deleted"})
    def delete(self, request, *args, **kwargs):
        category = self.get_object()
        logger.info(f"Category '{category.name}' deleted by {request.user.email}")
        category.delete()
        return Response(standardized_response(message="Category deleted successfully"))


# ======================================================
# CART VIEWS
# ======================================================
class CartView(BaseAPIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Cart"],
        operation_description="Retrieve the authenticated user's cart with line subtotals and totals.",
        responses={200: CartSerializer}
    )
    def get(self, request):
        cart = CartService.get_cart(request.user)
        return Response(standardized_response(data=CartSerializer(cart).data))

    @swagger_auto_schema(
        tags=["Cart"],
        operation_description="Add a product to the cart, merging with an existing line. The merged quantity may not exceed stock.",
        request_body=AddToCartSerializer,
        responses={200: CartSerializer, 400: "Quantity exceeds stock", 404: "Product not found"}
    )
    def post(self, request):
        serializer = AddToCartSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = CartService.add_item(
            request.user,
            serializer.validated_data['product_id'],
            serializer.validated_data['quantity']
        )
        return Response(standardized_response(data=CartSerializer(cart).data, message="Item added to cart"))


class CartItemView(BaseAPIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        tags=["Cart"],
        operation_description="Set the quantity of a cart line. Zero removes the line.",
        request_body=SetCartQuantitySerializer,
        responses={200: CartSerializer, 400: "Quantity exceeds stock", 404: "Item not found in cart"}
    )
    def put(self, request, product_id):
        serializer = SetCartQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = CartService.set_quantity(request.user, product_id, serializer.validated_data['quantity'])
        return Response(standardized_response(data=CartSerializer(cart).data, message="Cart updated"))

    @swagger_auto_schema(
        tags=["Cart"],
        operation_description="Increase or decrease a cart line by one. Reaching zero removes the line.",
        request_body=ChangeCartQuantitySerializer,
        responses={200: CartSerializer, 400: "Quantity exceeds stock", 404: "Item not found in cart"}
    )
    def patch(self, request, product_id):
        serializer = ChangeCartQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        cart = CartService.change_quantity(request.user, product_id, serializer.validated_data['change'])
        return Response(standardized_response(data=CartSerializer(cart).data, message="Cart updated"))

    @swagger_auto_schema(tags=["Cart"], responses={200: CartSerializer, 404: "Item not found in cart"})
    def delete(self, request, product_id):
        cart = CartService.remove_item(request.user, product_id)
        return Response(standardized_response(data=CartSerializer(cart).data, message="Item removed from cart"))


class ClearCartView(BaseAPIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(tags=["Cart"], responses={200: CartSerializer})
    def delete(self, request):
        cart = CartService.clear(request.user)
        return Response(standardized_response(data=CartSerializer(cart).data, message="Cart cleared"))


class AdminCartListView(BaseAPIView, generics.ListAPIView):
    permission_classes = [IsAuthenticated, IsAdmin]
    serializer_class = AdminCartSerializer
    pagination_class = None

    def get_queryset(self):
        return CartService.admin_list_carts()

    @swagger_auto_schema(tags=["Cart"], responses={200: AdminCartSerializer(many=True)})
    def get(self, request, *args, **kwargs):
        serializer = self.get_serializer(self.get_queryset(), many=True)
        return Response(standardized_response(data=serializer.data))


class AdminClearCartView(BaseAPIView):
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(tags=["Cart"], responses={200: "Cart cleared", 404: "Cart not found for this user"})
    def delete(self, request, user_id):
        CartService.admin_clear_cart(user_id)
        return Response(standardized_response(message="User cart cleared"))
