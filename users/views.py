from django.contrib.auth import get_user_model
from django.shortcuts import get_object_or_404
from rest_framework import viewsets
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated
from rest_framework.exceptions import PermissionDenied
from rest_framework.decorators import action
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi

from authentication.core.base_view import BaseAPIView
from authentication.core.pagination import StandardResultsPagination
from authentication.core.permissions import IsAdmin, IsSelfOrAdmin
from authentication.core.response import standardized_response
from authentication.serializers import UserBaseSerializer, UserResponseSerializer

from users.serializers import (
    UserUpdateSerializer,
    UserRoleSerializer,
    UserStatusSerializer,
    AvatarUploadSerializer,
    UserActivitySerializer,
    SalesStatsSerializer,
    TopProductSerializer,
    ActiveUsersSerializer,
)
from users.services.user_admin import UserAdminService
from users.services.stats import StatsService
import logging

logger = logging.getLogger(__name__)

User = get_user_model()


class UserManagementViewSet(BaseAPIView, viewsets.ViewSet):
    """
    User records: admins manage everyone, users manage their own profile.
    """
    permission_classes = [IsAuthenticated]

    ADMIN_ACTIONS = {'list', 'destroy', 'role', 'status'}

    def get_permissions(self):
        if getattr(self, 'action', None) in self.ADMIN_ACTIONS:
            return [IsAuthenticated(), IsAdmin()]
        return [IsAuthenticated(), IsSelfOrAdmin()]

    def get_user(self, request, pk):
        user = get_object_or_404(User, pk=pk)
        self.check_object_permissions(request, user)
        return user

    @swagger_auto_schema(
        operation_summary="List users",
        tags=["User Management"],
        manual_parameters=[
            openapi.Parameter('search', openapi.IN_QUERY, type=openapi.TYPE_STRING, description="Username or e-mail substring"),
            openapi.Parameter('role', openapi.IN_QUERY, type=openapi.TYPE_STRING, enum=User.Role.values),
            openapi.Parameter('page', openapi.IN_QUERY, type=openapi.TYPE_INTEGER),
            openapi.Parameter('limit', openapi.IN_QUERY, type=openapi.TYPE_INTEGER, description="Page size (default 10)"),
        ],
        responses={200: UserBaseSerializer(many=True), 403: "Admin access only"},
        security=[{"Bearer": []}],
    )
    def list(self, request):
        queryset = UserAdminService.search(
            search=request.query_params.get('search'),
            role=request.query_params.get('role'),
        )
        paginator = StandardResultsPagination()
        page = paginator.paginate_queryset(queryset, request, view=self)
        serializer = UserBaseSerializer(page, many=True, context={'request': request})
        return paginator.get_paginated_response(serializer.data)

    @swagger_auto_schema(
        operation_summary="Retrieve a user",
        tags=["User Management"],
        responses={200: UserResponseSerializer, 403: "Not allowed", 404: "User not found"},
        security=[{"Bearer": []}],
    )
    def retrieve(self, request, pk=None):
        user = self.get_user(request, pk)
        return Response(standardized_response(data=UserBaseSerializer(user).data))

    @swagger_auto_schema(
        operation_summary="Update username / e-mail (role for admins)",
        tags=["User Management"],
        request_body=UserUpdateSerializer,
        responses={200: UserResponseSerializer, 400: "Invalid input", 403: "Not allowed"},
        security=[{"Bearer": []}],
    )
    def update(self, request, pk=None):
        user = self.get_user(request, pk)
        serializer = UserUpdateSerializer(user, data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)

        user = UserAdminService.update_profile(request.user, user, serializer.validated_data)
        return Response(standardized_response(
            data=UserBaseSerializer(user).data,
            message="User updated successfully"
        ))

    @swagger_auto_schema(
        operation_summary="Delete a user",
        tags=["User Management"],
        responses={200: "User deleted", 403: "Admin only, or last administrator", 404: "User not found"},
        security=[{"Bearer": []}],
    )
    def destroy(self, request, pk=None):
        user = get_object_or_404(User, pk=pk)
        UserAdminService.delete_user(request.user, user)
        return Response(standardized_response(message="User deleted successfully"))

    @swagger_auto_schema(
        operation_summary="Change a user's role",
        tags=["User Management"],
        request_body=UserRoleSerializer,
        responses={200: UserResponseSerializer, 400: "Invalid role", 403: "Last administrator"},
        security=[{"Bearer": []}],
    )
    @action(detail=True, methods=["put"])
    def role(self, request, pk=None):
        user = get_object_or_404(User, pk=pk)
        serializer = UserRoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = UserAdminService.set_role(request.user, user, serializer.validated_data['role'])
        return Response(standardized_response(data=UserBaseSerializer(user).data, message="User role updated"))

    @swagger_auto_schema(
        operation_summary="Activate or deactivate a user",
        tags=["User Management"],
        request_body=UserStatusSerializer,
        responses={200: UserResponseSerializer, 400: "is_active must be a boolean", 403: "Last administrator"},
        security=[{"Bearer": []}],
    )
    @action(detail=True, methods=["put"])
    def status(self, request, pk=None):
        user = get_object_or_404(User, pk=pk)
        serializer = UserStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = UserAdminService.set_active(request.user, user, serializer.validated_data['is_active'])
        return Response(standardized_response(data=UserBaseSerializer(user).data, message="User status updated"))

    @swagger_auto_schema(
        operation_summary="Upload own avatar",
        tags=["User Management"],
        request_body=AvatarUploadSerializer,
        responses={200: UserResponseSerializer, 400: "Missing or invalid image", 403: "Own profile only"},
        security=[{"Bearer": []}],
    )
    @action(detail=True, methods=["put"])
    def avatar(self, request, pk=None):
        user = get_object_or_404(User, pk=pk)
        if user.pk != request.user.pk:
            raise PermissionDenied("You can only change your own avatar.")

        serializer = AvatarUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = UserAdminService.set_avatar(user, serializer.validated_data['avatar'])
        return Response(standardized_response(data=UserBaseSerializer(user).data, message="Avatar updated"))

    @swagger_auto_schema(
        operation_summary="A user's orders and current cart",
        tags=["User Management"],
        responses={200: UserActivitySerializer},
        security=[{"Bearer": []}],
    )
    @action(detail=True, methods=["get"])
    def activity(self, request, pk=None):
        user = self.get_user(request, pk)
        serializer = UserActivitySerializer(UserAdminService.activity(user))
        return Response(standardized_response(data=serializer.data))


class AdminStatsViewSet(BaseAPIView, viewsets.ViewSet):
    """
    Dashboard aggregates for administrators.
    """
    permission_classes = [IsAuthenticated, IsAdmin]

    @swagger_auto_schema(
        operation_summary="Total sales of delivered orders",
        tags=["Analytics"],
        responses={200: SalesStatsSerializer, 403: "Admin access only"},
        security=[{"Bearer": []}],
    )
    @action(detail=False, methods=["get"])
    def sales(self, request):
        serializer = SalesStatsSerializer(StatsService.total_sales())
        return Response(standardized_response(data=serializer.data))

    @swagger_auto_schema(
        operation_summary="Five best-selling products by delivered quantity",
        tags=["Analytics"],
        responses={200: TopProductSerializer(many=True), 403: "Admin access only"},
        security=[{"Bearer": []}],
    )
    @action(detail=False, methods=["get"])
    def top_products(self, request):
        serializer = TopProductSerializer(StatsService.top_products(), many=True)
        return Response(standardized_response(data=serializer.data))

    @swagger_auto_schema(
        operation_summary="Number of active users",
        tags=["Analytics"],
        responses={200: ActiveUsersSerializer, 403: "Admin access only"},
        security=[{"Bearer": []}],
    )
    @action(detail=False, methods=["get"])
    def active_users(self, request):
        serializer = ActiveUsersSerializer(StatsService.active_users())
        return Response(standardized_response(data=serializer.data))
