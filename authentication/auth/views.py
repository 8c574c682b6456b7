import logging

from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.throttling import AnonRateThrottle

from authentication.core.base_view import BaseAPIView
from authentication.core.response import standardized_response
from .services import AuthenticationService
from drf_yasg.utils import swagger_auto_schema
from authentication.serializers import (
    UserBaseSerializer,
    UserRegistrationSerializer,
    UserLoginSerializer,
    TokenRefreshSerializer,
    LogoutSerializer,
    ChangePasswordSerializer,
    AuthResponseSerializer,
    UserResponseSerializer,
)

logger = logging.getLogger(__name__)


class UserRegistrationView(BaseAPIView):
    permission_classes = [AllowAny]
    throttle_classes = [AnonRateThrottle]

    @swagger_auto_schema(
        request_body=UserRegistrationSerializer,
        responses={201: AuthResponseSerializer, 400: AuthResponseSerializer}
    )
    def post(self, request):
        serializer = UserRegistrationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        success, response_data, status_code = AuthenticationService.register(
            request_meta=request.META,
            request=request,
            **serializer.validated_data
        )
        return Response(standardized_response(**response_data), status=status_code)


class UserLoginView(BaseAPIView):
    permission_classes = [AllowAny]
    throttle_classes = [AnonRateThrottle]

    @swagger_auto_schema(
        request_body=UserLoginSerializer,
        responses={200: AuthResponseSerializer, 401: AuthResponseSerializer, 403: AuthResponseSerializer}
    )
    def post(self, request):
        serializer = UserLoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        success, response_data, status_code = AuthenticationService.login(
            email=serializer.validated_data['email'],
            password=serializer.validated_data['password'],
            request_meta=request.META,
            request=request
        )
        return Response(standardized_response(**response_data), status=status_code)


class MeView(BaseAPIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(responses={200: UserResponseSerializer})
    def get(self, request):
        serializer = UserBaseSerializer(request.user, context={'request': request})
        return Response(standardized_response(data=serializer.data))


class ChangePasswordView(BaseAPIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        request_body=ChangePasswordSerializer,
        responses={200: "Password updated", 400: "Validation error"}
    )
    def put(self, request):
        serializer = ChangePasswordSerializer(data=request.data, context={'request': request})
        serializer.is_valid(raise_exception=True)

        success, response_data, status_code = AuthenticationService.change_password(
            request.user, serializer.validated_data['new_password']
        )
        return Response(standardized_response(**response_data), status=status_code)


class TokenRefreshView(BaseAPIView):
    permission_classes = [AllowAny]
    authentication_classes = []
    throttle_classes = [AnonRateThrottle]

    @swagger_auto_schema(
        request_body=TokenRefreshSerializer,
        responses={200: AuthResponseSerializer, 401: AuthResponseSerializer}
    )
    def post(self, request):
        serializer = TokenRefreshSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        success, response_data, status_code = AuthenticationService.refresh_token(
            serializer.validated_data['refresh_token']
        )
        return Response(standardized_response(**response_data), status=status_code)


class LogoutView(BaseAPIView):
    permission_classes = [IsAuthenticated]

    @swagger_auto_schema(
        request_body=LogoutSerializer,
        responses={200: AuthResponseSerializer}
    )
    def post(self, request):
        success, response_data, status_code = AuthenticationService.logout(
            request.user,
            access_token=request.auth,
            refresh_token=request.data.get('refresh_token'),
        )
        return Response(standardized_response(**response_data), status=status_code)
