import logging
from django.utils import timezone
from django.conf import settings
from django.core.cache import cache
from django.contrib.auth import authenticate
from django.db import IntegrityError, transaction
from rest_framework_simplejwt.exceptions import TokenError

from authentication.serializers import UserBaseSerializer
from authentication.core.jwt_utils import TokenManager
from authentication.core.ip_utils import get_client_ip
from authentication.core.exceptions import (
    AccountDisabledException,
    AccountLockedException,
    DuplicateEntryException,
    InvalidCredentialsException,
    InvalidTokenException,
)
from authentication.models import CustomUser

logger = logging.getLogger(__name__)


class AuthenticationService:
    """
    Service class to handle authentication-related business logic.

    Successful calls return ``(success, response_data, status_code)``;
    rejected credentials and tokens raise the exceptions from
    ``authentication.core.exceptions``, which ``BaseAPIView`` renders.
    """

    @staticmethod
    def _lockout_key(email):
        return f"account_lockout:{email}"

    @staticmethod
    def _failed_key(email):
        return f"failed_logins:{email}"

    @staticmethod
    def _record_failed_login(email):
        """Count a failed attempt; returns True when the account is now locked"""
        lockout_seconds = getattr(settings, 'ACCOUNT_LOCKOUT_SECONDS', 900)
        failed_attempts = cache.get(AuthenticationService._failed_key(email), 0) + 1
        cache.set(AuthenticationService._failed_key(email), failed_attempts, timeout=lockout_seconds * 2)

        if failed_attempts >= getattr(settings, 'MAX_FAILED_LOGINS', 5):
            cache.set(AuthenticationService._lockout_key(email), True, timeout=lockout_seconds)
            cache.delete(AuthenticationService._failed_key(email))
            logger.warning(f"Account locked due to failed attempts: {email}")
            return True
        return False

    @staticmethod
    def register(username, email, password, request_meta=None, request=None):
        """Create a shopper account and issue its first token pair"""
        if request_meta:
            ip = get_client_ip(request_meta)
            logger.info(f"Registration attempt from IP: {ip}")

        try:
            with transaction.atomic():
                user = CustomUser.objects.create_user(
                    email=email,
                    username=username,
                    password=password,
                    role=CustomUser.Role.USER,
                )
        except IntegrityError:
            # lost a race with a concurrent registration for the same username/email
            logger.warning(f"Duplicate registration rejected for {email}")
            raise DuplicateEntryException("A user with this username or email already exists.")

        user.last_login = timezone.now()
        user.save(update_fields=['last_login'])

        context = {'request': request} if request else {}
        serializer = UserBaseSerializer(user, context=context)
        tokens = TokenManager.generate_tokens(user)
        logger.info(f"Registration successful for user: {user.email}")

        return True, {
            "success": True,
            "message": "Registration successful",
            "data": {
                'user': serializer.data,
                'tokens': tokens,
            }
        }, 201

    @staticmethod
    def login(email, password, request_meta=None, request=None):
        """Handle user login with email and password"""
        email = email.strip().lower()

        if request_meta:
            ip = get_client_ip(request_meta)
            logger.info(
                f"Login attempt from IP: {ip}, User-agent: {request_meta.get('HTTP_USER_AGENT')}"
            )

        if cache.get(AuthenticationService._lockout_key(email)):
            logger.warning(f"Login attempt for locked account: {email}")
            raise AccountLockedException()

        user = CustomUser.objects.filter(email=email).first()
        if user is not None and not user.is_active and user.check_password(password):
            logger.warning(f"Login attempt for disabled account: {email}")
            raise AccountDisabledException()

        authenticated = authenticate(request=request, username=email, password=password) if user else None
        if not authenticated:
            if user is None:
                logger.warning(f"Login attempt for non-existent email: {email}")
            else:
                logger.warning(f"Failed login attempt for email: {email}")

            if AuthenticationService._record_failed_login(email):
                raise AccountLockedException()
            raise InvalidCredentialsException()

        cache.delete(AuthenticationService._failed_key(email))

        authenticated.last_login = timezone.now()
        authenticated.save(update_fields=['last_login'])

        context = {'request': request} if request else {}
        serializer = UserBaseSerializer(authenticated, context=context)
        tokens = TokenManager.generate_tokens(authenticated)

        logger.info(f"Login successful for user: {authenticated.email}")

        return True, {
            "success": True,
            "message": "Login successful",
            "data": {
                'user': serializer.data,
                'tokens': tokens,
            }
        }, 200

    @staticmethod
    def refresh_token(refresh_token):
        """Exchange a refresh token for a new pair"""
        try:
            tokens = TokenManager.refresh_tokens(refresh_token)
        except TokenError as e:
            logger.warning(f"Token refresh rejected: {str(e)}")
            raise InvalidTokenException("Invalid or expired refresh token")

        return True, {"success": True, "data": {'tokens': tokens}}, 200

    @staticmethod
    def logout(user, access_token=None, refresh_token=None):
        """Revoke the presented access token and, when given, the refresh token"""
        blacklisted_count = 0

        if access_token is not None and TokenManager.blacklist_token(access_token.get('jti')):
            blacklisted_count += 1

        if refresh_token:
            if TokenManager.blacklist_token(TokenManager.token_jti(refresh_token)):
                blacklisted_count += 1
                logger.info(f"Refresh token blacklisted during logout for user {user.pk}")
            else:
                logger.warning(f"Unreadable refresh token presented at logout by user {user.pk}")

        logger.info(f"User logged out: {user.pk} ({blacklisted_count} token(s) blacklisted)")
        return True, {
            "success": True,
            "message": "Successfully logged out",
            "data": {
                "tokens_blacklisted": blacklisted_count
            }
        }, 200

    @staticmethod
    def change_password(user, new_password):
        user.set_password(new_password)
        user.save(update_fields=['password', 'updated_at'])
        logger.info(f"Password changed for user {user.pk}")
        return True, {"success": True, "message": "Password updated successfully"}, 200
