from rest_framework_simplejwt.tokens import RefreshToken, TokenError
from datetime import timedelta
from django.conf import settings
from django.core.cache import cache
import jwt
import logging
import time
import uuid

logger = logging.getLogger(__name__)


class TokenManager:
    """JWT token manager; revoked token ids are kept in the Django cache"""

    @staticmethod
    def _blacklist_key(jti):
        return f"blacklisted_token:{jti}"

    @staticmethod
    def generate_tokens(user):
        """Generate access and refresh tokens carrying the user's role"""
        try:
            refresh = RefreshToken.for_user(user)

            refresh['jti'] = str(uuid.uuid4())
            refresh['username'] = user.username
            refresh['email'] = user.email
            refresh['role'] = user.role

            access_token = refresh.access_token
            access_token['jti'] = str(uuid.uuid4())

            access_expiry = settings.SIMPLE_JWT.get('ACCESS_TOKEN_LIFETIME', timedelta(minutes=60))
            refresh_expiry = settings.SIMPLE_JWT.get('REFRESH_TOKEN_LIFETIME', timedelta(days=7))

            return {
                'access_token': str(access_token),
                'refresh_token': str(refresh),
                'token_type': 'Bearer',
                'expires_in': int(access_expiry.total_seconds()),
                'refresh_expires_in': int(refresh_expiry.total_seconds()),
                'issued_at': int(time.time())
            }

        except Exception as e:
            logger.error(f"Failed to generate tokens for user {user.email}: {str(e)}")
            raise

    @staticmethod
    def refresh_tokens(refresh_token):
        """Validate a refresh token, revoke it and issue a fresh pair"""
        from authentication.models import CustomUser

        token = RefreshToken(refresh_token)
        jti = token.get('jti')

        if not jti or TokenManager.is_token_blacklisted(jti):
            logger.warning(f"Attempt to use blacklisted token with JTI: {jti}")
            raise TokenError("Token is blacklisted")

        user_id = token.get(settings.SIMPLE_JWT.get('USER_ID_CLAIM', 'user_id'))
        try:
            user = CustomUser.objects.get(pk=user_id)
        except CustomUser.DoesNotExist:
            logger.warning(f"Token refresh attempted for non-existent user: {user_id}")
            raise TokenError("Invalid token")

        if not user.is_active:
            logger.warning(f"Token refresh attempted for inactive user: {user.email}")
            TokenManager.blacklist_token(jti)
            raise TokenError("User is inactive")

        if settings.SIMPLE_JWT.get('ROTATE_REFRESH_TOKENS', True):
            TokenManager.blacklist_token(jti)

        return TokenManager.generate_tokens(user)

    @staticmethod
    def token_jti(token_string):
        """
        Read the JTI of a signed token without enforcing expiry, so tokens that
        already expired can still be revoked. Returns None for forged or malformed tokens.
        """
        try:
            decoded = jwt.decode(
                token_string,
                settings.SIMPLE_JWT.get('SIGNING_KEY', settings.SECRET_KEY),
                algorithms=[settings.SIMPLE_JWT.get('ALGORITHM', 'HS256')],
                options={"verify_exp": False}
            )
        except jwt.PyJWTError as e:
            logger.debug(f"Token decode error: {str(e)}")
            return None
        return decoded.get('jti')

    @staticmethod
    def blacklist_token(jti):
        """Blacklist a token by JTI"""
        if not jti:
            return False
        timeout = settings.SIMPLE_JWT.get('BLACKLIST_TIMEOUT', 86400)
        cache.set(TokenManager._blacklist_key(jti), True, timeout=timeout)
        return True

    @staticmethod
    def is_token_blacklisted(jti):
        """Check if token is blacklisted"""
        if not jti:
            return False
        return bool(cache.get(TokenManager._blacklist_key(jti)))
