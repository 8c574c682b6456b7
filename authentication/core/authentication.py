import logging

from rest_framework_simplejwt.authentication import JWTAuthentication
from rest_framework_simplejwt.exceptions import InvalidToken

from .jwt_utils import TokenManager

logger = logging.getLogger(__name__)


class RevocableJWTAuthentication(JWTAuthentication):
    """Bearer JWT authentication that also rejects tokens revoked at logout"""

    def get_validated_token(self, raw_token):
        validated_token = super().get_validated_token(raw_token)
        jti = validated_token.get('jti')
        if TokenManager.is_token_blacklisted(jti):
            logger.warning(f"Rejected revoked access token {jti}")
            raise InvalidToken({"detail": "Token has been revoked", "code": "token_revoked"})
        return validated_token
