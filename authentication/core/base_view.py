import logging
import traceback
from django.core.exceptions import PermissionDenied as DjangoPermissionDenied
from django.http import Http404
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework import status
from rest_framework.exceptions import (
    APIException,
    AuthenticationFailed,
    MethodNotAllowed,
    NotAuthenticated,
    ValidationError,
)
from rest_framework_simplejwt.exceptions import TokenError

from .response import standardized_response

logger = logging.getLogger(__name__)


class BaseAPIView(APIView):
    """Base class for all API views with common error handling and response formatting"""

    def _extract_error_message(self, detail):
        """
        Keep structured error payloads (dict/list) for serializer errors and
        normalize simple details to strings.
        """
        if isinstance(detail, (dict, list)):
            return detail
        return str(detail)

    def handle_exception(self, exc):
        """Standardized exception handling for all API views"""
        request = getattr(self, "request", None)
        method = getattr(request, "method", "UNKNOWN")
        path = getattr(request, "path", "UNKNOWN")
        user = getattr(request, "user", None)
        user_id = getattr(user, "id", None) or "anonymous"

        if isinstance(exc, (AuthenticationFailed, NotAuthenticated)):
            response = Response(
                standardized_response(success=False, error=str(exc.detail)),
                status=status.HTTP_401_UNAUTHORIZED
            )
            auth_header = self.get_authenticate_header(request) if request is not None else None
            if auth_header:
                response['WWW-Authenticate'] = auth_header
            return response

        if isinstance(exc, TokenError):
            return Response(
                standardized_response(success=False, error='Invalid or expired token'),
                status=status.HTTP_401_UNAUTHORIZED
            )

        if isinstance(exc, Http404):
            return Response(
                standardized_response(success=False, error=str(exc) or "Not found."),
                status=status.HTTP_404_NOT_FOUND
            )

        if isinstance(exc, DjangoPermissionDenied):
            return Response(
                standardized_response(success=False, error=str(exc) or "Permission denied."),
                status=status.HTTP_403_FORBIDDEN
            )

        if isinstance(exc, MethodNotAllowed):
            return Response(
                standardized_response(success=False, error=str(exc)),
                status=status.HTTP_405_METHOD_NOT_ALLOWED
            )

        if isinstance(exc, ValidationError):
            logger.warning(
                "Validation error on %s %s (user=%s): %s",
                method,
                path,
                user_id,
                exc.detail,
            )
            return Response(
                standardized_response(
                    success=False,
                    error=self._extract_error_message(exc.detail)
                ),
                status=status.HTTP_400_BAD_REQUEST
            )

        if isinstance(exc, APIException):
            error_code = None
            if hasattr(exc, "get_codes"):
                try:
                    error_code = exc.get_codes()
                except Exception:
                    error_code = None

            logger.warning(
                "API exception on %s %s (user=%s, status=%s, code=%s): %s",
                method,
                path,
                user_id,
                getattr(exc, "status_code", "unknown"),
                error_code,
                exc.detail,
            )
            response = Response(
                standardized_response(
                    success=False,
                    error=self._extract_error_message(exc.detail),
                    error_code=error_code,
                ),
                status=exc.status_code
            )
            wait = getattr(exc, "wait", None)
            if wait:
                response['Retry-After'] = str(int(wait))
            return response

        logger.error("Unexpected error on %s %s (user=%s): %s", method, path, user_id, str(exc))
        logger.error(traceback.format_exc())

        return Response(
            standardized_response(
                success=False,
                error="An unexpected error occurred"
            ),
            status=status.HTTP_500_INTERNAL_SERVER_ERROR
        )
