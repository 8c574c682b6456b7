from django.utils.translation import gettext_lazy as _
from rest_framework.exceptions import APIException


class AccountLockedException(APIException):
    status_code = 403
    default_detail = _('Account temporarily locked due to multiple failed attempts. Try again later.')
    default_code = 'account_locked'


class AccountDisabledException(APIException):
    status_code = 403
    default_detail = _('Account is disabled. Please contact support.')
    default_code = 'account_disabled'


class InvalidCredentialsException(APIException):
    status_code = 401
    default_detail = _('Invalid email or password')
    default_code = 'invalid_credentials'


class InvalidTokenException(APIException):
    status_code = 401
    default_detail = _('Invalid or expired token')
    default_code = 'invalid_token'


class DuplicateEntryException(APIException):
    status_code = 400
    default_detail = _('A record with this value already exists.')
    default_code = 'duplicate'


class InsufficientStockException(APIException):
    """
    Raised when a cart line or an order would exceed the product's stock.
    """
    status_code = 400
    default_detail = _('Insufficient stock for this product.')
    default_code = 'insufficient_stock'


class EmptyCartException(APIException):
    status_code = 400
    default_detail = _('Your cart is empty. Add products before placing an order.')
    default_code = 'empty_cart'


class InvalidDiscountException(APIException):
    status_code = 400
    default_detail = _('This discount code cannot be applied.')
    default_code = 'invalid_discount'


class LastAdminException(APIException):
    """
    Raised when an operation would leave the shop without an active administrator.
    """
    status_code = 403
    default_detail = _('This is the only administrator account and it cannot be changed this way.')
    default_code = 'last_admin'


class InvalidUploadException(APIException):
    status_code = 400
    default_detail = _('Only image files (JPEG, JPG, PNG, GIF) are allowed.')
    default_code = 'invalid_upload'
