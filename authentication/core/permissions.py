from rest_framework.permissions import BasePermission, SAFE_METHODS

# =====================================================
# Generic Role Permissions
# =====================================================

class IsAdmin(BasePermission):
    """
    Allows access only to users with role ADMIN
    """
    message = "Access denied. Administrator role required."

    def has_permission(self, request, view):
        return bool(request.user and request.user.is_authenticated and request.user.is_admin)


class IsShopper(BasePermission):
    """
    Allows access only to users with role USER (admins cannot place orders)
    """
    message = "Access denied. Only customers can place orders."

    def has_permission(self, request, view):
        return bool(
            request.user
            and request.user.is_authenticated
            and request.user.role == request.user.Role.USER
        )


# =====================================================
# Mixed Permissions
# =====================================================

class IsAdminOrReadOnly(BasePermission):
    """
    Anyone may read; only admins may write
    """
    message = "Access denied. Administrator role required."

    def has_permission(self, request, view):
        if request.method in SAFE_METHODS:
            return True
        return bool(request.user and request.user.is_authenticated and request.user.is_admin)


class IsSelfOrAdmin(BasePermission):
    """
    Object-level access for a user record: the user themselves or an admin
    """
    message = "You are not allowed to access this profile."

    def has_object_permission(self, request, view, obj):
        return bool(request.user.is_admin or obj.pk == request.user.pk)


class IsOwnerOrAdmin(BasePermission):
    """
    Object-level access for records owned through a ``customer`` field
    """
    message = "You are not allowed to access this resource."

    def has_object_permission(self, request, view, obj):
        owner_id = getattr(obj, "customer_id", None)
        return bool(request.user.is_admin or owner_id == request.user.pk)
