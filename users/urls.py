from django.urls import path
from rest_framework.parsers import MultiPartParser, FormParser
from .views import UserManagementViewSet, AdminStatsViewSet

# =========================
# USER MANAGEMENT
# =========================
user_list = UserManagementViewSet.as_view({"get": "list"})
user_detail = UserManagementViewSet.as_view({
    "get": "retrieve",
    "put": "update",
    "delete": "destroy",
})
user_role = UserManagementViewSet.as_view({"put": "role"})
user_status = UserManagementViewSet.as_view({"put": "status"})
user_avatar = UserManagementViewSet.as_view({"put": "avatar"}, parser_classes=[MultiPartParser, FormParser])
user_activity = UserManagementViewSet.as_view({"get": "activity"})

# =========================
# ADMIN STATS
# =========================
stats_sales = AdminStatsViewSet.as_view({"get": "sales"})
stats_top_products = AdminStatsViewSet.as_view({"get": "top_products"})
stats_active_users = AdminStatsViewSet.as_view({"get": "active_users"})

urlpatterns = [
    path("users/", user_list, name="user-list"),
    path("users/<int:pk>/", user_detail, name="user-detail"),
    path("users/<int:pk>/role/", user_role, name="user-role"),
    path("users/<int:pk>/status/", user_status, name="user-status"),
    path("users/<int:pk>/avatar/", user_avatar, name="user-avatar"),
    path("users/<int:pk>/activity/", user_activity, name="user-activity"),

    path("stats/sales/", stats_sales, name="stats-sales"),
    path("stats/top-products/", stats_top_products, name="stats-top-products"),
    path("stats/active-users/", stats_active_users, name="stats-active-users"),
]
