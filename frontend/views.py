"""
Server-rendered shells for the storefront pages.

The pages carry no user data; the static scripts fetch everything from the
REST API with the token kept in ``localStorage``.
"""
from django.conf import settings
from django.views.generic import TemplateView

from store.models import Category


class StorefrontPageView(TemplateView):
    page_name = None

    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['page_name'] = self.page_name
        context['placeholder_image'] = settings.PRODUCT_PLACEHOLDER_IMAGE
        context['default_avatar'] = settings.DEFAULT_AVATAR_IMAGE
        return context


class CategoryContextMixin:
    def get_context_data(self, **kwargs):
        context = super().get_context_data(**kwargs)
        context['categories'] = Category.objects.order_by('name').values_list('name', flat=True)
        return context


class IndexView(CategoryContextMixin, StorefrontPageView):
    template_name = 'frontend/index.html'
    page_name = 'catalog'


class LoginView(StorefrontPageView):
    template_name = 'frontend/login.html'
    page_name = 'login'


class CartPageView(StorefrontPageView):
    template_name = 'frontend/cart.html'
    page_name = 'cart'


class CheckoutView(StorefrontPageView):
    template_name = 'frontend/checkout.html'
    page_name = 'checkout'


class AccountView(StorefrontPageView):
    template_name = 'frontend/account.html'
    page_name = 'account'


class AdminPanelView(CategoryContextMixin, StorefrontPageView):
    """Rendered for everyone; admin.js sends non-admins back to the catalog."""
    template_name = 'frontend/admin_dashboard.html'
    page_name = 'admin'
