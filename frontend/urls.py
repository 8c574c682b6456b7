from django.urls import path
from .views import IndexView, LoginView, CartPageView, CheckoutView, AccountView, AdminPanelView

app_name = 'frontend'

urlpatterns = [
    path('', IndexView.as_view(), name='index'),
    path('login/', LoginView.as_view(), name='login'),
    path('cart/', CartPageView.as_view(), name='cart'),
    path('checkout/', CheckoutView.as_view(), name='checkout'),
    path('account/', AccountView.as_view(), name='account'),
    path('admin-panel/', AdminPanelView.as_view(), name='admin-panel'),
]
