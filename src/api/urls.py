"""Main API URL router for /api/v1/."""
from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenObtainPairView, TokenRefreshView

from api.v1 import views as v1_views

router = DefaultRouter()
router.register(r'packages', v1_views.PackageViewSet, basename='package')
router.register(r'payments', v1_views.PaymentViewSet, basename='payment')
router.register(
    r'commissions/calculations',
    v1_views.CommissionCalculationViewSet,
    basename='commission-calculation',
)


app_name = 'api'
urlpatterns = [
    path('', include(router.urls)),

    # Auth endpoints
    path('auth/token/', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('auth/token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    # Commissions
    path('commissions/config/', v1_views.CommissionConfigView.as_view(), name='commission-config'),
    path('commissions/calculate/', v1_views.CommissionCalculateView.as_view(), name='commission-calculate'),
]
