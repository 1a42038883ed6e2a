"""URL routing for the escrow domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import DefaultRouter  # type: ignore

from .views import EscrowAdminViewSet, EscrowTransactionViewSet

router = DefaultRouter()
router.register(r"transactions", EscrowTransactionViewSet, basename="escrow-transaction")
router.register(r"admin", EscrowAdminViewSet, basename="escrow-admin")

urlpatterns = [
    path("", include(router.urls)),
]
