"""URL routing for the listings domain."""

from __future__ import annotations

from django.urls import include, path  # type: ignore
from rest_framework.routers import SimpleRouter  # type: ignore

from .views import ListingViewSet

router = SimpleRouter()
router.register(r"", ListingViewSet, basename="listing")

urlpatterns = [
    path("", include(router.urls)),
]
