"""Listing API views."""

from __future__ import annotations

from datetime import date, timedelta

from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.services import BookingService

from .models import Listing
from .serializers import DateAvailabilitySerializer, ListingSerializer

MAX_CALENDAR_DAYS = 62


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


class ListingViewSet(viewsets.ReadOnlyModelViewSet):
    """Live listings with pricing terms and per-date availability.

    - `availability` classifies one date (`?date=`) or a range (`?start=&end=`)
    """

    serializer_class = ListingSerializer
    permission_classes = [permissions.AllowAny]
    filterset_fields = ["price_unit", "host"]

    def get_queryset(self):  # type: ignore
        return Listing.objects.filter(status=Listing.Status.LIVE).prefetch_related("add_ons")

    @action(detail=True, methods=["get"])
    def availability(self, request, pk=None):  # type: ignore
        listing = self.get_object()
        single = request.query_params.get("date")
        start = _parse_date(single or request.query_params.get("start"))
        end = _parse_date(request.query_params.get("end")) if not single else start

        if start is None or end is None:
            return Response(
                {"detail": "Pass date=YYYY-MM-DD, or start and end."},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if end < start or (end - start).days >= MAX_CALENDAR_DAYS:
            return Response(
                {"detail": f"end must be on or after start and at most {MAX_CALENDAR_DAYS} days later."},
                status=status.HTTP_400_BAD_REQUEST,
            )

        service = BookingService()
        days = [start + timedelta(days=i) for i in range((end - start).days + 1)]
        result = [service.date_availability(listing, day) for day in days]
        serializer = DateAvailabilitySerializer(result, many=True)
        if single:
            return Response(serializer.data[0])
        return Response({"listing_id": listing.pk, "dates": serializer.data})
