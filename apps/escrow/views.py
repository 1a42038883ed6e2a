"""API views for escrow settlement.

Guests and hosts can read the ledger rows of their own bookings; releases,
caution returns, dispute decisions and platform financials are restricted
to platform administrators.
"""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from django.shortcuts import get_object_or_404  # type: ignore
from rest_framework import permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.bookings.models import Booking

from .ledger import EscrowLedger
from .models import EscrowTransaction
from .scheduler import ReleaseScheduler
from .serializers import (
    DisputeResolutionSerializer,
    EscrowTransactionSerializer,
    UpcomingReleaseSerializer,
)

logger = logging.getLogger(__name__)


class IsPlatformAdmin(permissions.BasePermission):
    def has_permission(self, request, view) -> bool:  # type: ignore
        user = request.user
        return bool(user and user.is_authenticated and user.is_platform_admin())


class EscrowTransactionViewSet(viewsets.ReadOnlyModelViewSet):
    """Ledger rows; admins see everything, other users the rows of their bookings."""

    queryset = EscrowTransaction.objects.select_related("booking").all()
    serializer_class = EscrowTransactionSerializer
    permission_classes = [permissions.IsAuthenticated]
    filterset_fields = ["type", "status", "booking"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if user.is_platform_admin():
            return qs
        return qs.filter(Q(booking__user=user) | Q(booking__listing__host=user)).distinct()


class EscrowAdminViewSet(viewsets.ViewSet):
    """Escrow operations for platform administrators.

    Detail routes take the booking id.
    """

    permission_classes = [IsPlatformAdmin]

    def _booking(self, pk) -> Booking:
        return get_object_or_404(Booking.objects.select_related("listing", "listing__host"), pk=pk)

    @action(detail=False, methods=["get"])
    def financials(self, request):  # type: ignore
        return Response(EscrowLedger().get_platform_financials().to_dict())

    @action(detail=False, methods=["get"], url_path="upcoming-releases")
    def upcoming_releases(self, request):  # type: ignore
        releases = EscrowLedger().get_upcoming_releases()
        return Response(UpcomingReleaseSerializer(releases, many=True).data)

    @action(detail=False, methods=["post"], url_path="release-check")
    def release_check(self, request):  # type: ignore
        released = ReleaseScheduler().trigger_check()
        logger.info(f"Manual release check by {request.user.pk} released {released} booking(s)")
        return Response({"released": released})

    @action(detail=True, methods=["post"])
    def release(self, request, pk=None):  # type: ignore
        booking = self._booking(pk)
        result = EscrowLedger().release_to_host(booking, booking.listing.host_id)
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_409_CONFLICT)
        return Response({"transaction_id": result.transaction_id, "amount": str(booking.net_payout)})

    @action(detail=True, methods=["post"], url_path="return-caution")
    def return_caution(self, request, pk=None):  # type: ignore
        booking = self._booking(pk)
        result = EscrowLedger().return_caution_fee(booking, booking.user_id)
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_409_CONFLICT)
        return Response({"transaction_id": result.transaction_id, "amount": str(booking.caution_fee)})

    @action(detail=True, methods=["post"], url_path="resolve-dispute")
    def resolve_dispute(self, request, pk=None):  # type: ignore
        booking = self._booking(pk)
        serializer = DisputeResolutionSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = EscrowLedger().resolve_dispute(
            booking,
            serializer.validated_data["decision"],
            serializer.validated_data["notes"],
        )
        if not result.success:
            return Response({"detail": result.error}, status=status.HTTP_409_CONFLICT)
        booking.refresh_from_db()
        return Response(
            {
                "transaction_ids": result.transaction_ids,
                "status": booking.status,
                "payment_status": booking.payment_status,
            }
        )
