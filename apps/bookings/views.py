"""API views for the booking domain."""

from __future__ import annotations

import logging

from django.db.models import Q  # type: ignore
from rest_framework import mixins, permissions, status, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from apps.escrow.exceptions import InsufficientFundsError, PaymentError
from apps.escrow.payments import card_authorizer, wallet_authorizer
from apps.listings.models import Listing

from .exceptions import (
    BookingConflictError,
    BookingError,
    BookingNotEligibleError,
    CancellationNotAllowedError,
    InvalidTransitionError,
)
from .models import Booking
from .serializers import (
    BookingRequestSerializer,
    BookingSerializer,
    CancelBookingSerializer,
    PaymentMethodSerializer,
)
from .services import BookingService

logger = logging.getLogger(__name__)


def _error_response(exc: Exception) -> Response:
    """Translate booking and payment errors into API responses."""
    if isinstance(exc, BookingConflictError):
        return Response(
            {"detail": str(exc), "conflicts": [c.to_dict() for c in exc.conflicts]},
            status=status.HTTP_409_CONFLICT,
        )
    if isinstance(exc, InsufficientFundsError):
        return Response(
            {
                "detail": str(exc),
                "available": str(exc.available),
                "required": str(exc.required),
            },
            status=status.HTTP_402_PAYMENT_REQUIRED,
        )
    if isinstance(exc, PaymentError):
        return Response({"detail": str(exc)}, status=status.HTTP_402_PAYMENT_REQUIRED)
    if isinstance(exc, BookingNotEligibleError):
        return Response({"detail": str(exc)}, status=status.HTTP_403_FORBIDDEN)
    if isinstance(exc, (InvalidTransitionError, CancellationNotAllowedError)):
        return Response({"detail": str(exc)}, status=status.HTTP_409_CONFLICT)
    return Response({"detail": str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _authorizer(user, payment_method: str):
    if payment_method == "card":
        return card_authorizer(user.email)
    return wallet_authorizer(user)


class IsBookingStakeholder(permissions.BasePermission):
    """Guests, the listing's host and platform admins can access a booking."""

    def has_object_permission(self, request, view, obj: Booking):  # type: ignore
        user = request.user
        if not user.is_authenticated:
            return False
        if user.is_platform_admin():
            return True
        return obj.user_id == user.id or obj.listing.host_id == user.id


class BookingViewSet(mixins.ListModelMixin, mixins.RetrieveModelMixin, viewsets.GenericViewSet):
    """Bookings of the current user, as guest or as host.

    - `create` books (or reserves, with `draft`) one date or a series
    - `quote` prices a request and reports conflicts without writing
    - `pay` pays a reserved draft
    - `confirm` is the host accepting a pending request
    - `cancel` and `refund_quote` follow the listing's cancellation policy
    - `pending` lists the host's unanswered requests, most urgent first
    """

    queryset = Booking.objects.select_related("listing", "user", "listing__host").all()
    serializer_class = BookingSerializer
    permission_classes = [permissions.IsAuthenticated, IsBookingStakeholder]
    filterset_fields = ["status", "payment_status", "listing", "group_id"]

    def get_queryset(self):  # type: ignore
        user = self.request.user
        qs = super().get_queryset()
        if user.is_platform_admin():
            return qs
        return qs.filter(Q(user=user) | Q(listing__host=user))

    def get_serializer_class(self):  # type: ignore
        if self.action in ("create", "quote"):
            return BookingRequestSerializer
        if self.action == "cancel":
            return CancelBookingSerializer
        if self.action == "pay":
            return PaymentMethodSerializer
        return BookingSerializer

    def create(self, request, *args, **kwargs):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking_request = serializer.to_request(request.user)
        authorize = None if booking_request.draft else _authorizer(
            request.user, serializer.validated_data["payment_method"]
        )

        try:
            outcome = BookingService().create_booking(booking_request, authorize)
        except (BookingError, PaymentError) as exc:
            return _error_response(exc)

        data = {
            "bookings": BookingSerializer(outcome.bookings, many=True).data,
            "fees": outcome.fees.to_dict(),
            "group_id": outcome.group_id,
            "payment_reference": outcome.authorization.reference if outcome.authorization else None,
        }
        return Response(data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=["post"])
    def quote(self, request):  # type: ignore
        serializer = BookingRequestSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        booking_request = serializer.to_request(request.user)

        listing = Listing.objects.filter(pk=booking_request.listing_id).prefetch_related("add_ons").first()
        if listing is None:
            return Response({"detail": "Listing not found."}, status=status.HTTP_404_NOT_FOUND)

        service = BookingService()
        try:
            dates, fees = service.quote(listing, booking_request)
            check = service.check_request(listing, booking_request, dates)
        except BookingError as exc:
            return _error_response(exc)

        return Response(
            {
                "dates": dates,
                "fees": fees.quantized().to_dict(),
                "is_available": check.is_bookable,
                "conflicts": [c.to_dict() for c in check.conflicts],
            }
        )

    @action(detail=True, methods=["post"])
    def pay(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        if booking.user_id != request.user.id:
            return Response(status=status.HTTP_403_FORBIDDEN)
        serializer = PaymentMethodSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = BookingService().pay_reserved(
                booking.pk, _authorizer(request.user, serializer.validated_data["payment_method"])
            )
        except (BookingError, PaymentError) as exc:
            return _error_response(exc)

        return Response(
            {
                "bookings": BookingSerializer(outcome.bookings, many=True).data,
                "fees": outcome.fees.to_dict(),
                "payment_reference": outcome.authorization.reference,
            }
        )

    @action(detail=True, methods=["post"])
    def confirm(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        try:
            booking = BookingService().confirm_booking(booking.pk, request.user)
        except BookingError as exc:
            return _error_response(exc)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["post"])
    def cancel(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        serializer = CancelBookingSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            booking = BookingService().cancel_booking(booking.pk, request.user, serializer.validated_data["reason"])
        except BookingError as exc:
            return _error_response(exc)
        return Response(BookingSerializer(booking).data)

    @action(detail=True, methods=["get"], url_path="refund-quote")
    def refund_quote(self, request, pk=None):  # type: ignore
        booking: Booking = self.get_object()  # type: ignore
        service = BookingService()
        try:
            cancelled_by = service.cancelled_by(booking, request.user)
        except BookingError as exc:
            return _error_response(exc)
        return Response(service.refund_quote(booking, cancelled_by).to_dict())

    @action(detail=False, methods=["get"])
    def pending(self, request):  # type: ignore
        host_id = None if request.user.is_platform_admin() else request.user.id
        items = BookingService().pending_near_deadline(host_id)
        return Response(
            [
                {
                    "booking": BookingSerializer(item.booking).data,
                    "is_same_day": item.is_same_day,
                    "deadline_hours": item.deadline_hours,
                    "hours_remaining": item.hours_remaining,
                    "deadline_at": item.deadline_at,
                    "is_urgent": item.is_urgent,
                }
                for item in items
            ]
        )
