"""User API views."""

from __future__ import annotations

from rest_framework import permissions, viewsets  # type: ignore
from rest_framework.decorators import action  # type: ignore
from rest_framework.response import Response  # type: ignore

from .serializers import UserSerializer


class UserViewSet(viewsets.GenericViewSet):
    """Current user's profile.

    - `me` returns the authenticated user with verification flags and wallet balance
    """

    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    @action(detail=False, methods=["get"])
    def me(self, request):
        serializer = UserSerializer(request.user)
        return Response(serializer.data)
