"""Serializers for user-related API endpoints."""

from __future__ import annotations

from typing import Any

from django.contrib.auth import get_user_model  # type: ignore
from rest_framework import serializers  # type: ignore

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    """Profile of the authenticated user, including what booking eligibility looks at."""

    class Meta:
        model = User
        fields = [
            "id",
            "email",
            "username",
            "first_name",
            "last_name",
            "phone",
            "role",
            "is_email_verified",
            "is_phone_verified",
            "is_identity_verified",
            "wallet_balance",
            "created_at",
        ]
        read_only_fields = fields


class LoginSerializer(serializers.Serializer):
    login = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:  # type: ignore
        login = attrs.get("login", "")
        password = attrs.get("password", "")

        # Find user by email or phone
        try:
            if "@" in login:
                user = User.objects.get(email__iexact=login)
            else:
                user = User.objects.get(phone=User.objects.normalize_phone(login))
        except User.DoesNotExist:
            raise serializers.ValidationError({"login": "Invalid login or password."})

        if not user.is_active or not user.check_password(password):
            raise serializers.ValidationError({"login": "Invalid login or password."})

        attrs["user"] = user
        return attrs
