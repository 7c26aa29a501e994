"""
Serializers for the license API endpoints.
"""

from rest_framework import serializers


class LicenseRequestSerializer(serializers.Serializer):
    """Fields shared by every license endpoint."""

    license_key = serializers.CharField(required=True, max_length=64, trim_whitespace=True)
    domain = serializers.CharField(required=True, max_length=2048, trim_whitespace=True)


class ActivateRequestSerializer(LicenseRequestSerializer):
    """Serializer for activate request."""


class ValidateRequestSerializer(LicenseRequestSerializer):
    """Serializer for heartbeat validation request."""


class DeactivateRequestSerializer(LicenseRequestSerializer):
    """Serializer for deactivate request."""

    reason = serializers.CharField(required=False, allow_blank=True, max_length=255)


class ActivateResponseSerializer(serializers.Serializer):
    """Serializer for ActivateDomainResponseDTO."""

    success = serializers.BooleanField()
    status = serializers.CharField(allow_null=True)
    reason = serializers.CharField(allow_null=True)
    expires_at = serializers.DateTimeField(allow_null=True)
    remaining_activations = serializers.IntegerField(allow_null=True)
    activation_id = serializers.UUIDField(allow_null=True)


class ValidateResponseSerializer(serializers.Serializer):
    """Serializer for HeartbeatResponseDTO."""

    success = serializers.BooleanField()
    status = serializers.CharField(allow_null=True)
    reason = serializers.CharField(allow_null=True)
    expires_at = serializers.DateTimeField(allow_null=True)
    grace_until = serializers.DateTimeField(allow_null=True)


class DeactivateResponseSerializer(serializers.Serializer):
    """Serializer for DeactivateDomainResponseDTO."""

    success = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    remaining_activations = serializers.IntegerField(allow_null=True)
