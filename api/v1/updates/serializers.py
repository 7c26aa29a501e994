"""
Serializers for the updates API endpoints.
"""

from rest_framework import serializers

from api.v1.license.serializers import LicenseRequestSerializer


class DownloadTokenRequestSerializer(LicenseRequestSerializer):
    """Serializer for download token request."""

    release_id = serializers.CharField(required=True, max_length=128)


class DownloadTokenResponseSerializer(serializers.Serializer):
    """Serializer for DownloadTokenResponseDTO."""

    success = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    status = serializers.CharField(allow_null=True)
    url = serializers.CharField(allow_null=True)
    expires_at = serializers.DateTimeField(allow_null=True)
    release_id = serializers.CharField(allow_null=True)
    size = serializers.IntegerField(allow_null=True)


class DownloadQuerySerializer(serializers.Serializer):
    """Query parameters of a signed download link."""

    license_id = serializers.CharField(required=True, max_length=64)
    release_id = serializers.CharField(required=True, max_length=128)
    expires = serializers.CharField(required=True, max_length=20)
    sig = serializers.CharField(required=True, max_length=128)


class UpdateCheckRequestSerializer(LicenseRequestSerializer):
    """Serializer for update check request."""

    slug = serializers.CharField(required=True, max_length=128, trim_whitespace=True)
    version = serializers.RegexField(
        r"^[0-9A-Za-z][0-9A-Za-z.+-]{0,63}$", required=True, max_length=64
    )


class UpdateCheckResponseSerializer(serializers.Serializer):
    """Serializer for UpdateCheckResponseDTO."""

    success = serializers.BooleanField()
    reason = serializers.CharField(allow_null=True)
    status = serializers.CharField(allow_null=True)
    latest_version = serializers.CharField(allow_null=True)
    new_version = serializers.CharField(allow_null=True)
    url = serializers.CharField(allow_null=True)
    expires_at = serializers.DateTimeField(allow_null=True)
    release_id = serializers.CharField(allow_null=True)
    size = serializers.IntegerField(allow_null=True)
