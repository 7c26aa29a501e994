"""
License Django ORM model.

This is the infrastructure layer model for licenses.
Domain entities are in licenses.domain.license.
"""
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import F, Q


class License(models.Model):
    """
    One entitlement grant, identified by the hash of its key.

    The plaintext key is never stored.
    """

    STATUS_CHOICES = [
        ("active", "Active"),
        ("inactive", "Inactive"),
        ("suspended", "Suspended"),
        ("revoked", "Revoked"),
    ]

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    owner_id = models.CharField(max_length=64, db_index=True)
    product_id = models.CharField(max_length=64, db_index=True)
    order_ref = models.CharField(max_length=64, null=True, blank=True)
    key_hash = models.CharField(
        max_length=64, unique=True, help_text="HMAC-SHA256 of the key with the key salt"
    )
    verification_hash = models.CharField(
        max_length=64, help_text="HMAC-SHA256 of key_hash with the server secret"
    )
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    expires_at = models.DateTimeField(null=True, blank=True)
    grace_until = models.DateTimeField(null=True, blank=True)
    max_activations = models.PositiveIntegerField(
        null=True, blank=True, help_text="Empty means unlimited"
    )
    failed_attempts = models.PositiveIntegerField(default=0)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = "licenses"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["owner_id", "product_id"]),
            models.Index(fields=["status"]),
            models.Index(fields=["expires_at"]),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(grace_until__isnull=True) | Q(grace_until__gte=F("expires_at")),
                name="licenses_grace_after_expiry",
            ),
        ]

    def clean(self):
        """Validate license fields."""
        if self.grace_until is not None:
            if self.expires_at is None:
                raise ValidationError("Grace period requires an expiration date")
            if self.grace_until < self.expires_at:
                raise ValidationError("Grace period cannot end before expiration")
        if self.max_activations == 0:
            self.max_activations = None

    def save(self, *args, **kwargs):
        """Save license with validation."""
        self.full_clean()
        super().save(*args, **kwargs)

    def __str__(self):
        return f"{self.key_hash[:8]} ({self.product_id})"
