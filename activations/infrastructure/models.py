"""
Activation Django ORM model.

This is the infrastructure layer model for activations.
Domain entities are in activations.domain.activation.
"""
import uuid

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q


class Activation(models.Model):
    """
    Binding of a license to one normalized domain.

    Rows are soft-deactivated, never deleted.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    license = models.ForeignKey(
        "licenses.License",
        on_delete=models.CASCADE,
        related_name="activations",
    )
    domain = models.CharField(max_length=253, help_text="Normalized hostname")
    ip_hash = models.CharField(max_length=64, help_text="HMAC-SHA256 of the client IP")
    user_agent_hash = models.CharField(max_length=64, null=True, blank=True)
    activated_at = models.DateTimeField()
    last_seen_at = models.DateTimeField()
    validation_count = models.PositiveIntegerField(default=0)
    is_active = models.BooleanField(default=True, db_index=True)
    deactivated_at = models.DateTimeField(null=True, blank=True)
    deactivated_reason = models.CharField(max_length=255, null=True, blank=True)

    class Meta:
        db_table = "activations"
        ordering = ["-activated_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["license", "domain"],
                condition=Q(is_active=True),
                name="activations_one_active_per_domain",
            ),
        ]
        indexes = [
            models.Index(fields=["license", "domain"]),
            models.Index(fields=["license", "is_active"]),
        ]

    def clean(self):
        """Validate activation fields."""
        if not self.domain or len(self.domain.strip()) == 0:
            raise ValidationError("Domain cannot be empty")
        if self.domain != self.domain.lower():
            raise ValidationError("Domain must be normalized")

    def __str__(self):
        return f"{self.license_id} @ {self.domain}"
