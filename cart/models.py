"""Database model backing the persisted cart."""

from django.db import models


class StoredCart(models.Model):
    """Serialized cart state under one storage key.

    ``payload`` keeps the client shape ``{"items": [...], "companyId": ...}``
    so every view of the same key reads exactly what another view wrote.
    """

    storage_key = models.CharField(max_length=191, unique=True)
    payload = models.JSONField(default=dict, blank=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        verbose_name = "Stored Cart"
        verbose_name_plural = "Stored Carts"

    def __str__(self):
        items = self.payload.get('items') if isinstance(self.payload, dict) else None
        return f"Cart {self.storage_key} ({len(items or [])} items)"
