"""Signals that keep every open view of a cart in sync."""

from django.db.models.signals import post_save
from django.dispatch import Signal, receiver

from .models import StoredCart

# Sent with: storage_key, payload, origin (the store that wrote it, if any).
cart_changed = Signal()


@receiver(post_save, sender=StoredCart)
def broadcast_cart_change(sender, instance, **kwargs):
    """Re-broadcast a stored cart write to the stores bound to its key."""
    cart_changed.send(
        sender=StoredCart,
        storage_key=instance.storage_key,
        payload=instance.payload,
        origin=getattr(instance, '_origin', None),
    )
