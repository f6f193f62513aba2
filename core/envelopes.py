"""Response envelope parsing.

The backend is inconsistent about wrapping: a single entity may arrive bare
or as ``{"data": {...}}`` (sometimes nested twice), and lists may arrive bare,
as ``{"data": [...], "meta": {...}}`` or as ``{"data": {"data": [...]}}``.
These helpers unwrap once, in one place, and raise
:class:`UnexpectedShapeError` when the expected data is not there.
"""

from dataclasses import dataclass, field

from .exceptions import UnexpectedShapeError

_MAX_DEPTH = 3


def unwrap_entity(payload, required=False):
    """Return the entity dict inside ``payload``.

    A dict whose only meaningful content is ``data`` is unwrapped repeatedly.
    Returns ``None`` for empty payloads unless ``required`` is set.
    """
    current = payload
    for _ in range(_MAX_DEPTH):
        if isinstance(current, dict) and isinstance(current.get('data'), dict) and not _looks_like_entity(current):
            current = current['data']
            continue
        break
    if isinstance(current, dict) and current:
        return current
    if required:
        raise UnexpectedShapeError(f'Expected an object, got {type(payload).__name__}.')
    return None


def _looks_like_entity(obj):
    return any(key in obj for key in ('id', '_id', 'orderCode'))


@dataclass
class Page:
    """One page of a paginated list."""

    items: list
    meta: dict = field(default_factory=dict)

    @property
    def total_pages(self):
        try:
            return max(1, int(self.meta.get('totalPages') or 1))
        except (TypeError, ValueError):
            return 1

    @property
    def total(self):
        try:
            return int(self.meta.get('total'))
        except (TypeError, ValueError):
            return len(self.items)


def unwrap_page(payload):
    """Return a :class:`Page` from any of the list envelopes the backend uses."""
    if isinstance(payload, list):
        return Page(items=payload)
    if isinstance(payload, dict):
        data = payload.get('data')
        meta = payload.get('meta') if isinstance(payload.get('meta'), dict) else {}
        if isinstance(data, list):
            return Page(items=data, meta=meta)
        if isinstance(data, dict):
            inner = unwrap_page(data)
            return Page(items=inner.items, meta=inner.meta or meta)
        if isinstance(payload.get('items'), list):
            return Page(items=payload['items'], meta=meta)
    raise UnexpectedShapeError('Expected a list or a {data: [...]} envelope.')


def unwrap_list(payload):
    """Return the list inside ``payload``, ignoring pagination metadata."""
    return unwrap_page(payload).items


def first_present(source, *keys, default=None):
    """Return the first value in ``source`` under ``keys`` that is not None/empty."""
    if not isinstance(source, dict):
        return default
    for key in keys:
        value = source.get(key)
        if value is not None and value != '':
            return value
    return default
