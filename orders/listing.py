"""Local filtering of fetched orders (code, status, date range)."""

from datetime import date, datetime, time, timezone as dt_timezone

from django.utils import timezone
from django.utils.dateparse import parse_date, parse_datetime

from .domain import OrderStatus


def _as_datetime(value):
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, date):
        dt = datetime.combine(value, time.min)
    elif isinstance(value, str) and value:
        try:
            dt = parse_datetime(value)
            if dt is None:
                d = parse_date(value[:10])
                dt = datetime.combine(d, time.min) if d else None
        except ValueError:
            dt = None
    else:
        dt = None
    if dt is not None and timezone.is_naive(dt):
        dt = timezone.make_aware(dt, timezone.get_default_timezone())
    return dt


def parse_day(value):
    """Day named by a ``dateFrom``/``dateTo`` filter, or ``None`` when unreadable."""
    if isinstance(value, str):
        try:
            value = parse_date(value) or parse_datetime(value)
        except ValueError:
            return None
    if isinstance(value, datetime):
        value = value.date()
    return value if isinstance(value, date) else None


def _bound(value, end_of_day=False):
    day = parse_day(value)
    if day is None:
        return None
    moment = datetime.combine(day, time.max if end_of_day else time.min)
    return timezone.make_aware(moment, timezone.get_default_timezone())


def filter_orders(orders, code=None, status=None, date_from=None, date_to=None):
    """Filter :class:`orders.domain.Order` objects, newest first.

    ``code`` is a case-insensitive substring of the order code, ``date_to``
    includes the whole day. Orders without a readable date are kept unless a
    date bound is given.
    """
    needle = (code or '').strip().lower()
    wanted = OrderStatus.parse(status) if status else None
    start = _bound(date_from)
    end = _bound(date_to, end_of_day=True)

    result = []
    for order in orders:
        if needle and needle not in (order.order_code or '').lower():
            continue
        if wanted is not None and order.status != wanted:
            continue
        created = _as_datetime(order.created_at)
        if (start or end) and created is None:
            continue
        if start and created < start:
            continue
        if end and created > end:
            continue
        result.append(order)

    epoch = datetime(1970, 1, 1, tzinfo=dt_timezone.utc)
    result.sort(key=lambda o: _as_datetime(o.created_at) or epoch, reverse=True)
    return result
