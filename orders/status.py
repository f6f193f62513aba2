"""Order status transitions.

The new status is always written first, then ``order_status_changed`` is
sent. When the order moved to ``sent`` and has no invoice yet, the invoicing
receiver attaches one. An invoice failure never undoes the status write.
"""

import logging
from dataclasses import dataclass, field

from core.exceptions import NonFatalIntegrationError

from .client import OrdersAPI
from .domain import OrderStatus
from .signals import order_status_changed

logger = logging.getLogger(__name__)


@dataclass
class StatusChange:
    order: object
    previous: OrderStatus | None
    status: OrderStatus
    invoice: object = None
    warnings: list = field(default_factory=list)


class OrderStatusMachine:
    """``received -> in_process -> sent``; backwards moves are written unguarded."""

    def __init__(self, backend, orders=None):
        self.backend = backend
        self.orders = orders or OrdersAPI(backend)

    async def set_status(self, order, next_status, auto_invoice=True, session_company=None):
        """Persist ``next_status`` for ``order`` and run the follow-ups.

        Raises :class:`core.exceptions.NetworkError` when the status itself
        could not be written; invoice problems come back as warnings.
        """
        status = OrderStatus.parse(next_status)
        if status is None:
            raise ValueError(f'Unknown order status: {next_status!r}')

        previous = order.status
        if previous is not None and not previous.can_move_to(status):
            logger.warning('Order %s moved backwards %s -> %s', order.id, previous.value, status.value)

        await self.orders.update_status(order.id, status)
        order.status = status
        change = StatusChange(order=order, previous=previous, status=status)
        logger.info('Order %s status set to %s', order.id, status.value)

        responses = await order_status_changed.asend_robust(
            sender=self.__class__,
            order=order,
            status=status,
            previous=previous,
            backend=self.backend,
            session_company=session_company,
            auto_invoice=auto_invoice,
        )
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.warning('Auto invoice for order %s failed: %s', order.id, response)
                message = getattr(response, 'message', None) or str(response)
                change.warnings.append(NonFatalIntegrationError('invoice', f'invoice attach failed: {message}', response))
            elif response is not None:
                change.invoice = response
        return change
