"""Order submission pipeline.

A submission runs as an ordered list of stages. Each stage returns one of
three tagged results:

- ``Ok``: continue.
- ``FatalError``: stop; nothing after it runs. Only the stages before the
  order is written may return this.
- ``NonFatalWarning``: record the problem and continue.

Stages that need the backend id of the order are skipped when the id could
not be resolved, so a created order is never reported as failed.
"""

import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal

from core.exceptions import (
    FulfillmentError,
    IdentifierResolutionWarning,
    InsufficientStockError,
    NetworkError,
    NonFatalIntegrationError,
    UnexpectedShapeError,
    ValidationError,
)
from finance.payments import confirmation_payload
from invoices.attachments import InvoiceAttachmentManager
from products.stock import StockValidator

from .client import OrdersAPI, extract_order_code, extract_order_id
from .domain import Order, OrderStatus
from .selection import OrderSelection
from .status import OrderStatusMachine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Ok:
    value: object = None


@dataclass(frozen=True)
class FatalError:
    error: FulfillmentError


@dataclass(frozen=True)
class NonFatalWarning:
    error: FulfillmentError

    @property
    def message(self):
        return self.error.message


@dataclass(frozen=True)
class Stage:
    name: str
    run: object
    needs_order_id: bool = False


@dataclass
class PipelineReport:
    fatal: FatalError | None = None
    warnings: list = field(default_factory=list)
    completed: list = field(default_factory=list)
    skipped: list = field(default_factory=list)


class PipelineRunner:
    """Run stages in order; stop on the first fatal result."""

    def __init__(self, stages):
        self.stages = list(stages)

    async def run(self, ctx):
        report = PipelineReport()
        for stage in self.stages:
            if stage.needs_order_id and not ctx.order_id:
                logger.info('Skipping stage %s: order id unresolved', stage.name)
                report.skipped.append(stage.name)
                continue
            try:
                result = await stage.run(ctx)
            except FulfillmentError as exc:
                result = FatalError(exc)

            if isinstance(result, FatalError):
                logger.error('Stage %s failed: %s', stage.name, result.error.message)
                report.fatal = result
                break
            if isinstance(result, NonFatalWarning):
                logger.warning('Stage %s degraded: %s', stage.name, result.message)
                report.warnings.append(result)
            report.completed.append(stage.name)
        return report


@dataclass
class SubmissionRequest:
    """Everything one submission needs, from either entry path."""

    selection: OrderSelection
    company_id: str | None
    company: dict = field(default_factory=dict)
    customer_id: str | None = None
    customer: dict = field(default_factory=dict)
    description: str | None = None
    payment_amount: Decimal | None = None
    payment_method: str | None = None
    mark_as_sent: bool = False
    order_id: str | None = None

    @property
    def is_edit(self):
        return bool(self.order_id)


@dataclass
class SubmissionContext:
    request: SubmissionRequest
    order_id: str | None = None
    order_code: str | None = None
    write_response: object = None
    confirm_response: object = None
    order: Order | None = None
    invoice: object = None


@dataclass
class SubmissionOutcome:
    order: Order | None
    order_id: str | None
    order_code: str | None
    created: bool
    warnings: list = field(default_factory=list)
    invoice: object = None

    @property
    def warning_messages(self):
        return [w.message for w in self.warnings]

    @property
    def summary(self):
        head = 'Order created' if self.created else 'Order updated'
        if not self.warnings:
            return f'{head}.'
        return f"{head}, but {'; '.join(self.warning_messages)}"


class OrderSubmission:
    """Turns a selection into a persisted, confirmed and invoiced order.

    Usage::

        async with BackendClient.from_settings(token) as backend:
            outcome = await OrderSubmission(backend).submit(request)

    Fatal problems (validation, stock) are raised; everything that goes wrong
    after the write ends up in ``outcome.warnings``.
    """

    def __init__(self, backend, orders=None, stock=None, attachments=None, status_machine=None):
        self.backend = backend
        self.orders = orders or OrdersAPI(backend)
        self.stock = stock or StockValidator(backend)
        self.attachments = attachments or InvoiceAttachmentManager(backend)
        self.status_machine = status_machine or OrderStatusMachine(backend, orders=self.orders)
        self.runner = PipelineRunner([
            Stage('preflight', self.preflight),
            Stage('stock', self.check_stock),
            Stage('write', self.write),
            Stage('identify', self.identify),
            Stage('confirm', self.confirm, needs_order_id=True),
            Stage('status', self.mark_sent, needs_order_id=True),
            Stage('fetch', self.fetch, needs_order_id=True),
            Stage('invoice', self.attach_invoice, needs_order_id=True),
        ])

    async def submit(self, request):
        ctx = SubmissionContext(request=request)
        report = await self.runner.run(ctx)
        if report.fatal is not None:
            raise report.fatal.error

        logger.info('Order %s %s with %d warning(s)', ctx.order_id or ctx.order_code,
                    'updated' if request.is_edit else 'created', len(report.warnings))
        return SubmissionOutcome(
            order=ctx.order,
            order_id=ctx.order_id,
            order_code=ctx.order_code or (ctx.order.order_code if ctx.order else None),
            created=not request.is_edit,
            warnings=[w.error for w in report.warnings],
            invoice=ctx.invoice,
        )

    async def preflight(self, ctx):
        request = ctx.request
        if not request.company_id:
            return FatalError(ValidationError('No company selected for this order.'))
        if not request.selection.lines:
            return FatalError(ValidationError('Select at least one product.'))

        for line in request.selection.lines:
            qty = line.quantity or 1
            if qty < 1:
                return FatalError(ValidationError(f'Quantity for {line.product.name} must be at least 1.'))
            stock = line.product.stock
            if stock is not None and qty > stock:
                return FatalError(ValidationError(
                    f'Quantity for {line.product.name} exceeds available stock ({qty} > {stock}).'
                ))
        request.selection.lines = [
            replace(line, quantity=line.quantity or 1) for line in request.selection.lines
        ]
        return Ok()

    async def check_stock(self, ctx):
        lines = ctx.request.selection.lines
        names = {line.product_id: line.product.name or line.product_id for line in lines}
        try:
            results = await self.stock.ensure_available(
                [(line.product_id, line.quantity) for line in lines], names=names,
            )
        except InsufficientStockError as exc:
            return FatalError(exc)
        if results is None:
            return NonFatalWarning(NonFatalIntegrationError('stock', 'stock could not be verified'))
        return Ok(results)

    def build_payload(self, request):
        payload = {
            'companyId': request.company_id,
            'items': [{'productId': ln.product_id, 'quantity': ln.quantity} for ln in request.selection.lines],
        }
        description = (request.description or '').strip()
        if description:
            payload['description'] = description
        if request.customer_id:
            payload['customerId'] = request.customer_id
        if request.payment_method:
            payload['paymentMethod'] = request.payment_method
        return payload

    async def write(self, ctx):
        request = ctx.request
        payload = self.build_payload(request)
        try:
            if request.is_edit:
                ctx.write_response = await self.orders.update(request.order_id, payload)
            else:
                ctx.write_response = await self.orders.create(payload)
        except NetworkError as exc:
            return FatalError(exc)
        return Ok(ctx.write_response)

    async def identify(self, ctx):
        request = ctx.request
        ctx.order_code = extract_order_code(ctx.write_response)
        ctx.order_id = extract_order_id(ctx.write_response) or request.order_id
        if ctx.order_id:
            return Ok(ctx.order_id)

        if ctx.order_code:
            try:
                ctx.order_id = await self.orders.find_by_code(ctx.order_code, company_id=request.company_id)
            except (NetworkError, UnexpectedShapeError) as exc:
                logger.warning('Lookup by order code %s failed: %s', ctx.order_code, exc)
        if ctx.order_id:
            logger.info('Resolved order %s from code %s', ctx.order_id, ctx.order_code)
            return Ok(ctx.order_id)
        return NonFatalWarning(IdentifierResolutionWarning(
            ctx.order_code,
            f'the order id could not be resolved (code {ctx.order_code or "unknown"}); invoice not attached',
        ))

    async def confirm(self, ctx):
        request = ctx.request
        payload = confirmation_payload(request.payment_amount, request.payment_method)
        try:
            response = await self.orders.confirm(ctx.order_id, payload)
        except NetworkError as exc:
            return NonFatalWarning(NonFatalIntegrationError('confirm', f'payment confirmation failed: {exc.message}', exc))
        ctx.confirm_response = response.get('data', response) if isinstance(response, dict) and isinstance(response.get('data'), dict) else response
        return Ok(ctx.confirm_response)

    async def mark_sent(self, ctx):
        if not ctx.request.mark_as_sent:
            return Ok()
        order = Order(id=ctx.order_id, order_code=ctx.order_code)
        try:
            await self.status_machine.set_status(order, OrderStatus.SENT, auto_invoice=False)
        except NetworkError as exc:
            return NonFatalWarning(NonFatalIntegrationError('status', f'marking as sent failed: {exc.message}', exc))
        return Ok()

    async def fetch(self, ctx):
        try:
            ctx.order = Order.from_payload(await self.orders.get(ctx.order_id))
            return Ok(ctx.order)
        except (NetworkError, UnexpectedShapeError) as exc:
            logger.warning('Could not fetch order %s after writing it: %s', ctx.order_id, exc)

        for candidate in (ctx.confirm_response, ctx.write_response):
            order = Order.from_payload(candidate)
            if order.looks_like_order():
                order.id = order.id or ctx.order_id
                ctx.order = order
                return Ok(order)
        return NonFatalWarning(NonFatalIntegrationError('fetch', 'the full order could not be loaded; invoice not attached'))

    async def attach_invoice(self, ctx):
        if ctx.order is None:
            return Ok()
        request = ctx.request
        ctx.order.id = ctx.order.id or ctx.order_id
        try:
            ctx.invoice = await self.attachments.attach(
                ctx.order,
                session_company=request.company,
                customer=request.customer,
                selection=request.selection,
            )
        except FulfillmentError as exc:
            return NonFatalWarning(NonFatalIntegrationError('invoice', f'invoice attach failed: {exc.message}', exc))
        return Ok(ctx.invoice)
