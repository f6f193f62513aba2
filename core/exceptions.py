"""Error taxonomy shared by the cart, stock, order and invoice apps.

Fatal errors (``ValidationError``, ``InsufficientStockError``) stop a
submission before anything is written to the backend. The remaining errors
describe failures of individual remote calls; whether they are fatal is
decided by the pipeline stage that hit them.
"""


class FulfillmentError(Exception):
    """Base class for every error raised by the fulfillment apps."""

    default_message = 'Order fulfillment failed.'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(FulfillmentError):
    """Local input problem: no items, missing company, bad quantity."""

    default_message = 'Invalid order input.'


class InsufficientStockError(FulfillmentError):
    """One or more lines ask for more units than are available.

    ``shortages`` holds ``(name, requested, available)`` tuples; ``available``
    is ``None`` when the server did not report a figure.
    """

    default_message = 'Insufficient stock.'

    def __init__(self, shortages, message=None):
        self.shortages = list(shortages)
        if message is None:
            details = '; '.join(
                f"{name}: requested {requested}, available {'N/A' if available is None else available}"
                for name, requested, available in self.shortages
            )
            message = f'Insufficient stock: {details}' if details else self.default_message
        super().__init__(message)


class NetworkError(FulfillmentError):
    """A backend call failed in transport or answered with an error status."""

    default_message = 'Backend request failed.'

    def __init__(self, message=None, status_code=None, payload=None):
        self.status_code = status_code
        self.payload = payload
        super().__init__(message)


class UnexpectedShapeError(FulfillmentError):
    """A backend response did not contain the data its endpoint promises."""

    default_message = 'Unexpected response shape from backend.'


class IdentifierResolutionWarning(FulfillmentError):
    """The order was written but its id could not be determined."""

    default_message = 'Order created, but its identifier could not be resolved.'

    def __init__(self, order_code=None, message=None):
        self.order_code = order_code
        super().__init__(message)


class NonFatalIntegrationError(FulfillmentError):
    """A follow-up call (confirm, status, invoice) failed after the order was written."""

    default_message = 'A follow-up step failed.'

    def __init__(self, stage, message=None, cause=None):
        self.stage = stage
        self.cause = cause
        super().__init__(message)
