"""
Error taxonomy for the payment flow and proposal features
"""
from typing import Iterable, Optional


class PaymentFlowError(Exception):
    """Base class for failures in order creation or reconciliation."""


class ConfigurationError(PaymentFlowError):
    """Required credentials are missing. Fatal, never retried."""


class UpstreamRequestError(PaymentFlowError):
    """The payment provider answered with a non-success response or was unreachable."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class ValidationError(PaymentFlowError):
    """Required request parameters are missing or malformed."""

    def __init__(self, message: str, fields: Iterable[str] = ()):
        super().__init__(message)
        self.fields = list(fields)


class StoreWriteError(PaymentFlowError):
    """The subscription upsert failed; nothing was written."""


class ProposalError(Exception):
    """Base class for proposal feature errors."""


class QuotaExceededError(ProposalError):
    pass


class ExportNotAllowedError(ProposalError):
    pass
