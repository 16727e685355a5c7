"""Typed exception hierarchy for ledger and market data failures.

Every error carries an :class:`ErrorKind` so the API layer can map it to a
precise response without inspecting messages, plus the acting user id and
operation name when the failure happened inside a ledger operation.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Broad failure categories."""

    validation = "validation"
    business_rule = "business_rule"
    not_found = "not_found"
    authorization = "authorization"
    conflict = "conflict"
    upstream = "upstream"
    configuration = "configuration"


class AppError(Exception):
    """Base exception for all application errors.

    Attributes:
        kind: Failure category.
        code: Stable machine-readable identifier for the response body.
        status_code: HTTP status the API layer responds with.
        retryable: Whether the caller may safely retry the same request.
        user_id: Acting user, when known.
        operation: Ledger operation name (``"buy"``, ``"top_up"``...), when known.
    """

    kind: ErrorKind = ErrorKind.validation
    code: str = "error"
    status_code: int = 400
    retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        user_id: str | None = None,
        operation: str | None = None,
    ):
        self.message = message
        self.user_id = user_id
        self.operation = operation
        super().__init__(message)


class LedgerError(AppError):
    """Base class for errors raised by ledger operations."""

    pass


class ValidationError(LedgerError):
    """A required field is missing or malformed."""

    code = "validation_error"

    def __init__(self, message: str, *, field: str | None = None, **kwargs):
        self.field = field
        super().__init__(message, **kwargs)


class InvalidAmountError(LedgerError):
    """A credit, debit or top-up amount is zero, negative or not finite."""

    code = "invalid_amount"


class InsufficientFundsError(LedgerError):
    """The account balance does not cover the requested debit."""

    kind = ErrorKind.business_rule
    code = "insufficient_funds"


class NoSuchHoldingError(LedgerError):
    """The user holds no position in the requested symbol."""

    kind = ErrorKind.business_rule
    code = "no_such_holding"


class InsufficientHoldingsError(LedgerError):
    """The sell quantity exceeds the held quantity."""

    kind = ErrorKind.business_rule
    code = "insufficient_holdings"


class NotFoundError(LedgerError):
    """The referenced user does not exist."""

    kind = ErrorKind.not_found
    code = "not_found"


class AuthorizationError(LedgerError):
    """The caller may not perform the request."""

    kind = ErrorKind.authorization
    code = "forbidden"
    status_code = 403


class AuthenticationRequiredError(AuthorizationError):
    """No caller identity was resolved upstream."""

    code = "unauthenticated"
    status_code = 401


class LedgerBusyError(LedgerError):
    """The user's ledger could not be locked or written in time.

    Raised on lock acquisition timeout, storage lock timeout, or after the
    optimistic retry budget is exhausted.  State is unchanged, so retrying
    the same request is safe.
    """

    kind = ErrorKind.conflict
    code = "ledger_busy"
    status_code = 503
    retryable = True


class UpstreamUnavailableError(AppError):
    """The market data provider is unconfigured or failing.

    Kept outside :class:`LedgerError` so callers can tell upstream failures
    apart from ledger failures.
    """

    kind = ErrorKind.upstream
    code = "upstream_unavailable"
    status_code = 502

    def __init__(
        self,
        message: str,
        *,
        provider_name: str = "",
        retryable: bool = False,
        configuration: bool = False,
        **kwargs,
    ):
        self.provider_name = provider_name
        self.retryable = retryable and not configuration
        if configuration:
            self.kind = ErrorKind.configuration
            self.code = "provider_not_configured"
            self.status_code = 503
        super().__init__(message, **kwargs)
