"""Pool error classes.

Every failure of a pool operation raises a subclass of AMMError naming the
precondition that failed. The ``code`` attribute is a stable identifier used
in logs and HTTP error bodies.
"""


class AMMError(Exception):
    """Base error for pool operations."""

    code = "amm_error"


class Expired(AMMError):
    """The operation's deadline is earlier than the current time."""

    code = "expired"


class InvalidInput(AMMError):
    """Zero, identical or mismatched arguments."""

    code = "invalid_input"


class IdenticalAssets(InvalidInput):
    """Both sides of a pair name the same asset."""

    code = "identical_assets"


class InvalidAmount(InvalidInput):
    """An amount is zero or would mint/return nothing."""

    code = "invalid_amount"


class InvalidRoute(InvalidInput):
    """Swap route is not exactly [asset_in, asset_out]."""

    code = "invalid_route"


class SlippageExceeded(AMMError):
    """A resolved amount is below the caller's minimum."""

    code = "slippage_exceeded"


class InsufficientBalance(AMMError):
    """Caller holds less liquidity than it asked to burn."""

    code = "insufficient_balance"


class ZeroReserves(AMMError):
    """A price was requested from an uninitialized pool."""

    code = "zero_reserves"


class TransferFailed(AMMError):
    """The token collaborator refused a debit or credit."""

    code = "transfer_failed"


class ReentrantCall(AMMError):
    """A guarded operation was entered while another one was running."""

    code = "reentrant_call"


class Overflow(AMMError, ArithmeticError):
    """Arithmetic exceeded a fixed-width bound."""

    code = "overflow"
