"""Exceptions raised by zakaatbasket."""

from typing import Optional


class ZakaatError(Exception):
    """Base class for all zakaatbasket errors."""


class APIError(ZakaatError):
    """The donations API failed or answered with an error status."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ContractError(ZakaatError):
    """A payload did not match the expected data contract."""

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message


class PaymentError(ZakaatError):
    """Base class for checkout state machine errors."""


class PaymentInProgressError(PaymentError):
    """A payment session is already being initiated for this basket."""


class InvalidTransitionError(PaymentError):
    """The requested action is not allowed in the current payment state."""

    def __init__(self, state, action: str):
        super().__init__(f"Cannot {action} while {state.value}")
        self.state = state
        self.action = action
