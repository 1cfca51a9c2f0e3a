"""
Module: errors.py
Description: Exception hierarchy for Webhook Relay.

Validation errors are raised synchronously to whoever configures
destinations. Delivery errors never reach the enqueue caller: retryable
ones drive the retry policy and terminal ones are converted into
completion events.
"""

from typing import Any, Dict, Optional


class RelayError(Exception):
    """Base class for all Webhook Relay errors."""


class DestinationValidationError(RelayError, ValueError):
    """
    Raised when a destination configuration is malformed.

    Attributes:
        destination_id: Identifier of the rejected destination, if known
        errors: Field-level error details
    """

    def __init__(
        self,
        message: str,
        destination_id: Optional[str] = None,
        errors: Optional[list] = None
    ):
        super().__init__(message)
        self.destination_id = destination_id
        self.errors = errors or []

    def to_dict(self) -> Dict[str, Any]:
        return {
            "destination_id": self.destination_id,
            "message": str(self),
            "errors": self.errors,
        }


class UnknownDestinationError(RelayError, LookupError):
    """Raised when a destination id is not present in the registry."""

    def __init__(self, destination_id: str):
        super().__init__(f"Unknown destination: {destination_id}")
        self.destination_id = destination_id


class RetryableDeliveryError(RelayError):
    """A delivery attempt failed in a way that may succeed on retry."""

    outcome = "networkError"

    def __init__(self, detail: str, status_code: Optional[int] = None):
        super().__init__(detail)
        self.detail = detail
        self.status_code = status_code


class HttpDeliveryError(RetryableDeliveryError):
    """The destination was reachable but answered with a non-2xx status."""

    outcome = "httpError"

    def __init__(self, status_code: int, body: str = ""):
        super().__init__(f"HTTP {status_code}", status_code=status_code)
        self.body = body


class NetworkDeliveryError(RetryableDeliveryError):
    """The destination could not be reached (connection error, timeout)."""

    outcome = "networkError"


class TerminalDeliveryError(RelayError):
    """
    Delivery gave up: retries exhausted or the attempt can never succeed.

    Only ever converted into a completion event; never raised to the
    enqueue caller.
    """

    def __init__(
        self,
        outcome: str,
        detail: str,
        attempts: int,
        status_code: Optional[int] = None
    ):
        super().__init__(detail)
        self.outcome = outcome
        self.detail = detail
        self.attempts = attempts
        self.status_code = status_code
