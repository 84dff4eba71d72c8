"""
Domain exceptions - Semantic error types for the client.

This module defines the failure taxonomy shared by the gateway, the
session store and the registration flow. Adapters translate library
errors into these types so the domain never sees httpx, pydantic or
stripe exceptions.
"""


class ClientError(Exception):
    """Base class for client domain errors."""

    def __init__(self, message: str = "") -> None:
        super().__init__(message)
        self.message = message


class ValidationError(ClientError):
    """Local input validation failed. No network call was made."""

    def __init__(self, message: str, field_errors: dict[str, str] | None = None) -> None:
        super().__init__(message)
        self.field_errors = dict(field_errors or {})


class TransportError(ClientError):
    """Network or HTTP failure reported by the gateway."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class CredentialRejected(TransportError):
    """The backend rejected the attached bearer credential (HTTP 401)."""

    pass


class ContractViolation(ClientError):
    """HTTP call succeeded but the response is missing a required field."""

    pass


class PaymentError(ClientError):
    """Processor-reported decline or further action required."""

    pass


class ConsistencyError(ClientError):
    """Payment was captured but the account could not be finalized."""

    def __init__(self, message: str, payment_intent_id: str) -> None:
        super().__init__(message)
        self.payment_intent_id = payment_intent_id


class TwoFactorRequired(ClientError):
    """Login needs a second factor before a session can be created."""

    def __init__(self, user_id: str) -> None:
        super().__init__("Two-factor verification required.")
        self.user_id = user_id


class ProtectedFieldError(ClientError):
    """A security-relevant identity field was patched locally."""

    pass


class InvalidTransition(ClientError):
    """Registration flow operation is not allowed in the current state."""

    pass
