"""
Domain layer - Pure client logic with zero framework imports.

This package contains the paid-signup state machine, the session store,
payment-result classification and form validation. It defines its own
port interfaces for infrastructure abstraction, so the HTTP, Stripe and
storage adapters can be swapped without touching it.
"""

from .account import AccountSettings
from .exceptions import (
    ClientError,
    ConsistencyError,
    ContractViolation,
    CredentialRejected,
    InvalidTransition,
    PaymentError,
    ProtectedFieldError,
    TransportError,
    TwoFactorRequired,
    ValidationError,
)
from .models import (
    Identity,
    PaymentFailed,
    PaymentIntentHandle,
    ProcessorResponse,
    RegistrationDraft,
    RequiresAction,
    Session,
    Succeeded,
)
from .payment import PaymentConfirmationAdapter
from .ports import FailureKind, FlowStage, FlowState
from .registration import RegistrationFailure, RegistrationFlow
from .session import SessionStore
from .validation import RegistrationForm, validate_field

__all__ = [
    "AccountSettings",
    "ClientError",
    "ConsistencyError",
    "ContractViolation",
    "CredentialRejected",
    "FailureKind",
    "FlowStage",
    "FlowState",
    "Identity",
    "InvalidTransition",
    "PaymentConfirmationAdapter",
    "PaymentError",
    "PaymentFailed",
    "PaymentIntentHandle",
    "ProcessorResponse",
    "ProtectedFieldError",
    "RegistrationDraft",
    "RegistrationFailure",
    "RegistrationFlow",
    "RegistrationForm",
    "RequiresAction",
    "Session",
    "SessionStore",
    "Succeeded",
    "TransportError",
    "TwoFactorRequired",
    "ValidationError",
    "validate_field",
]
