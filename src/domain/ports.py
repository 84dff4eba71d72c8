"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the state enums shared across the domain.
Adapters implement these protocols through structural subtyping.
"""

from collections.abc import Callable
from enum import Enum
from typing import Any, Protocol

from .models import Identity, LoginChallenge, LoginTokens, ProcessorResponse

# Well-known keys of the persisted credential pair.
ACCESS_TOKEN_KEY = "accessToken"
REFRESH_TOKEN_KEY = "refreshToken"

# Processor status meaning the payment was captured.
PAYMENT_SUCCEEDED = "succeeded"


class FlowState(str, Enum):
    """
    Registration flow states.

    State Transitions:
    - COLLECTING_DETAILS -> AWAITING_PAYMENT (intent created)
    - AWAITING_PAYMENT -> FINALIZING (payment succeeded)
    - FINALIZING -> AUTHENTICATED (account confirmed and logged in)
    - any -> FAILED (stage-tagged failure)

    AUTHENTICATED is terminal. FAILED is terminal for the transition that
    produced it; recoverable failures accept a user-initiated re-submission.
    """

    COLLECTING_DETAILS = "collecting_details"
    AWAITING_PAYMENT = "awaiting_payment"
    FINALIZING = "finalizing"
    AUTHENTICATED = "authenticated"
    FAILED = "failed"


class FlowStage(str, Enum):
    """Stage at which a registration failure happened."""

    VALIDATION = "validation"
    INITIATE = "initiate"
    PAYMENT = "payment"
    FINALIZE = "finalize"
    POST_PAYMENT_LOGIN = "post_payment_login"


class FailureKind(str, Enum):
    """Failure taxonomy surfaced to the caller of the registration flow."""

    VALIDATION_FAILED = "ValidationFailed"
    INTENT_CREATION_FAILED = "IntentCreationFailed"
    PAYMENT_DECLINED = "PaymentDeclined"
    FINALIZATION_FAILED = "FinalizationFailed"
    POST_PAYMENT_AUTH_FAILED = "PostPaymentAuthFailed"


class CredentialStore(Protocol):
    """Port interface for the persisted credential pair."""

    def get(self, key: str) -> str | None:
        """Return the stored value for key, or None."""
        ...

    def set(self, key: str, value: str) -> None:
        """Persist value under key, replacing any previous value."""
        ...

    def remove(self, key: str) -> None:
        """Delete key. Removing a missing key is not an error."""
        ...


class AuthBackend(Protocol):
    """Port interface for the backend's authentication operations."""

    async def login(self, identifier: str, password: str) -> LoginTokens | LoginChallenge:
        """
        Exchange credentials for a token pair and identity.

        Returns:
            LoginTokens on success, LoginChallenge when a second factor is needed
        """
        ...

    async def verify_two_factor(self, user_id: str, token: str) -> LoginTokens:
        """Complete a two-factor challenge."""
        ...

    async def get_profile(self) -> Identity:
        """Fetch the identity behind the attached bearer credential."""
        ...


class RegistrationBackend(Protocol):
    """Port interface for the backend's paid-signup operations."""

    async def initiate_registration(
        self, email: str, username: str, password: str, referral_code: str
    ) -> str | None:
        """
        Reserve an account shell and obtain a processor client secret.

        Returns:
            The client secret, or None when the response carried none
        """
        ...

    async def confirm_registration(
        self,
        email: str,
        username: str,
        password: str,
        referral_code: str,
        payment_intent_id: str,
    ) -> None:
        """
        Finalize the account with proof of payment.

        Idempotent server-side, keyed by payment_intent_id.
        """
        ...


class AccountBackend(Protocol):
    """Port interface for self-service account settings."""

    async def change_password(self, current_password: str, new_password: str) -> None: ...

    async def set_pin(self, pin: str) -> str: ...


class PaymentForm(Protocol):
    """Port interface for the embedded payment form."""

    async def submit(self) -> str | None:
        """
        Flush pending field validation and tokenization.

        Returns:
            An error message, or None when the form is ready
        """
        ...


class PaymentProcessor(Protocol):
    """Port interface for the processor's client-side confirmation call."""

    async def confirm_payment(
        self, client_secret: str, form: PaymentForm, redirect: str = "if_required"
    ) -> ProcessorResponse:
        """
        Confirm the payment identified by client_secret.

        Args:
            client_secret: Single-use secret of the payment intent
            form: Payment form holding the tokenized payment method
            redirect: "if_required" suppresses automatic navigation

        Returns:
            ProcessorResponse carrying either an error or the intent status
        """
        ...


# Observer callback: receives the object whose state changed.
StateListener = Callable[[Any], None]
