"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- An in-memory credential store
- Identity and login-token factories
- Mocked backend ports and a wired registration flow
"""

from unittest.mock import AsyncMock

import pytest

from src.domain.models import Identity, LoginTokens, ProcessorResponse, RegistrationDraft
from src.domain.payment import PaymentConfirmationAdapter
from src.domain.registration import RegistrationFlow
from src.domain.session import SessionStore
from src.domain.validation import RegistrationForm


class InMemoryCredentialStore:
    """CredentialStore fake backed by a dict."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self.data = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class FakePaymentForm:
    """PaymentForm fake with a configurable submit() result."""

    def __init__(self, error: str | None = None, payment_method: str = "pm_card_visa") -> None:
        self.error = error
        self.payment_method = payment_method
        self.submitted = 0

    async def submit(self) -> str | None:
        self.submitted += 1
        return self.error


def make_identity(**overrides: object) -> Identity:
    values = {"id": "7", "email": "a@b.com", "username": "alice", "role": "user"}
    values.update(overrides)
    return Identity(**values)  # type: ignore[arg-type]


def make_tokens(access: str = "acc-1", refresh: str | None = "ref-1", **identity: object) -> LoginTokens:
    return LoginTokens(access_token=access, refresh_token=refresh, identity=make_identity(**identity))


def alice_form() -> RegistrationForm:
    return RegistrationForm(
        draft=RegistrationDraft(
            username="alice",
            email="a@b.com",
            password="longpass1",
            confirm_password="longpass1",
            referral_code="R1",
        )
    )


@pytest.fixture
def credentials() -> InMemoryCredentialStore:
    return InMemoryCredentialStore()


@pytest.fixture
def auth() -> AsyncMock:
    """AuthBackend mock; login succeeds as alice by default."""
    auth = AsyncMock()
    auth.login.return_value = make_tokens()
    auth.get_profile.return_value = make_identity()
    return auth


@pytest.fixture
def sessions(auth: AsyncMock, credentials: InMemoryCredentialStore) -> SessionStore:
    return SessionStore(auth=auth, credentials=credentials)


@pytest.fixture
def backend() -> AsyncMock:
    """RegistrationBackend mock; initiate returns sec_1, confirm returns None."""
    backend = AsyncMock()
    backend.initiate_registration.return_value = "sec_1"
    backend.confirm_registration.return_value = None
    return backend


@pytest.fixture
def processor() -> AsyncMock:
    """PaymentProcessor mock; confirmation succeeds with pi_9 by default."""
    processor = AsyncMock()
    processor.confirm_payment.return_value = ProcessorResponse(intent_id="pi_9", status="succeeded")
    return processor


@pytest.fixture
def flow(backend: AsyncMock, processor: AsyncMock, sessions: SessionStore) -> RegistrationFlow:
    """Registration flow with a complete, valid draft for alice."""
    return RegistrationFlow(
        backend=backend,
        payments=PaymentConfirmationAdapter(processor),
        sessions=sessions,
        form=alice_form(),
    )


@pytest.fixture
def identity_factory():
    """Build an Identity, alice by default."""
    return make_identity


@pytest.fixture
def tokens_factory():
    """Build LoginTokens for alice with overridable fields."""
    return make_tokens


@pytest.fixture
def payment_form_factory():
    """Build a FakePaymentForm; pass error= to make submit() fail."""
    return FakePaymentForm


@pytest.fixture
def credentials_factory():
    """Build an InMemoryCredentialStore pre-filled with the given keys."""
    return InMemoryCredentialStore
