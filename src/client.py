"""
Client composition root - Wires adapters into the domain services.

This module builds the credential store, gateway, backend client,
payment processor and session store from settings, and hands out one
RegistrationFlow per signup attempt.
"""

import logging
from dataclasses import dataclass, field

import httpx
from psycopg_pool import ConnectionPool

from src.adapters.credentials import FileCredentialStore, PostgresCredentialStore, run_migrations
from src.adapters.http import BackendClient, HttpGateway
from src.adapters.payments import SandboxPaymentProcessor, StripePaymentProcessor
from src.config.settings import Settings, get_settings
from src.domain.account import AccountSettings
from src.domain.models import Identity, RegistrationDraft
from src.domain.payment import PaymentConfirmationAdapter
from src.domain.ports import CredentialStore, PaymentProcessor
from src.domain.registration import RegistrationFlow
from src.domain.session import SessionStore
from src.domain.validation import RegistrationForm

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging for scripts and interactive use."""
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(level.upper())


@dataclass
class RefnetClient:
    """Everything a front end needs, created once per process."""

    settings: Settings
    credentials: CredentialStore
    gateway: HttpGateway
    backend: BackendClient
    sessions: SessionStore
    payments: PaymentConfirmationAdapter
    account: AccountSettings
    pool: ConnectionPool | None = field(default=None, repr=False)
    # Processor built here rather than injected; released by aclose().
    owned_processor: SandboxPaymentProcessor | None = field(default=None, repr=False)

    async def start(self) -> Identity | None:
        """Restore a persisted session, if any. Never raises for a bad token."""
        return await self.sessions.refresh_from_server()

    def new_registration(self, referral_link: str | None = None) -> RegistrationFlow:
        """Create the state machine for one signup attempt."""
        draft = RegistrationDraft.from_referral_link(referral_link) if referral_link else RegistrationDraft()
        return RegistrationFlow(
            backend=self.backend,
            payments=self.payments,
            sessions=self.sessions,
            form=RegistrationForm(draft=draft),
        )

    async def aclose(self) -> None:
        await self.gateway.aclose()
        if self.owned_processor is not None:
            await self.owned_processor.aclose()
        if self.pool is not None:
            self.pool.close()
            logger.info("Credential database pool closed")


def _credential_store(settings: Settings) -> tuple[CredentialStore, ConnectionPool | None]:
    if settings.credential_backend == "postgres":
        logger.info("Using PostgreSQL credential store")
        pool = ConnectionPool(
            conninfo=settings.database_url,
            min_size=settings.pool_min_size,
            max_size=settings.pool_max_size,
            open=True,
        )
        try:
            run_migrations(pool)
        except Exception:
            pool.close()
            raise
        return PostgresCredentialStore(pool), pool
    return FileCredentialStore(settings.credential_file), None


def build_client(
    settings: Settings | None = None,
    *,
    credentials: CredentialStore | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    processor: PaymentProcessor | None = None,
) -> RefnetClient:
    """
    Create a fully wired client.

    Args:
        settings: Defaults to the cached environment settings
        credentials: Override the configured credential store
        transport: Optional httpx transport (tests, ASGI sandbox)
        processor: Override the Stripe processor

    Returns:
        RefnetClient ready for start()
    """
    settings = settings or get_settings()
    pool = None
    if credentials is None:
        credentials, pool = _credential_store(settings)

    gateway = HttpGateway(
        credentials,
        base_url=settings.api_base_url,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
    backend = BackendClient(gateway)
    sessions = SessionStore(auth=backend, credentials=credentials)
    gateway.on_credential_rejected(sessions.handle_credential_rejected)

    owned_processor = None
    if processor is None:
        if settings.payment_processor == "sandbox":
            owned_processor = SandboxPaymentProcessor(
                settings.api_base_url, timeout=settings.http_timeout_seconds, transport=transport
            )
            processor = owned_processor
        else:
            processor = StripePaymentProcessor(settings.stripe_publishable_key)
    return RefnetClient(
        settings=settings,
        credentials=credentials,
        gateway=gateway,
        backend=backend,
        sessions=sessions,
        payments=PaymentConfirmationAdapter(processor),
        account=AccountSettings(backend=backend, sessions=sessions),
        pool=pool,
        owned_processor=owned_processor,
    )
