"""
Unit tests for the composition root.

Verifies build_client() wiring with an httpx.MockTransport backend.
"""

import logging
from pathlib import Path
from unittest.mock import MagicMock

import httpx
import pytest

from src.adapters.credentials import FileCredentialStore
from src.adapters.payments import SandboxPaymentProcessor, StripePaymentProcessor
from src.client import build_client, configure_logging
from src.config.settings import Settings
from src.domain.exceptions import CredentialRejected
from src.domain.ports import ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, FlowState

PROFILE = {"id": 7, "email": "a@b.com", "username": "alice", "role": "user"}


def settings(**overrides) -> Settings:
    return Settings(api_base_url="http://backend.test", **overrides)


class TestBuildClient:
    """Tests for build_client() wiring."""

    def test_default_processor_is_stripe(self, credentials) -> None:
        client = build_client(settings(), credentials=credentials)
        assert isinstance(client.payments.processor, StripePaymentProcessor)

    def test_sandbox_processor_selected_by_setting(self, credentials) -> None:
        client = build_client(settings(payment_processor="sandbox"), credentials=credentials)
        assert isinstance(client.payments.processor, SandboxPaymentProcessor)

    def test_file_credential_store_by_default(self, tmp_path: Path) -> None:
        client = build_client(settings(credential_file=str(tmp_path / "creds.json")))
        assert isinstance(client.credentials, FileCredentialStore)
        assert client.pool is None

    def test_pool_closed_when_migrations_fail(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pool = MagicMock()
        monkeypatch.setattr("src.client.ConnectionPool", MagicMock(return_value=pool))
        monkeypatch.setattr("src.client.run_migrations", MagicMock(side_effect=RuntimeError("no db")))

        with pytest.raises(RuntimeError, match="no db"):
            build_client(settings(credential_backend="postgres"))

        pool.close.assert_called_once()

    def test_new_registration_prefills_referral(self, credentials) -> None:
        client = build_client(settings(), credentials=credentials)

        flow = client.new_registration("https://app.example/signup?ref=R1")

        assert flow.form.draft.referral_code == "R1"
        assert flow.state is FlowState.COLLECTING_DETAILS
        assert flow.sessions is client.sessions


@pytest.mark.asyncio
class TestClientStartup:
    """Tests for session restore through the real gateway."""

    async def test_start_restores_session(self, credentials) -> None:
        credentials.set(ACCESS_TOKEN_KEY, "acc")
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json=PROFILE))
        client = build_client(settings(), credentials=credentials, transport=transport)

        identity = await client.start()
        await client.aclose()

        assert identity.username == "alice"
        assert client.sessions.is_authenticated

    async def test_start_with_rejected_token_logs_out(self, credentials) -> None:
        credentials.set(ACCESS_TOKEN_KEY, "expired")
        credentials.set(REFRESH_TOKEN_KEY, "ref")
        transport = httpx.MockTransport(lambda r: httpx.Response(401, json={"detail": "Token expired"}))
        client = build_client(settings(), credentials=credentials, transport=transport)

        assert await client.start() is None
        await client.aclose()

        assert credentials.data == {}

    async def test_401_on_authenticated_call_logs_out(self, credentials) -> None:
        """Any authenticated call rejected with 401 ends the session."""
        responses = iter(
            [httpx.Response(200, json=PROFILE), httpx.Response(401, json={"detail": "expired"})]
        )
        credentials.set(ACCESS_TOKEN_KEY, "acc")
        client = build_client(
            settings(), credentials=credentials, transport=httpx.MockTransport(lambda r: next(responses))
        )
        await client.start()

        with pytest.raises(CredentialRejected):
            await client.backend.get_kyc_status()
        await client.aclose()

        assert not client.sessions.is_authenticated
        assert credentials.get(ACCESS_TOKEN_KEY) is None


@pytest.mark.asyncio
class TestClientShutdown:
    """Tests for resource release in aclose()."""

    async def test_aclose_closes_sandbox_processor(self, credentials) -> None:
        transport = httpx.MockTransport(lambda r: httpx.Response(200, json={}))
        client = build_client(
            settings(payment_processor="sandbox"), credentials=credentials, transport=transport
        )

        await client.aclose()

        assert client.payments.processor._client.is_closed

    async def test_aclose_leaves_injected_processor_open(self, credentials) -> None:
        processor = SandboxPaymentProcessor("http://backend.test")
        client = build_client(settings(), credentials=credentials, processor=processor)

        await client.aclose()

        assert not processor._client.is_closed
        await processor.aclose()


class TestConfigureLogging:
    def test_sets_root_level(self) -> None:
        root = logging.getLogger()
        previous = root.level
        try:
            configure_logging("debug")
            assert root.level == logging.DEBUG
        finally:
            root.setLevel(previous)
