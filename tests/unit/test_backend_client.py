"""
Unit tests for BackendClient.

The gateway is mocked; tests verify endpoint paths, payload keys and
conversion of response bodies into domain objects.
"""

from unittest.mock import AsyncMock

import pytest

from src.adapters.http.backend import BackendClient
from src.domain.exceptions import ContractViolation
from src.domain.models import Identity, LoginChallenge, LoginTokens

USER = {
    "id": 7,
    "email": "a@b.com",
    "username": "alice",
    "role": "user",
    "status": "active",
    "balance": "12.50",
    "hasPin": True,
    "referral_code": "REF7",
}


@pytest.fixture
def gateway() -> AsyncMock:
    return AsyncMock()


@pytest.fixture
def client(gateway: AsyncMock) -> BackendClient:
    return BackendClient(gateway)


@pytest.mark.asyncio
class TestAuthEndpoints:
    """Tests for login, 2FA and profile."""

    async def test_login_returns_tokens_and_identity(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {**USER, "access_token": "acc", "refresh_token": "ref"}

        result = await client.login("a@b.com", "longpass1")

        gateway.request.assert_awaited_once_with(
            "/users/login/", "POST", {"login_identifier": "a@b.com", "password": "longpass1"}
        )
        assert isinstance(result, LoginTokens)
        assert result.access_token == "acc"
        assert result.refresh_token == "ref"
        assert result.identity.id == "7"
        assert result.identity.has_pin is True

    async def test_login_accepts_short_token_names(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {**USER, "access": "acc", "refresh": "ref"}
        result = await client.login("alice", "longpass1")
        assert (result.access_token, result.refresh_token) == ("acc", "ref")

    async def test_login_without_refresh_token(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {**USER, "access_token": "acc"}
        result = await client.login("alice", "longpass1")
        assert result.refresh_token is None

    async def test_two_factor_challenge(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {"two_factor_required": True, "user_id": 42}
        assert await client.login("alice", "longpass1") == LoginChallenge(user_id="42")

    async def test_login_without_token_is_contract_violation(
        self, client: BackendClient, gateway: AsyncMock
    ) -> None:
        gateway.request.return_value = dict(USER)
        with pytest.raises(ContractViolation):
            await client.login("alice", "longpass1")

    async def test_verify_two_factor(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {**USER, "access_token": "acc"}

        await client.verify_two_factor("42", "123456")

        gateway.request.assert_awaited_once_with(
            "/users/2fa/verify/", "POST", {"user_id": "42", "token": "123456"}
        )

    async def test_get_profile(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = USER

        identity = await client.get_profile()

        gateway.request.assert_awaited_once_with("/users/profile/", "GET")
        assert isinstance(identity, Identity)
        assert identity.balance == "12.50"
        assert identity.referral_code == "REF7"


@pytest.mark.asyncio
class TestRegistrationEndpoints:
    """Tests for the paid-signup endpoints."""

    async def test_initiate_sends_camel_case_referral(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {"clientSecret": "sec_1"}

        secret = await client.initiate_registration("a@b.com", "alice", "longpass1", "R1")

        assert secret == "sec_1"
        gateway.request.assert_awaited_once_with(
            "/users/register/",
            "POST",
            {"email": "a@b.com", "username": "alice", "password": "longpass1", "referralCode": "R1"},
        )

    @pytest.mark.parametrize("body", [None, {}, {"clientSecret": None}])
    async def test_initiate_without_secret_returns_none(
        self, client: BackendClient, gateway: AsyncMock, body
    ) -> None:
        gateway.request.return_value = body
        assert await client.initiate_registration("a@b.com", "alice", "longpass1", "R1") is None

    async def test_confirm_sends_payment_intent_id(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = None

        await client.confirm_registration("a@b.com", "alice", "longpass1", "R1", payment_intent_id="pi_9")

        gateway.request.assert_awaited_once_with(
            "/users/register/confirm/",
            "POST",
            {
                "email": "a@b.com",
                "username": "alice",
                "password": "longpass1",
                "referralCode": "R1",
                "paymentIntentId": "pi_9",
            },
        )


@pytest.mark.asyncio
class TestAccountEndpoints:
    """Tests for password and PIN endpoints."""

    async def test_change_password_payload(self, client: BackendClient, gateway: AsyncMock) -> None:
        await client.change_password("old", "newpass12")
        gateway.request.assert_awaited_once_with(
            "/users/password/change/", "POST", {"currentPassword": "old", "newPassword": "newpass12"}
        )

    async def test_set_pin_returns_detail(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {"detail": "PIN set successfully."}
        assert await client.set_pin("1234") == "PIN set successfully."

    async def test_set_pin_empty_response(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = None
        assert await client.set_pin("1234") == ""

    async def test_password_reset_flow(self, client: BackendClient, gateway: AsyncMock) -> None:
        await client.request_password_reset("a@b.com")
        await client.reset_password("tok", "newpass12")
        assert [c.args[0] for c in gateway.request.await_args_list] == [
            "/users/password/request-reset/",
            "/users/password/reset/",
        ]


@pytest.mark.asyncio
class TestDashboardAndAdminEndpoints:
    """Tests for the remaining typed endpoints."""

    async def test_team_tree_is_recursive(self, client: BackendClient, gateway: AsyncMock) -> None:
        child = {
            "id": 2,
            "name": "Bob",
            "username": "bob",
            "level": 2,
            "joinDate": "2024-01-02",
            "totalEarningsFrom": 5,
        }
        gateway.request.return_value = [{**child, "id": 1, "level": 1, "children": [child]}]

        tree = await client.get_team_tree()

        assert tree[0].children[0].username == "bob"
        assert tree[0].children[0].total_earnings_from == "5"

    async def test_transactions_reject_unknown_type(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = [
            {
                "id": 1,
                "created_at": "2024-01-01",
                "tx_type": "lottery",
                "reference": "x",
                "amount": "1",
                "status": "completed",
            }
        ]
        with pytest.raises(ContractViolation):
            await client.list_transactions()

    async def test_submit_kyc_uses_multipart(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {"id": 3, "status": "pending"}
        files = {"document_front": ("front.png", b"PNG")}

        result = await client.submit_kyc(files)

        gateway.request.assert_awaited_once_with("/kyc/submit/", "POST", {}, files=files)
        assert result.status == "pending"

    async def test_admin_approve_withdrawal_without_body(
        self, client: BackendClient, gateway: AsyncMock
    ) -> None:
        gateway.request.return_value = None
        result = await client.admin_approve_withdrawal("9")
        gateway.request.assert_awaited_once_with("/withdrawals/9/approve/", "POST")
        assert result.message == ""

    async def test_admin_process_kyc(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {"success": True}

        result = await client.admin_process_kyc("5", "reject", reason="blurry")

        gateway.request.assert_awaited_once_with(
            "/admin/kyc/process/5/", "POST", {"action": "reject", "reason": "blurry"}
        )
        assert result.success is True

    async def test_admin_stats(self, client: BackendClient, gateway: AsyncMock) -> None:
        gateway.request.return_value = {
            "totalUsers": 10,
            "totalUserReferralEarnings": "100.00",
            "pendingWithdrawalsCount": 2,
            "protocolBalance": 50,
        }
        stats = await client.get_admin_stats()
        assert stats.total_users == 10
        assert stats.protocol_balance == "50"
