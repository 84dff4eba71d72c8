"""
Backend API client - Typed operations over the HTTP gateway.

Implements the AuthBackend, RegistrationBackend and AccountBackend ports
and exposes the remaining dashboard, KYC, withdrawal and admin endpoints.
Response bodies are validated with the wire models; a body that does not
match is reported as ContractViolation.
"""

import logging
from collections.abc import Mapping
from typing import Any, Literal, TypeVar

from pydantic import BaseModel, TypeAdapter
from pydantic import ValidationError as WireValidationError

from src.adapters.http.gateway import HttpGateway
from src.adapters.http.models import (
    AdminStats,
    DashboardStats,
    DetailResponse,
    KycDecisionResponse,
    KycRequest,
    KycStatusResponse,
    LoginResponse,
    ModerationResponse,
    RegistrationIntentResponse,
    StatusResponse,
    TeamMember,
    Transaction,
    TwoFactorRequiredResponse,
    UserPayload,
    WithdrawalRequest,
)
from src.domain.exceptions import ContractViolation
from src.domain.models import Identity, LoginChallenge, LoginTokens

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


def _parse(model: type[ModelT], data: Any, endpoint: str) -> ModelT:
    try:
        return model.model_validate(data)
    except WireValidationError as e:
        logger.warning("Unexpected response shape from %s (%d errors)", endpoint, e.error_count())
        raise ContractViolation(f"Unexpected response from {endpoint}") from e


def _parse_list(model: type[ModelT], data: Any, endpoint: str) -> list[ModelT]:
    try:
        return TypeAdapter(list[model]).validate_python(data)
    except WireValidationError as e:
        logger.warning("Unexpected response shape from %s (%d errors)", endpoint, e.error_count())
        raise ContractViolation(f"Unexpected response from {endpoint}") from e


def _tokens(response: LoginResponse) -> LoginTokens:
    return LoginTokens(
        access_token=response.access_token,
        refresh_token=response.refresh_token,
        identity=response.to_identity(),
    )


class BackendClient:
    """
    Implements the backend ports via HttpGateway.

    Uses structural subtyping - no explicit inheritance from the Protocols.
    """

    def __init__(self, gateway: HttpGateway) -> None:
        self._gateway = gateway

    # --- Authentication & users ---

    async def login(self, identifier: str, password: str) -> LoginTokens | LoginChallenge:
        endpoint = "/users/login/"
        data = await self._gateway.request(
            endpoint, "POST", {"login_identifier": identifier, "password": password}
        )
        if isinstance(data, dict) and data.get("two_factor_required"):
            challenge = _parse(TwoFactorRequiredResponse, data, endpoint)
            return LoginChallenge(user_id=challenge.user_id)
        return _tokens(_parse(LoginResponse, data, endpoint))

    async def verify_two_factor(self, user_id: str, token: str) -> LoginTokens:
        endpoint = "/users/2fa/verify/"
        data = await self._gateway.request(endpoint, "POST", {"user_id": user_id, "token": token})
        return _tokens(_parse(LoginResponse, data, endpoint))

    async def initiate_registration(
        self, email: str, username: str, password: str, referral_code: str
    ) -> str | None:
        endpoint = "/users/register/"
        data = await self._gateway.request(
            endpoint,
            "POST",
            {
                "email": email,
                "username": username,
                "password": password,
                "referralCode": referral_code,
            },
        )
        if data is None:
            return None
        return _parse(RegistrationIntentResponse, data, endpoint).client_secret

    async def confirm_registration(
        self,
        email: str,
        username: str,
        password: str,
        referral_code: str,
        payment_intent_id: str,
    ) -> None:
        await self._gateway.request(
            "/users/register/confirm/",
            "POST",
            {
                "email": email,
                "username": username,
                "password": password,
                "referralCode": referral_code,
                "paymentIntentId": payment_intent_id,
            },
        )

    async def get_profile(self) -> Identity:
        endpoint = "/users/profile/"
        data = await self._gateway.request(endpoint, "GET")
        return _parse(UserPayload, data, endpoint).to_identity()

    async def change_password(self, current_password: str, new_password: str) -> None:
        await self._gateway.request(
            "/users/password/change/",
            "POST",
            {"currentPassword": current_password, "newPassword": new_password},
        )

    async def request_password_reset(self, email: str) -> None:
        await self._gateway.request("/users/password/request-reset/", "POST", {"email": email})

    async def reset_password(self, token: str, password: str) -> None:
        await self._gateway.request(
            "/users/password/reset/", "POST", {"token": token, "password": password}
        )

    async def set_pin(self, pin: str) -> str:
        endpoint = "/users/pin/set/"
        data = await self._gateway.request(endpoint, "POST", {"pin": pin})
        return _parse(DetailResponse, data or {}, endpoint).detail

    async def verify_pin(self, pin: str) -> str:
        endpoint = "/users/pin/verify/"
        data = await self._gateway.request(endpoint, "POST", {"pin": pin})
        return _parse(DetailResponse, data or {}, endpoint).detail

    # --- Dashboard ---

    async def get_dashboard_stats(self) -> DashboardStats:
        endpoint = "/dashboard/stats/"
        return _parse(DashboardStats, await self._gateway.request(endpoint, "GET"), endpoint)

    async def get_team_tree(self) -> list[TeamMember]:
        endpoint = "/team/tree/"
        return _parse_list(TeamMember, await self._gateway.request(endpoint, "GET"), endpoint)

    # --- KYC ---

    async def submit_kyc(
        self, files: Mapping[str, Any], fields: Mapping[str, str] | None = None
    ) -> StatusResponse:
        endpoint = "/kyc/submit/"
        data = await self._gateway.request(endpoint, "POST", dict(fields or {}), files=files)
        return _parse(StatusResponse, data, endpoint)

    async def get_kyc_status(self) -> KycStatusResponse:
        endpoint = "/kyc/status/"
        return _parse(KycStatusResponse, await self._gateway.request(endpoint, "GET"), endpoint)

    # --- Transactions ---

    async def list_transactions(self) -> list[Transaction]:
        endpoint = "/transactions/"
        return _parse_list(Transaction, await self._gateway.request(endpoint, "GET"), endpoint)

    async def get_transaction(self, transaction_id: str) -> Transaction:
        endpoint = f"/transactions/{transaction_id}/"
        return _parse(Transaction, await self._gateway.request(endpoint, "GET"), endpoint)

    # --- Withdrawals ---

    async def create_withdrawal(
        self, amount: str, bank_name: str, account_number: str, account_name: str
    ) -> StatusResponse:
        endpoint = "/withdrawals/"
        data = await self._gateway.request(
            endpoint,
            "POST",
            {
                "amount": amount,
                "bank_name": bank_name,
                "account_number": account_number,
                "account_name": account_name,
            },
        )
        return _parse(StatusResponse, data, endpoint)

    async def list_withdrawals(self) -> list[WithdrawalRequest]:
        endpoint = "/withdrawals/"
        return _parse_list(WithdrawalRequest, await self._gateway.request(endpoint, "GET"), endpoint)

    # --- Admin ---

    async def get_admin_stats(self) -> AdminStats:
        endpoint = "/admin/stats/"
        return _parse(AdminStats, await self._gateway.request(endpoint, "GET"), endpoint)

    async def admin_list_users(self) -> list[UserPayload]:
        endpoint = "/admin/users/"
        return _parse_list(UserPayload, await self._gateway.request(endpoint, "GET"), endpoint)

    async def admin_update_user(self, user_id: str, changes: Mapping[str, Any]) -> UserPayload:
        endpoint = f"/admin/users/{user_id}/"
        data = await self._gateway.request(endpoint, "PATCH", dict(changes))
        return _parse(UserPayload, data, endpoint)

    async def admin_create_user(self, payload: Mapping[str, Any]) -> UserPayload:
        endpoint = "/admin/users/"
        data = await self._gateway.request(endpoint, "POST", dict(payload))
        return _parse(UserPayload, data, endpoint)

    async def admin_list_withdrawals(self) -> list[WithdrawalRequest]:
        endpoint = "/admin/withdrawals/"
        return _parse_list(WithdrawalRequest, await self._gateway.request(endpoint, "GET"), endpoint)

    async def admin_approve_withdrawal(self, withdrawal_id: str) -> ModerationResponse:
        endpoint = f"/withdrawals/{withdrawal_id}/approve/"
        data = await self._gateway.request(endpoint, "POST")
        return _parse(ModerationResponse, data or {}, endpoint)

    async def admin_deny_withdrawal(self, withdrawal_id: str, reason: str) -> ModerationResponse:
        endpoint = f"/withdrawals/{withdrawal_id}/deny/"
        data = await self._gateway.request(endpoint, "POST", {"reason": reason})
        return _parse(ModerationResponse, data, endpoint)

    async def admin_list_kyc_requests(self) -> list[KycRequest]:
        endpoint = "/admin/kyc/requests/"
        return _parse_list(KycRequest, await self._gateway.request(endpoint, "GET"), endpoint)

    async def admin_process_kyc(
        self, request_id: str, action: Literal["approve", "reject"], reason: str | None = None
    ) -> KycDecisionResponse:
        endpoint = f"/admin/kyc/process/{request_id}/"
        data = await self._gateway.request(endpoint, "POST", {"action": action, "reason": reason})
        return _parse(KycDecisionResponse, data, endpoint)

    async def admin_list_transactions(self) -> list[Transaction]:
        endpoint = "/admin/transactions/"
        return _parse_list(Transaction, await self._gateway.request(endpoint, "GET"), endpoint)
