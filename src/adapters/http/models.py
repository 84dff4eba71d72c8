"""
Backend wire models.

Pydantic models for the JSON bodies exchanged with the backend. They
accept the backend's camelCase names and convert identity payloads into
domain Identity objects. Monetary values are kept as strings.
"""

from __future__ import annotations

from typing import Annotated, Literal

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field

from src.domain.models import Identity

# Backend sends ids and amounts as numbers or strings.
Text = Annotated[str, BeforeValidator(lambda v: "" if v is None else str(v))]


class WireModel(BaseModel):
    """Base model: accept aliases or field names, ignore unknown keys."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class UserPayload(WireModel):
    """User object as returned by profile, login and admin endpoints."""

    id: Text
    email: str
    username: str
    role: str = "user"
    status: str = "active"
    balance: Text = "0"
    has_pin: bool = Field(False, alias="hasPin")
    is_2fa_enabled: bool = Field(False, alias="is2faEnabled")
    referral_code: Text = ""
    is_kyc_verified: bool = False
    first_name: Text = Field("", alias="firstName")
    last_name: Text = Field("", alias="lastName")
    withdrawal_status: str = Field("active", alias="withdrawalStatus")

    def to_identity(self) -> Identity:
        return Identity(
            id=self.id,
            email=self.email,
            username=self.username,
            role=self.role,
            status=self.status,
            balance=self.balance,
            has_pin=self.has_pin,
            is_2fa_enabled=self.is_2fa_enabled,
            referral_code=self.referral_code,
            is_kyc_verified=self.is_kyc_verified,
            first_name=self.first_name,
            last_name=self.last_name,
            withdrawal_status=self.withdrawal_status,
        )


class LoginResponse(UserPayload):
    """Token pair with the user fields merged into the same object."""

    access_token: str = Field(validation_alias=AliasChoices("access_token", "access"))
    refresh_token: str | None = Field(
        None, validation_alias=AliasChoices("refresh_token", "refresh")
    )


class TwoFactorRequiredResponse(WireModel):
    two_factor_required: Literal[True]
    user_id: Text


class RegistrationIntentResponse(WireModel):
    client_secret: str | None = Field(None, alias="clientSecret")


class DetailResponse(WireModel):
    detail: str = ""


class StatusResponse(WireModel):
    id: Text
    status: str


class DashboardStats(WireModel):
    total_earnings: Text = Field(alias="totalEarnings")
    total_team_size: int = Field(alias="totalTeamSize")
    direct_referrals: int = Field(alias="directReferrals")


class TeamMember(WireModel):
    id: Text
    name: str
    username: str
    level: int
    join_date: str = Field(alias="joinDate")
    total_earnings_from: Text = Field(alias="totalEarningsFrom")
    children: list[TeamMember] = Field(default_factory=list)


class TransactionUser(WireModel):
    name: str
    email: str


class Transaction(WireModel):
    id: Text
    created_at: str
    tx_type: Literal["deposit", "withdrawal", "commission", "bonus", "fee", "adjustment", "reversal"]
    reference: str
    amount: Text
    status: Literal["completed", "pending", "failed"]
    user: TransactionUser | None = None


class KycStatusResponse(WireModel):
    status: Literal["unverified", "pending", "approved", "rejected"]
    rejection_reason: str | None = None


class WithdrawalRequest(WireModel):
    id: Text
    user_id: Text = Field(alias="userId")
    user_name: str = Field(alias="userName")
    user_email: str = Field(alias="userEmail")
    amount: Text
    date: str
    status: Literal["pending", "approved", "rejected", "paid"]
    bank_name: str = ""
    account_number: str = ""
    account_name: str = ""


class AdminStats(WireModel):
    total_users: int = Field(alias="totalUsers")
    total_user_referral_earnings: Text = Field(alias="totalUserReferralEarnings")
    pending_withdrawals_count: int = Field(alias="pendingWithdrawalsCount")
    protocol_balance: Text = Field(alias="protocolBalance")


class KycRequest(WireModel):
    id: Text
    user_id: Text = Field(alias="userId")
    user_name: str = Field(alias="userName")
    user_email: str = Field(alias="userEmail")
    date_submitted: str = Field(alias="dateSubmitted")
    document_front_url: str = Field(alias="documentFrontUrl")
    document_back_url: str = Field(alias="documentBackUrl")
    selfie_url: str = Field(alias="selfieUrl")


class ModerationResponse(WireModel):
    message: str = ""
    status: str = ""
    reason: str | None = None


class KycDecisionResponse(WireModel):
    success: bool
