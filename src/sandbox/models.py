"""
Sandbox request and response models.

Pydantic models for the sandbox endpoints. Field names follow the
backend's wire format (camelCase where the real backend uses it).
"""

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from src.sandbox.store import SandboxUser


class RegisterRequest(BaseModel):
    """Request model for registration intent creation."""

    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=8, description="User password (min 8 characters)")
    referral_code: str = Field(..., min_length=1, alias="referralCode")


class RegisterResponse(BaseModel):
    """Response model carrying the PaymentIntent client secret."""

    clientSecret: str


class ConfirmRequest(RegisterRequest):
    """Request model for registration finalization."""

    payment_intent_id: str = Field(..., min_length=1, alias="paymentIntentId")


class LoginRequest(BaseModel):
    login_identifier: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class PaymentConfirmRequest(BaseModel):
    """Processor-side confirmation of a PaymentIntent."""

    client_secret: str
    payment_method: str


class PaymentIntentResponse(BaseModel):
    id: str
    status: str


class UserResponse(BaseModel):
    """User object in the backend's wire format."""

    id: str
    email: str
    username: str
    role: str
    status: str
    balance: str
    hasPin: bool
    is2faEnabled: bool = False
    referral_code: str
    is_kyc_verified: bool = False
    firstName: str = ""
    lastName: str = ""
    withdrawalStatus: str = "active"

    @classmethod
    def from_user(cls, user: SandboxUser) -> "UserResponse":
        return cls(
            id=user.id,
            email=user.email,
            username=user.username,
            role=user.role,
            status=user.status,
            balance=user.balance,
            hasPin=user.has_pin,
            referral_code=user.referral_code,
        )


class LoginResponse(UserResponse):
    """Token pair merged with the user fields."""

    access_token: str
    refresh_token: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
