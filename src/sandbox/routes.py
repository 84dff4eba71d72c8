"""
Sandbox routes.

Defines the backend endpoints used by the paid-signup flow, plus the
processor-side confirmation endpoint standing in for Stripe.
"""

from fastapi import APIRouter, Depends, HTTPException, Response, status

from src.sandbox.dependencies import get_current_user, get_store
from src.sandbox.models import (
    ConfirmRequest,
    ErrorResponse,
    LoginRequest,
    LoginResponse,
    PaymentConfirmRequest,
    PaymentIntentResponse,
    RegisterRequest,
    RegisterResponse,
    UserResponse,
)
from src.sandbox.store import SandboxError, SandboxStore, SandboxUser

router = APIRouter(tags=["users"])
processor_router = APIRouter(tags=["processor"])


def _http_error(error: SandboxError) -> HTTPException:
    return HTTPException(status_code=error.status_code, detail=error.detail)


@router.post(
    "/users/register/",
    response_model=RegisterResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid referral code"},
        409: {"model": ErrorResponse, "description": "Email or username taken"},
    },
    summary="Create a registration intent",
)
async def initiate_registration(
    request_data: RegisterRequest,
    store: SandboxStore = Depends(get_store),
) -> RegisterResponse:
    try:
        secret = store.initiate(
            request_data.email,
            request_data.username,
            request_data.password,
            request_data.referral_code,
        )
    except SandboxError as e:
        raise _http_error(e) from None
    return RegisterResponse(clientSecret=secret)


@router.post(
    "/users/register/confirm/",
    status_code=status.HTTP_201_CREATED,
    responses={
        402: {"model": ErrorResponse, "description": "Payment not completed"},
        404: {"model": ErrorResponse, "description": "Unknown intent"},
    },
    summary="Finalize a paid registration",
    description="Idempotent per paymentIntentId: repeating it returns 201 again "
    "without creating a second account.",
)
async def confirm_registration(
    request_data: ConfirmRequest,
    store: SandboxStore = Depends(get_store),
) -> Response:
    try:
        store.confirm(
            request_data.email,
            request_data.username,
            request_data.password,
            request_data.referral_code,
            request_data.payment_intent_id,
        )
    except SandboxError as e:
        raise _http_error(e) from None
    return Response(status_code=status.HTTP_201_CREATED)


@router.post(
    "/users/login/",
    response_model=LoginResponse,
    responses={400: {"model": ErrorResponse, "description": "Invalid credentials"}},
)
async def login(
    request_data: LoginRequest,
    store: SandboxStore = Depends(get_store),
) -> LoginResponse:
    try:
        access, refresh, user = store.login(request_data.login_identifier, request_data.password)
    except SandboxError as e:
        raise _http_error(e) from None
    return LoginResponse(
        **UserResponse.from_user(user).model_dump(),
        access_token=access,
        refresh_token=refresh,
    )


@router.get(
    "/users/profile/",
    response_model=UserResponse,
    responses={401: {"model": ErrorResponse, "description": "Invalid token"}},
)
async def profile(user: SandboxUser = Depends(get_current_user)) -> UserResponse:
    return UserResponse.from_user(user)


@processor_router.post(
    "/v1/payment_intents/{intent_id}/confirm",
    response_model=PaymentIntentResponse,
    responses={402: {"model": ErrorResponse, "description": "Card declined"}},
    summary="Confirm a PaymentIntent with a test card",
)
async def confirm_payment_intent(
    intent_id: str,
    request_data: PaymentConfirmRequest,
    store: SandboxStore = Depends(get_store),
) -> PaymentIntentResponse:
    if not request_data.client_secret.startswith(f"{intent_id}_secret_"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No such payment intent.")
    try:
        confirmed_id, intent_status = store.pay(
            request_data.client_secret, request_data.payment_method
        )
    except SandboxError as e:
        raise _http_error(e) from None
    return PaymentIntentResponse(id=confirmed_id, status=intent_status)
