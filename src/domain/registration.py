"""
Registration flow - Paid-signup state machine.

This module drives account creation conditioned on payment, across the
client, the application backend and the payment processor.

Registration State Machine
==========================

States:
- COLLECTING_DETAILS: Signup form is being filled in
- AWAITING_PAYMENT: Backend reserved the account and issued a client secret
- FINALIZING: Processor captured the payment, account is being confirmed
- AUTHENTICATED: Account confirmed and the new identity is logged in
- FAILED: Stage-tagged failure (see RegistrationFailure)

Transitions:
    COLLECTING_DETAILS -> AWAITING_PAYMENT   submit_details(), secret received
    AWAITING_PAYMENT   -> FINALIZING         submit_payment(), payment succeeded
    FINALIZING         -> AUTHENTICATED      confirm accepted, login succeeded
    any                -> FAILED             stage-tagged failure

Recovery is always user-initiated:
- FAILED(validation|initiate): submit_details() again
- FAILED(payment): submit_payment() again, or back_to_details()
- FAILED(finalize): retry_finalization() only; it re-sends the same intent
  id and never creates a new intent, so it cannot charge twice
- FAILED(post_payment_login): none; the account exists, the user logs in

No session is ever created before the backend accepted the payment
intent id. One instance serves one signup; results that resolve after
abandon() are discarded.
"""

import logging
from dataclasses import dataclass, field

from .exceptions import (
    ClientError,
    ConsistencyError,
    ContractViolation,
    InvalidTransition,
    PaymentError,
    ValidationError,
)
from .models import (
    PaymentFailed,
    PaymentIntentHandle,
    RequiresAction,
    RetainedDetails,
    Succeeded,
)
from .payment import PaymentConfirmationAdapter
from .ports import FailureKind, FlowStage, FlowState, PaymentForm, RegistrationBackend, StateListener
from .session import SessionStore
from .validation import FORM_INVALID, RegistrationForm

logger = logging.getLogger(__name__)

NO_CLIENT_SECRET = "no client secret"
INITIATE_FAILED_MESSAGE = "Could not initiate payment. Please try again."
REGISTRATION_FAILED_MESSAGE = "Registration failed."
PAYMENT_INCOMPLETE_MESSAGE = "Payment was not successful. Please try again."
CONSISTENCY_MESSAGE = (
    "Your payment was received but we could not finish creating your account. "
    "Please contact support and do not pay again."
)
POST_PAYMENT_LOGIN_MESSAGE = (
    "Your account has been created and your payment received, "
    "but we could not sign you in automatically. Please log in."
)

STEP_DETAILS = "details"
STEP_PAYMENT = "payment"
STEP_COMPLETE = "complete"


@dataclass(frozen=True)
class RegistrationFailure:
    """
    Stage-tagged failure surfaced to the caller.

    Attributes:
        stage: Where the flow failed
        kind: Failure taxonomy entry
        reason: Short cause (processor or backend message)
        message: User-visible text
        error: Underlying domain exception
        can_resubmit: Whether a "try again" path is offered
    """

    stage: FlowStage
    kind: FailureKind
    reason: str
    message: str
    error: ClientError | None = None
    can_resubmit: bool = True


@dataclass
class RegistrationFlow:
    """
    Domain service for one paid-signup attempt.

    Every public transition is guarded by an in-flight flag: a second
    call while a remote operation is pending raises InvalidTransition.
    """

    backend: RegistrationBackend
    payments: PaymentConfirmationAdapter
    sessions: SessionStore
    form: RegistrationForm = field(default_factory=RegistrationForm)
    state: FlowState = field(default=FlowState.COLLECTING_DETAILS, init=False)
    failure: RegistrationFailure | None = field(default=None, init=False)
    handle: PaymentIntentHandle | None = field(default=None, init=False)
    in_flight: bool = field(default=False, init=False)
    _attempt: int = field(default=0, init=False)
    _active: bool = field(default=True, init=False)
    _retained: RetainedDetails | None = field(default=None, init=False, repr=False)
    _paid_intent_id: str | None = field(default=None, init=False)
    _finalized_intent_id: str | None = field(default=None, init=False)
    _listeners: list[StateListener] = field(default_factory=list, init=False, repr=False)

    @property
    def step(self) -> str:
        """Which form the UI shows: details, payment or complete."""
        if self.state is FlowState.COLLECTING_DETAILS:
            return STEP_DETAILS
        if self.state is FlowState.AWAITING_PAYMENT:
            return STEP_PAYMENT
        if self.state is FlowState.FAILED and self.failure is not None:
            if self.failure.stage in (FlowStage.VALIDATION, FlowStage.INITIATE):
                return STEP_DETAILS
            if self.failure.stage is FlowStage.PAYMENT:
                return STEP_PAYMENT
        return STEP_COMPLETE

    @property
    def is_active(self) -> bool:
        return self._active

    def subscribe(self, listener: StateListener) -> None:
        self._listeners.append(listener)

    async def submit_details(self) -> FlowState:
        """
        Validate the draft and create a registration intent.

        Each call starts a new attempt with its own single-use client
        secret; a secret from an earlier attempt is never reused.

        Returns:
            AWAITING_PAYMENT on success, FAILED otherwise

        Raises:
            InvalidTransition: Not on the details step, abandoned, or busy
        """
        self._require(self.step == STEP_DETAILS, "submit_details")
        self._begin()
        try:
            if not self.form.validate_all():
                error = ValidationError(FORM_INVALID, self.form.field_errors())
                return self._fail(
                    FlowStage.VALIDATION, FailureKind.VALIDATION_FAILED, FORM_INVALID, error
                )

            self._attempt += 1
            attempt = self._attempt
            self.handle = None
            draft = self.form.draft
            details = RetainedDetails(
                email=draft.email,
                username=draft.username,
                password=draft.password,
                referral_code=draft.referral_code,
            )
            logger.info("Initiating registration attempt %d for %s", attempt, details.email)

            try:
                client_secret = await self.backend.initiate_registration(
                    details.email, details.username, details.password, details.referral_code
                )
            except ClientError as e:
                if self._is_stale(attempt):
                    return self.state
                return self._fail(
                    FlowStage.INITIATE,
                    FailureKind.INTENT_CREATION_FAILED,
                    e.message or REGISTRATION_FAILED_MESSAGE,
                    e,
                )

            if self._is_stale(attempt):
                return self.state
            if not client_secret:
                return self._fail(
                    FlowStage.INITIATE,
                    FailureKind.INTENT_CREATION_FAILED,
                    NO_CLIENT_SECRET,
                    ContractViolation(NO_CLIENT_SECRET),
                    message=INITIATE_FAILED_MESSAGE,
                )

            self._retained = details
            draft.confirm_password = ""
            self.handle = PaymentIntentHandle(client_secret=client_secret, attempt=attempt)
            return self._transition(FlowState.AWAITING_PAYMENT)
        finally:
            self.in_flight = False

    async def submit_payment(self, payment_form: PaymentForm) -> FlowState:
        """
        Confirm the payment, finalize the account and log it in.

        Returns:
            AUTHENTICATED on success, FAILED otherwise

        Raises:
            InvalidTransition: Not on the payment step, abandoned, or busy
        """
        self._require(self.step == STEP_PAYMENT and self.handle is not None, "submit_payment")
        self._begin()
        try:
            attempt = self._attempt
            handle = self.handle
            result = await self.payments.confirm(handle.client_secret, payment_form)

            if self._is_stale(attempt):
                if isinstance(result, Succeeded):
                    logger.warning(
                        "Payment %s succeeded after attempt %d was abandoned; not finalized",
                        result.intent_id,
                        attempt,
                    )
                return self.state

            if isinstance(result, PaymentFailed):
                return self._fail(
                    FlowStage.PAYMENT,
                    FailureKind.PAYMENT_DECLINED,
                    result.reason,
                    PaymentError(result.reason),
                )
            if isinstance(result, RequiresAction):
                return self._fail(
                    FlowStage.PAYMENT,
                    FailureKind.PAYMENT_DECLINED,
                    result.status,
                    PaymentError(result.status),
                    message=PAYMENT_INCOMPLETE_MESSAGE,
                )

            self._paid_intent_id = result.intent_id
            self._transition(FlowState.FINALIZING)
            return await self._finalize(attempt)
        finally:
            self.in_flight = False

    async def retry_finalization(self) -> FlowState:
        """
        Re-send the confirmation for the payment already captured.

        Uses the same payment intent id, so the backend treats it as the
        same account creation. Once finalized, further calls are accepted
        as success without another confirm or login.
        """
        if self.state is FlowState.AUTHENTICATED:
            return self.state
        self._require(
            self.failure is not None and self.failure.stage is FlowStage.FINALIZE,
            "retry_finalization",
        )
        self._begin()
        try:
            self._transition(FlowState.FINALIZING)
            return await self._finalize(self._attempt)
        finally:
            self.in_flight = False

    def back_to_details(self) -> FlowState:
        """
        Leave the payment step. The current client secret is discarded.

        The confirmation field is refilled from the retained password so
        the unchanged draft can be submitted again as is.
        """
        self._require(self.step == STEP_PAYMENT, "back_to_details")
        if self._retained is not None:
            self.form.draft.confirm_password = self._retained.password
        self.handle = None
        self._retained = None
        self.failure = None
        return self._transition(FlowState.COLLECTING_DETAILS)

    def abandon(self) -> None:
        """Detach the flow; results that resolve later are discarded."""
        if not self._active:
            return
        self._active = False
        self._retained = None
        self.handle = None
        logger.info("Registration attempt %d abandoned in state %s", self._attempt, self.state.value)

    async def _finalize(self, attempt: int) -> FlowState:
        details = self._retained
        intent_id = self._paid_intent_id

        if self._finalized_intent_id != intent_id:
            try:
                await self.backend.confirm_registration(
                    details.email,
                    details.username,
                    details.password,
                    details.referral_code,
                    payment_intent_id=intent_id,
                )
            except ClientError as e:
                if self._is_stale(attempt):
                    return self.state
                logger.error("Payment %s captured but finalization failed: %s", intent_id, e.message)
                return self._fail(
                    FlowStage.FINALIZE,
                    FailureKind.FINALIZATION_FAILED,
                    e.message or REGISTRATION_FAILED_MESSAGE,
                    ConsistencyError(CONSISTENCY_MESSAGE, intent_id),
                    message=CONSISTENCY_MESSAGE,
                    can_resubmit=False,
                )
            self._finalized_intent_id = intent_id
            logger.info("Registration finalized for payment %s", intent_id)

        if self._is_stale(attempt):
            return self.state

        try:
            await self.sessions.login(details.email, details.password)
        except ClientError as e:
            if self._is_stale(attempt):
                return self.state
            self._retained = None
            return self._fail(
                FlowStage.POST_PAYMENT_LOGIN,
                FailureKind.POST_PAYMENT_AUTH_FAILED,
                e.message or POST_PAYMENT_LOGIN_MESSAGE,
                e,
                message=POST_PAYMENT_LOGIN_MESSAGE,
                can_resubmit=False,
            )

        if self._is_stale(attempt):
            return self.state
        self._retained = None
        self.handle = None
        return self._transition(FlowState.AUTHENTICATED)

    def _require(self, condition: bool, operation: str) -> None:
        if not self._active:
            raise InvalidTransition(f"{operation}: registration flow was abandoned")
        if self.in_flight:
            raise InvalidTransition(f"{operation}: another step is in flight")
        if not condition:
            raise InvalidTransition(f"{operation} not allowed in state {self.state.value}")

    def _begin(self) -> None:
        self.in_flight = True

    def _is_stale(self, attempt: int) -> bool:
        stale = not self._active or attempt != self._attempt
        if stale:
            logger.warning("Discarding result of stale registration attempt %d", attempt)
        return stale

    def _transition(self, state: FlowState) -> FlowState:
        logger.info("Registration attempt %d: %s -> %s", self._attempt, self.state.value, state.value)
        self.state = state
        if state is not FlowState.FAILED:
            self.failure = None
        self._notify()
        return state

    def _fail(
        self,
        stage: FlowStage,
        kind: FailureKind,
        reason: str,
        error: ClientError | None,
        message: str | None = None,
        can_resubmit: bool = True,
    ) -> FlowState:
        self.failure = RegistrationFailure(
            stage=stage,
            kind=kind,
            reason=reason,
            message=message or reason,
            error=error,
            can_resubmit=can_resubmit,
        )
        logger.info("Registration attempt %d failed at %s: %s", self._attempt, stage.value, kind.value)
        return self._transition(FlowState.FAILED)

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener(self)
