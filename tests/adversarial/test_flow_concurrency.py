"""
Adversarial tests for the registration flow under concurrency.

Remote calls are held open with asyncio.Event so a second transition,
an abandon() or a stale result can be injected while the first is
still pending.

Scenarios:
- Double submit while a call is in flight
- Results arriving after abandon()
- A payment that succeeds after the user walked away
"""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from src.domain.exceptions import InvalidTransition
from src.domain.models import ProcessorResponse
from src.domain.ports import FlowState
from src.domain.registration import RegistrationFlow

pytestmark = [pytest.mark.adversarial, pytest.mark.asyncio]


def gated(result):
    """AsyncMock side effect that waits for release before returning result."""
    release = asyncio.Event()
    started = asyncio.Event()

    async def side_effect(*args, **kwargs):
        started.set()
        await release.wait()
        if isinstance(result, Exception):
            raise result
        return result

    return side_effect, started, release


class TestDoubleSubmit:
    """A second transition while one is pending is refused."""

    async def test_second_submit_details_rejected(self, flow: RegistrationFlow, backend: AsyncMock) -> None:
        side_effect, started, release = gated("sec_1")
        backend.initiate_registration.side_effect = side_effect

        first = asyncio.create_task(flow.submit_details())
        await started.wait()
        assert flow.in_flight

        with pytest.raises(InvalidTransition):
            await flow.submit_details()

        release.set()
        assert await first is FlowState.AWAITING_PAYMENT
        assert backend.initiate_registration.await_count == 1
        assert not flow.in_flight

    async def test_second_payment_rejected_no_double_charge(
        self, flow: RegistrationFlow, processor: AsyncMock, backend: AsyncMock, payment_form_factory
    ) -> None:
        await flow.submit_details()
        side_effect, started, release = gated(ProcessorResponse(intent_id="pi_9", status="succeeded"))
        processor.confirm_payment.side_effect = side_effect

        first = asyncio.create_task(flow.submit_payment(payment_form_factory()))
        await started.wait()

        with pytest.raises(InvalidTransition):
            await flow.submit_payment(payment_form_factory())
        with pytest.raises(InvalidTransition):
            flow.back_to_details()

        release.set()
        assert await first is FlowState.AUTHENTICATED
        assert processor.confirm_payment.await_count == 1
        assert backend.confirm_registration.await_count == 1

    async def test_in_flight_cleared_after_failure(self, flow: RegistrationFlow, backend: AsyncMock) -> None:
        backend.initiate_registration.side_effect = RuntimeError("bug in adapter")

        with pytest.raises(RuntimeError):
            await flow.submit_details()

        assert not flow.in_flight


class TestStaleResults:
    """Results resolving after abandon() never change the flow."""

    async def test_initiate_result_after_abandon_discarded(
        self, flow: RegistrationFlow, backend: AsyncMock
    ) -> None:
        side_effect, started, release = gated("sec_late")
        backend.initiate_registration.side_effect = side_effect
        seen = []
        flow.subscribe(lambda f: seen.append(f.state))

        task = asyncio.create_task(flow.submit_details())
        await started.wait()
        flow.abandon()
        release.set()

        assert await task is FlowState.COLLECTING_DETAILS
        assert flow.handle is None
        assert seen == []

    async def test_payment_success_after_abandon_not_finalized(
        self,
        flow: RegistrationFlow,
        processor: AsyncMock,
        backend: AsyncMock,
        auth: AsyncMock,
        payment_form_factory,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """The captured payment is logged for reconciliation, not silently dropped."""
        await flow.submit_details()
        side_effect, started, release = gated(ProcessorResponse(intent_id="pi_late", status="succeeded"))
        processor.confirm_payment.side_effect = side_effect

        task = asyncio.create_task(flow.submit_payment(payment_form_factory()))
        await started.wait()
        flow.abandon()
        with caplog.at_level(logging.WARNING, logger="src.domain.registration"):
            release.set()
            state = await task

        assert state is FlowState.AWAITING_PAYMENT
        backend.confirm_registration.assert_not_called()
        auth.login.assert_not_called()
        assert "pi_late" in caplog.text

    async def test_finalize_result_after_abandon_creates_no_session(
        self, flow: RegistrationFlow, backend: AsyncMock, auth: AsyncMock, payment_form_factory
    ) -> None:
        await flow.submit_details()
        side_effect, started, release = gated(None)
        backend.confirm_registration.side_effect = side_effect

        task = asyncio.create_task(flow.submit_payment(payment_form_factory()))
        await started.wait()
        flow.abandon()
        release.set()

        assert await task is FlowState.FINALIZING
        auth.login.assert_not_called()
        assert not flow.sessions.is_authenticated

    async def test_abandon_is_idempotent(self, flow: RegistrationFlow) -> None:
        flow.abandon()
        flow.abandon()
        assert not flow.is_active
