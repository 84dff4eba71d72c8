"""
Sandbox processor adapter - Implements PaymentProcessor protocol.

Talks to the sandbox's processor endpoint instead of Stripe, so the
whole paid-signup flow can run locally with test card ids.
"""

import logging

import httpx

from src.adapters.payments.stripe_processor import CardPaymentForm
from src.domain.models import ProcessorResponse

logger = logging.getLogger(__name__)


class SandboxPaymentProcessor:
    """
    Implements PaymentProcessor protocol via the sandbox HTTP endpoint.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(base_url=base_url, timeout=timeout, transport=transport)

    async def confirm_payment(
        self, client_secret: str, form: CardPaymentForm, redirect: str = "if_required"
    ) -> ProcessorResponse:
        intent_id = client_secret.split("_secret_", 1)[0]
        try:
            response = await self._client.post(
                f"/v1/payment_intents/{intent_id}/confirm",
                json={"client_secret": client_secret, "payment_method": form.payment_method},
            )
        except httpx.HTTPError as e:
            logger.warning("Sandbox processor unreachable: %s", type(e).__name__)
            return ProcessorResponse(error="Payment service unavailable.")

        try:
            data = response.json()
        except ValueError:
            data = {}
        if not isinstance(data, dict):
            data = {}
        if not response.is_success:
            return ProcessorResponse(error=str(data.get("detail") or "Payment failed."))
        return ProcessorResponse(intent_id=data.get("id"), status=data.get("status"))

    async def aclose(self) -> None:
        await self._client.aclose()
