"""
Stripe adapter: client-side payment confirmation.

Confirms a PaymentIntent with the publishable key and the intent's
client secret, the same call the browser SDK makes. No return_url is
sent, so Stripe never redirects; a status other than "succeeded" is
handed back to the caller, which shows the payment form again.
"""

import asyncio
import logging

import stripe

from src.domain.models import ProcessorResponse

logger = logging.getLogger(__name__)

MISSING_CARD = "Please enter your card details."
INVALID_CARD = "Your card details could not be processed."


class CardPaymentForm:
    """
    Embedded payment form holding a tokenized payment method.

    Implements the PaymentForm protocol.
    """

    def __init__(self, payment_method: str | None = None) -> None:
        self.payment_method = payment_method

    async def submit(self) -> str | None:
        if not self.payment_method:
            return MISSING_CARD
        if not self.payment_method.startswith("pm_"):
            return INVALID_CARD
        return None


class StripePaymentProcessor:
    """
    Implements PaymentProcessor protocol via the stripe SDK.

    The SDK is synchronous; calls run in a worker thread so the event
    loop is never blocked.
    """

    def __init__(self, publishable_key: str) -> None:
        self._publishable_key = publishable_key

    async def confirm_payment(
        self, client_secret: str, form: CardPaymentForm, redirect: str = "if_required"
    ) -> ProcessorResponse:
        """
        Confirm the PaymentIntent behind client_secret.

        Args:
            client_secret: pi_..._secret_... issued by the backend
            form: Form carrying the payment method id
            redirect: Only "if_required" is supported; redirects are never followed

        Returns:
            ProcessorResponse with either error or (intent_id, status)
        """
        if redirect != "if_required":
            raise ValueError("Automatic redirects are not supported")
        intent_id = client_secret.split("_secret_", 1)[0]
        try:
            intent = await asyncio.to_thread(
                stripe.PaymentIntent.confirm,
                intent_id,
                client_secret=client_secret,
                payment_method=form.payment_method,
                api_key=self._publishable_key,
            )
        except stripe.StripeError as e:
            message = e.user_message or e.code or str(e)
            logger.info("Stripe rejected confirmation of %s: %s", intent_id, e.code)
            return ProcessorResponse(error=message)

        logger.info("Stripe confirmation of %s returned status %s", intent.id, intent.status)
        return ProcessorResponse(intent_id=intent.id, status=intent.status)
