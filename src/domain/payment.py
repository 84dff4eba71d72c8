"""
Payment confirmation adapter - Translates processor replies for the flow.

Wraps the processor's client-side confirmation call and maps its result
vocabulary (error / succeeded / anything else) onto
PaymentConfirmationResult. Holds no state across invocations.
"""

import logging
from dataclasses import dataclass

from .models import PaymentConfirmationResult, PaymentFailed, RequiresAction, Succeeded
from .ports import PAYMENT_SUCCEEDED, PaymentForm, PaymentProcessor

logger = logging.getLogger(__name__)

FORM_ERROR = "An unexpected error occurred."
PAYMENT_ERROR = "An unexpected error occurred during payment."


@dataclass
class PaymentConfirmationAdapter:
    """Confirms one payment and classifies the outcome."""

    processor: PaymentProcessor

    async def confirm(self, client_secret: str, form: PaymentForm) -> PaymentConfirmationResult:
        """
        Confirm the payment behind client_secret.

        Steps:
        1. Flush the embedded form (validation/tokenization)
        2. Ask the processor to confirm, with automatic redirect suppressed
        3. Classify: error -> PaymentFailed, "succeeded" -> Succeeded,
           any other status -> RequiresAction

        Args:
            client_secret: Secret issued for this registration attempt
            form: Embedded payment form

        Returns:
            PaymentConfirmationResult for the registration flow
        """
        try:
            submit_error = await form.submit()
        except Exception as e:
            logger.warning("Payment form submission raised %s", type(e).__name__)
            return PaymentFailed(FORM_ERROR)
        if submit_error is not None:
            logger.info("Payment form rejected submission")
            return PaymentFailed(submit_error or FORM_ERROR)

        try:
            response = await self.processor.confirm_payment(
                client_secret, form, redirect="if_required"
            )
        except Exception as e:
            # Opaque third-party capability: any raised fault is a failed confirmation.
            logger.warning("Processor confirmation raised %s", type(e).__name__)
            return PaymentFailed(str(e) or PAYMENT_ERROR)

        if response.error is not None:
            return PaymentFailed(response.error or PAYMENT_ERROR)

        if response.status == PAYMENT_SUCCEEDED and response.intent_id:
            return Succeeded(response.intent_id)

        logger.info("Payment %s not completed (status=%s)", response.intent_id, response.status)
        return RequiresAction(response.status or "unknown")
