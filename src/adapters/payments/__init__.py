"""Payment adapters - Stripe and sandbox processors, card payment form."""

from .sandbox_processor import SandboxPaymentProcessor
from .stripe_processor import CardPaymentForm, StripePaymentProcessor

__all__ = ["CardPaymentForm", "SandboxPaymentProcessor", "StripePaymentProcessor"]
