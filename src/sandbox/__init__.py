"""
Sandbox package.

In-memory stand-in for the referral backend and its payment processor.
"""

from src.sandbox.routes import processor_router, router

__all__ = ["processor_router", "router"]
