"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .payment import CheckoutSession, PaymentCompleted, PaymentProvider

__all__ = ['CheckoutSession', 'PaymentCompleted', 'PaymentProvider']
