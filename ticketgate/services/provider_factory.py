"""
Payment provider factory.
Configures which hosted checkout provider to use.
"""

from ticketgate.core.config import get_settings
from ticketgate.services.interfaces.payment import PaymentProvider
from ticketgate.services.mockpay_provider import MockPayProvider
from ticketgate.services.stripe_provider import StripeProvider


def get_payment_provider_strategy() -> PaymentProvider:
    """
    Build the configured provider.

    PAYMENT_PROVIDER=stripe (default) or mock.
    """
    settings = get_settings()

    if settings.PAYMENT_PROVIDER == 'mock':
        return MockPayProvider(settings)
    else:
        return StripeProvider(settings)


# Singleton instance
_provider: PaymentProvider = None

def get_payment_provider() -> PaymentProvider:
    """FastAPI dependency returning the provider singleton."""
    global _provider
    if _provider is None:
        _provider = get_payment_provider_strategy()
    return _provider
