"""
Gateway adapter injection shared by the payment services.

Services look their adapters up by provider instead of importing them
directly, so tests can swap in a fake adapter class:

    PaymentInitiationService.set_gateway_adapter("mpesa", FakeMpesa)
    ...
    PaymentInitiationService.set_gateway_adapter("mpesa", None)  # restore
"""

from __future__ import annotations

from payments.adapters import MpesaAdapter, PaystackAdapter
from payments.state_machines import PaymentProvider

DEFAULT_ADAPTERS: dict[str, type] = {
    PaymentProvider.MPESA: MpesaAdapter,
    PaymentProvider.PAYSTACK: PaystackAdapter,
}


class GatewayAdapterMixin:
    """Per-service, per-provider adapter overrides."""

    _gateway_adapters: dict[str, type] = {}

    @classmethod
    def get_gateway_adapter(cls, provider: str = PaymentProvider.PAYSTACK) -> type:
        """Get the adapter class for a provider."""
        return cls._gateway_adapters.get(provider) or DEFAULT_ADAPTERS[provider]

    @classmethod
    def set_gateway_adapter(cls, provider: str, adapter: type | None) -> None:
        """Set the adapter class for a provider (for testing). None restores the default."""
        adapters = dict(cls._gateway_adapters)
        if adapter is None:
            adapters.pop(provider, None)
        else:
            adapters[provider] = adapter
        cls._gateway_adapters = adapters
