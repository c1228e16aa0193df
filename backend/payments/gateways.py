from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .models import PaymentProvider


class GatewayError(Exception):
    """The payment gateway could not be reached or returned an unusable response."""

    def __init__(self, message: str, *, reason_code: Optional[str] = None):
        super().__init__(message)
        self.reason_code = reason_code


@dataclass(frozen=True)
class CredentialCheck:
    valid: bool
    error: str = ""
    error_code: str = ""


_registry: Dict[str, object] = {}


def register_gateway(provider: str, gateway) -> None:
    _registry[provider] = gateway


def get_gateway(provider: str):
    """Return the gateway client configured for ``provider`` at startup."""
    try:
        return _registry[provider]
    except KeyError:
        raise GatewayError(f"Payment provider {provider} is not configured.") from None


def is_supported_provider(provider: Optional[str]) -> bool:
    return provider in PaymentProvider.values
