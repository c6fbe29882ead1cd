"""
API module for the EVM agent guard.

Provides FastAPI routes and models exposing the transaction firewall to an
out-of-process action layer.
"""

from evm_guard.api.models import (
    AddressRequest,
    AmountRequest,
    CheckRequest,
    ConfirmRequest,
    ReleaseRequest,
)

__all__ = [
    "AddressRequest",
    "AmountRequest",
    "CheckRequest",
    "ConfirmRequest",
    "ReleaseRequest",
]
