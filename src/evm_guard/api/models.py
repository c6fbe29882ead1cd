from pydantic import BaseModel, Field

from evm_guard.core.models import TransactionIntent


class CheckRequest(TransactionIntent):
    """Request model for a firewall check. Same fields as TransactionIntent."""


class AmountRequest(BaseModel):
    """Request model for recording spend."""

    amount: int = Field(..., ge=0, description="Amount in wei")


class ConfirmRequest(BaseModel):
    """Request model for confirming a reservation."""

    reservation_id: str = Field(..., description="Reservation returned by /reserve")
    amount: int | None = Field(
        None, ge=0, description="Realized spend in wei. Defaults to the reserved amount."
    )


class ReleaseRequest(BaseModel):
    """Request model for releasing a reservation."""

    reservation_id: str = Field(..., description="Reservation returned by /reserve")


class AddressRequest(BaseModel):
    """Request model for runtime contract list edits."""

    address: str = Field(..., description="Contract address")


class ConfirmResponse(BaseModel):
    recorded: int = Field(..., description="Wei added to period spend")
    remaining_period: int = Field(..., description="Wei left in the current period")


class ReleaseResponse(BaseModel):
    released: bool = Field(..., description="False if the reservation was unknown")


class AllowResponse(BaseModel):
    allowed: bool = Field(..., description="False when the firewall is not in allowlist mode")
