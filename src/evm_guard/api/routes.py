from typing import Any

from fastapi import APIRouter, HTTPException, Request

from evm_guard.api.models import (
    AddressRequest,
    AllowResponse,
    AmountRequest,
    CheckRequest,
    ConfirmRequest,
    ConfirmResponse,
    ReleaseRequest,
    ReleaseResponse,
)
from evm_guard.core.models import FirewallDecision
from evm_guard.firewall.pipeline import TransactionFirewall

router = APIRouter(tags=["Transaction Firewall"])


def get_firewall(request: Request) -> TransactionFirewall:
    """Dependency to retrieve the initialized TransactionFirewall from app state."""
    firewall = getattr(request.app.state, "firewall", None)
    if not firewall:
        raise HTTPException(status_code=500, detail="firewall not initialized")
    return firewall


@router.get("/status")
def status(request: Request) -> dict[str, Any]:
    """Current spend counters, contract-list mode and simulation setting."""
    return get_firewall(request).status()


@router.post("/check", response_model=FirewallDecision)
def check(request: Request, req: CheckRequest):
    """
    Run a transaction intent through the firewall.

    Nothing is recorded: report spend with `/spend/record` once the
    transaction has actually been broadcast.
    """
    return get_firewall(request).check(req)


@router.post("/reserve", response_model=FirewallDecision)
def reserve(request: Request, req: CheckRequest):
    """
    Check a transaction and hold its estimated spend.

    Follow up with `/spend/confirm` after broadcast or `/spend/release`
    if the transaction is abandoned.
    """
    return get_firewall(request).check_and_reserve(req)


@router.post("/spend/record")
def record_spend(request: Request, req: AmountRequest) -> dict[str, int]:
    firewall = get_firewall(request)
    firewall.record_spend(req.amount)
    return {"remaining_period": firewall.get_remaining_period()}


@router.post("/spend/confirm", response_model=ConfirmResponse)
def confirm_spend(request: Request, req: ConfirmRequest):
    firewall = get_firewall(request)
    recorded = firewall.confirm_spend(req.reservation_id, req.amount)
    return ConfirmResponse(recorded=recorded, remaining_period=firewall.get_remaining_period())


@router.post("/spend/release", response_model=ReleaseResponse)
def release_spend(request: Request, req: ReleaseRequest):
    return ReleaseResponse(released=get_firewall(request).release_spend(req.reservation_id))


@router.post("/spend/reset")
def reset_spend(request: Request) -> dict[str, int]:
    firewall = get_firewall(request)
    firewall.reset_period_spend()
    return {"remaining_period": firewall.get_remaining_period()}


@router.post("/contracts/block")
def block_contract(request: Request, req: AddressRequest) -> dict[str, str]:
    get_firewall(request).block(req.address)
    return {"blocked": req.address}


@router.post("/contracts/allow", response_model=AllowResponse)
def allow_contract(request: Request, req: AddressRequest):
    return AllowResponse(allowed=get_firewall(request).allow(req.address))
