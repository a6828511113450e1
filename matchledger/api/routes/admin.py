"""
Admin routes, guarded by the ``X-Admin-Token`` header.

Clearing tombstones makes any match the backend never actually deleted
visible again, so it is an operator action rather than a player one.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from matchledger.core.auth import validate_admin_token
from matchledger.core.circuit_breaker import CircuitBreaker, get_breaker_state, reset_breaker
from matchledger.core.dependencies import ServiceContainer, get_container
from matchledger.storage import FallbackStore, RestStore

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(validate_admin_token)])


def _backend_breaker(container: ServiceContainer) -> Optional[CircuitBreaker]:
    store = container.store
    if isinstance(store, FallbackStore):
        store = store.primary
    if isinstance(store, RestStore):
        return store.breaker
    return None


def _breaker_state(container: ServiceContainer) -> Optional[str]:
    breaker = _backend_breaker(container)
    return get_breaker_state(breaker) if breaker else None


@router.delete("/tombstones")
async def clear_tombstones(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    cleared = len(container.tombstones)
    container.matches.clear_tombstones()
    return {"cleared": cleared}


@router.get("/status")
async def status(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    return {
        "storage_backend": container.storage_backend,
        "store": container.store.name,
        "tombstones": len(container.tombstones),
        "circuit_breaker": _breaker_state(container),
    }


@router.post("/circuit-breaker/reset")
async def reset_circuit_breaker(container: ServiceContainer = Depends(get_container)) -> Dict[str, Any]:
    """Close the hosted backend breaker once the backend is known to be back."""
    breaker = _backend_breaker(container)
    if breaker is None:
        raise HTTPException(status_code=404, detail="No hosted backend configured")
    reset_breaker(breaker)
    return {"circuit_breaker": get_breaker_state(breaker)}
