from __future__ import annotations

from fastapi import APIRouter

from groundwork.api.deps import get_available_providers
from groundwork.models.schemas import ProviderInfo, ProvidersResponse

router = APIRouter(prefix="/api/providers", tags=["providers"])


@router.get("", response_model=ProvidersResponse)
async def list_providers():
    """List the search providers a discovery run can enable."""
    return ProvidersResponse(providers=[ProviderInfo(**p) for p in get_available_providers()])
