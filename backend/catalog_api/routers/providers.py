"""Provider configuration endpoints."""
from fastapi import APIRouter, Depends, HTTPException

from ..dependencies import get_provider_store
from ..schemas import ProviderConfigModel
from ..stores.provider_store import ProviderStore

router = APIRouter(prefix="/providers", tags=["providers"])


@router.get("", response_model=list[ProviderConfigModel])
def list_providers(store: ProviderStore = Depends(get_provider_store)) -> list[ProviderConfigModel]:
    """Return every configured provider."""

    return store.list()


@router.put("/{name}", response_model=ProviderConfigModel)
def save_provider(
    name: str,
    config: ProviderConfigModel,
    store: ProviderStore = Depends(get_provider_store),
) -> ProviderConfigModel:
    """Create or replace the provider configuration stored under ``name``."""

    if config.name != name:
        raise HTTPException(status_code=422, detail="Provider name does not match the path")
    return store.save(config)


@router.delete("/{name}", status_code=204)
def delete_provider(name: str, store: ProviderStore = Depends(get_provider_store)) -> None:
    if not store.delete(name):
        raise HTTPException(status_code=404, detail="Provider not found")
