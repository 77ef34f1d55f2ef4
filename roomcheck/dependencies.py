"""FastAPI dependency providers: settings, variant, backend, workspaces."""

from __future__ import annotations

from functools import lru_cache

from fastapi import Depends, Request

from roomcheck.config import Settings, get_settings
from roomcheck.services.backend import InspectionBackend, get_backend
from roomcheck.services.variants import InspectionVariant, get_variant
from roomcheck.services.workspace_store import Workspace, WorkspaceStore, workspace_store


@lru_cache
def get_settings_dep() -> Settings:
    return get_settings()


def get_variant_dep(settings: Settings = Depends(get_settings_dep)) -> InspectionVariant:
    return get_variant(settings.variant, settings)


def get_backend_dep(
    request: Request,
    settings: Settings = Depends(get_settings_dep),
    variant: InspectionVariant = Depends(get_variant_dep),
) -> InspectionBackend:
    """The backend built at startup; created lazily when lifespan did not run."""
    backend = getattr(request.app.state, "backend", None)
    if backend is None:
        backend = get_backend(settings, variant)
        request.app.state.backend = backend
    return backend


def get_store() -> WorkspaceStore:
    return workspace_store


def get_workspace(workspace_id: str, store: WorkspaceStore = Depends(get_store)) -> Workspace:
    return store.get(workspace_id)
