"""Central router that includes all sub-routers."""

from fastapi import APIRouter

from roomcheck.api.workspaces import router as workspaces_router
from roomcheck.api.flows import router as flows_router

api_router = APIRouter()
api_router.include_router(workspaces_router)
api_router.include_router(flows_router)
