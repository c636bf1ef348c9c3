from fastapi import APIRouter

from cashledger.app.api.v1.endpoints import accounts, flows, imports

api_router = APIRouter(prefix="/api/v1")

api_router.include_router(accounts.router, prefix="/accounts", tags=["accounts"])
api_router.include_router(flows.router, prefix="/flows", tags=["flows"])
api_router.include_router(imports.router, prefix="/imports", tags=["imports"])
