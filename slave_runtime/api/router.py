from fastapi import APIRouter
from slave_runtime.api.endpoints import status

api_router = APIRouter()
api_router.include_router(status.router, tags=["Status"])
