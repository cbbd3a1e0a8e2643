from fastapi import APIRouter

from app.api.routes import status, webhook

api_router = APIRouter()

api_router.include_router(webhook.router, tags=["webhook"])
api_router.include_router(status.router, tags=["status"])
