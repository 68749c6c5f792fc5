"""API v1 router aggregation."""

from fastapi import APIRouter

from line_login.api.v1.routers import auth

api_router = APIRouter()

api_router.include_router(auth.router)  # Authentication endpoints
