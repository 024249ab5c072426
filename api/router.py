from __future__ import annotations

from fastapi import APIRouter

from api.endpoints import access as access_endpoints
from api.endpoints import auth as auth_endpoints
from api.endpoints import bookings as bookings_endpoints
from api.endpoints import health as health_endpoints
from api.endpoints import users as users_endpoints


api_router = APIRouter()

api_router.include_router(health_endpoints.router)
api_router.include_router(auth_endpoints.router)
api_router.include_router(access_endpoints.router)
api_router.include_router(bookings_endpoints.router)
api_router.include_router(users_endpoints.router)
