"""
V1 API router aggregator: wires all endpoint modules together.
"""

from fastapi import APIRouter

from workforce.api.v1.endpoints import attendance, auth, health

api_router = APIRouter()

# Auth (register, login, refresh, user management)
api_router.include_router(auth.router)

# Check-in / check-out, history, reports, team view
api_router.include_router(attendance.router)

# Health
api_router.include_router(health.router)
