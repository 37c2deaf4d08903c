"""
V1 API router aggregator — wires all endpoint modules together.
"""

from fastapi import APIRouter

from app.api.v1.endpoints import attendance, fraud, locations, point_rules, points, system

api_router = APIRouter()

# Check-in / check-out and the user's day
api_router.include_router(attendance.router)

# Admin: geofences, scoring rules, fraud review
api_router.include_router(locations.router)
api_router.include_router(point_rules.router)
api_router.include_router(fraud.router)

# Points balance and ledger
api_router.include_router(points.router)

# Health
api_router.include_router(system.router)
