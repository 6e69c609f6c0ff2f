from fastapi import APIRouter
from app.api.v1.endpoints import auth, users, flats, notices, complaints, maintenance, memory_lane, dashboard, health

api_router = APIRouter()

# Liveness at /health, readiness at /health/ready
api_router.include_router(health.router)

api_router.include_router(auth.router, prefix="/auth", tags=["Authentication"])
api_router.include_router(users.router, prefix="/users", tags=["User Management"])
api_router.include_router(flats.router, prefix="/flats", tags=["Flats"])
api_router.include_router(notices.router, prefix="/notices", tags=["Notices"])
api_router.include_router(complaints.router, prefix="/complaints", tags=["Complaints"])
api_router.include_router(maintenance.router, prefix="/maintenance", tags=["Maintenance"])
api_router.include_router(memory_lane.router, prefix="/memory-lane", tags=["Memory Lane"])
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
