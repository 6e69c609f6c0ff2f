# API endpoints
from . import auth, users, flats, notices, complaints, maintenance, memory_lane, dashboard, health

__all__ = ["auth", "users", "flats", "notices", "complaints", "maintenance", "memory_lane", "dashboard", "health"]
