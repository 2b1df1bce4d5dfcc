from fastapi import APIRouter
from workforce.routers import attendance, leave, leave_credits

# Centralized API router hub
# Routers are aggregated here and main.py only imports this single hub.
api_router = APIRouter()

api_router.include_router(leave.router, tags=["Leave"])
api_router.include_router(leave_credits.router, tags=["Leave Credits"])
api_router.include_router(attendance.router, tags=["Attendance"])
