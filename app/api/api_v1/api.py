from fastapi import APIRouter
from .endpoints import (
    auth,
    users,
    clients,
    projects,
    tasks,
    time_entries,
    timers,
    reports,
    teams,
    collaborations,
    notifications,
    scheduled_notifications,
)

api_router = APIRouter()

api_router.include_router(auth.router, prefix="/auth", tags=["authentication"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(clients.router, prefix="/clients", tags=["clients"])
api_router.include_router(projects.router, prefix="/projects", tags=["projects"])
api_router.include_router(tasks.router, prefix="/tasks", tags=["tasks"])
api_router.include_router(time_entries.router, prefix="/time-entries", tags=["time-entries"])
api_router.include_router(timers.router, prefix="/timers", tags=["timers"])
api_router.include_router(reports.router, prefix="/reports", tags=["reports"])
api_router.include_router(teams.router, prefix="/teams", tags=["teams"])
api_router.include_router(collaborations.router, prefix="/collaborations", tags=["collaborations"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(scheduled_notifications.router, prefix="/scheduled-notifications", tags=["scheduled-notifications"])
