from .auth import router as auth_router
from .events import router as events_router
from .teams import router as teams_router
from .submissions import router as submissions_router
from .evaluations import router as evaluations_router
from .notifications import router as notifications_router
from .announcements import router as announcements_router

__all__ = [
    'auth_router',
    'events_router',
    'teams_router',
    'submissions_router',
    'evaluations_router',
    'notifications_router',
    'announcements_router',
]
