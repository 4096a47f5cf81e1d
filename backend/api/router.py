from __future__ import annotations

from fastapi import APIRouter, Depends

from api.deps import get_current_user, require_admin, require_student
from api.routes import analytics, auth, batches, dashboard, feedback, profile, realtime, student, subjects, timetable, users


api_router = APIRouter()
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(realtime.router, prefix="/realtime", tags=["realtime"])

_authenticated = [Depends(get_current_user)]
api_router.include_router(profile.router, prefix="/profile", tags=["profile"], dependencies=_authenticated)
api_router.include_router(batches.router, prefix="/batches", tags=["batches"], dependencies=_authenticated)
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"], dependencies=_authenticated)
api_router.include_router(
    student.router, prefix="/student", tags=["student"], dependencies=[Depends(require_student)]
)

# Admin-only surfaces.
_protected = [Depends(require_admin)]
api_router.include_router(subjects.router, prefix="/subjects", tags=["subjects"], dependencies=_protected)
api_router.include_router(timetable.router, prefix="/timetable", tags=["timetable"], dependencies=_protected)
api_router.include_router(feedback.router, prefix="/feedback", tags=["feedback"], dependencies=_protected)
api_router.include_router(users.router, prefix="/users", tags=["users"], dependencies=_protected)
api_router.include_router(analytics.router, prefix="/analytics", tags=["analytics"], dependencies=_protected)
