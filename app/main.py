import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.v1.admin.router import router as admin_router
from app.api.v1.advisor.router import router as advisor_router
from app.api.v1.allocations.router import router as allocations_router
from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.departments.department_router import router as departments_router
from app.api.v1.reports.router import router as reports_router
from app.api.v1.student.router import router as student_portal_router
from app.api.v1.students.router import router as students_router
from app.api.v1.subjects.router import router as subjects_router
from app.api.v1.teacher.router import router as teacher_portal_router
from app.api.v1.teachers.router import router as teachers_router
from app.api.v1.timetables.router import router as timetables_router
from app.api.v1.users.router import router as users_router
from app.core.config import settings
from app.core.logging import configure_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    configure_logging(settings.log_level)
    app = FastAPI(title="Attendance Management Backend")

    # CORS: allow frontend to call this API
    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins or ["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(Exception)
    async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Routers
    app.include_router(auth_router)
    app.include_router(departments_router)
    app.include_router(subjects_router)
    app.include_router(users_router)
    app.include_router(students_router)
    app.include_router(teachers_router)
    app.include_router(allocations_router)
    app.include_router(timetables_router)
    app.include_router(attendance_router)
    app.include_router(reports_router)
    app.include_router(teacher_portal_router)
    app.include_router(student_portal_router)
    app.include_router(advisor_router)
    app.include_router(admin_router)

    return app


app = create_app()
