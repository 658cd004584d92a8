from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.v1.academic_years.router import router as academic_years_router
from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.classes.classes_router import router as classes_router
from app.api.v1.divisions.router import router as divisions_router
from app.api.v1.grading_system.router import router as grading_system_router
from app.api.v1.marks.router import router as marks_router
from app.api.v1.next_term_schedules.router import router as next_term_schedules_router
from app.api.v1.report_cards.router import router as report_cards_router
from app.api.v1.students.router import router as students_router
from app.api.v1.subjects.router import router as subjects_router
from app.api.v1.subject_teachers.router import router as subject_teachers_router
from app.api.v1.terms.router import router as terms_router
from app.api.v1.users.router import router as users_router
from app.core.logging import setup_logging


def create_app() -> FastAPI:
    setup_logging()
    app = FastAPI(title="School Reports Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Routers
    app.include_router(auth_router)
    app.include_router(users_router)
    app.include_router(academic_years_router)
    app.include_router(terms_router)
    app.include_router(classes_router)
    app.include_router(subjects_router)
    app.include_router(students_router)
    app.include_router(grading_system_router)
    app.include_router(marks_router)
    app.include_router(divisions_router)
    app.include_router(report_cards_router)
    app.include_router(next_term_schedules_router)
    app.include_router(subject_teachers_router)
    app.include_router(attendance_router)

    return app


app = create_app()
