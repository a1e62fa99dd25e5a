"""API v1 router package."""

from fastapi import APIRouter

from edutrack.api.v1 import admin, attendance, auth, student, teacher, users

router = APIRouter(prefix="/api")

router.include_router(auth.router, prefix="/auth", tags=["auth"])
router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
router.include_router(student.router, prefix="/student", tags=["student"])
router.include_router(teacher.router, prefix="/teacher", tags=["teacher"])
router.include_router(admin.router, prefix="/admin", tags=["admin"])
router.include_router(users.router, prefix="/users", tags=["users"])
