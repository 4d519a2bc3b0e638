"""
eph_backend/routes/__init__.py
Route registration
"""
from fastapi import APIRouter
from eph_backend.routes import auth, competitions, registrations

router = APIRouter()

router.include_router(auth.router)
router.include_router(competitions.router)
router.include_router(registrations.router)
