"""
eph_backend/routes/auth.py
Token introspection. Login and signup live in the platform auth service.
"""
from fastapi import APIRouter, Depends

from eph_backend.orm.user import User
from eph_backend.rbac import get_current_user

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.get("/me")
async def read_me(current_user: User = Depends(get_current_user)):
    return {"success": True, "data": {"user": current_user.to_dict()}}
