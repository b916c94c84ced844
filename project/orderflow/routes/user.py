# orderflow/routes/user.py

from typing import List
from fastapi import APIRouter, Depends, HTTPException, Request, status

from orderflow.models.user import User as UserModel
from orderflow.routes.auth import get_current_user, require_capability
from orderflow.schemas.common import Envelope
from orderflow.schemas.user import PasswordChange, UserCreate, UserResponse, UserUpdate
from orderflow.services.user import (
    change_password_service,
    create_user_service,
    delete_user_service,
    read_user_service,
    read_users_service,
    update_user_service,
)
from orderflow.utils.permissions import can

router = APIRouter()


def _admin_or_self(current_user: UserModel, user_id: int) -> None:
    if current_user.id != user_id and not can(current_user.role, "users:manage"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")


# ────────────── CREATE ──────────────
@router.post(
    "/",
    response_model=Envelope[UserResponse],
    status_code=status.HTTP_201_CREATED,
    summary="Create a user (admin)",
    responses={
        201: {"description": "User created"},
        400: {"description": "Invalid data"},
        401: {"description": "Token missing or invalid"},
        403: {"description": "Only admins manage users"},
        409: {"description": "Username already exists"},
    },
)
async def create_user(
    request: Request,
    user: UserCreate,
    _: UserModel = Depends(require_capability("users:manage")),
):
    try:
        db_user = await create_user_service(user, request)
        return {"success": True, "message": "User created successfully", "data": db_user}
    except Exception as e:
        await request.app.state.log.log_error("user", f"Error creating user: {str(e)}", {"username": user.username})
        raise


# ────────────── READ ALL ──────────────
@router.get(
    "/",
    response_model=Envelope[List[UserResponse]],
    summary="List users (admin)",
    responses={403: {"description": "Only admins manage users"}},
)
async def read_users(
    request: Request,
    skip: int = 0,
    limit: int = 100,
    _: UserModel = Depends(require_capability("users:manage")),
):
    users = await read_users_service(request, skip, limit)
    return {"success": True, "data": users}


# ────────────── READ ONE ──────────────
@router.get(
    "/{user_id}",
    response_model=Envelope[UserResponse],
    summary="Get a user (admin or self)",
    responses={403: {"description": "Not your account"}, 404: {"description": "User not found"}},
)
async def read_user(user_id: int, request: Request, current_user: UserModel = Depends(get_current_user)):
    _admin_or_self(current_user, user_id)
    return {"success": True, "data": await read_user_service(user_id, request)}


# ────────────── UPDATE ──────────────
@router.put(
    "/{user_id}",
    response_model=Envelope[UserResponse],
    summary="Update a user (admin or self)",
    responses={
        403: {"description": "Not your account, or a non-admin changing a role"},
        404: {"description": "User not found"},
        409: {"description": "Username already exists"},
    },
)
async def update_user(
    user_id: int,
    user_update: UserUpdate,
    request: Request,
    current_user: UserModel = Depends(get_current_user),
):
    """
    - An admin can edit anyone, including the role.
    - Everybody else can edit only themselves and never their role.
    """
    _admin_or_self(current_user, user_id)
    if user_update.role is not None and not can(current_user.role, "users:manage"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can change roles")

    try:
        db_user = await update_user_service(user_id, user_update, request)
        return {"success": True, "message": "User updated successfully", "data": db_user}
    except Exception as e:
        await request.app.state.log.log_error("user", f"Error updating user: {str(e)}", {"id": user_id})
        raise


# ────────────── DELETE ──────────────
@router.delete(
    "/{user_id}",
    response_model=Envelope[None],
    summary="Delete a user (admin)",
    responses={400: {"description": "Admins cannot delete themselves"}, 404: {"description": "User not found"}},
)
async def delete_user(
    user_id: int,
    request: Request,
    current_user: UserModel = Depends(require_capability("users:manage")),
):
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot delete your own account")
    await delete_user_service(user_id, request)
    return {"success": True, "message": "User deleted successfully"}


# ────────────── CHANGE PASSWORD ──────────────
@router.post(
    "/{user_id}/change-password",
    response_model=Envelope[None],
    summary="Change own password",
    responses={401: {"description": "Current password is incorrect"}, 403: {"description": "Not your account"}},
)
async def change_password(
    user_id: int,
    body: PasswordChange,
    request: Request,
    current_user: UserModel = Depends(get_current_user),
):
    if current_user.id != user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only change your own password")
    await change_password_service(user_id, body.current_password, body.new_password, request)
    return {"success": True, "message": "Password changed successfully"}
