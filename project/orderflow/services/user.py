# orderflow/services/user.py

from sqlalchemy.exc import IntegrityError
from sqlalchemy.future import select
from fastapi import HTTPException, Request, status

from orderflow.models.user import User as UserModel
from orderflow.schemas.user import UserCreate, UserUpdate
from orderflow.utils.security import hash_password, verify_password


async def read_users_service(request: Request, skip: int = 0, limit: int = 100) -> list[UserModel]:
    """
    List of users.
    """
    db = request.state.db
    log = request.app.state.log

    result = await db.execute(select(UserModel).order_by(UserModel.id).offset(skip).limit(limit))
    users = result.scalars().all()

    await log.log_info("user", f"{len(users)} users loaded")
    return users


async def read_user_service(id: int, request: Request) -> UserModel:
    """
    User by ID, 404 when missing.
    """
    db = request.state.db
    log = request.app.state.log

    db_user = await db.get(UserModel, id)
    if db_user is None:
        await log.log_error("user", "User not found", {"id": id})
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return db_user


async def create_user_service(user: UserCreate, request: Request) -> UserModel:
    """
    New user with a hashed password; duplicate username -> 409.
    """
    db = request.state.db
    log = request.app.state.log

    existing = await db.execute(select(UserModel).where(UserModel.username == user.username))
    if existing.scalar_one_or_none() is not None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{user.username}' already exists",
        )

    db_user = UserModel(
        username=user.username,
        name=user.name,
        role=user.role.value,
        password=hash_password(user.password),
    )
    db.add(db_user)
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{user.username}' already exists",
        )

    await log.log_info("user", "User created", {"id": db_user.id, "username": db_user.username, "role": db_user.role})
    return db_user


async def update_user_service(id: int, user_update: UserUpdate, request: Request) -> UserModel:
    """
    Applies the fields that were sent; password is re-hashed.
    """
    db = request.state.db
    log = request.app.state.log

    db_user = await read_user_service(id, request)

    for key, value in user_update.model_dump(exclude_unset=True).items():
        if value is None:
            continue
        if key == "password":
            value = hash_password(value)
        elif key == "role":
            value = value.value
        setattr(db_user, key, value)

    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Username '{user_update.username}' already exists",
        )

    await log.log_info("user", "User updated", {"id": id})
    return db_user


async def delete_user_service(id: int, request: Request) -> None:
    db = request.state.db
    log = request.app.state.log

    db_user = await read_user_service(id, request)
    await db.delete(db_user)
    await db.commit()
    await log.log_info("user", "User deleted", {"id": id})


async def change_password_service(id: int, current_password: str, new_password: str, request: Request) -> None:
    """
    Own password change; the current password must match (401 otherwise).
    """
    db = request.state.db
    log = request.app.state.log

    db_user = await read_user_service(id, request)
    if not verify_password(current_password, db_user.password):
        await log.log_warning("user", "Wrong current password", {"id": id})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")

    db_user.password = hash_password(new_password)
    await db.commit()
    await log.log_info("user", "Password changed", {"id": id})
