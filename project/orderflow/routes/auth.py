# orderflow/routes/auth.py

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer, OAuth2PasswordRequestForm
from jwt import ExpiredSignatureError, InvalidTokenError
from sqlalchemy.future import select

from orderflow.models.user import User as UserModel
from orderflow.schemas.common import Envelope
from orderflow.schemas.user import LoginRequest, LoginResponse, UserResponse
from orderflow.utils.permissions import can, capabilities_for
from orderflow.utils.security import create_access_token, decode_access_token, verify_password

router = APIRouter()

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


async def get_current_user(request: Request, token: str = Depends(oauth2_scheme)) -> UserModel:
    """
    Checks the bearer JWT and loads the user it names.

    **Status codes:**
    - 401 Unauthorized - token missing, expired, invalid, or user no longer exists

    The role used for permission checks is the one stored in the database,
    so a role change takes effect without a new login.
    """
    log = request.app.state.log
    try:
        payload = decode_access_token(token)
    except ExpiredSignatureError:
        await log.log_warning("auth", "Token expired")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Token expired")
    except InvalidTokenError:
        await log.log_warning("auth", "Invalid token")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    username = payload.get("sub")
    if not username:
        await log.log_error("auth", "Token has no subject")
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token")

    result = await request.state.db.execute(select(UserModel).where(UserModel.username == username))
    user = result.scalar_one_or_none()
    if user is None:
        await log.log_warning("auth", "Token for unknown user", {"username": username})
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found")

    return user


def require_capability(capability: str):
    """Dependency factory: the current user's role must hold the capability."""

    async def checker(request: Request, current_user: UserModel = Depends(get_current_user)) -> UserModel:
        if not can(current_user.role, capability):
            await request.app.state.log.log_warning(
                "auth", "Access denied", {"user": current_user.username, "role": current_user.role, "capability": capability}
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Forbidden: insufficient permissions",
            )
        return current_user

    return checker


async def authenticate_user(request: Request, username: str, password: str) -> dict:
    """Checks credentials and returns {user, token} for the login endpoints."""
    log = request.app.state.log

    result = await request.state.db.execute(select(UserModel).where(UserModel.username == username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.password):
        await log.log_warning("auth", "Failed login attempt", {"username": username})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    token = create_access_token({"sub": user.username, "id": user.id, "role": user.role})
    await log.log_info("auth", "User logged in", {"username": user.username, "role": user.role})
    return {"user": user, "token": token}


# ────────────── LOGIN ──────────────
@router.post(
    "/login",
    response_model=Envelope[LoginResponse],
    summary="Log in and get a JWT",
    responses={
        200: {"description": "Credentials accepted, returns the user and a bearer token"},
        400: {"description": "Username or password missing"},
        401: {"description": "Invalid credentials"},
    },
)
async def login(request: Request, body: LoginRequest):
    data = await authenticate_user(request, body.username, body.password)
    return {"success": True, "message": "Login successful", "data": data}


# ────────────── TOKEN (OAuth2 form, used by the docs UI) ──────────────
@router.post(
    "/token",
    summary="OAuth2 password flow",
    responses={401: {"description": "Invalid credentials"}},
)
async def login_for_access_token(request: Request, form_data: OAuth2PasswordRequestForm = Depends()):
    data = await authenticate_user(request, form_data.username, form_data.password)
    return {"access_token": data["token"], "token_type": "bearer"}


# ────────────── ME ──────────────
@router.get(
    "/me",
    response_model=Envelope[UserResponse],
    summary="Current user",
    responses={401: {"description": "Token missing or invalid"}},
)
async def me(current_user: UserModel = Depends(get_current_user)):
    return {"success": True, "data": current_user}


@router.get(
    "/capabilities",
    response_model=Envelope[list[str]],
    summary="Actions the current user's role may perform",
)
async def my_capabilities(current_user: UserModel = Depends(get_current_user)):
    return {"success": True, "data": capabilities_for(current_user.role)}
