# orderflow/main.py

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import uvicorn
from dotenv import load_dotenv
from contextlib import asynccontextmanager

from orderflow.config import settings
from orderflow.utils.log import Log
from orderflow.utils.database import init_db, close_db
from orderflow.middleware.db_middleware import DBSessionMiddleware

import os
import multiprocessing

# --- environment ---
load_dotenv()

# --- sync logger for early startup ---
boot_log = Log()
if os.environ.get("RUN_MAIN") == "true" or multiprocessing.current_process().name == "MainProcess":
    boot_log.log_info_sync(target="startup", message="main.py imports done")

# ────────────── Lifespan ──────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    boot_log.log_info_sync(target="startup", message="lifespan: startup begun")

    # Database
    seeded = await init_db()
    boot_log.log_info_sync(target="startup", message="Database initialized", data={"seeded_admin": seeded})

    # Log in state
    app.state.log = Log()
    await app.state.log.log_info(target="startup", message="Async Log initialized")

    yield

    # shutdown
    await app.state.log.log_info(target="shutdown", message="Stopping application")
    await app.state.log.shutdown()
    await close_db()
    boot_log.log_info_sync(target="shutdown", message="Log closed")

# ────────────── FastAPI application ──────────────
app = FastAPI(title="Orderflow API", lifespan=lifespan, debug=settings.DEBUG)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# DB middleware for request.state.db
app.add_middleware(DBSessionMiddleware)

# ────────────── Error envelope ──────────────
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    field = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{field}: {first.get('msg')}" if field else str(first.get("msg", "Invalid request data"))
    await request.app.state.log.log_warning("request", "Validation failed", {"path": request.url.path, "errors": errors})
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"success": False, "message": message},
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    await request.app.state.log.log_error("request", f"Unhandled error: {exc!r}", {"path": request.url.path})
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"success": False, "message": str(exc) if settings.DEBUG else "Internal server error"},
    )


@app.get("/")
def read_root():
    return {"success": True, "message": "Orderflow API"}

# ────────────── Routers ──────────────
from orderflow.routes import auth, user, order, money_receipt

app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(user.router, prefix="/users", tags=["users"])
app.include_router(order.router, prefix="/orders", tags=["orders"])
app.include_router(money_receipt.router, prefix="/money-receipts", tags=["money-receipts"])

# ────────────── uvicorn ──────────────
if __name__ == "__main__":
    boot_log.log_info_sync(target="startup", message="Starting uvicorn.run")
    uvicorn.run(
        "orderflow.main:app",
        host="127.0.0.1",
        port=8000,
        log_level="info",
        reload=True
    )
