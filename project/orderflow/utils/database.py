# orderflow/utils/database.py

from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.orm import declarative_base
from sqlalchemy.future import select
from orderflow.config import settings
from orderflow.utils.security import hash_password

# ────────────── Base for models ──────────────
Base = declarative_base()

# ────────────── Async engine ──────────────
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False  # True to print SQL while debugging
)

# ────────────── Async session factory ──────────────
AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False  # rows are serialized after commit
)

# ────────────── Database initialization ──────────────
async def init_db():
    """
    Creates all tables (if they don't exist yet) and makes sure there is
    at least one administrator. When none exists, one is created from
    AUTH_LOGIN / AUTH_PASSWORD with a hashed password.

    Returns the login of the seeded admin, or None.
    """
    # every model module registers its tables on Base.metadata
    from orderflow.models import order, money_receipt, user  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    from orderflow.models.user import User, Role
    async with AsyncSessionLocal() as session:
        result = await session.execute(select(User).where(User.role == Role.ADMIN.value))
        if result.scalars().first() is not None:
            return None

        # a non-admin may already hold the configured login
        result = await session.execute(select(User).where(User.username == settings.AUTH_LOGIN))
        admin_user = result.scalar_one_or_none()
        if admin_user is None:
            admin_user = User(
                username=settings.AUTH_LOGIN,
                name="Administrator",
                password=hash_password(settings.AUTH_PASSWORD),
            )
            session.add(admin_user)
        admin_user.role = Role.ADMIN.value
        await session.commit()
        return admin_user.username


async def close_db():
    """Releases pooled connections; the engine can be reused afterwards."""
    await engine.dispose()


def utcnow() -> datetime:
    """Timestamp for every column the application stamps itself."""
    return datetime.now(timezone.utc)
