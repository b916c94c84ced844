# orderflow/middleware/db_middleware.py

from starlette.types import ASGIApp, Receive, Scope, Send
from orderflow.utils.database import AsyncSessionLocal

class DBSessionMiddleware:
    """Opens one AsyncSession per HTTP request and exposes it as request.state.db."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        state = scope.setdefault("state", {})
        async with AsyncSessionLocal() as session:
            state["db"] = session
            await self.app(scope, receive, send)
