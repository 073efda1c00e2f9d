"""
PyHeaderBlock ASGI Middleware

Runs the engine on every HTTP request before the wrapped application.
Denied requests get a bare 403 and never reach the application.
"""

from typing import List, Optional, Tuple

from starlette.datastructures import URL
from starlette.responses import Response
from starlette.types import ASGIApp, Receive, Scope, Send

from .core.config import HeaderBlockConfig
from .core.engine import DecisionContext, HeaderBlockEngine


def client_address(scope: Scope) -> Optional[str]:
    """Remote address of the connection, host only"""
    client = scope.get("client")
    if not client:
        return None
    return client[0]


def header_pairs(scope: Scope) -> List[Tuple[str, str]]:
    return [
        (name.decode("latin-1"), value.decode("latin-1"))
        for name, value in scope.get("headers", [])
    ]


def context_from_scope(scope: Scope) -> DecisionContext:
    return DecisionContext.build(
        client_address=client_address(scope),
        headers=header_pairs(scope),
        url=str(URL(scope=scope)),
    )


class HeaderBlockMiddleware:
    """Header and IP filter middleware

    Usage::

        app.add_middleware(HeaderBlockMiddleware, config=HeaderBlockConfig(...))
    """

    def __init__(
        self,
        app: ASGIApp,
        config: Optional[HeaderBlockConfig] = None,
        engine: Optional[HeaderBlockEngine] = None,
        logger=None
    ):
        self.app = app
        self.engine = engine or HeaderBlockEngine(config, logger=logger)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        verdict = self.engine.evaluate(context_from_scope(scope))
        if verdict.should_block():
            if scope["type"] == "websocket":
                # closing before accept makes the server answer the handshake with 403
                await send({"type": "websocket.close", "code": 1008})
                return
            response = Response(status_code=403)
            await response(scope, receive, send)
            return

        await self.app(scope, receive, send)
