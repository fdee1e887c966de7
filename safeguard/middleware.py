import uuid
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from safeguard.core.logging import request_id_ctx_var

HEADER = b"x-correlation-id"


class CorrelationIdMiddleware:
    """Tag each HTTP request with an X-Correlation-ID, visible in logs and echoed on the response."""

    def __init__(self, app: ASGIApp):
        self.app = app

    async def __call__(self, scope: Scope, receive: Receive, send: Send):
        # Only act on HTTP requests
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        headers = dict(scope.get("headers", []))
        correlation_id = headers.get(HEADER) or str(uuid.uuid4()).encode()
        token = request_id_ctx_var.set(correlation_id.decode("latin-1"))

        async def send_with_id(message: Message) -> None:
            if message["type"] == "http.response.start":
                message.setdefault("headers", [])
                message["headers"] = list(message["headers"]) + [(HEADER, correlation_id)]
            await send(message)

        try:
            await self.app(scope, receive, send_with_id)
        finally:
            request_id_ctx_var.reset(token)
