# webhook_server/http.py
"""
ASGI endpoint that feeds HTTP requests into the DispatchService.

Responses never have a body. For dispatched requests the status line goes out
as soon as the hook is started; the (empty) closing body frame is held back
until the background task has finished with the request body, because the
ASGI server stops delivering body chunks once a response is complete.
"""

from typing import AsyncIterator

from starlette.datastructures import Headers
from starlette.requests import ClientDisconnect, Request
from starlette.responses import Response
from starlette.types import Receive, Scope, Send

from .dispatch import DispatchService, HookRequest
from .hooks import BodyReadError


def request_path(scope: Scope) -> str:
    """
    The request path exactly as the client sent it.

    Hooks are matched against the undecoded path; query strings are not part
    of it.
    """
    raw_path = scope.get("raw_path")
    if raw_path:
        return raw_path.split(b"?", 1)[0].decode("latin-1")
    return scope["path"]


async def _body_chunks(request: Request) -> AsyncIterator[bytes]:
    try:
        async for chunk in request.stream():
            yield chunk
    except ClientDisconnect as e:
        raise BodyReadError("Client disconnected before the body was complete") from e
    except OSError as e:
        raise BodyReadError(repr(e)) from e


class DispatchEndpoint:
    """Raw ASGI app mounted on the catch-all route."""

    def __init__(self, service: DispatchService):
        self.service = service

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            raise RuntimeError(f"DispatchEndpoint cannot serve a `{scope['type']}` scope")

        request = Request(scope, receive)
        hook_request = HookRequest(
            path=request_path(scope),
            headers=Headers(scope=scope),
            body=_body_chunks(request),
        )

        result = await self.service.handle(hook_request)
        response = Response(status_code=result.status_code)

        if not result.dispatched:
            await response(scope, receive, send)
            return

        await send({
            "type": "http.response.start",
            "status": response.status_code,
            "headers": response.raw_headers,
        })
        await hook_request.body_released.wait()
        await send({"type": "http.response.body", "body": b"", "more_body": False})
