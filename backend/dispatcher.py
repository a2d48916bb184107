"""
Request dispatching and the response pipeline.

Every inbound request is authenticated, routed to an API module verb and the
resulting ApiContext is serialized, compressed and sent.
"""

import inspect
import json
import logging
import re
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional
from urllib.parse import unquote

from fastapi import Request, Response

from backend.config import API_MOUNT
from backend.context import ApiContext, RawBody, RequestContext, StructuredBody
from backend.registry import ApiMethod, ApiModule, get_module
from core.encoding import compress_for_response
from core.models import ApiResponse, Configuration
from core.paths import normalize_separators
from core.users import UserRepository

logger = logging.getLogger(__name__)

# Checks if a URL path represents an API request
REGEX_API = re.compile(r"^/api(/|$)", re.IGNORECASE)

TIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def _cleanup_name(value: str) -> str:
    return re.sub(r"[^a-z0-9_\-]", "", value.strip().lower())


def _method_not_allowed(api: ApiContext) -> None:
    api.send_method_not_allowed()


def unauthorized_response() -> Response:
    return Response(status_code=401, headers={"WWW-Authenticate": 'Basic realm="workspace"'})


def not_found_response() -> Response:
    return Response(status_code=404)


def error_response() -> Response:
    """Generic 500 response; error details stay in the log."""
    body = json.dumps({"code": 500, "msg": "Internal Server Error"})
    return Response(body, status_code=500, media_type="application/json")


class Dispatcher:
    """Routes requests to API modules."""

    def __init__(
        self,
        config: Configuration,
        users: UserRepository,
        find_module: Callable[[str], Optional[ApiModule]] = get_module,
    ):
        self.config = config
        self.users = users
        self.find_module = find_module

    def create_context(self, request: Request) -> RequestContext:
        return RequestContext(
            config=self.config,
            GET=dict(request.query_params),
            method=(request.method or "").strip().lower() or "get",
            request=request,
            time=datetime.now(timezone.utc),
            url=request.url,
        )

    async def handle(self, request: Request) -> Response:
        """Handle one request; always returns exactly one response."""
        try:
            ctx = self.create_context(request)

            user = self.users.get_user(ctx)
            if user is None:
                return unauthorized_response()
            ctx = replace(ctx, user=user)

            normalized_path = normalize_separators(unquote(ctx.path)).strip().lower()
            if not REGEX_API.match(normalized_path):
                return not_found_response()

            return await self.handle_api(ctx, normalized_path)
        except Exception:
            logger.exception(f"Request failed: {request.method} {request.url.path}")
            return error_response()

    def resolve_method(self, ctx: RequestContext, normalized_path: str) -> Optional[ApiMethod]:
        """
        Find the API method for a request.

        Returns:
            The root resource for "/api", the module's verb handler, a 405
            responder if the module lacks the verb, or None for unknown modules
        """
        parts = [p.strip() for p in normalized_path[len(API_MOUNT):].split("/")]
        parts = [p for p in parts if p]

        module_name = _cleanup_name(parts[0]) if parts else ""
        if not module_name:
            return self.root

        module = self.find_module(module_name)
        if module is None:
            logger.debug(f"Unknown API module '{module_name}'")
            return None

        return module.find(ctx.method) or _method_not_allowed

    async def handle_api(self, ctx: RequestContext, normalized_path: str) -> Response:
        method = self.resolve_method(ctx, normalized_path)
        if method is None:
            return not_found_response()

        api = ApiContext(request=ctx, body=StructuredBody(ApiResponse(code=0)))
        try:
            result = method(api)
            if inspect.isawaitable(result):
                await result
        except Exception:
            logger.exception(f"API method failed: {ctx.method.upper()} {ctx.url.path}")
            return error_response()

        return await self.send_response(ctx, api)

    def root(self, api: ApiContext) -> None:
        """GET /api"""
        ctx = api.request
        data = {
            "addr": ctx.remote_address,
            "time": ctx.time.strftime(TIME_FORMAT),
        }
        if not ctx.user.is_guest:
            data["me"] = {"name": ctx.user.name}

        api.response.data = data

    async def send_response(self, ctx: RequestContext, api: ApiContext) -> Response:
        """Serialize, compress and build the HTTP response."""
        if isinstance(api.body, StructuredBody):
            data = json.dumps(api.body.response.model_dump(mode="json", exclude_none=True))
        elif isinstance(api.body, RawBody):
            data = api.body.content
        else:
            data = b""

        headers = dict(api.headers)

        encoded = await compress_for_response(
            data, ctx.request.headers.get("accept-encoding"), api.encoding
        )
        if encoded.content_encoding:
            headers["Content-Encoding"] = encoded.content_encoding
            headers["Vary"] = "Accept-Encoding"

        return Response(content=encoded.payload, status_code=api.status_code, headers=headers)
