"""
Request and API contexts
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping, Optional, Union
from urllib.parse import quote

from starlette.datastructures import URL
from starlette.requests import Request

from core.editor import EditorLauncher
from core.encoding import DEFAULT_ENCODING, as_bytes
from core.models import ApiResponse, Configuration
from core.users import User

JSON_CONTENT_TYPE = "application/json; charset=utf-8"


@dataclass(frozen=True)
class RequestContext:
    """Everything known about an inbound request before it is routed."""
    config: Configuration
    GET: Mapping[str, str]
    method: str  # lower case
    request: Request
    time: datetime  # UTC
    url: URL
    user: Optional[User] = None

    @property
    def path(self) -> str:
        """The raw, still percent-encoded URL path."""
        raw = self.request.scope.get("raw_path")
        if raw:
            return raw.decode("utf-8", errors="replace").split("?", 1)[0]
        return quote(self.request.url.path)

    @property
    def workspace_root(self) -> str:
        return self.request.app.state.workspace_root

    @property
    def editor(self) -> EditorLauncher:
        return self.request.app.state.editor

    @property
    def remote_address(self) -> Optional[str]:
        client = self.request.client
        return client.host if client else None


@dataclass
class StructuredBody:
    """Response body that is serialized as JSON."""
    response: ApiResponse


@dataclass
class RawBody:
    """Response body sent as is."""
    content: bytes
    mime: Optional[str] = None


Body = Union[StructuredBody, RawBody]


@dataclass
class ApiContext:
    """
    Mutable response builder handed to an API method.

    `body` is either structured (JSON envelope) or raw content. It is None
    after send_not_found() / send_method_not_allowed(), which also drop all
    headers so nothing but the status is sent.
    """
    request: RequestContext
    body: Optional[Body] = None
    headers: dict[str, str] = field(default_factory=lambda: {"Content-Type": JSON_CONTENT_TYPE})
    status_code: int = 200
    encoding: str = DEFAULT_ENCODING

    @property
    def response(self) -> Optional[ApiResponse]:
        """The structured response, if the body is structured."""
        if isinstance(self.body, StructuredBody):
            return self.body.response
        return None

    @property
    def content(self) -> Optional[bytes]:
        """The raw content, if the body is raw."""
        if isinstance(self.body, RawBody):
            return self.body.content
        return None

    def set_content(self, new_content: Any, mime: Optional[str] = None) -> "ApiContext":
        """Replace the body with raw content."""
        self.body = RawBody(as_bytes(new_content, self.encoding), mime)

        mime = (mime or "").strip()
        if mime:
            self.headers["Content-Type"] = mime
        return self

    def send_not_found(self) -> "ApiContext":
        return self._terminate(404)

    def send_method_not_allowed(self) -> "ApiContext":
        return self._terminate(405)

    def _terminate(self, status_code: int) -> "ApiContext":
        self.status_code = status_code
        self.body = None
        self.headers = {}
        return self

    def write(self, data: Any) -> "ApiContext":
        """Append data to the raw content, switching to a raw body if needed."""
        if not data:
            return self

        chunk = as_bytes(data, self.encoding)
        if isinstance(self.body, RawBody):
            self.body.content += chunk
        else:
            self.body = RawBody(chunk)
        return self
