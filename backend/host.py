"""
HTTP(S) host for browsing the workspace.

Runs the FastAPI application with uvicorn inside the current event loop so
it can be started and stopped on demand.
"""

import asyncio
import logging
import os
import socket
import ssl
from typing import Optional

import uvicorn

from backend.config import API_HOST, API_PORT, WORKSPACE_ROOT, load_config
from backend.main import create_app
from core.editor import EditorLauncher
from core.models import Configuration, SslConfig
from core.users import UserRepository

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1781

STARTUP_TIMEOUT = 10.0


def bind_socket(host: str, port: int) -> socket.socket:
    """Bind a listening socket; errors such as 'address in use' propagate."""
    family = socket.AF_INET6 if ":" in host else socket.AF_INET
    sock = socket.socket(family, socket.SOCK_STREAM)
    try:
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.bind((host, port))
    except OSError:
        sock.close()
        raise
    sock.set_inheritable(True)
    return sock


class ApiHost:
    """
    Owns the listener of the workspace API.

    start() and stop() are idempotent: they return False instead of failing
    when the host already is in the requested state.
    """

    def __init__(
        self,
        config: Configuration,
        workspace_root: str,
        host: str = API_HOST,
        editor: Optional[EditorLauncher] = None,
    ):
        self.config = config
        self.workspace_root = os.path.abspath(workspace_root)
        self.host = host
        self.editor = editor
        self._server: Optional[uvicorn.Server] = None
        self._task: Optional[asyncio.Task] = None
        self._socket: Optional[socket.socket] = None

    @property
    def is_running(self) -> bool:
        return self._server is not None

    @property
    def port(self) -> Optional[int]:
        """The bound TCP port while running."""
        if self._socket is None:
            return None
        return self._socket.getsockname()[1]

    def _resolve_file(self, path: Optional[str]) -> Optional[str]:
        if not path:
            return None
        if not os.path.isabs(path):
            path = os.path.join(self.workspace_root, path)
        return os.path.abspath(path)

    def ssl_options(self, ssl_config: Optional[SslConfig]) -> dict:
        """Map the SSL configuration onto uvicorn options."""
        if ssl_config is None:
            return {}

        options = {
            "ssl_certfile": self._resolve_file(ssl_config.cert),
            "ssl_keyfile": self._resolve_file(ssl_config.key),
            "ssl_keyfile_password": ssl_config.passphrase,
        }
        ca = self._resolve_file(ssl_config.ca)
        if ca:
            options["ssl_ca_certs"] = ca
            options["ssl_cert_reqs"] = (
                ssl.CERT_REQUIRED if ssl_config.reject_unauthorized else ssl.CERT_OPTIONAL
            )
        return options

    async def start(self, port: Optional[int] = None) -> bool:
        """
        Start the server.

        Args:
            port: TCP port; defaults to the configured port or 1781

        Returns:
            True if started, False if it was already running
        """
        if self._server is not None:
            return False

        if port is None:
            port = self.config.port if self.config.port is not None else DEFAULT_PORT
        port = int(str(port).strip())

        config = self.config.model_copy(deep=True)
        app = create_app(
            config,
            self.workspace_root,
            users=UserRepository(config, self.workspace_root),
            editor=self.editor,
        )
        server = uvicorn.Server(
            uvicorn.Config(app, log_level="warning", **self.ssl_options(config.ssl))
        )

        sock = bind_socket(self.host, port)
        task = asyncio.create_task(server.serve(sockets=[sock]))

        try:
            await self._wait_started(server, task)
        except BaseException:
            server.should_exit = True
            if not task.done():
                task.cancel()
            sock.close()
            raise

        self._server, self._task, self._socket = server, task, sock

        scheme = "https" if config.ssl else "http"
        logger.info(f"Workspace API listening on {scheme}://{self.host}:{self.port}")
        return True

    async def _wait_started(self, server: uvicorn.Server, task: asyncio.Task) -> None:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + STARTUP_TIMEOUT
        while not server.started:
            if task.done():
                task.result()
                raise RuntimeError("API server exited during startup")
            if loop.time() > deadline:
                raise TimeoutError("API server failed to start within timeout")
            await asyncio.sleep(0.05)

    async def stop(self) -> bool:
        """
        Stop the server.

        Returns:
            True if stopped, False if it was not running
        """
        server, task, sock = self._server, self._task, self._socket
        if server is None:
            return False

        server.should_exit = True
        try:
            await task
        finally:
            self._server = self._task = self._socket = None
            sock.close()

        logger.info("Workspace API stopped")
        return True

    async def wait_closed(self) -> None:
        """Wait until the server exits (e.g. on SIGINT)."""
        if self._task is not None:
            await asyncio.shield(self._task)


async def serve() -> None:
    config = load_config()
    host = ApiHost(config, WORKSPACE_ROOT)
    await host.start(config.port if config.port is not None else API_PORT)
    try:
        await host.wait_closed()
    finally:
        await host.stop()


def run() -> None:
    logging.basicConfig(
        level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    asyncio.run(serve())


if __name__ == "__main__":
    run()
