"""
=============================================================================
STATIC FILE SERVER
=============================================================================

The orchestrator: owns the listening socket, the worker pool and the
lifecycle state, and handles each accepted connection.

=============================================================================
ARCHITECTURE OVERVIEW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      STATIC SERVER ARCHITECTURE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   host app ──► start() / stop() / is_running                         │
    │                        │                                             │
    │                        ▼                                             │
    │                ┌───────────────┐                                     │
    │                │ StaticServer  │  one lock guards every transition  │
    │                └───────┬───────┘                                     │
    │            ┌───────────┴────────────┐                                │
    │            ▼                        ▼                                │
    │   ┌─────────────────┐      ┌─────────────────┐                      │
    │   │  accept thread  │ ───► │   ThreadPool    │  10 workers          │
    │   │  (one, daemon)  │ conn │  (FIFO queue)   │                      │
    │   └─────────────────┘      └────────┬────────┘                      │
    │                                     ▼                                │
    │                        _process_connection(conn)                     │
    │             RequestReader → StaticFileHandler → ResponseWriter       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
LIFECYCLE STATE MACHINE
=============================================================================

    STOPPED ──start()──► STARTING ──bind ok──► RUNNING ──stop()──► STOPPING
       ▲                    │                     │                    │
       │                    └──── start failed ───┤                    │
       │                                          └─ accept loop dies ─┤
       └──────────────────────────────────────────────────────────────┘

start() and stop() take the same lock for their whole transition, so two
overlapping start() calls can never bind two sockets: the second one sees
a state other than STOPPED and reports "Server is already running".

=============================================================================
REQUEST LIFECYCLE (one per connection, no keep-alive)
=============================================================================

    1. accept()                          accept thread
    2. queue the connection              ThreadPool.submit (never blocks)
    3. read request line, drop headers   worker thread
    4. GET? resolve path, open file      StaticFileHandler
    5. write status, headers, body       ResponseWriter
    6. close                             Connection.close

=============================================================================
"""

import os
import socket
import time
import logging
import threading
from dataclasses import dataclass, replace, field
from enum import Enum
from typing import Optional

from .config import ServerConfig
from .access_log import AccessLogger
from .core import Connection, ConnectionState, ThreadPool
from .exceptions import ConfigError, HTTPParseError
from .handlers import StaticFileHandler
from .http import RequestReader, ResponseWriter, HTTPResponse, HTTPStatus, text_response


logger = logging.getLogger(__name__)

ALREADY_RUNNING_ERROR = "Server is already running"

# accept() wakes up this often to notice a stop() on platforms where
# closing the socket does not interrupt a blocked accept.
ACCEPT_POLL_INTERVAL = 1.0

# Consecutive accept() failures (EMFILE, ENOBUFS...) tolerated before the
# server gives up and reports itself stopped.
MAX_ACCEPT_FAILURES = 10
ACCEPT_RETRY_DELAY = 0.1


class ServerStatus(Enum):
    """Lifecycle states. Only RUNNING serves requests."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"


@dataclass(frozen=True)
class StartResult:
    """
    Outcome of StaticServer.start().

    A failed start is a normal outcome for the host (port taken, already
    running), so it is returned, not raised.
    """

    success: bool
    url: Optional[str] = None
    error: Optional[str] = None

    def as_dict(self) -> dict:
        """{"success": ..., "url"/"error": ...} without the unset field."""
        data = {"success": self.success}
        if self.url is not None:
            data["url"] = self.url
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass(frozen=True)
class StopResult:
    """Outcome of StaticServer.stop()."""

    success: bool
    error: Optional[str] = None

    def as_dict(self) -> dict:
        data = {"success": self.success}
        if self.error is not None:
            data["error"] = self.error
        return data


@dataclass
class ServerState:
    """
    Everything that exists only while the server runs.

    A new ServerState is created by each successful start(); the accept
    thread and the workers hold a reference to it, so a connection
    accepted just before stop() finishes against the configuration it
    was accepted under. Nothing here changes after start() returns.
    """

    config: ServerConfig
    port: int
    url: str
    listener: socket.socket
    thread_pool: ThreadPool
    handler: StaticFileHandler
    reader: RequestReader
    access_log: AccessLogger
    accept_thread: Optional[threading.Thread] = field(default=None, repr=False)

    @property
    def document_root(self) -> str:
        return self.config.document_root


class StaticServer:
    """
    Embeddable static file server.

    =========================================================================
    USAGE
    =========================================================================

        server = StaticServer()
        result = server.start(8080, "/sdcard/Share")
        if result.success:
            print(f"Serving on {result.url}")

        ...

        server.stop()

    start() returns as soon as the socket is bound; requests are served on
    background threads until stop() is called.

    =========================================================================
    """

    def __init__(self, config: Optional[ServerConfig] = None):
        """
        Args:
            config: Defaults for every start(). The port and document root
                    passed to start() override the ones in here.
        """
        self.config = config or ServerConfig()

        self._lock = threading.Lock()
        self._status = ServerStatus.STOPPED
        self._state: Optional[ServerState] = None

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status(self) -> ServerStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        """True while the server is accepting connections. Never raises."""
        return self._status is ServerStatus.RUNNING

    @property
    def port(self) -> Optional[int]:
        """The bound port while running, else None."""
        state = self._state
        return state.port if state else None

    @property
    def url(self) -> Optional[str]:
        state = self._state
        return state.url if state else None

    @property
    def document_root(self) -> Optional[str]:
        state = self._state
        return state.document_root if state else None

    @property
    def stats(self) -> dict:
        """Status plus worker pool counters."""
        state = self._state
        return {
            "status": self._status.value,
            "port": state.port if state else None,
            "document_root": state.document_root if state else None,
            "pool": state.thread_pool.stats if state else None,
        }

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, port: Optional[int] = None, document_root: Optional[str] = None) -> StartResult:
        """
        Bind the listening socket and start serving in the background.

        Args:
            port: Port to listen on (0 = any free port). Defaults to config.
            document_root: Directory to serve. Defaults to config.

        Returns:
            StartResult(success=True, url=...) once the accept loop runs;
            StartResult(success=False, error=...) if already running, the
            configuration is invalid, the document root is missing, or the
            socket could not be bound. A failed start always leaves the
            server STOPPED with nothing bound.
        """
        with self._lock:
            if self._status is not ServerStatus.STOPPED:
                logger.warning(f"Start requested while {self._status.value}")
                return StartResult(success=False, error=ALREADY_RUNNING_ERROR)

            self._status = ServerStatus.STARTING
            listener = None
            thread_pool = None

            try:
                overrides = {}
                if port is not None:
                    overrides["port"] = port
                if document_root is not None:
                    overrides["document_root"] = os.fspath(document_root)
                config = replace(self.config, **overrides)

                config.validate()
                self._check_document_root(config.document_root)
                listener = self._create_socket(config)

                bound_port = listener.getsockname()[1]
                thread_pool = ThreadPool(num_workers=config.max_workers, name_prefix="pocketserve-worker")
                thread_pool.start()

                state = ServerState(
                    config=config,
                    port=bound_port,
                    url=f"http://{config.host}:{bound_port}",
                    listener=listener,
                    thread_pool=thread_pool,
                    handler=StaticFileHandler.for_root(
                        config.document_root,
                        index_file=config.index_file,
                        strict_containment=config.strict_containment,
                    ),
                    reader=RequestReader(max_line_size=config.max_line_size),
                    access_log=AccessLogger(log_format=config.log_format),
                )
                state.accept_thread = threading.Thread(
                    target=self._accept_loop,
                    args=(state,),
                    name=f"pocketserve-accept-{bound_port}",
                    daemon=True,
                )

                # The loop checks for RUNNING, so set it before the thread starts
                self._state = state
                self._status = ServerStatus.RUNNING
                state.accept_thread.start()
            except Exception as e:
                # Whatever failed, leave nothing behind and go back to STOPPED
                if thread_pool is not None:
                    thread_pool.shutdown(wait=False)
                if listener is not None:
                    self._close_listener(listener)
                self._state = None
                self._status = ServerStatus.STOPPED

                if isinstance(e, (ConfigError, OSError)):
                    logger.error(f"Failed to start server: {e}")
                else:
                    logger.exception(f"Unexpected error starting server: {e}")
                return StartResult(success=False, error=str(e))

            logger.info(
                f"Serving {config.document_root} on {config.host}:{bound_port} "
                f"({config.max_workers} workers)"
            )
            return StartResult(success=True, url=state.url)

    def stop(self) -> StopResult:
        """
        Stop accepting connections and release the port.

        Connections already accepted finish normally. Calling stop() on a
        server that is not running succeeds and does nothing.
        """
        with self._lock:
            if self._status is not ServerStatus.RUNNING:
                return StopResult(success=True)

            state = self._state
            self._teardown(state)

        # Outside the lock: the accept thread may itself be waiting for it.
        if state.accept_thread is not threading.current_thread():
            state.accept_thread.join(timeout=ACCEPT_POLL_INTERVAL * 2)

        logger.info("Server stopped")
        return StopResult(success=True)

    def _teardown(self, state: ServerState):
        """RUNNING → STOPPING → STOPPED. Caller holds the lock."""
        self._status = ServerStatus.STOPPING
        logger.info(f"Stopping server on port {state.port}...")

        self._close_listener(state.listener)
        state.thread_pool.shutdown(wait=False)

        self._state = None
        self._status = ServerStatus.STOPPED

    # =========================================================================
    # LISTENING SOCKET
    # =========================================================================

    def _create_socket(self, config: ServerConfig) -> socket.socket:
        """
        Create, bind and listen.

        Raises:
            OSError: Address in use, permission denied, bad host...
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            # Without SO_REUSEADDR a stop()/start() on the same port fails
            # for ~60s while old connections sit in TIME_WAIT. Windows'
            # SO_REUSEADDR would also let a second server steal the port,
            # so there we ask for exclusive use instead.
            if hasattr(socket, "SO_EXCLUSIVEADDRUSE"):
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_EXCLUSIVEADDRUSE, 1)
            else:
                sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

            sock.bind((config.host, config.port))
            sock.listen(config.backlog)
            sock.settimeout(ACCEPT_POLL_INTERVAL)
        except Exception:
            sock.close()
            raise
        return sock

    def _close_listener(self, listener: socket.socket):
        # shutdown() wakes a thread blocked in accept() on Linux; close()
        # alone does not.
        try:
            listener.shutdown(socket.SHUT_RDWR)
        except OSError:
            pass  # Not connected / already closed (macOS, Windows)
        try:
            listener.close()
        except OSError:
            pass

    @staticmethod
    def _check_document_root(document_root: str):
        """
        Raises:
            ConfigError: The root is not a directory we can list and read.
        """
        if not os.path.isdir(document_root):
            raise ConfigError(f"Document root does not exist: {document_root}")
        if not os.access(document_root, os.R_OK | os.X_OK):
            raise ConfigError(f"Document root is not readable: {document_root}")

    # =========================================================================
    # ACCEPT LOOP
    # =========================================================================

    def _is_current(self, state: ServerState) -> bool:
        return self._state is state and self._status is ServerStatus.RUNNING

    def _accept_loop(self, state: ServerState):
        """
        Accept connections until the server is stopped.

        ┌─────────────────────────────────────────────────────────────────┐
        │                     Accept Loop Flow                             │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   while this run is current:                                    │
        │       accept()                                                   │
        │         ├── timeout ──────────► loop (re-check status)          │
        │         ├── error, stopping ──► exit quietly                    │
        │         ├── error, running ───► log, retry                      │
        │         │     └── socket dead / too many failures → give up     │
        │         └── connection ───────► thread_pool.submit(), loop      │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘
        """
        listener = state.listener
        failures = 0

        while self._is_current(state):
            try:
                client_socket, client_address = listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._is_current(state):
                    break  # stop() closed the socket under us

                failures += 1
                logger.error(f"Accept error ({failures}/{MAX_ACCEPT_FAILURES}): {e}")
                if listener.fileno() == -1 or failures >= MAX_ACCEPT_FAILURES:
                    self._abandon(state, e)
                    break
                time.sleep(ACCEPT_RETRY_DELAY)
                continue

            failures = 0
            conn = Connection(
                socket=client_socket,
                address=client_address,
                timeout=state.config.timeout,
            )
            logger.debug(f"[{conn.id}] Accepted connection from {conn.client_ip}:{conn.client_port}")

            try:
                state.thread_pool.submit(self._process_connection, args=(conn, state))
            except RuntimeError:
                # stop() shut the pool down between accept() and submit()
                conn.close()
                break

        logger.debug(f"Accept loop for port {state.port} exited")

    def _abandon(self, state: ServerState, error: Exception):
        """The accept loop cannot continue: report the server as stopped."""
        with self._lock:
            if not self._is_current(state):
                return
            logger.error(f"Accept loop failed, stopping server: {error}")
            self._teardown(state)

    # =========================================================================
    # CONNECTION HANDLING (runs on a worker thread)
    # =========================================================================

    def _process_connection(self, conn: Connection, state: ServerState):
        """
        Handle exactly one request on conn, then close it.

        =====================================================================
        ERROR HANDLING
        =====================================================================

            nothing received          → close, no response
            malformed request line    → 400
            read timeout / reset      → close, no response
            handler blew up           → 500
            write failed              → close (nothing more can be sent)

        Nothing raised here escapes to the worker: every failure is
        contained to this one connection.

        =====================================================================
        """
        started_at = conn.created_at
        request = None

        with conn:
            # ─────────────────────────────────────────────────────────────
            # READ REQUEST
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.READING
            try:
                request = state.reader.read(conn.rfile)
            except HTTPParseError as e:
                logger.info(f"[{conn.id}] Bad request from {conn.client_ip}: {e}")
                response = text_response(e.status_code)
            except OSError as e:
                # Timeouts land here too (socket.timeout is an OSError)
                logger.debug(f"[{conn.id}] Read failed: {e}")
                return
            else:
                if request is None:
                    logger.debug(f"[{conn.id}] Closed without a request")
                    return

                # ─────────────────────────────────────────────────────────
                # DISPATCH
                # ─────────────────────────────────────────────────────────
                conn.state = ConnectionState.PROCESSING
                try:
                    response = state.handler.handle(request)
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    response = text_response(HTTPStatus.INTERNAL_SERVER_ERROR)

            # ─────────────────────────────────────────────────────────────
            # SEND RESPONSE
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.WRITING
            sent = self._send(conn, response, state)

            state.access_log.log(
                conn_id=conn.id,
                client_ip=conn.client_ip,
                method=request.method if request else None,
                path=request.raw_path if request else None,
                status_code=response.status,
                content_length=sent,
                started_at=started_at,
            )

    def _send(self, conn: Connection, response: HTTPResponse, state: ServerState) -> int:
        """Write the response; returns body bytes sent (0 on failure)."""
        writer = ResponseWriter(conn.wfile, chunk_size=state.config.chunk_size)
        try:
            return writer.write(response)
        except OSError as e:
            if writer.headers_sent:
                logger.warning(f"[{conn.id}] Response aborted mid-body: {e}")
            else:
                logger.debug(f"[{conn.id}] Client went away before response: {e}")
            return 0
