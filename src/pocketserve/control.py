"""
=============================================================================
CONTROL API
=============================================================================

The surface a host application (mobile bridge, desktop shell, test) talks
to. One process-wide server instance, three calls:

    from pocketserve import control

    result = control.start(8080, "/sdcard/Share")
    result.as_dict()   # {"success": True, "url": "http://0.0.0.0:8080"}

    control.is_running()   # True
    control.stop()         # StopResult(success=True)

None of these raise. Failures come back as values the host can hand to
its UI layer unchanged.

=============================================================================
"""

import logging
import threading
from typing import Optional

from .config import ServerConfig
from .server import StaticServer, StartResult, StopResult


logger = logging.getLogger(__name__)

_server: Optional[StaticServer] = None
_server_lock = threading.Lock()


def get_server(config: Optional[ServerConfig] = None) -> StaticServer:
    """
    Return the process-wide server, creating it on first use.

    `config` is only used when the server is created; later calls get the
    existing instance unchanged.
    """
    global _server
    with _server_lock:
        if _server is None:
            _server = StaticServer(config)
        return _server


def start(port: int, document_root: str) -> StartResult:
    """
    Start serving `document_root` on `port`.

    Returns once the socket is bound. A second start() while running fails
    with "Server is already running" and leaves the running server alone.
    """
    try:
        return get_server().start(port=port, document_root=document_root)
    except Exception as e:
        logger.exception(f"Unexpected error starting server: {e}")
        return StartResult(success=False, error=str(e))


def stop() -> StopResult:
    """Stop the server. Succeeds (and does nothing) if it is not running."""
    try:
        return get_server().stop()
    except Exception as e:
        logger.exception(f"Unexpected error stopping server: {e}")
        return StopResult(success=False, error=str(e))


def is_running() -> bool:
    return _server is not None and _server.is_running
