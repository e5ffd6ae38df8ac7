"""
=============================================================================
POCKETSERVE - Embeddable LAN Static File Server
=============================================================================

Serves one directory over plain HTTP/1.1 to other devices on the same
network. Built on raw sockets and a fixed thread pool, no framework.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    pocketserve/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # CLI entry point (python -m pocketserve)
    ├── control.py           # start() / stop() / is_running() for host apps
    ├── server.py            # StaticServer: lifecycle, accept loop, dispatch
    ├── config.py            # ServerConfig dataclass
    ├── network.py           # LAN IP discovery for the "open this URL" hint
    ├── access_log.py        # One structured log line per request
    ├── logging_setup.py     # Root logger setup for the CLI
    ├── exceptions.py        # PocketServeError family
    ├── core/
    │   ├── connection.py    # Client socket wrapper, graceful close
    │   └── thread_pool.py   # Fixed worker pool, FIFO queue
    ├── http/
    │   ├── request.py       # Request line reader
    │   ├── response.py      # Response model and writer
    │   ├── status_codes.py  # The six status codes we send
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        └── static.py        # Path resolution and the GET pipeline

=============================================================================
QUICK START
=============================================================================

    from pocketserve import control
    from pocketserve.network import get_wifi_ip_address

    result = control.start(8080, "/home/me/Share")
    if result.success:
        print(f"Open http://{get_wifi_ip_address()}:8080 on your phone")

    ...

    control.stop()

Or, with a custom configuration and without the process-wide instance:

    from pocketserve import StaticServer, ServerConfig

    server = StaticServer(ServerConfig(max_workers=4, timeout=10.0))
    server.start(port=0, document_root="./public")
    print(server.url)
    server.stop()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .server import StaticServer, ServerStatus, StartResult, StopResult
from .exceptions import PocketServeError, ConfigError, HTTPParseError, AddressNotFoundError

__all__ = [
    "StaticServer",
    "ServerConfig",
    "ServerStatus",
    "StartResult",
    "StopResult",
    "PocketServeError",
    "ConfigError",
    "HTTPParseError",
    "AddressNotFoundError",
    "__version__",
]
