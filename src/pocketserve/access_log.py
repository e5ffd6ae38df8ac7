"""
=============================================================================
ACCESS LOGGING
=============================================================================

One log line per handled connection, on its own logger so a host
application can route or silence it independently:

    logging.getLogger("pocketserve.access").setLevel(logging.WARNING)

Two formats:

    text   192.168.1.40 - - [19/Oct/2026:10:12:03 +0000] "GET /cat.png" 200 48213 3.41ms
    json   {"conn_id": "1f3a9c2e", "method": "GET", "path": "/cat.png", ...}

Connections that close without sending a request line are not logged
here; they show up at DEBUG level on the server logger instead.

=============================================================================
"""

import json
import time
import logging
from dataclasses import dataclass, asdict
from typing import Optional


logger = logging.getLogger("pocketserve.access")

LOG_FORMATS = ("text", "json")


@dataclass
class RequestLog:
    """
    Structured log entry for one request/response.

    Attributes:
        conn_id: Connection identifier (matches the server's debug lines).
        method: Request method, "-" if the line could not be parsed.
        path: Raw request path, "-" if the line could not be parsed.
        client_ip: Remote address.
        status_code: Status code sent.
        content_length: Body bytes sent.
        duration_ms: Time from accept to close of the response.
        timestamp: Apache-style timestamp.
    """

    conn_id: str
    method: str
    path: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        data = asdict(self)
        data["duration_ms"] = round(self.duration_ms, 2)
        return data

    def to_text(self) -> str:
        """Apache common-log style line, readable by most log tools."""
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class AccessLogger:
    """
    Emits RequestLog entries in the configured format.

    Usage:
        access = AccessLogger(log_format="json")
        access.log(conn_id="1f3a9c2e", method="GET", path="/", client_ip="10.0.0.7",
                   status_code=200, content_length=42, started_at=t0)
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")
        self.log_format = log_format
        self.log_level = log_level

    def log(
        self,
        conn_id: str,
        client_ip: str,
        status_code: int,
        content_length: int,
        started_at: float,
        method: Optional[str] = None,
        path: Optional[str] = None,
    ) -> RequestLog:
        entry = RequestLog(
            conn_id=conn_id,
            method=method or "-",
            path=path or "-",
            client_ip=client_ip,
            status_code=int(status_code),
            content_length=content_length,
            duration_ms=(time.time() - started_at) * 1000,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())

        return entry
