"""
=============================================================================
EXCEPTIONS
=============================================================================

Every error pocketserve raises on purpose derives from PocketServeError, so a
host application can catch the whole family with one clause.

    PocketServeError
     ├── ConfigError          Invalid ServerConfig (also a ValueError)
     ├── HTTPParseError       Malformed request line, carries a status code
     └── AddressNotFoundError No usable local IPv4 address, carries a code

Note that the control API (pocketserve.control) never lets these escape:
lifecycle failures are returned as StartResult / StopResult values.
=============================================================================
"""


class PocketServeError(Exception):
    """Base class for all pocketserve errors."""


class ConfigError(PocketServeError, ValueError):
    """Raised by ServerConfig.validate() for out-of-range settings."""


class HTTPParseError(PocketServeError):
    """
    Raised when the request line cannot be parsed.

    Carries the HTTP status that should be returned to the client, so the
    connection handler can answer without knowing why parsing failed.
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class AddressNotFoundError(PocketServeError):
    """
    Raised when no private IPv4 address could be found for this device.

    `code` is a stable identifier a host UI can switch on.
    """

    def __init__(self, message: str = "Could not determine WiFi IP address", code: str = "NOT_FOUND"):
        super().__init__(message)
        self.code = code
