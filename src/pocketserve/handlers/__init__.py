"""
=============================================================================
HANDLERS MODULE
=============================================================================

A handler turns a parsed request into a response. This server has exactly
one: the static file handler, which maps request paths onto the document
root.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    REQUEST → HANDLER → RESPONSE                     │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   IncomingRequest        StaticFileHandler         HTTPResponse     │
    │   ┌────────────┐        ┌──────────────┐         ┌────────────┐    │
    │   │ GET        │        │ PathResolver │         │ 200 OK     │    │
    │   │ /cat.png   │ ─────▶ │ MIME lookup  │ ──────▶ │ image/png  │    │
    │   └────────────┘        └──────────────┘         │ <file>     │    │
    │                                                  └────────────┘    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .static import StaticFileHandler, PathResolver, ResolvedTarget, TargetError

__all__ = [
    "StaticFileHandler",
    "PathResolver",
    "ResolvedTarget",
    "TargetError",
]
