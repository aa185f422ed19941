"""
=============================================================================
HTTP VALUE TYPES
=============================================================================

The request and response objects that travel through the middleware
chain. Wire parsing and serialization belong to the host server; this
package only models what the chain reads and writes.

=============================================================================
"""

from .request import HTTPRequest
from .response import (
    HTTPResponse,
    ResponseBuilder,
    json_response,   # Compact JSON body (pipeline-authored responses)
    ok,              # 200 OK
    no_content,      # 204 No Content
    internal_error,  # 500 Internal Server Error
)
from .status_codes import HTTPStatus

__all__ = [
    "HTTPRequest",
    "HTTPResponse",
    "ResponseBuilder",
    "json_response",
    "ok",
    "no_content",
    "internal_error",
    "HTTPStatus",
]
