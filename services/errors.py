"""Error taxonomy shared by the data pipeline and the HTTP layer."""

from __future__ import annotations


class InvalidRangeError(ValueError):
    """Time bounds are missing, malformed, or inverted."""


class DataSourceUnavailable(RuntimeError):
    """The backing store could not be reached or a query failed."""


class BadRequest(ValueError):
    """The request payload is malformed."""


class InvalidCredentials(Exception):
    """The submitted shared secret does not match."""


class ServerMisconfigured(RuntimeError):
    """A required secret is not configured on the server."""
