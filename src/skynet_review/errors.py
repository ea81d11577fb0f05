"""Exception taxonomy shared by the git, client, and CLI layers.

Messages on these exceptions are shown to the user verbatim, so they must
never carry raw tool output or response bodies.
"""

from __future__ import annotations


class ReviewError(Exception):
    """Base class for every error the CLI reports and exits on."""


class ConfigError(ReviewError, ValueError):
    """Bad configuration: malformed base URL, unreadable config file."""


class InsecureEndpoint(ConfigError):
    """Plain-HTTP gateway URL pointing at a non-loopback host."""


class ChangeSetError(ReviewError):
    """Failure while deriving the file list from version control."""


class NotARepository(ChangeSetError):
    """Current directory is not inside a git work tree (or git is missing)."""


class InvalidRef(ChangeSetError, ValueError):
    """A user-supplied git reference failed validation."""


class DiffFailed(ChangeSetError):
    """``git diff`` exited non-zero."""


class TransportError(ReviewError):
    """Timeout, connection failure or non-2xx response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class StreamReadError(TransportError):
    """The connection failed while reading a streamed response body."""


class StreamServerError(ReviewError):
    """The service sent an explicit ``error`` event."""


class DecodeError(ReviewError, ValueError):
    """A single streamed finding could not be decoded."""
