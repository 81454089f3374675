"""Warbler exception hierarchy.

Shared across the router, view engines, viewers and the ASGI handler so
every module raises and catches the same types.
"""

from dataclasses import dataclass


class WarblerError(Exception):
    """Base for all warbler-specific errors."""


class ConfigurationError(WarblerError):
    """Raised when a route pattern or app option is invalid.

    Registration fails fast instead of producing a route that can never match.
    """


class HandleCancelled(WarblerError):  # noqa: N818
    """Raised by a handler or middleware to stop the pipeline.

    The ASGI handler neither renders nor maps it to an error response;
    whatever was already written is flushed as-is.
    """


class TemplateParseError(WarblerError):
    """A template failed to compile.

    Carries the filesystem path so the log line points at the broken file.
    """

    def __init__(self, path: str, cause: BaseException) -> None:
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause


@dataclass(frozen=True, slots=True)
class HTTPError(WarblerError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, viewers, or handlers. The ASGI handler writes
    ``status`` with ``detail`` as a plain-text body.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404: no route matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class ViewNotFound(NotFound):
    """404: the route exists but no viewer can satisfy the request."""

    def __init__(self, detail: str = "view not found") -> None:
        super().__init__(detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405: route exists but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
