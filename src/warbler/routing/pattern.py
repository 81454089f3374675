"""Pattern splitting for handler patterns and filesystem names.

Handler patterns follow ``[METHOD ][host]/path``; filesystem names
follow ``[@host/]subpath`` and are turned into ``GET`` patterns by
``split_file``.
"""

from warbler.errors import ConfigurationError

METHODS: frozenset[str] = frozenset({"GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"})

EXACT_SUFFIX = "{$}"

_INDEX = "index.html"


def split_pattern(pattern: str) -> tuple[str, str, str]:
    """Split ``"GET example.com/users"`` into ``("GET", "example.com", "/users")``.

    The method is separated from the rest by spaces or tabs and may be
    omitted. Everything before the first ``/`` of the rest is the host.

    Raises ``ConfigurationError`` for patterns that would otherwise route
    silently wrong: an unknown method token, a missing path, or a host
    containing whitespace.
    """
    s = pattern.strip(" \t")
    if not s:
        msg = "Empty route pattern."
        raise ConfigurationError(msg)

    method, rest = "", s
    for i, ch in enumerate(s):
        if ch in " \t":
            method, rest = s[:i], s[i + 1 :].lstrip(" \t")
            break

    if method and method not in METHODS:
        msg = f"Invalid method {method!r} in route pattern {pattern!r}."
        raise ConfigurationError(msg)

    slash = rest.find("/")
    if slash < 0:
        msg = f"Route pattern {pattern!r} has no path."
        raise ConfigurationError(msg)

    host, path = rest[:slash], rest[slash:]
    if any(ch in host for ch in " \t"):
        msg = f"Invalid host in route pattern {pattern!r}."
        raise ConfigurationError(msg)
    return method, host.lower(), path


def split_file(name: str) -> tuple[str, str, str]:
    """Derive ``(host, path, pattern)`` from a filesystem-relative name.

    - ``index.html`` collapses to its directory.
    - A directory name (trailing ``/``) is matched exactly via ``{$}``.
    - ``@host/rest`` scopes the route to ``host``.
    - The empty name is the root directory.

    Examples::

        split_file("about")         -> ("", "/about", "GET /about")
        split_file("docs/")         -> ("", "/docs/", "GET /docs/{$}")
        split_file("@a.com/x")      -> ("a.com", "/x", "GET a.com/x")
        split_file("a/index.html")  -> ("", "/a/", "GET /a/{$}")
        split_file("")              -> ("", "/", "GET /{$}")
    """
    if name == _INDEX:
        name = ""
    elif name.endswith("/" + _INDEX):
        name = name[: -len(_INDEX)]

    host = ""
    if name.startswith("@"):
        end = name.find("/")
        if end < 0:
            host, name = name[1:], ""
        else:
            host, name = name[1:end], name[end + 1 :]

    path = "/" + name
    pattern = f"GET {host.lower()}{path}"
    if path.endswith("/"):
        pattern += EXACT_SUFFIX
    return host.lower(), path, pattern
