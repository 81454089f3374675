"""htmx support.

``HtmxInterceptor`` makes redirects work for requests issued by htmx:
instead of a 3xx (which htmx would follow and swap in), it answers 200
with ``HX-Redirect`` so the browser navigates.

Usage::

    app = App(fsys=fsys, interceptor=HtmxInterceptor())
"""

from warbler.context import Context

HX_REQUEST = "HX-Request"
HX_CURRENT_URL = "HX-Current-URL"
HX_REDIRECT = "HX-Redirect"


def is_hx_request(ctx: Context) -> bool:
    return ctx.request.headers.get(HX_REQUEST) == "true"


class HtmxInterceptor:
    """Interceptor for htmx-driven pages."""

    __slots__ = ()

    def request_referer(self, ctx: Context) -> str:
        if is_hx_request(ctx):
            return ctx.request.headers.get(HX_CURRENT_URL) or ""
        return ""

    def redirect(self, ctx: Context, url: str, status: int = 302) -> bool:
        if not is_hx_request(ctx):
            return False
        ctx.write_header(HX_REDIRECT, url)
        ctx.write_status(200)
        return True
