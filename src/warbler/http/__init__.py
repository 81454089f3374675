"""HTTP primitives: headers, request, response writers, compression and ETags."""

from warbler.http.compress import Compressor, DeflateCompressor, GzipCompressor
from warbler.http.headers import Headers, MutableHeaders
from warbler.http.request import QueryParams, Request
from warbler.http.writer import DeflateResponseWriter, GzipResponseWriter, ResponseWriter

__all__ = [
    "Compressor",
    "DeflateCompressor",
    "DeflateResponseWriter",
    "GzipCompressor",
    "GzipResponseWriter",
    "Headers",
    "MutableHeaders",
    "QueryParams",
    "Request",
    "ResponseWriter",
]
