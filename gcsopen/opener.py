"""
Default URL opener: opens rewritten https:// URLs for reading and writing.
"""
import io
import logging
import traceback

import decorator
import fsspec.spec
import requests
from fsspec.implementations.http import HTTPFileSystem

from .utils import validate_response

logger = logging.getLogger("gcsopen.opener")

# Allow optional tracing of call locations for opener calls.
_TRACE_METHOD_INVOCATIONS = False


@decorator.decorator
def _tracemethod(f, self, *args, **kwargs):
    logger.debug("%s(args=%s, kwargs=%s)", f.__name__, args, kwargs)
    if _TRACE_METHOD_INVOCATIONS and logger.isEnabledFor(logging.DEBUG - 1):
        tb_io = io.StringIO()
        traceback.print_stack(file=tb_io)
        logger.log(logging.DEBUG - 1, tb_io.getvalue())

    return f(self, *args, **kwargs)


class OpenOptions:
    """
    Mode, headers and backend parameters for one open call.

    Parameters
    ----------
    mode: str
        Open mode, carrying the trailing ``:`` modifier marker.
    headers: sequence of str
        Complete ``Name: value`` header lines, any number of them.
    extra: dict or None
        Backend-specific parameters passed through untouched.
    """

    def __init__(self, mode, headers=(), extra=None):
        if not mode.endswith(":"):
            mode += ":"
        self.mode = mode
        self.headers = tuple(headers)
        self.extra = dict(extra or {})

    @property
    def base_mode(self):
        """The mode without its modifier marker."""
        return self.mode.rstrip(":")

    def header_dict(self):
        out = {}
        for line in self.headers:
            name, _, value = line.partition(":")
            out[name.strip()] = value.strip()
        return out

    def __eq__(self, other):
        if not isinstance(other, OpenOptions):
            return NotImplemented
        return (self.mode, self.headers, self.extra) == (
            other.mode,
            other.headers,
            other.extra,
        )

    def __repr__(self):
        # header values hold credentials
        names = [h.partition(":")[0] for h in self.headers]
        return "OpenOptions(mode=%r, headers=%r, extra=%r)" % (
            self.mode,
            names,
            self.extra,
        )


def binary_mode(mode):
    """Map an open mode such as ``r`` or ``w:`` onto ``rb`` or ``wb``."""
    mode = mode.rstrip(":").replace("t", "")
    if "r" in mode:
        return "rb"
    if "w" in mode:
        return "wb"
    raise ValueError("Unsupported open mode: %r" % mode)


class HTTPUploadFile(fsspec.spec.AbstractBufferedFile):
    """
    Write-only file that uploads its content with one PUT on close.

    Parameters
    ----------
    fs: HTTPFileSystem
        Filesystem the URL belongs to.
    url: str
        Destination https:// URL.
    session: requests.Session
    headers: dict
        Sent with the upload request.
    timeout: float or None
        Passed to ``requests``.
    """

    def __init__(
        self,
        fs,
        url,
        session,
        headers=None,
        content_type=None,
        timeout=None,
        mode="wb",
        **kwargs
    ):
        if mode != "wb":
            raise NotImplementedError("HTTPUploadFile only supports mode='wb'")
        super().__init__(fs, url, mode=mode, **kwargs)
        self.session = session
        self.headers = dict(headers or {})
        if content_type:
            self.headers["Content-Type"] = content_type
        self.timeout = timeout

    def _initiate_upload(self):
        pass

    def _upload_chunk(self, final=False):
        if not final:
            # keep buffering until close
            return False
        data = self.buffer.getvalue()
        logger.debug("Uploading %d bytes to %s", len(data), self.path)
        r = self.session.put(
            self.path, data=data, headers=self.headers, timeout=self.timeout
        )
        validate_response(r.status_code, r.content, self.path)
        return True

    def discard(self):
        self.buffer = io.BytesIO()


class HTTPOpener:
    """
    Open https:// URLs as file-like objects.

    Called either with a bare mode string, or with an ``OpenOptions`` that
    supplies request headers and extra file parameters. Reading goes through
    fsspec's HTTP filesystem; writing buffers the object and uploads it with
    a PUT on close.

    Errors from the underlying HTTP libraries are not caught or retried.

    Parameters
    ----------
    requests_timeout: float or None
        Timeout for upload requests.
    storage_options:
        Passed to ``HTTPFileSystem``.
    """

    def __init__(self, requests_timeout=None, **storage_options):
        self.requests_timeout = requests_timeout
        self.storage_options = storage_options
        self._fs = None
        self._session = None

    @property
    def fs(self):
        if self._fs is None:
            self._fs = HTTPFileSystem(**self.storage_options)
        return self._fs

    @property
    def session(self):
        if self._session is None:
            self._session = requests.Session()
        return self._session

    @_tracemethod
    def __call__(self, url, mode_or_options):
        if isinstance(mode_or_options, OpenOptions):
            mode = mode_or_options.base_mode
            headers = mode_or_options.header_dict()
            extra = dict(mode_or_options.extra)
        else:
            mode = mode_or_options
            headers = {}
            extra = {}

        mode = binary_mode(mode)
        if mode == "rb":
            if headers:
                extra["headers"] = headers
            return self.fs.open(url, mode="rb", **extra)
        return HTTPUploadFile(
            self.fs,
            url,
            self.session,
            headers=headers,
            timeout=self.requests_timeout,
            **extra
        )
