# -*- coding: utf-8 -*-
"""
Open Google Cloud Storage URLs by rewriting them to their HTTPS endpoints
"""
import logging
import os
import re

import fsspec

from .credentials import TokenProvider
from .opener import HTTPOpener, OpenOptions

logger = logging.getLogger("gcsopen")

DEFAULT_DOMAIN = "googleapis.com"
REQUESTER_PAYS_ENV = "GCS_REQUESTER_PAYS_PROJECT"

_bucket_end = re.compile(r"[/?#]")
_default_opener = [None]


def default_opener():
    """The opener used when none is given, created on first use."""
    if _default_opener[0] is None:
        _default_opener[0] = HTTPOpener()
    return _default_opener[0]


def split_url(url):
    """
    Split a GCS URL into transport, bucket and path.

    Parameters
    ----------
    url : string
        Of the form ``gs[+SCHEME]://BUCKET/PATH``.

    Returns
    -------
        (transport, bucket, path) tuple. ``path`` keeps its leading slash and
        any query or fragment.

    Examples
    --------
    >>> split_url("gs://mybucket/path/to/file")
    ('https', 'mybucket', '/path/to/file')
    >>> split_url("gs+http://mybucket?alt=media")
    ('http', 'mybucket', '?alt=media')
    """
    prefix = url[:3].lower()
    if prefix == "gs+":
        colon = url.find(":")
        if colon < 0:
            raise ValueError("Not a GCS URL: %s" % url)
        # trusted as given, not checked against known schemes
        transport = url[3:colon].lower()
    elif prefix == "gs:":
        colon = 2
        transport = "https"
    else:
        raise ValueError("Not a GCS URL: %s" % url)

    rest = url[colon + 1 :].lstrip("/")
    m = _bucket_end.search(rest)
    end = m.start() if m else len(rest)
    return transport, rest[:end], rest[end:]


def storage_host(bucket, mode, domain=DEFAULT_DOMAIN):
    """Host serving ``bucket`` for reads, writes or anything else."""
    if "r" in mode:
        service = "storage-download"
    elif "w" in mode:
        service = "storage-upload"
    else:
        service = "storage"
    return "%s.%s.%s" % (bucket, service, domain)


def rewrite_url(url, mode, domain=DEFAULT_DOMAIN):
    """
    Translate a ``gs://`` URL to the HTTPS URL to open with ``mode``.

    >>> rewrite_url("gs://my-bucket/dir/obj.bam", "r")
    'https://my-bucket.storage-download.googleapis.com/dir/obj.bam'
    """
    transport, bucket, path = split_url(url)
    return "%s://%s%s" % (transport, storage_host(bucket, mode, domain), path)


def build_headers(token_provider=None, environ=None):
    """
    HTTP header lines for a storage request.

    Authorization comes first when there is a token, then the requester
    pays project when one is configured. Either may be absent. Without a
    ``token_provider``, the process-wide provider looks up its token
    sources in ``environ`` as well.
    """
    env = os.environ if environ is None else environ
    headers = []

    if token_provider is None:
        token = TokenProvider.current().get_token(environ)
    else:
        token = token_provider.get_token()
    if token:
        headers.append("Authorization: Bearer %s" % token)

    project = env.get(REQUESTER_PAYS_ENV)
    if project is not None:
        headers.append("X-Goog-User-Project: %s" % project)
    return headers


def _rewrite_and_open(
    url, mode, has_options, extra, opener, token_provider, environ, domain
):
    target = rewrite_url(url, mode, domain)
    logger.debug("rewrote URL as %s", target)

    headers = build_headers(token_provider, environ)
    opener = opener or default_opener()

    if not (extra or has_options or headers):
        return opener(target, mode)
    return opener(target, OpenOptions(mode, headers, extra))


def gcs_open(
    url,
    mode="r",
    opener=None,
    token_provider=None,
    environ=None,
    domain=DEFAULT_DOMAIN,
    **kwargs
):
    """
    Open a Google Cloud Storage URL.

    The URL is rewritten to the bucket's download or upload host, depending
    on ``mode``, and opened with ``opener`` along with any authorization and
    requester pays headers.

    Parameters
    ----------
    url: str
        ``gs://``, ``gs+http://`` or ``gs+https://`` URL.
    mode: str
        Open mode; a trailing ``:`` asks for the options form of the call.
    opener: callable or None
        Called as ``opener(target_url, mode)`` when there are no headers or
        extra parameters, else ``opener(target_url, OpenOptions)``.
        Defaults to ``HTTPOpener``.
    token_provider: TokenProvider or None
        Defaults to the process-wide provider.
    environ: mapping or None
        Configuration lookup; ``os.environ`` if None. An explicit
        ``token_provider`` keeps its own lookup for the token.
    domain: str
        Service domain of the storage hosts.
    kwargs:
        Extra parameters passed through to the opener.

    Returns
    -------
    Whatever ``opener`` returns.
    """
    return _rewrite_and_open(
        url, mode, ":" in mode, kwargs, opener, token_provider, environ, domain
    )


def gcs_vopen(
    url,
    mode_colon,
    opener=None,
    token_provider=None,
    environ=None,
    domain=DEFAULT_DOMAIN,
    **kwargs
):
    """Like ``gcs_open``, but always passes an ``OpenOptions`` to the opener."""
    return _rewrite_and_open(
        url, mode_colon, True, kwargs, opener, token_provider, environ, domain
    )


class GCSURLFileSystem(fsspec.AbstractFileSystem):
    """
    fsspec interface for opening ``gs://`` URLs over plain HTTPS.

    Only ``open`` is supported; listing and metadata need the JSON API,
    which is what ``gcsfs`` is for.

    Parameters
    ----------
    opener: callable or None
        See ``gcs_open``.
    token_provider: TokenProvider or None
        See ``gcs_open``.
    domain: str
        Service domain of the storage hosts.
    storage_options:
        Passed to ``HTTPOpener`` when no ``opener`` is given.
    """

    protocol = ("gs", "gs+http", "gs+https")

    def __init__(
        self, opener=None, token_provider=None, domain=DEFAULT_DOMAIN, **kwargs
    ):
        super().__init__(**kwargs)
        self.opener = opener or HTTPOpener(**kwargs)
        self.token_provider = token_provider
        self.domain = domain

    @classmethod
    def _strip_protocol(cls, path):
        if isinstance(path, list):
            return [cls._strip_protocol(p) for p in path]
        path = path.rstrip("/")
        if path[:3].lower() not in ("gs:", "gs+"):
            path = "gs://" + path.lstrip("/")
        return path

    def unstrip_protocol(self, name):
        return self._strip_protocol(name)

    def _open(
        self,
        path,
        mode="rb",
        block_size=None,
        autocommit=True,
        cache_options=None,
        **kwargs
    ):
        if block_size is not None:
            kwargs["block_size"] = block_size
        if cache_options is not None:
            kwargs["cache_options"] = cache_options
        return gcs_open(
            path,
            mode,
            opener=self.opener,
            token_provider=self.token_provider,
            domain=self.domain,
            **kwargs
        )
