"""
Registration of the ``gs`` URL schemes with a host scheme table and fsspec.
"""
import logging

import fsspec

from .core import GCSURLFileSystem, gcs_open, gcs_vopen

logger = logging.getLogger("gcsopen.registry")

SCHEMES = ("gs", "gs+http", "gs+https")
LABEL = "Google Cloud Storage"
PRIORITY = 2000 + 50

# scheme -> SchemeHandler
handlers = {}


def always_remote(url):
    return True


class SchemeHandler:
    """How a host opens URLs of one scheme."""

    def __init__(self, open, vopen, is_remote, label, priority):
        self.open = open
        self.vopen = vopen
        self.is_remote = is_remote
        self.label = label
        self.priority = priority

    def __repr__(self):
        return "<SchemeHandler %s priority=%s>" % (self.label, self.priority)


gcs_handler = SchemeHandler(gcs_open, gcs_vopen, always_remote, LABEL, PRIORITY)


def add_scheme_handler(scheme, handler, registry=None):
    """
    Install ``handler`` for ``scheme`` unless an equal or higher priority
    handler is already there.

    Only the last three digits of a priority are compared; the thousands
    place records where a handler came from.

    Returns True if the handler was installed.
    """
    registry = handlers if registry is None else registry
    existing = registry.get(scheme)
    if (
        existing is not None
        and existing is not handler
        and existing.priority % 1000 >= handler.priority % 1000
    ):
        logger.debug(
            "Not registering %s for %s: %s has priority", handler.label, scheme, existing
        )
        return False
    registry[scheme] = handler
    return True


def register(registry=None, with_fsspec=True):
    """
    Register the GCS handler for ``gs``, ``gs+http`` and ``gs+https``.

    Parameters
    ----------
    registry: dict or None
        Scheme table to install into; the module's ``handlers`` if None.
    with_fsspec: bool
        Also register ``GCSURLFileSystem`` as the fsspec implementation of
        these protocols, replacing any existing one (such as gcsfs for
        ``gs``).
    """
    for scheme in SCHEMES:
        add_scheme_handler(scheme, gcs_handler, registry)
        if with_fsspec:
            fsspec.register_implementation(scheme, GCSURLFileSystem, clobber=True)
    logger.debug("Registered %s for %s", LABEL, ", ".join(SCHEMES))


def lookup(url, registry=None):
    """Handler for the scheme of ``url``; KeyError if there is none."""
    registry = handlers if registry is None else registry
    scheme = url.split(":", 1)[0].lower()
    if scheme == url:
        raise KeyError(url)
    return registry[scheme]
