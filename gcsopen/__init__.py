from .core import GCSURLFileSystem, gcs_open, gcs_vopen, rewrite_url
from .credentials import TokenProvider
from .opener import HTTPOpener, OpenOptions
from .registry import register

__version__ = "0.1.0"

__all__ = [
    "GCSURLFileSystem",
    "HTTPOpener",
    "OpenOptions",
    "TokenProvider",
    "gcs_open",
    "gcs_vopen",
    "register",
    "rewrite_url",
]
