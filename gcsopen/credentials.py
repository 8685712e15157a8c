"""
Access tokens for Google Cloud Storage requests.
"""
import logging
import os
import subprocess
import threading
import time

import google.auth
import google.auth.exceptions
from google.auth.transport.requests import Request

from .utils import TokenTooLongError

logger = logging.getLogger("gcsopen.credentials")

# Service account access tokens expire after 3600 seconds; refresh a minute
# early to allow for clock skew and slow servers.
MAX_TOKEN_AGE = 3540
MAX_TOKEN_SIZE = 2048

GCLOUD_TOKEN_COMMAND = ["gcloud", "auth", "application-default", "print-access-token"]
DEFAULT_SCOPES = ["https://www.googleapis.com/auth/devstorage.full_control"]

OAUTH_TOKEN_ENV = "GCS_OAUTH_TOKEN"
AUTH_LOCATION_ENV = "HTS_AUTH_LOCATION"
CREDENTIALS_ENV = "GOOGLE_APPLICATION_CREDENTIALS"


def gcloud_fetcher(command=None):
    """
    Make a fetcher that prints an access token with the gcloud CLI.

    The returned callable runs ``command`` and returns the first line of its
    standard output, or None if the command could not be started or printed
    nothing readable. The child process is always reaped.
    """
    command = list(command or GCLOUD_TOKEN_COMMAND)

    def fetch():
        try:
            proc = subprocess.Popen(
                command,
                stdout=subprocess.PIPE,
                stderr=subprocess.DEVNULL,
                stdin=subprocess.DEVNULL,
            )
        except OSError as e:
            logger.debug("Could not run %s: %s", command[0], e)
            return None
        try:
            line = proc.stdout.readline()
        finally:
            proc.stdout.close()
            proc.wait()
        if not line:
            return None
        try:
            return line.decode()
        except UnicodeDecodeError as e:
            logger.debug("Unreadable output from %s: %s", command[0], e)
            return None

    return fetch


def google_auth_fetcher(scopes=None):
    """
    Make a fetcher that mints tokens from application default credentials.

    Uses ``google.auth.default`` instead of shelling out to gcloud; useful
    where the SDK is not installed.
    """
    scopes = scopes or DEFAULT_SCOPES

    def fetch():
        try:
            credentials, _ = google.auth.default(scopes=scopes)
            credentials.refresh(Request())
        except google.auth.exceptions.GoogleAuthError as e:
            logger.debug("Application default credentials failed: %s", e)
            return None
        return credentials.token

    return fetch


class CachedToken:
    """An access token and the time it was fetched."""

    __slots__ = ("value", "fetched_at")

    def __init__(self, value="", fetched_at=0.0):
        self.value = value
        self.fetched_at = fetched_at

    def __bool__(self):
        return bool(self.value)

    def age(self, now):
        return now - self.fetched_at

    def __repr__(self):
        state = "set" if self.value else "empty"
        return "<CachedToken %s fetched_at=%s>" % (state, self.fetched_at)


class TokenProvider:
    """
    Supplies the bearer token for storage requests.

    Sources are tried in this order:

    - ``GCS_OAUTH_TOKEN``: used verbatim, never cached.
    - ``HTS_AUTH_LOCATION``: another layer handles authentication, so no
      token is returned.
    - ``GOOGLE_APPLICATION_CREDENTIALS``: a token is minted by ``fetcher``
      and cached for ``max_age`` seconds.

    With none of these set there is no token, which is not an error.

    Parameters
    ----------
    fetcher: callable or None
        Zero-argument callable returning a token line or None. Defaults to
        ``gcloud_fetcher()``.
    environ: mapping or None
        Where configuration is looked up; ``os.environ`` if None.
    clock: callable
        Returns the current time in seconds.
    max_age: float
        Cached tokens older than this are refreshed.
    max_size: int
        Tokens longer than this many bytes raise ``TokenTooLongError``.
    """

    _singleton = [None]
    _singleton_lock = threading.Lock()

    def __init__(
        self,
        fetcher=None,
        environ=None,
        clock=time.time,
        max_age=MAX_TOKEN_AGE,
        max_size=MAX_TOKEN_SIZE,
    ):
        self.fetcher = fetcher or gcloud_fetcher()
        self.environ = environ
        self.clock = clock
        self.max_age = max_age
        self.max_size = max_size
        self._lock = threading.Lock()
        self._cached = CachedToken()

    @classmethod
    def current(cls):
        """The process-wide provider, created on first use."""
        with cls._singleton_lock:
            if cls._singleton[0] is None:
                cls._singleton[0] = cls()
            return cls._singleton[0]

    @classmethod
    def clear_instance(cls):
        with cls._singleton_lock:
            cls._singleton[0] = None

    @property
    def env(self):
        return os.environ if self.environ is None else self.environ

    @property
    def cached(self):
        with self._lock:
            return CachedToken(self._cached.value, self._cached.fetched_at)

    def get_token(self, environ=None):
        """
        Return the current bearer token, or None if there isn't one.

        ``environ`` replaces the provider's own configuration lookup for
        this call.
        """
        env = self.env if environ is None else environ
        token = env.get(OAUTH_TOKEN_ENV)
        if token:
            return token

        if env.get(AUTH_LOCATION_ENV) is not None:
            return None

        if env.get(CREDENTIALS_ENV) is not None:
            return self.refresh() or None

        return None

    def refresh(self, force=False):
        """
        Fetch a new token if the cached one is missing or stale.

        Only one refresh runs at a time; callers queued behind it see its
        result and re-check freshness themselves. A failed fetch leaves the
        cache exactly as it was.

        Returns the cached token value, "" if there is none.
        """
        with self._lock:
            now = self.clock()
            if force or not self._cached or self._cached.age(now) > self.max_age:
                try:
                    line = self.fetcher()
                except OSError as e:
                    logger.debug("Token fetch failed: %s", e)
                    line = None
                token = line.rstrip("\r\n") if line else ""
                if token:
                    size = len(token.encode())
                    if size > self.max_size:
                        raise TokenTooLongError(size, self.max_size)
                    self._cached = CachedToken(token, self.clock())
                    logger.debug("Refreshed access token")
                else:
                    logger.debug("Token fetch produced no token, keeping cache")
            return self._cached.value

    def invalidate(self):
        """Forget the cached token so the next request fetches a new one."""
        with self._lock:
            self._cached = CachedToken()
