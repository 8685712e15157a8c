import json


class HttpError(Exception):
    """Holds the message and code from cloud errors."""

    def __init__(self, error_response=None):
        if error_response:
            self.code = error_response.get("code", None)
            self.message = error_response.get("message", "")
            if self.code:
                self.message += ", %s" % self.code
        else:
            self.message = ""
            self.code = None
        super(HttpError, self).__init__(self.message)


class TokenTooLongError(RuntimeError):
    """Raised when the credential tool prints a token over the size limit.

    A truncated bearer token would only surface later as a confusing
    authentication failure, so this is never recovered from.
    """

    def __init__(self, size, limit):
        self.size = size
        self.limit = limit
        super().__init__(
            "Access token is %d bytes, longer than the %d byte limit" % (size, limit)
        )


def validate_response(status, content, path):
    """
    Check the status of an HTTP response, raise error if it's not ok.

    Parameters
    ----------
    status: int
        HTTP status code
    content: bytes or str
        response body, used for the error message
    path: associated URL, for error messages
    """
    if status < 400:
        return
    if status == 404:
        raise FileNotFoundError(path)

    error = None
    if hasattr(content, "decode"):
        content = content.decode()
    try:
        error = json.loads(content)["error"]
        msg = error["message"]
    except (json.decoder.JSONDecodeError, KeyError, TypeError):
        error = None
        msg = content

    if status == 403:
        raise IOError("Forbidden: %s\n%s" % (path, msg))
    elif "invalid" in str(msg):
        raise ValueError("Bad Request: %s\n%s" % (path, msg))
    elif error:
        raise HttpError(error)
    else:
        raise HttpError({"code": status, "message": msg})
