"""Custom exception hierarchy for xrelay."""


class XrelayError(Exception):
    """Base exception for all xrelay errors."""


class CookieFormatError(XrelayError):
    """User-supplied cookie JSON could not be adapted."""


class CredentialsError(XrelayError):
    """Cookies could not be installed into the scraper."""


class UpstreamError(XrelayError):
    """The scraping library failed while fetching tweets."""


class StreamParseError(XrelayError):
    """An event on the relay stream could not be decoded."""


class ExportFormatError(XrelayError):
    """A saved tweet export is not a list of tweet objects."""


class RelayRequestError(XrelayError):
    """The relay rejected a request before streaming began."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code
