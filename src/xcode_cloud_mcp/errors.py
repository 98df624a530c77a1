"""Exception hierarchy shared by the API client, the poll loop and the tools."""

from typing import Optional


class XcodeCloudError(Exception):
    def __init__(self, message: str, code: Optional[str] = None) -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


class ConfigError(XcodeCloudError):
    """Raised when required credentials are missing from the environment."""


class SigningError(XcodeCloudError):
    """Raised when the App Store Connect token cannot be signed (bad private key)."""


class APIError(XcodeCloudError):
    """Raised for any non-2xx response from App Store Connect.

    ``status`` carries the HTTP status code of the failed response.
    """

    def __init__(self, status: int, message: str, code: Optional[str] = None) -> None:
        self.status = status
        super().__init__(message, code)


class RequestError(XcodeCloudError):
    """Raised when the HTTP request could not be completed (DNS, refused, timeout)."""


class DownloadError(XcodeCloudError):
    """Raised when an artifact download returns a non-2xx status."""


class BuildPollingError(XcodeCloudError):
    """Raised when polling a build run fails too many times in a row."""


class InvalidParameterError(XcodeCloudError):
    pass
