"""Error taxonomy for the FinanzOnline clients.

Every error raised by this package derives from FinanzonlineError, so callers
can catch broadly or pick the exact failure they care about.
"""

from typing import Any


class FinanzonlineError(Exception):
    """Base class for all FinanzOnline service errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(FinanzonlineError):
    """Resolved settings failed validation. Raised before any network call."""


class NetworkError(FinanzonlineError):
    """Transport failure, non-2xx HTTP status or timeout."""

    def __init__(
        self,
        message: str,
        cause: BaseException | None = None,
        status_code: int | None = None,
        timed_out: bool = False,
    ) -> None:
        super().__init__(message)
        self.cause = cause
        self.status_code = status_code
        self.timed_out = timed_out


class MaintenanceError(FinanzonlineError):
    """The service answered with its maintenance page."""


class InvalidXmlError(FinanzonlineError):
    """The response is not a usable SOAP envelope."""

    def __init__(self, message: str, xml_snippet: str | None = None) -> None:
        super().__init__(message)
        self.xml_snippet = xml_snippet


class SoapFaultError(FinanzonlineError):
    """The service returned a SOAP fault."""

    def __init__(self, message: str, fault_code: str | None = None) -> None:
        super().__init__(message)
        self.fault_code = fault_code


class ReturnCodeError(FinanzonlineError):
    """A successful SOAP exchange that carried a negative business return code."""

    def __init__(self, message: str, return_code: int | None, raw_return_code: Any = None) -> None:
        super().__init__(message)
        self.return_code = return_code
        self.raw_return_code = raw_return_code


class InvalidCredentialsError(ReturnCodeError):
    """Login rejected the participant/user/pin combination (rc -4)."""


class SessionError(ReturnCodeError):
    """Login failed for any other reason, or returned no session id."""


class SessionExpiredError(ReturnCodeError):
    """The session id is no longer valid (rc -1 on a databox call)."""


class DataboxError(ReturnCodeError):
    """A databox call failed or returned an unusable payload."""
