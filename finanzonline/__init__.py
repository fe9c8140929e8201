"""Read-only async client for the FinanzOnline session and DataBox web services."""

from finanzonline.errors import (
    ConfigurationError,
    DataboxError,
    FinanzonlineError,
    InvalidCredentialsError,
    InvalidXmlError,
    MaintenanceError,
    NetworkError,
    ReturnCodeError,
    SessionError,
    SessionExpiredError,
    SoapFaultError,
)
from finanzonline.clients.models.Credentials import FinanzonlineCredentials
from finanzonline.clients.models.DataboxEntry import DataboxEntry, DataboxListRequest, FileArt, ReadStatus
from finanzonline.clients.models.Session import SessionInfo
from finanzonline.models.config import FinanzonlineConfig
from finanzonline.helper.HelperConfig import HelperConfig
from finanzonline.clients.session.SessionClient import SessionClient
from finanzonline.clients.databox.DataboxClient import DataboxClient

__all__ = [
    "ConfigurationError",
    "DataboxClient",
    "DataboxEntry",
    "DataboxError",
    "DataboxListRequest",
    "FileArt",
    "FinanzonlineConfig",
    "FinanzonlineCredentials",
    "FinanzonlineError",
    "HelperConfig",
    "InvalidCredentialsError",
    "InvalidXmlError",
    "MaintenanceError",
    "NetworkError",
    "ReadStatus",
    "ReturnCodeError",
    "SessionClient",
    "SessionError",
    "SessionExpiredError",
    "SessionInfo",
    "SoapFaultError",
]
