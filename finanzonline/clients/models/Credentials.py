"""Credential model shared by the session and databox clients."""

from pydantic import BaseModel


class FinanzonlineCredentials(BaseModel):
    """
    The four identifiers FinanzOnline requires for login and every later call.

    Attributes:
        tid (str): Teilnehmer-ID (participant id).
        benid (str): Benutzer-ID (user id).
        pin (str): PIN / password of the web service user.
        herstellerid (str): Hersteller-ID (vendor id, usually the UID number).
    """
    tid: str
    benid: str
    pin: str
    herstellerid: str
