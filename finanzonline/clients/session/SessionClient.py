import httpx

from finanzonline.clients.SoapClientInterface import SoapClientInterface
from finanzonline.clients.models.Credentials import FinanzonlineCredentials
from finanzonline.clients.models.Session import SessionInfo
from finanzonline.clients.soap.envelope import SOAP_NAMESPACES, build_soap_envelope
from finanzonline.errors import InvalidCredentialsError, SessionError
from finanzonline.helper.HelperConfig import HelperConfig

SESSION_SERVICE_URL = "https://finanzonline.bmf.gv.at:443/fonws/ws/session"

RC_OK = 0
RC_INVALID_CREDENTIALS = -4


class SessionClient(SoapClientInterface):
    """Client for the FinanzOnline session web service (login/logout)."""

    def __init__(
        self,
        helper_config: HelperConfig,
        timeout: float | None = None,
        service_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        super().__init__(helper_config=helper_config, timeout=timeout, service_url=service_url, transport=transport)

    ##########################################
    ################ GETTER ##################
    ##########################################

    def _get_client_type(self) -> str:
        return "Session"

    def _get_timeout_field(self) -> str:
        return "session_timeout"

    def _get_default_service_url(self) -> str:
        return SESSION_SERVICE_URL

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def login(self, credentials: FinanzonlineCredentials) -> SessionInfo:
        """
        Open a FinanzOnline session.

        Args:
            credentials (FinanzonlineCredentials): The four FinanzOnline identifiers.

        Returns:
            SessionInfo: The session id together with the return code and message.

        Raises:
            InvalidCredentialsError: If the service rejects the credentials (rc -4).
            SessionError: On any other return code or if the session id is missing.
        """
        body = build_soap_envelope(SOAP_NAMESPACES["session"], "login", {
            "tid": credentials.tid,
            "benid": credentials.benid,
            "pin": credentials.pin,
            "herstellerid": credentials.herstellerid,
        })
        response = await self.do_soap_request("login", body)
        response = response if isinstance(response, dict) else {}

        raw_code = response.get("rc")
        return_code = self.normalize_return_code(raw_code)
        message = self.get_text_val(response, "msg")
        session_id = self.get_text_val(response, "id")

        if return_code == RC_INVALID_CREDENTIALS:
            self.logging.warning("Login rejected: invalid credentials (rc=%s)", return_code)
            raise InvalidCredentialsError(message or "Invalid credentials", return_code, raw_code)

        if return_code != RC_OK:
            self.logging.warning("Login failed (rc=%s): %s", raw_code, message)
            raise SessionError(message or "Session login failed", return_code, raw_code)

        if not session_id:
            raise SessionError("Session ID missing in response", return_code, raw_code)

        self.logging.debug("Login successful")
        return SessionInfo(session_id=session_id, return_code=return_code, message=message)

    async def logout(self, session_id: str, credentials: FinanzonlineCredentials) -> bool:
        """
        Close a FinanzOnline session.

        A non-zero return code is reported as False instead of raising.

        Returns:
            bool: True if the service confirmed the logout.
        """
        body = build_soap_envelope(SOAP_NAMESPACES["session"], "logout", {
            "tid": credentials.tid,
            "benid": credentials.benid,
            "id": session_id,
        })
        response = await self.do_soap_request("logout", body)
        response = response if isinstance(response, dict) else {}

        return_code = self.normalize_return_code(response.get("rc"))
        if return_code != RC_OK:
            self.logging.warning("Logout not confirmed (rc=%s): %s", response.get("rc"), self.get_text_val(response, "msg"))
        return return_code == RC_OK
