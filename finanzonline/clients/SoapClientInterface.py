import asyncio
import math
from abc import ABC, abstractmethod
from typing import Any

import httpx

from finanzonline.clients.soap.envelope import is_maintenance_response, parse_soap_body
from finanzonline.errors import FinanzonlineError, MaintenanceError, NetworkError
from finanzonline.helper.HelperConfig import HelperConfig


class SoapClientInterface(ABC):
    def __init__(
        self,
        helper_config: HelperConfig,
        timeout: float | None = None,
        service_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.logging = helper_config.get_logger()
        self._helper_config = helper_config
        self.timeout = timeout if timeout is not None else self._get_configured_timeout()
        self._service_url = service_url or self._get_default_service_url()

        # client and transport
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    ##########################################
    ################ GETTER ##################
    ##########################################

    ################ GENERAL ##################
    def get_client_type(self) -> str:
        """
        Returns the type of the client in lowercase. E.g. "session"
        """
        return self._get_client_type().lower()

    @abstractmethod
    def _get_client_type(self) -> str:
        """
        Returns the type of the client. E.g. "session"
        """
        pass

    ################ CONFIG ##################
    @abstractmethod
    def _get_timeout_field(self) -> str:
        """
        Returns the name of the config field holding this client's timeout in seconds.
        E.g. "session_timeout"
        """
        pass

    def _get_configured_timeout(self) -> float:
        return float(getattr(self._helper_config.get_config(), self._get_timeout_field()))

    ################ ENDPOINTS ##################
    @abstractmethod
    def _get_default_service_url(self) -> str:
        """
        Returns the URL of the SOAP endpoint used when none is configured.

        Returns:
            str: The service URL (e.g. "https://finanzonline.bmf.gv.at/fon/ws/databox")
        """
        pass

    def get_service_url(self) -> str:
        return self._service_url

    ##########################################
    ############ CORE REQUESTS ###############
    ##########################################

    async def boot(self) -> None:
        """Initialise the HTTP client."""
        self._client = httpx.AsyncClient(timeout=self.timeout, transport=self._transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self):
        await self.boot()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def do_soap_request(self, action: str, body: str, expected_key: str | None = None) -> Any:
        """Send a SOAP request and return the parsed response payload.

        The request is cancelled when the client timeout elapses. The response
        body is always read as text: a maintenance page is reported before the
        HTTP status is looked at, and the status before the body is parsed.

        Args:
            action: SOAP operation name, sent as SOAPAction header.
            body: The serialized request envelope.
            expected_key: Name of the payload element in the response body.

        Returns:
            The response payload as plain Python values.

        Raises:
            MaintenanceError: If FinanzOnline answers with its maintenance page.
            NetworkError: Before boot(), on connection failures, timeouts and non-2xx status codes.
            SoapFaultError: If the response carries a SOAP fault.
            InvalidXmlError: If the response cannot be parsed.
        """
        if self._client is None:
            raise NetworkError("HTTP client not initialised. Call boot() before making requests.")

        headers = {
            "Content-Type": "text/xml; charset=utf-8",
            "SOAPAction": action,
        }
        self.logging.debug("SOAP request: action=%s, url=%s, timeout=%ss", action, self._service_url, self.timeout)

        try:
            response = await asyncio.wait_for(
                self._client.post(self._service_url, content=body.encode("utf-8"), headers=headers),
                timeout=self.timeout,
            )
            text = response.text
            self.logging.debug("SOAP response: action=%s, status=%d, %d bytes", action, response.status_code, len(text))

            if is_maintenance_response(text):
                self.logging.warning("FinanzOnline answered '%s' with its maintenance page.", action)
                raise MaintenanceError("FinanzOnline is in maintenance mode.")

            if not response.is_success:
                self.logging.error("SOAP request '%s' failed with status %d", action, response.status_code)
                raise NetworkError(
                    f"SOAP request failed with status {response.status_code}",
                    status_code=response.status_code,
                )

            return parse_soap_body(response.content, expected_key)
        except FinanzonlineError:
            raise
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            self.logging.error("SOAP request '%s' timed out after %ss", action, self.timeout)
            raise NetworkError("SOAP request timed out", cause=e, timed_out=True) from e
        except Exception as e:
            self.logging.error("SOAP request '%s' failed: %s", action, e)
            raise NetworkError("SOAP request failed", cause=e) from e

    ##########################################
    ############### HELPERS ##################
    ##########################################

    @staticmethod
    def get_text_val(response: dict, key: str) -> str:
        """Return the text value stored under key, or "" if it is missing or not text."""
        value = response.get(key)
        return value if isinstance(value, str) else ""

    @staticmethod
    def normalize_return_code(value: Any) -> int | None:
        """
        Coerce a raw business return code into an int.

        Strings are converted to numbers. Anything that is not a finite integral
        number yields None, which never compares equal to a known code.
        """
        if isinstance(value, bool):
            return None
        if isinstance(value, str):
            try:
                value = float(value.strip())
            except ValueError:
                return None
        if not isinstance(value, (int, float)):
            return None
        if not math.isfinite(value) or not float(value).is_integer():
            return None
        return int(value)
