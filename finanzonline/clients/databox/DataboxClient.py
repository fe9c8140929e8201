import base64
import binascii
import re
from datetime import datetime, timezone
from typing import Any

import httpx

from finanzonline.clients.SoapClientInterface import SoapClientInterface
from finanzonline.clients.models.Credentials import FinanzonlineCredentials
from finanzonline.clients.models.DataboxEntry import DataboxEntry, DataboxListRequest, FileArt, ReadStatus
from finanzonline.clients.soap.envelope import SOAP_NAMESPACES, build_soap_envelope
from finanzonline.errors import DataboxError, SessionExpiredError
from finanzonline.helper.HelperConfig import HelperConfig

DATABOX_SERVICE_URL = "https://finanzonline.bmf.gv.at/fon/ws/databox"

RC_OK = 0
RC_SESSION_EXPIRED = -1

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/=\s]+$")


class DataboxClient(SoapClientInterface):
    """Client for the FinanzOnline DataBox web service (list and download documents)."""

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
        return "Databox"

    def _get_timeout_field(self) -> str:
        return "query_timeout"

    def _get_default_service_url(self) -> str:
        return DATABOX_SERVICE_URL

    ##########################################
    ############### REQUESTS #################
    ##########################################

    async def get_databox(
        self,
        session_id: str,
        credentials: FinanzonlineCredentials,
        request: DataboxListRequest | None = None,
    ) -> list[DataboxEntry]:
        """
        List the documents in the DataBox.

        Args:
            session_id (str): Session id returned by SessionClient.login.
            credentials (FinanzonlineCredentials): The FinanzOnline identifiers.
            request (DataboxListRequest | None): Optional type and delivery window filters.

        Returns:
            list[DataboxEntry]: The entries in the order the service returned them.

        Raises:
            SessionExpiredError: If the session id is no longer valid (rc -1).
            DataboxError: On any other non-zero return code.
        """
        request = request or DataboxListRequest()
        body = build_soap_envelope(SOAP_NAMESPACES["databox"], "getDatabox", {
            "tid": credentials.tid,
            "benid": credentials.benid,
            "id": session_id,
            "erltyp": request.erltyp,
            "ts_zust_von": request.ts_zust_von,
            "ts_zust_bis": request.ts_zust_bis,
        })
        response = await self.do_soap_request("getDatabox", body)
        response = response if isinstance(response, dict) else {}
        self._check_return_code(response, "Failed to list databox")

        raw = response.get("result")
        if not raw:
            return []
        items = raw if isinstance(raw, list) else [raw]
        entries = [self._parse_entry(item if isinstance(item, dict) else {}) for item in items]
        self.logging.debug("DataBox listed %d entries", len(entries))
        return entries

    async def get_databox_entry(self, session_id: str, credentials: FinanzonlineCredentials, applkey: str) -> bytes:
        """
        Download the content of one DataBox entry.

        Args:
            session_id (str): Session id returned by SessionClient.login.
            credentials (FinanzonlineCredentials): The FinanzOnline identifiers.
            applkey (str): Retrieval key of the entry, taken from get_databox.

        Returns:
            bytes: The decoded document content. No further validation is applied.

        Raises:
            SessionExpiredError: If the session id is no longer valid (rc -1).
            DataboxError: On any other non-zero return code, or missing/invalid content.
        """
        body = build_soap_envelope(SOAP_NAMESPACES["databox"], "getDataboxEntry", {
            "tid": credentials.tid,
            "benid": credentials.benid,
            "id": session_id,
            "applkey": applkey,
        })
        response = await self.do_soap_request("getDataboxEntry", body)
        response = response if isinstance(response, dict) else {}
        return_code = self._check_return_code(response, "Failed to download databox entry")

        content = response.get("result")
        if not content:
            raise DataboxError("Missing document content", return_code, response.get("rc"))
        if not isinstance(content, str) or not self._is_likely_base64(content):
            raise DataboxError("Invalid base64 content", return_code, response.get("rc"))

        compact = re.sub(r"\s+", "", content)
        try:
            decoded = base64.b64decode(compact + "=" * (-len(compact) % 4))
        except binascii.Error as e:
            raise DataboxError("Invalid base64 content", return_code, response.get("rc")) from e

        self.logging.debug("DataBox entry %s downloaded (%d bytes)", applkey, len(decoded))
        return decoded

    ##########################################
    ########### RESPONSE PARSER ##############
    ##########################################

    def _check_return_code(self, response: dict, failure_message: str) -> int:
        raw_code = response.get("rc")
        return_code = self.normalize_return_code(raw_code)
        message = self.get_text_val(response, "msg")

        if return_code == RC_SESSION_EXPIRED:
            self.logging.warning("DataBox session expired (rc=%s)", return_code)
            raise SessionExpiredError(message or "Session expired", return_code, raw_code)

        if return_code != RC_OK:
            self.logging.error("DataBox request failed (rc=%s): %s", raw_code, message)
            raise DataboxError(message or failure_message, return_code, raw_code)

        return return_code

    def _parse_entry(self, raw: dict) -> DataboxEntry:
        return DataboxEntry(
                stnr=self.get_text_val(raw, "stnr"),
                name=self.get_text_val(raw, "name"),
                anbringen=self.get_text_val(raw, "anbringen"),
                zrvon=self.get_text_val(raw, "zrvon"),
                zrbis=self.get_text_val(raw, "zrbis"),
                datbesch=self._parse_date(self.get_text_val(raw, "datbesch")),
                erltyp=self.get_text_val(raw, "erltyp"),
                fileart=self._normalize_fileart(self.get_text_val(raw, "fileart")),
                ts_zust=self._parse_timestamp(self.get_text_val(raw, "ts_zust")),
                applkey=self.get_text_val(raw, "applkey"),
                filebez=self.get_text_val(raw, "filebez"),
                status=self._normalize_status(self.get_text_val(raw, "status")),
            )

    def _parse_date(self, value: str) -> datetime:
        """Parse a YYYY-MM-DD date as UTC midnight. Empty or unparseable values yield the epoch."""
        if not value:
            return EPOCH
        try:
            parsed = datetime.strptime(value[:10], "%Y-%m-%d")
        except ValueError:
            self.logging.warning("Unparseable datbesch '%s', using epoch", value)
            return EPOCH
        return parsed.replace(tzinfo=timezone.utc)

    def _parse_timestamp(self, value: str) -> datetime:
        """Parse an ISO-8601 timestamp. Values without offset are taken as UTC."""
        if not value:
            return EPOCH
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            self.logging.warning("Unparseable ts_zust '%s', using epoch", value)
            return EPOCH
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)

    @staticmethod
    def _normalize_fileart(value: Any) -> FileArt:
        return "XML" if str(value or "").upper() == "XML" else "PDF"

    @staticmethod
    def _normalize_status(value: Any) -> ReadStatus:
        return "READ" if str(value or "").upper() == "READ" else "UNREAD"

    @staticmethod
    def _is_likely_base64(value: str) -> bool:
        trimmed = value.strip()
        return bool(trimmed) and bool(_BASE64_PATTERN.match(trimmed))
