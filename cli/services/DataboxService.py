"""DataBox service.

Runs one CLI command against FinanzOnline: logs in, lists or downloads
DataBox entries, writes documents to disk and logs out again. A session that
expires mid-run is renewed once and the failed call repeated.
"""

import re
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Awaitable, Callable, TypeVar

from finanzonline.clients.databox.DataboxClient import DataboxClient
from finanzonline.clients.models.DataboxEntry import DataboxEntry, DataboxListRequest
from finanzonline.clients.session.SessionClient import SessionClient
from finanzonline.errors import FinanzonlineError, SessionExpiredError
from finanzonline.helper.HelperConfig import HelperConfig

T = TypeVar("T")

_UNSAFE_FILE_CHARS = re.compile(r"[^a-zA-Z0-9._-]+")


class DataboxService:
    """Orchestrates login, DataBox calls and logout for a single CLI run."""

    def __init__(
        self,
        helper_config: HelperConfig,
        session_client: SessionClient,
        databox_client: DataboxClient,
    ) -> None:
        self.logging = helper_config.get_logger()
        self._config = helper_config.get_config()
        self._session_client = session_client
        self._databox_client = databox_client
        self._session_id: str | None = None

    ##########################################
    ################ SESSION #################
    ##########################################

    async def do_login(self) -> str:
        """Open a new session and remember its id."""
        session = await self._session_client.login(self._config)
        self._session_id = session.session_id
        self.logging.info("Logged in to FinanzOnline.")
        return session.session_id

    async def do_logout(self) -> None:
        """Close the current session, if any. Failures are logged, not raised."""
        if self._session_id is None:
            return
        session_id, self._session_id = self._session_id, None
        try:
            if not await self._session_client.logout(session_id, self._config):
                self.logging.warning("FinanzOnline did not confirm the logout.")
        except FinanzonlineError as e:
            self.logging.warning("Logout failed: %s", e)

    async def _with_session(self, call: Callable[[str], Awaitable[T]]) -> T:
        """Run call with the current session id, re-authenticating once if it expired."""
        session_id = self._session_id or await self.do_login()
        try:
            return await call(session_id)
        except SessionExpiredError:
            self.logging.warning("Session expired, logging in again.")
            self._session_id = None
            return await call(await self.do_login())

    ##########################################
    ############### COMMANDS #################
    ##########################################

    async def list_entries(self, erltyp: str | None = None, days: float | None = None) -> list[DataboxEntry]:
        """List DataBox entries, optionally filtered by type and delivered in the last days."""
        request = DataboxListRequest(
            erltyp=erltyp or None,
            ts_zust_von=datetime.now(timezone.utc) - timedelta(days=days) if days else None,
        )
        return await self._with_session(
            lambda session_id: self._databox_client.get_databox(session_id, self._config, request)
        )

    async def download_entry(self, applkey: str, output_dir: str | None = None) -> Path:
        """Download one entry by applkey and save it as <applkey>.pdf."""
        content = await self._with_session(
            lambda session_id: self._databox_client.get_databox_entry(session_id, self._config, applkey)
        )
        target_dir = self._resolve_output_dir(output_dir)
        output_path = target_dir / f"{sanitize_file_name(applkey)}.pdf"
        output_path.write_bytes(content)
        self.logging.debug("Saved %s", output_path)
        return output_path

    async def do_sync(
        self,
        erltyp: str | None = "B",
        days: float | None = None,
        include_all: bool = False,
        output_dir: str | None = None,
    ) -> list[Path]:
        """Download every matching entry (unread only unless include_all) into the output directory."""
        entries = filter_entries(await self.list_entries(erltyp=erltyp, days=days), include_all=include_all)
        if not entries:
            self.logging.debug("No entries to sync.")
            return []

        target_dir = self._resolve_output_dir(output_dir)
        saved: list[Path] = []
        for entry in entries:
            content = await self._with_session(
                lambda session_id, applkey=entry.applkey: self._databox_client.get_databox_entry(session_id, self._config, applkey)
            )
            output_path = target_dir / build_file_name(entry)
            output_path.write_bytes(content)
            self.logging.debug("Saved %s", output_path)
            saved.append(output_path)

        self.logging.info("Sync complete. Documents saved: %d", len(saved))
        return saved

    ##########################################
    ############### HELPERS ##################
    ##########################################

    def _resolve_output_dir(self, override_dir: str | None) -> Path:
        target_dir = Path(override_dir or self._config.output_dir)
        target_dir.mkdir(parents=True, exist_ok=True)
        return target_dir


def filter_entries(entries: list[DataboxEntry], include_all: bool = False, read_only: bool = False) -> list[DataboxEntry]:
    """Keep unread entries by default, all with include_all, or only read ones with read_only."""
    if include_all:
        return list(entries)
    wanted = "READ" if read_only else "UNREAD"
    return [entry for entry in entries if entry.status == wanted]


def format_entry_line(entry: DataboxEntry) -> str:
    return " | ".join([
        entry.ts_zust.isoformat(),
        entry.status,
        entry.erltyp,
        entry.fileart,
        entry.applkey,
        entry.filebez or entry.name,
    ])


def sanitize_file_name(value: str) -> str:
    return _UNSAFE_FILE_CHARS.sub("_", value)


def build_file_name(entry: DataboxEntry) -> str:
    base = sanitize_file_name(entry.filebez or entry.name or entry.applkey)
    suffix = sanitize_file_name(entry.applkey)
    extension = "xml" if entry.fileart == "XML" else "pdf"
    return f"{base}_{suffix}.{extension}"
