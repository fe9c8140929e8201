from datetime import datetime, timezone
from pathlib import Path

import pytest

from cli.services.DataboxService import (
    DataboxService,
    build_file_name,
    filter_entries,
    format_entry_line,
    sanitize_file_name,
)
from finanzonline.clients.databox.DataboxClient import DataboxClient
from finanzonline.clients.models.DataboxEntry import DataboxEntry
from finanzonline.clients.session.SessionClient import SessionClient
from finanzonline.errors import SessionExpiredError

STANDARD_ROUTES = {
    "login": "session-login-success.xml",
    "logout": "session-logout-success.xml",
    "getDatabox": "databox-list-success.xml",
    "getDataboxEntry": "databox-entry-success.xml",
}


def make_entry(**overrides) -> DataboxEntry:
    values = {
        "datbesch": datetime(2024, 3, 15, tzinfo=timezone.utc),
        "ts_zust": datetime(2024, 3, 16, 8, 30, tzinfo=timezone.utc),
        "applkey": "AAA111",
    }
    values.update(overrides)
    return DataboxEntry(**values)


def make_service(helper_config, transport):
    session_client = SessionClient(helper_config, transport=transport)
    databox_client = DataboxClient(helper_config, transport=transport)
    service = DataboxService(helper_config=helper_config, session_client=session_client, databox_client=databox_client)
    return service, session_client, databox_client


@pytest.mark.asyncio
async def test_end_to_end_login_list_and_download(helper_config, routing_transport):
    calls: list[str] = []
    service, session_client, databox_client = make_service(helper_config, routing_transport(STANDARD_ROUTES, calls))

    async with session_client, databox_client:
        session_id = await service.do_login()
        entries = await service.list_entries()
        content = await databox_client.get_databox_entry(session_id, helper_config.get_config(), entries[0].applkey)
        await service.do_logout()

    assert session_id == "ABCDEF123456"
    assert len(entries) == 2
    assert entries[0].applkey == "AAA111"
    assert entries[1].fileart == "XML"
    assert len(content) > 0
    assert calls == ["login", "getDatabox", "getDataboxEntry", "logout"]


@pytest.mark.asyncio
async def test_reauthenticates_once_on_session_expired(helper_config, routing_transport):
    calls: list[str] = []
    routes = dict(STANDARD_ROUTES, getDatabox=["databox-list-session-expired.xml", "databox-list-success.xml"])
    service, session_client, databox_client = make_service(helper_config, routing_transport(routes, calls))

    async with session_client, databox_client:
        entries = await service.list_entries()

    assert len(entries) == 2
    assert calls == ["login", "getDatabox", "login", "getDatabox"]


@pytest.mark.asyncio
async def test_second_session_expiry_is_raised(helper_config, routing_transport):
    calls: list[str] = []
    routes = dict(STANDARD_ROUTES, getDatabox="databox-list-session-expired.xml")
    service, session_client, databox_client = make_service(helper_config, routing_transport(routes, calls))

    async with session_client, databox_client:
        with pytest.raises(SessionExpiredError):
            await service.list_entries()

    assert calls.count("login") == 2
    assert calls.count("getDatabox") == 2


@pytest.mark.asyncio
async def test_download_writes_applkey_pdf(helper_config, routing_transport, tmp_path: Path):
    service, session_client, databox_client = make_service(helper_config, routing_transport(STANDARD_ROUTES))

    async with session_client, databox_client:
        output_path = await service.download_entry("AAA/111", output_dir=str(tmp_path / "downloads"))

    assert output_path == tmp_path / "downloads" / "AAA_111.pdf"
    assert output_path.read_bytes().startswith(b"%PDF")


@pytest.mark.asyncio
async def test_sync_saves_unread_entries_to_config_output_dir(helper_config, routing_transport):
    service, session_client, databox_client = make_service(helper_config, routing_transport(STANDARD_ROUTES))

    async with session_client, databox_client:
        saved = await service.do_sync()

    output_dir = Path(helper_config.get_config().output_dir)
    assert saved == [output_dir / "Einkommensteuerbescheid_2023_AAA111.pdf"]
    assert saved[0].read_bytes().startswith(b"%PDF")


@pytest.mark.asyncio
async def test_sync_with_all_includes_read_entries(helper_config, routing_transport, tmp_path: Path):
    service, session_client, databox_client = make_service(helper_config, routing_transport(STANDARD_ROUTES))

    async with session_client, databox_client:
        saved = await service.do_sync(include_all=True, output_dir=str(tmp_path / "all"))

    assert [path.name for path in saved] == ["Einkommensteuerbescheid_2023_AAA111.pdf", "Max_Mustermann_BBB222.xml"]


@pytest.mark.asyncio
async def test_sync_without_entries_saves_nothing(helper_config, routing_transport):
    routes = dict(STANDARD_ROUTES, getDatabox="databox-list-empty.xml")
    calls: list[str] = []
    service, session_client, databox_client = make_service(helper_config, routing_transport(routes, calls))

    async with session_client, databox_client:
        saved = await service.do_sync()

    assert saved == []
    assert "getDataboxEntry" not in calls


@pytest.mark.asyncio
async def test_logout_failure_does_not_raise(helper_config, routing_transport):
    routes = dict(STANDARD_ROUTES, logout="soap-fault.xml")
    service, session_client, databox_client = make_service(helper_config, routing_transport(routes))

    async with session_client, databox_client:
        await service.do_login()
        await service.do_logout()


@pytest.mark.asyncio
async def test_logout_without_session_sends_nothing(helper_config, routing_transport):
    calls: list[str] = []
    service, session_client, databox_client = make_service(helper_config, routing_transport(STANDARD_ROUTES, calls))

    async with session_client, databox_client:
        await service.do_logout()

    assert calls == []


def test_filter_entries_defaults_to_unread():
    unread = make_entry(applkey="U1", status="UNREAD")
    read = make_entry(applkey="R1", status="READ")

    assert filter_entries([unread, read]) == [unread]
    assert filter_entries([unread, read], read_only=True) == [read]
    assert filter_entries([unread, read], include_all=True) == [unread, read]


def test_sanitize_file_name():
    assert sanitize_file_name("Bescheid 2023/24: final!") == "Bescheid_2023_24_final_"
    assert sanitize_file_name("plain-name_1.pdf") == "plain-name_1.pdf"


def test_build_file_name_prefers_filebez_then_name_then_applkey():
    assert build_file_name(make_entry(filebez="Bescheid 2023", name="Max")) == "Bescheid_2023_AAA111.pdf"
    assert build_file_name(make_entry(name="Max Mustermann", fileart="XML")) == "Max_Mustermann_AAA111.xml"
    assert build_file_name(make_entry()) == "AAA111_AAA111.pdf"


def test_format_entry_line():
    entry = make_entry(erltyp="B", filebez="Bescheid")

    assert format_entry_line(entry) == "2024-03-16T08:30:00+00:00 | UNREAD | B | PDF | AAA111 | Bescheid"
