import logging
from pathlib import Path
from typing import Callable

import httpx
import pytest

from finanzonline.clients.models.Credentials import FinanzonlineCredentials
from finanzonline.helper.HelperConfig import HelperConfig
from finanzonline.models.config import FinanzonlineConfig

FIXTURES = Path(__file__).parent / "fixtures" / "responses"


@pytest.fixture
def read_fixture() -> Callable[[str], str]:
    def _read(name: str) -> str:
        return (FIXTURES / name).read_text(encoding="utf-8")
    return _read


@pytest.fixture
def credentials() -> FinanzonlineCredentials:
    return FinanzonlineCredentials(tid="ABCDEF12", benid="WEBUSER", pin="secret", herstellerid="ATU12345678")


@pytest.fixture
def finanzonline_config(tmp_path: Path) -> FinanzonlineConfig:
    return FinanzonlineConfig(
        tid="ABCDEF12",
        benid="WEBUSER",
        pin="secret",
        herstellerid="ATU12345678",
        output_dir=str(tmp_path / "output"),
        session_timeout=5,
        query_timeout=5,
    )


@pytest.fixture
def helper_config(finanzonline_config: FinanzonlineConfig) -> HelperConfig:
    return HelperConfig(logger=logging.getLogger("finanzonline.tests"), config=finanzonline_config)


@pytest.fixture
def mock_transport() -> Callable[..., httpx.MockTransport]:
    """Build a transport answering every request with the same body, recording the requests."""
    def _build(body: str, status_code: int = 200, requests: list | None = None) -> httpx.MockTransport:
        def handler(request: httpx.Request) -> httpx.Response:
            if requests is not None:
                requests.append(request)
            return httpx.Response(status_code, text=body)
        return httpx.MockTransport(handler)
    return _build


@pytest.fixture
def routing_transport(read_fixture) -> Callable[..., httpx.MockTransport]:
    """Build a transport answering by SOAPAction. Values are fixture names or lists consumed in order."""
    def _build(routes: dict[str, str | list[str]], calls: list | None = None) -> httpx.MockTransport:
        queues = {action: list(names) if isinstance(names, list) else names for action, names in routes.items()}

        def handler(request: httpx.Request) -> httpx.Response:
            action = request.headers["SOAPAction"]
            if calls is not None:
                calls.append(action)
            route = queues[action]
            name = route.pop(0) if isinstance(route, list) and len(route) > 1 else (route[0] if isinstance(route, list) else route)
            return httpx.Response(200, text=read_fixture(name))
        return httpx.MockTransport(handler)
    return _build
