"""Shared fixtures: a recording fake transport and in-memory host capabilities."""

from __future__ import annotations

import json
from typing import Any

import pytest
import requests

from tools.file_utils import BinaryMetadata
from tools.http_client import SiteCredentials, WordPressHttpClient

BASE_URL = "https://example.com"


def make_response(
    status_code: int = 200,
    json_body: Any = None,
    content: bytes | None = None,
    content_type: str = "application/json",
) -> requests.Response:
    response = requests.Response()
    response.status_code = status_code
    if content is None:
        content = b"" if json_body is None else json.dumps(json_body).encode("utf-8")
    response._content = content
    response.headers["Content-Type"] = content_type
    response.encoding = "utf-8"
    return response


class FakeSession:
    """Stands in for requests.Session and records every request it receives."""

    def __init__(self, *responses: requests.Response | Exception) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    def queue(self, *responses: requests.Response | Exception) -> None:
        self._responses.extend(responses)

    def request(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        if not self._responses:
            return make_response(200, {})
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeParams:
    """Parameter source backed by one dict per item."""

    def __init__(self, *items: dict[str, Any]) -> None:
        self._items = list(items) or [{}]

    @property
    def item_count(self) -> int:
        return len(self._items)

    def get_parameter(self, name: str, item_index: int, default: Any = None) -> Any:
        value = self._items[item_index].get(name)
        return default if value is None else value

    def get_input_item(self, item_index: int) -> dict[str, Any]:
        return dict(self._items[item_index])


class FakeBinaries:
    def __init__(self, files: dict[str, tuple[bytes, str, str]]) -> None:
        self._files = files
        self.requests: list[tuple[int, str]] = []

    def get_buffer(self, item_index: int, property_name: str) -> bytes:
        self.requests.append((item_index, property_name))
        return self._files[property_name][0]

    def get_binary_metadata(self, item_index: int, property_name: str) -> BinaryMetadata:
        _, file_name, mime_type = self._files[property_name]
        return BinaryMetadata(file_name=file_name, mime_type=mime_type)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def client(session: FakeSession) -> WordPressHttpClient:
    credentials = SiteCredentials(base_url=BASE_URL, username="testuser", password="testpassword")
    return WordPressHttpClient(credentials=credentials, session=session)
