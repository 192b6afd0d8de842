"""Tests for WordPressHttpClient."""

from __future__ import annotations

import base64

import pytest
import requests

from conftest import BASE_URL, FakeSession, make_response
from tools.errors import ConfigurationError, RemoteError
from tools.http_client import BinaryData, MultipartForm, SiteCredentials, WordPressHttpClient


def _client(session: FakeSession, **credentials) -> WordPressHttpClient:
    return WordPressHttpClient(credentials=SiteCredentials(**credentials), session=session)


class TestBuildRequest:
    def test_url_joins_base_prefix_and_path(self, client):
        descriptor = client.build_request("GET", "/posts/1")
        assert descriptor.url == f"{BASE_URL}/wp-json/wp/v2/posts/1"

    def test_strips_one_trailing_slash(self, session):
        client = _client(session, base_url="https://example.com/")
        assert client.build_request("GET", "/posts").url == "https://example.com/wp-json/wp/v2/posts"

    def test_json_headers(self, client):
        headers = client.build_request("GET", "/posts").headers
        assert headers["Accept"] == "application/json"
        assert headers["Content-Type"] == "application/json"

    def test_basic_auth_header(self, client):
        expected = base64.b64encode(b"testuser:testpassword").decode("ascii")
        headers = client.build_request("GET", "/posts").headers
        assert headers["Authorization"] == f"Basic {expected}"

    @pytest.mark.parametrize(
        "username,password",
        [(None, None), ("user", None), (None, "secret"), ("", "secret")],
    )
    def test_no_auth_without_both_credentials(self, session, username, password):
        client = _client(session, base_url=BASE_URL, username=username, password=password)
        assert "Authorization" not in client.build_request("GET", "/posts").headers

    def test_application_password_with_spaces_is_sent_as_is(self, session):
        client = _client(session, base_url=BASE_URL, username="admin", password="abcd efgh ijkl mnop")
        header = client.build_request("GET", "/posts").headers["Authorization"]
        decoded = base64.b64decode(header.split(" ", 1)[1]).decode("utf-8")
        assert decoded == "admin:abcd efgh ijkl mnop"

    def test_empty_body_is_omitted(self, client):
        assert client.build_request("POST", "/posts/1", {}).body is None
        assert client.build_request("POST", "/posts/1", None).body is None

    @pytest.mark.parametrize("base_url", ["", "   "])
    def test_missing_site_url(self, session, base_url):
        client = _client(session, base_url=base_url)
        with pytest.raises(ConfigurationError):
            client.build_request("GET", "/posts")
        assert session.calls == []


class TestSendRequest:
    def test_sends_json_body_and_returns_payload(self, session, client):
        session.queue(make_response(201, {"id": 5}))

        result = client.send_request("POST", "/posts", {"title": "T"})

        assert result == {"id": 5}
        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == f"{BASE_URL}/wp-json/wp/v2/posts"
        assert call["json"] == {"title": "T"}
        assert call["timeout"] == 30

    def test_no_json_kwarg_without_body(self, session, client):
        client.send_request("GET", "/posts/1")
        assert "json" not in session.calls[0]

    def test_remote_error_wraps_message(self, session, client):
        session.queue(
            make_response(404, {"code": "rest_post_invalid_id", "message": "Invalid post ID.", "data": {"status": 404}})
        )

        with pytest.raises(RemoteError) as excinfo:
            client.send_request("GET", "/posts/999", item_index=3)

        assert excinfo.value.status_code == 404
        assert excinfo.value.item_index == 3
        assert "Invalid post ID." in str(excinfo.value)
        assert "rest_post_invalid_id" in str(excinfo.value)

    def test_remote_error_without_json_payload(self, session, client):
        session.queue(make_response(502, content=b"Bad Gateway", content_type="text/plain"))

        with pytest.raises(RemoteError) as excinfo:
            client.send_request("GET", "/posts/1")

        assert excinfo.value.status_code == 502
        assert "Bad Gateway" in str(excinfo.value)

    def test_transport_error_passes_through(self, session, client):
        failure = requests.ConnectionError("connection refused")
        session.queue(failure)

        with pytest.raises(requests.ConnectionError) as excinfo:
            client.send_request("GET", "/posts/1")

        assert excinfo.value is failure

    def test_html_success_response_is_remote_error(self, session, client):
        session.queue(make_response(200, content=b"<html>login</html>", content_type="text/html"))

        with pytest.raises(RemoteError):
            client.send_request("GET", "/posts/1")

    def test_does_not_retry(self, session, client):
        session.queue(make_response(503, {"message": "busy"}))

        with pytest.raises(RemoteError):
            client.send_request("GET", "/posts/1")

        assert len(session.calls) == 1


class TestSendBinaryRequest:
    @staticmethod
    def _form(**fields) -> MultipartForm:
        return MultipartForm(
            file=BinaryData(content=b"\x89PNG", file_name="photo.png", mime_type="image/png"),
            fields=fields,
        )

    def test_multipart_upload(self, session, client):
        session.queue(make_response(201, {"id": 42, "source_url": "https://example.com/photo.png"}))

        result = client.send_binary_request("/media", self._form(title="Photo", alt_text="", caption="Nice"))

        assert result["id"] == 42
        call = session.calls[0]
        assert call["method"] == "POST"
        assert call["url"] == f"{BASE_URL}/wp-json/wp/v2/media"
        assert call["files"] == {"file": ("photo.png", b"\x89PNG", "image/png")}
        assert call["data"] == {"title": "Photo", "caption": "Nice"}
        assert "Content-Type" not in call["headers"]
        assert call["headers"]["Authorization"].startswith("Basic ")

    def test_no_data_when_metadata_empty(self, session, client):
        client.send_binary_request("/media", self._form())
        assert "data" not in session.calls[0]

    def test_non_json_error_body(self, session, client):
        session.queue(make_response(413, content=b"Request Entity Too Large", content_type="text/plain"))

        with pytest.raises(RemoteError) as excinfo:
            client.send_binary_request("/media", self._form(), item_index=1)

        assert excinfo.value.status_code == 413
        assert excinfo.value.item_index == 1
        assert "413 - Request Entity Too Large" in str(excinfo.value)

    def test_non_json_success_body_is_returned_raw(self, session, client):
        session.queue(make_response(200, content=b"OK", content_type="text/plain"))
        assert client.send_binary_request("/media", self._form()) == b"OK"

    def test_json_error_body_uses_message(self, session, client):
        session.queue(make_response(400, {"code": "rest_upload_no_data", "message": "No data supplied."}))

        with pytest.raises(RemoteError) as excinfo:
            client.send_binary_request("/media", self._form())

        assert "No data supplied." in str(excinfo.value)


def test_ping_hits_rest_index(session, client):
    session.queue(make_response(200, {"name": "Example"}))

    assert client.ping() == {"name": "Example"}
    assert session.calls[0]["url"] == f"{BASE_URL}/wp-json/"
