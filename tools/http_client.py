# where: wordpress/tools/http_client.py
# what: Request builder for the WordPress REST API (JSON and multipart uploads).
# why: Every resource handler funnels through one place that knows the URL layout, auth, and error mapping.

from __future__ import annotations

import base64
import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Literal

import requests
from requests import Response, Session

from .errors import ConfigurationError, RemoteError

logger = logging.getLogger(__name__)

API_PREFIX = "/wp-json/wp/v2"
MEDIA_FORM_FIELDS = ("title", "alt_text", "caption", "description")

_DEFAULT_TIMEOUT = 30
_MAX_LOG_BODY_LENGTH = 200  # Maximum length of response body to log


def _sanitize_for_log(text: str) -> str:
    """Sanitize sensitive information from log messages."""
    if not text:
        return text

    # Mask Basic auth credentials
    text = re.sub(r'Basic\s+[A-Za-z0-9+/=]{8,}', 'Basic ***', text, flags=re.IGNORECASE)

    # Mask long alphanumeric strings that might be passwords
    text = re.sub(r'[A-Za-z0-9]{32,}', '***', text)

    # Truncate if too long
    if len(text) > _MAX_LOG_BODY_LENGTH:
        text = text[:_MAX_LOG_BODY_LENGTH] + "... (truncated)"

    return text


def _strip_trailing_slash(url: str) -> str:
    return url[:-1] if url.endswith("/") else url


@dataclass(frozen=True, slots=True)
class SiteCredentials:
    base_url: str
    username: str | None = None
    password: str | None = None

    @property
    def has_basic_auth(self) -> bool:
        return bool(self.username) and bool(self.password)


@dataclass(slots=True)
class BinaryData:
    content: bytes
    file_name: str
    mime_type: str


@dataclass(slots=True)
class MultipartForm:
    file: BinaryData
    fields: dict[str, str] = field(default_factory=dict)


@dataclass(slots=True)
class RequestDescriptor:
    method: Literal["GET", "POST", "PUT", "DELETE"]
    base_url: str
    path: str
    headers: dict[str, str]
    body: Any = None
    body_encoding: Literal["json", "binary"] = "json"
    files: dict[str, tuple[str, bytes, str]] | None = None

    @property
    def url(self) -> str:
        return f"{self.base_url}{API_PREFIX}{self.path}"


@dataclass
class WordPressHttpClient:
    credentials: SiteCredentials
    timeout: int = _DEFAULT_TIMEOUT
    session: Session | None = None

    def __post_init__(self) -> None:
        self._session = self.session or requests.Session()

    # ---- Request building --------------------------------------------------

    def build_request(
        self,
        method: Literal["GET", "POST", "PUT", "DELETE"],
        path: str,
        body: dict[str, Any] | None = None,
    ) -> RequestDescriptor:
        """Describe a JSON request against ``{site}/wp-json/wp/v2{path}``."""
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        headers.update(self._auth_headers())
        return RequestDescriptor(
            method=method,
            base_url=self._base_url(),
            path=path,
            headers=headers,
            # 空のボディは送らない（何も更新しない場合に {} を送信しないため）
            body=body if body else None,
        )

    def build_binary_request(self, path: str, form: MultipartForm) -> RequestDescriptor:
        """Describe a multipart upload with a ``file`` part and optional metadata fields."""
        fields = {
            name: str(form.fields[name])
            for name in MEDIA_FORM_FIELDS
            if form.fields.get(name)
        }
        return RequestDescriptor(
            method="POST",
            base_url=self._base_url(),
            path=path,
            # Content-Typeはrequestsがboundary付きで設定する
            headers=self._auth_headers(),
            body=fields or None,
            body_encoding="binary",
            files={"file": (form.file.file_name, form.file.content, form.file.mime_type)},
        )

    # ---- Execution ---------------------------------------------------------

    def send_request(
        self,
        method: Literal["GET", "POST", "PUT", "DELETE"],
        path: str,
        body: dict[str, Any] | None = None,
        *,
        item_index: int | None = None,
    ) -> Any:
        """Send a JSON request and return the decoded response."""
        descriptor = self.build_request(method, path, body)
        response = self._send(descriptor)
        if response.status_code >= 400:
            raise self._remote_error(response, item_index)
        return self._parse_json_response(response, item_index)

    def send_binary_request(
        self,
        path: str,
        form: MultipartForm,
        *,
        item_index: int | None = None,
    ) -> Any:
        """Upload a file and decode the raw response buffer.

        When the buffer is not JSON, error statuses raise ``RemoteError`` with the
        raw text while successful statuses return the raw bytes unchanged.
        """
        descriptor = self.build_binary_request(path, form)
        response = self._send(descriptor)
        raw = response.content or b""
        try:
            payload = json.loads(raw.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            if response.status_code >= 400:
                text = raw.decode("utf-8", errors="replace")
                logger.error(
                    "WordPress APIエラー (status=%s): body=%s",
                    response.status_code,
                    _sanitize_for_log(text),
                )
                raise RemoteError(
                    response.status_code,
                    f"WordPress APIエラー: {response.status_code} - {text}",
                    body=text,
                    item_index=item_index,
                )
            return raw

        if response.status_code >= 400:
            raise self._remote_error(response, item_index, payload=payload)
        return payload

    def ping(self) -> Any:
        """Fetch the REST API index (``{site}/wp-json/``) to confirm the site is reachable."""
        url = f"{self._base_url()}/wp-json/"
        logger.info("Request: GET %s", url)
        response = self._session.request(
            method="GET",
            url=url,
            headers={"Accept": "application/json", **self._auth_headers()},
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            raise self._remote_error(response, None)
        return self._parse_json_response(response, None)

    # ---- Low-level helpers -------------------------------------------------

    def _base_url(self) -> str:
        base_url = (self.credentials.base_url or "").strip()
        if not base_url:
            raise ConfigurationError("WordPressサイトURLが設定されていません")
        return _strip_trailing_slash(base_url)

    def _auth_headers(self) -> dict[str, str]:
        if not self.credentials.has_basic_auth:
            return {}
        # アプリケーションパスワードも通常のパスワードと同様にBasic認証で送る
        raw = f"{self.credentials.username}:{self.credentials.password}"
        encoded = base64.b64encode(raw.encode("utf-8")).decode("utf-8")
        return {"Authorization": f"Basic {encoded}"}

    def _send(self, descriptor: RequestDescriptor) -> Response:
        logger.info("Request: %s %s", descriptor.method, descriptor.url)

        auth_header = descriptor.headers.get("Authorization", "")
        if auth_header:
            logger.debug("Authorization header: %s", _sanitize_for_log(auth_header))

        kwargs: dict[str, Any] = {}
        if descriptor.body_encoding == "binary":
            kwargs["files"] = descriptor.files
            if descriptor.body:
                kwargs["data"] = descriptor.body
        elif descriptor.body is not None:
            kwargs["json"] = descriptor.body

        # 通信エラーはそのまま呼び出し元へ伝播させる（リトライしない）
        return self._session.request(
            method=descriptor.method,
            url=descriptor.url,
            headers=descriptor.headers,
            timeout=self.timeout,
            **kwargs,
        )

    def _parse_json_response(self, response: Response, item_index: int | None) -> Any:
        """Parse JSON response with better error handling."""
        response_text = response.text if response.text else ""

        if not response_text.strip():
            return None

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            content_type = response.headers.get("Content-Type", "").lower()
            logger.error(
                "JSON解析エラー: status=%s, content_type=%s, response_preview=%s",
                response.status_code,
                content_type,
                _sanitize_for_log(response_text[:500]),
            )
            hint = "WordPress APIのレスポンスをJSONとして解析できませんでした。"
            if "text/html" in content_type:
                hint += " REST APIが有効でないか、サイトURLが正しくない可能性があります。"
            raise RemoteError(
                response.status_code,
                hint,
                body=response_text,
                item_index=item_index,
            ) from exc

    def _remote_error(
        self,
        response: Response,
        item_index: int | None,
        payload: Any = None,
    ) -> RemoteError:
        if payload is None:
            try:
                payload = response.json()
            except ValueError:
                payload = None

        message = self._extract_error_message(response.status_code, payload, response.text)
        sanitized_body = _sanitize_for_log(response.text or "")
        logger.error(
            "WordPress APIエラー (status=%s): %s, body=%s",
            response.status_code,
            message,
            sanitized_body,
        )
        return RemoteError(
            response.status_code,
            message,
            body=response.text or "",
            item_index=item_index,
        )

    @staticmethod
    def _extract_error_message(status_code: int, payload: Any, text: str | None) -> str:
        """Extract error message from WordPress REST API error response."""
        if isinstance(payload, dict):
            # WordPress REST APIのエラーフォーマット {"code": ..., "message": ..., "data": {...}}
            code = payload.get("code", "")
            message = payload.get("message", "")
            if message:
                if code:
                    return f"WordPress APIエラー: [{code}] {message}"
                return f"WordPress APIエラー: {message}"

        if text:
            return f"WordPress APIエラー ({status_code}): {_sanitize_for_log(text[:500])}"
        return f"WordPress APIエラー ({status_code})"
