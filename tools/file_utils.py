# where: wordpress/tools/file_utils.py
# what: Binary data source that turns Dify file inputs into upload-ready bytes.
# why: Media uploads need the raw buffer plus filename and MIME type for the multipart body.

from __future__ import annotations

import base64
import binascii
import mimetypes
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol

import requests

from .errors import ValidationError
from .http_client import BinaryData

_DOWNLOAD_TIMEOUT = 30
_CHUNK_SIZE = 512 * 1024
_MAX_DOWNLOAD_SIZE = 10 * 1024 * 1024  # 10 MB maximum download size
_DEFAULT_MIME_TYPE = "application/octet-stream"

# ツールのファイル入力は全アイテム共通のバイナリプロパティとして扱う
SHARED_FILE_PROPERTY = "file"


@dataclass(frozen=True, slots=True)
class BinaryMetadata:
    file_name: str
    mime_type: str


class BinarySource(Protocol):
    def get_buffer(self, item_index: int, property_name: str) -> bytes: ...

    def get_binary_metadata(self, item_index: int, property_name: str) -> BinaryMetadata: ...


class ToolBinarySource:
    """Resolves binary properties per item.

    Each item may carry a ``binary`` mapping of property name to file info; the
    tool-level ``file`` input is visible to every item under ``"file"``. Resolved
    files are cached so the buffer and its metadata come from one download.
    """

    def __init__(
        self,
        item_binaries: list[Mapping[str, Any]] | None = None,
        shared: Mapping[str, Any] | None = None,
    ) -> None:
        self._item_binaries = item_binaries or []
        self._shared = dict(shared or {})
        self._cache: dict[tuple[int, str], BinaryData] = {}

    @classmethod
    def from_tool_parameters(
        cls,
        tool_parameters: Mapping[str, Any],
        items: list[dict[str, Any]],
    ) -> "ToolBinarySource":
        shared: dict[str, Any] = {}
        file_param = tool_parameters.get(SHARED_FILE_PROPERTY)
        if file_param:
            shared[SHARED_FILE_PROPERTY] = file_param
        item_binaries = [item.get("binary") or {} for item in items]
        return cls(item_binaries, shared)

    def get_buffer(self, item_index: int, property_name: str) -> bytes:
        return self._resolve(item_index, property_name).content

    def get_binary_metadata(self, item_index: int, property_name: str) -> BinaryMetadata:
        resolved = self._resolve(item_index, property_name)
        return BinaryMetadata(file_name=resolved.file_name, mime_type=resolved.mime_type)

    def _resolve(self, item_index: int, property_name: str) -> BinaryData:
        key = (item_index, property_name)
        if key not in self._cache:
            file_info = self._lookup(item_index, property_name)
            if not file_info:
                raise ValidationError(
                    property_name,
                    f"バイナリプロパティ '{property_name}' が見つかりません (item {item_index})",
                    item_index=item_index,
                )
            self._cache[key] = resolve_binary(file_info)
        return self._cache[key]

    def _lookup(self, item_index: int, property_name: str) -> Any:
        if item_index < len(self._item_binaries):
            binaries = self._item_binaries[item_index]
            if isinstance(binaries, Mapping) and binaries.get(property_name):
                return binaries[property_name]
        return self._shared.get(property_name)


def resolve_binary(file_info: Any) -> BinaryData:
    """Load a file input (path, URL, inline content, or Dify file object) into memory."""
    if isinstance(file_info, (str, os.PathLike)):
        return _resolve_pathlike(file_info, None)

    serialized = _serialize_file_info(file_info)
    explicit_path = serialized.get("path")
    if explicit_path:
        return _resolve_pathlike(explicit_path, serialized)

    content = serialized.get("content") or serialized.get("data")
    if content:
        return _build(_coerce_bytes(content, serialized.get("encoding")), serialized, None)

    url = serialized.get("url")
    if url:
        return _download(url, serialized)

    raise ValueError("ファイル情報に path/url/content のいずれも含まれていません")


def _resolve_pathlike(value: os.PathLike[str] | str, file_meta: dict[str, Any] | None) -> BinaryData:
    path_str = os.fspath(value).strip()
    if not path_str:
        raise ValueError("ファイルパスが空です")

    if path_str.startswith("http://") or path_str.startswith("https://"):
        return _download(path_str, file_meta)

    expanded = Path(os.path.expanduser(path_str))
    if not expanded.is_file():
        raise FileNotFoundError(f"{path_str} はファイルではありません")
    return _build(expanded.read_bytes(), file_meta, expanded.name)


def _serialize_file_info(file_info: Any) -> dict[str, Any]:
    if isinstance(file_info, Mapping):
        return dict(file_info)

    exportable: dict[str, Any] = {}
    for attr in ("path", "url", "content", "data", "encoding", "filename", "name", "mime_type", "headers", "authorization", "auth"):
        value = getattr(file_info, attr, None)
        if value is not None:
            exportable[attr] = value

    if exportable:
        return exportable

    if hasattr(file_info, "model_dump"):
        return dict(file_info.model_dump())

    raise ValueError("ファイルパラメータの構造を解釈できません")


def _coerce_bytes(value: Any, encoding: Any = None) -> bytes:
    if isinstance(value, bytes):
        return value
    if isinstance(value, str):
        # base64として扱うのは encoding: "base64" が明示された場合のみ
        if str(encoding or "").lower() != "base64":
            return value.encode("utf-8")
        try:
            return base64.b64decode(value.strip(), validate=True)
        except (binascii.Error, ValueError) as exc:
            raise ValueError(f"content/data のbase64文字列が不正です: {exc}") from exc
    raise ValueError("content/data には bytes か文字列を指定してください")


def _download(url: str, file_meta: dict[str, Any] | None) -> BinaryData:
    normalized = url.strip()
    if not normalized:
        raise ValueError("ファイルURLが空です")

    headers: dict[str, str] = {}
    if file_meta:
        raw_headers = file_meta.get("headers")
        if isinstance(raw_headers, dict):
            for key, value in raw_headers.items():
                if isinstance(key, str) and isinstance(value, str) and key.strip():
                    headers[key.strip()] = value
        auth_token = file_meta.get("authorization") or file_meta.get("auth")
        if isinstance(auth_token, str) and auth_token.strip():
            headers.setdefault("Authorization", auth_token.strip())

    # 上限超過で途中終了した場合も接続を確実に解放する
    with requests.get(normalized, headers=headers or None, stream=True, timeout=_DOWNLOAD_TIMEOUT) as response:
        response.raise_for_status()

        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > _MAX_DOWNLOAD_SIZE:
            raise ValueError(
                f"ファイルサイズが大きすぎます ({int(content_length) / 1024 / 1024:.1f}MB)。"
                f"最大 {_MAX_DOWNLOAD_SIZE / 1024 / 1024:.0f}MB まで対応しています"
            )

        chunks: list[bytes] = []
        downloaded_size = 0
        for chunk in response.iter_content(_CHUNK_SIZE):
            if chunk:
                downloaded_size += len(chunk)
                if downloaded_size > _MAX_DOWNLOAD_SIZE:
                    raise ValueError(
                        f"ダウンロード中にファイルサイズが制限を超えました。"
                        f"最大 {_MAX_DOWNLOAD_SIZE / 1024 / 1024:.0f}MB まで対応しています"
                    )
                chunks.append(chunk)

        content_type = response.headers.get("Content-Type")

    fallback_name = Path(normalized.split("?", 1)[0]).name or None
    meta = dict(file_meta or {})
    if not meta.get("mime_type") and content_type:
        meta["mime_type"] = content_type.split(";", 1)[0].strip()
    return _build(b"".join(chunks), meta, fallback_name)


def _build(payload: bytes, file_meta: dict[str, Any] | None, fallback_name: str | None) -> BinaryData:
    file_meta = file_meta or {}
    file_name = str(file_meta.get("filename") or file_meta.get("name") or fallback_name or "file")
    mime_type = file_meta.get("mime_type") or file_meta.get("content_type")
    if not mime_type:
        guessed, _ = mimetypes.guess_type(file_name)
        mime_type = guessed or _DEFAULT_MIME_TYPE
    return BinaryData(content=payload, file_name=file_name, mime_type=str(mime_type))
