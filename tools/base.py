# where: wordpress/tools/base.py
# what: Shared tool plumbing for WordPress resources (credentials, batch execution, messaging).
# why: The post, media, and custom post type tools differ only by the resource they address.

from __future__ import annotations

import json
import logging
from typing import Any, ClassVar

from dify_plugin import Tool
from dify_plugin.entities.tool import ToolInvokeMessage

from .dispatcher import ItemResult, ResourceKind, run_batch
from .errors import ConfigurationError, RemoteError, ValidationError
from .file_utils import ToolBinarySource
from .http_client import SiteCredentials, WordPressHttpClient
from .parameters import ToolParameterSource

logger = logging.getLogger(__name__)


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("true", "1", "yes")
    return bool(value)


class BaseWordPressTool(Tool):
    """Base class that loads credentials, runs the item batch, and formats the results."""

    resource: ClassVar[ResourceKind]

    def _invoke(self, tool_parameters: dict[str, Any]) -> list[ToolInvokeMessage]:
        operation = tool_parameters.get("operation") or ""
        action = f"WordPress {self.resource.value} {operation}"
        try:
            credentials = self._load_site_credentials()
            client = self._create_http_client(credentials)

            params = ToolParameterSource.from_tool_parameters(tool_parameters)
            binaries = ToolBinarySource.from_tool_parameters(tool_parameters, params.get_items())
            continue_on_fail = _as_bool(tool_parameters.get("continue_on_fail", False))

            logger.debug(
                "Running %s for %d item(s) (continue_on_fail=%s)",
                action,
                params.item_count,
                continue_on_fail,
            )
            results = run_batch(
                self.resource,
                operation,
                params,
                client,
                binaries,
                continue_on_fail=continue_on_fail,
            )
        except Exception as exc:  # noqa: BLE001
            return self._handle_error(exc, action)

        return self._build_messages(action, results)

    # ---- Credentials -------------------------------------------------------

    def _load_site_credentials(self) -> SiteCredentials:
        credentials: dict[str, Any] = getattr(self.runtime, "credentials", {}) or {}
        wordpress_url = (credentials.get("wordpress_url") or "").strip()
        username = (credentials.get("username") or "").strip()
        application_password = (credentials.get("application_password") or "").strip()

        # デバッグ用: 取得した認証情報をログ出力（機密情報はマスク）
        logger.debug(
            "Loading site credentials: wordpress_url=%s, username=%s, application_password=%s",
            wordpress_url or "(empty)",
            username or "(empty)",
            "***" if application_password else "(empty)",
        )

        if not wordpress_url:
            raise ConfigurationError("WordPressサイトURLを設定してください。Difyのプロバイダー設定を確認してください。")

        return SiteCredentials(
            base_url=wordpress_url,
            username=username or None,
            password=application_password or None,
        )

    def _create_http_client(self, credentials: SiteCredentials) -> WordPressHttpClient:
        """Create a WordPress HTTP client from the site credentials."""
        logger.debug("Creating WordPress HTTP client")
        return WordPressHttpClient(credentials=credentials)

    # ---- Messaging helpers -------------------------------------------------

    def _create_text_message(self, text: str) -> ToolInvokeMessage:
        return self.create_text_message(text)

    def _create_json_message(self, payload: dict[str, Any]) -> ToolInvokeMessage:
        return self.create_json_message(payload)

    def _build_messages(self, action: str, results: list[ItemResult]) -> list[ToolInvokeMessage]:
        failed = [result for result in results if result.error is not None]
        text = f"{action}: {len(results)}件を処理しました"
        if failed:
            text += f"（エラー {len(failed)}件: item {', '.join(str(r.item_index) for r in failed)}）"
        logger.info(text)

        messages = [self._create_text_message(text)]
        for result in results:
            messages.append(self._create_json_message(self._result_payload(result)))
        return messages

    @staticmethod
    def _result_payload(result: ItemResult) -> dict[str, Any]:
        payload = result.json
        if isinstance(payload, (bytes, bytearray)):
            payload = {"raw": payload.decode("utf-8", errors="replace")}
        elif not isinstance(payload, dict):
            payload = {"data": payload}
        return {"item_index": result.item_index, **payload}

    def _handle_error(self, error: Exception, action: str) -> list[ToolInvokeMessage]:
        logger.exception("Failed to %s: %s", action, error)
        hints: list[str] = []
        message = str(error)

        if isinstance(error, ValidationError):
            hints.append(f"パラメータ '{error.field}' を指定してください。")
        elif isinstance(error, ConfigurationError):
            hints.append("Difyのプロバイダー設定でWordPressサイトURLを確認してください。")
        elif isinstance(error, RemoteError):
            status_code = error.status_code
            if status_code:
                message = f"WordPress APIエラー (HTTP {status_code}): {error}"
            if error.body:
                # WordPress REST APIのパラメータエラー {"data": {"params": {...}}}
                try:
                    body_json = json.loads(error.body)
                except ValueError:
                    body_json = None
                data = body_json.get("data") if isinstance(body_json, dict) else None
                if isinstance(data, dict) and isinstance(data.get("params"), dict):
                    param_errors = [f"{param}: {msg}" for param, msg in data["params"].items()]
                    if param_errors:
                        message += f"\nパラメータエラー: {'; '.join(param_errors)}"

            if status_code == 401:
                hints.append("WordPressの認証情報（ユーザー名またはアプリケーションパスワード）が無効です。")
            elif status_code == 403:
                hints.append("WordPressユーザーに必要な権限がありません。")
            elif status_code == 404:
                hints.append("指定されたリソース（投稿IDやスラッグなど）が見つかりません。")
            elif status_code and status_code >= 500:
                hints.append("WordPressサーバーでエラーが発生しました。サイトのログを確認してください。")

        item_index = getattr(error, "item_index", None)
        if item_index is not None and not isinstance(error, ValidationError):
            message += f" (item {item_index})"

        text = f"{action} に失敗しました: {message}"
        if hints:
            text += "\n\n" + "\n".join(f"ヒント: {hint}" for hint in hints)

        return [self._create_text_message(text)]
