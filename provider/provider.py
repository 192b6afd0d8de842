# where: wordpress/provider/provider.py
# what: Validates WordPress credentials and checks that the site's REST API answers.
# why: Prevents misconfigured plugins from attempting to call WordPress REST API with bad credentials.

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import urlparse

from dify_plugin import ToolProvider
from dify_plugin.errors.tool import ToolProviderCredentialValidationError

from tools.errors import TransportError, WordPressError
from tools.http_client import SiteCredentials, WordPressHttpClient

logger = logging.getLogger(__name__)


class WordPressProvider(ToolProvider):
    def _validate_credentials(self, credentials: dict[str, Any]) -> None:
        """Validate WordPress credentials supplied from the Dify console."""

        wordpress_url = (credentials.get("wordpress_url") or "").strip()
        username = (credentials.get("username") or "").strip()
        application_password = (credentials.get("application_password") or "").strip()

        # WordPressサイトURLの検証
        if not wordpress_url:
            raise ToolProviderCredentialValidationError("WordPressサイトURLを入力してください")

        parsed = urlparse(wordpress_url)
        if parsed.scheme not in ("http", "https"):
            raise ToolProviderCredentialValidationError("WordPressサイトURLはhttp://またはhttps://で始まる必要があります")
        if not parsed.netloc:
            raise ToolProviderCredentialValidationError("WordPressサイトURLが不正です")

        # HTTPSの推奨（警告のみ）
        if parsed.scheme == "http":
            logger.warning("WordPressサイトURLがHTTPです。セキュリティのためHTTPSの使用を推奨します")

        # 認証情報は任意だが、片方だけではBasic認証を付与できない
        if bool(username) != bool(application_password):
            logger.warning("ユーザー名とアプリケーションパスワードの片方だけが設定されています。認証なしでリクエストします")

        client = WordPressHttpClient(
            credentials=SiteCredentials(
                base_url=wordpress_url,
                username=username or None,
                password=application_password or None,
            ),
        )
        try:
            client.ping()
        except (WordPressError, TransportError) as exc:
            raise ToolProviderCredentialValidationError(f"WordPress REST APIに接続できません: {exc}") from exc

        logger.info("WordPress credentials passed validation checks")
