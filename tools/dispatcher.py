# where: wordpress/tools/dispatcher.py
# what: Maps (resource, operation) pairs onto WordPress REST API requests and runs them item by item.
# why: One lookup table replaces per-tool branching and keeps every request shape in one place.

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from . import fields
from .errors import UnsupportedOperationError
from .file_utils import BinarySource
from .http_client import BinaryData, MultipartForm, WordPressHttpClient
from .parameters import ParameterSource

logger = logging.getLogger(__name__)

DEFAULT_POST_STATUS = "publish"


class ResourceKind(str, Enum):
    POST = "post"
    MEDIA = "media"
    CUSTOM_POST_TYPE = "customPostType"


class OperationKind(str, Enum):
    CREATE = "create"
    GET = "get"
    GET_ALL = "getAll"
    UPDATE = "update"
    DELETE = "delete"


# メディアの作成は「upload」という名前でも受け付ける
_OPERATION_ALIASES = {"upload": OperationKind.CREATE}


@dataclass(slots=True)
class ItemResult:
    item_index: int
    json: Any
    error: Exception | None = None


@dataclass(slots=True)
class HandlerContext:
    item_index: int
    params: ParameterSource
    client: WordPressHttpClient
    binaries: BinarySource | None = None

    def get(self, name: str, default: Any = None) -> Any:
        return self.params.get_parameter(name, self.item_index, default)

    def get_text(self, name: str, default: str | None = "") -> str | None:
        value = self.get(name, default)
        return value if value is None else str(value)


Handler = Callable[[HandlerContext], Any]


def parse_resource(value: ResourceKind | str) -> ResourceKind:
    try:
        return ResourceKind(value)
    except ValueError as exc:
        raise UnsupportedOperationError(f"リソース '{value}' はサポートされていません") from exc


def parse_operation(value: OperationKind | str) -> OperationKind:
    if isinstance(value, str) and value in _OPERATION_ALIASES:
        return _OPERATION_ALIASES[value]
    try:
        return OperationKind(value)
    except ValueError as exc:
        raise UnsupportedOperationError(f"操作 '{value}' はサポートされていません") from exc


# ---- Shared shaping ---------------------------------------------------------


def _no_fields_result(ctx: HandlerContext, message: str) -> dict[str, Any]:
    logger.info("No fields provided to update (item %d); skipping request", ctx.item_index)
    return {"message": message, "item": ctx.params.get_input_item(ctx.item_index)}


def _post_id(ctx: HandlerContext) -> str:
    return fields.require_identifier(ctx.get("post_id", ""), "post_id", ctx.item_index)


def _media_id(ctx: HandlerContext) -> str:
    return fields.require_identifier(ctx.get("media_id", ""), "media_id", ctx.item_index)


def _slug(ctx: HandlerContext) -> str:
    return fields.require_identifier(ctx.get("post_type_slug", ""), "post_type_slug", ctx.item_index)


def _create_body(ctx: HandlerContext) -> dict[str, Any]:
    body: dict[str, Any] = {
        "title": ctx.get_text("title", ""),
        "content": ctx.get_text("content", ""),
        "status": ctx.get_text("status", DEFAULT_POST_STATUS) or DEFAULT_POST_STATUS,
    }
    body.update(fields.collect_non_empty([("excerpt", ctx.get_text("excerpt", ""))]))
    return body


def _update_body(ctx: HandlerContext) -> dict[str, Any]:
    return fields.collect_present(
        (name, ctx.get_text(name, None)) for name in ("title", "content", "status", "excerpt")
    )


# ---- Post ------------------------------------------------------------------


def _post_create(ctx: HandlerContext) -> Any:
    body = _create_body(ctx)
    for name in ("categories", "tags"):
        raw = ctx.get(name, "")
        if raw not in (None, ""):
            body[name] = fields.parse_id_list(raw)
    return ctx.client.send_request("POST", "/posts", body, item_index=ctx.item_index)


def _post_get(ctx: HandlerContext) -> Any:
    post_id = _post_id(ctx)
    return ctx.client.send_request("GET", f"/posts/{post_id}", item_index=ctx.item_index)


def _post_update(ctx: HandlerContext) -> Any:
    post_id = _post_id(ctx)
    body = _update_body(ctx)
    for name in ("categories", "tags"):
        raw = ctx.get(name, None)
        if raw is not None:
            body[name] = fields.parse_id_list(raw)

    if not body:
        return _no_fields_result(ctx, "更新する項目が指定されていません。")
    return ctx.client.send_request("POST", f"/posts/{post_id}", body, item_index=ctx.item_index)


def _post_delete(ctx: HandlerContext) -> Any:
    post_id = _post_id(ctx)
    # 投稿はforceを付けずにゴミ箱へ移動する
    ctx.client.send_request("DELETE", f"/posts/{post_id}", item_index=ctx.item_index)
    return {"message": f"投稿 {post_id} をゴミ箱に移動しました。", "id": post_id}


# ---- Media -----------------------------------------------------------------


def _media_create(ctx: HandlerContext) -> Any:
    property_name = fields.require_identifier(
        ctx.get("binary_property", ""), "binary_property", ctx.item_index
    )
    if ctx.binaries is None:
        raise ValueError("バイナリデータが利用できません")

    buffer = ctx.binaries.get_buffer(ctx.item_index, property_name)
    metadata = ctx.binaries.get_binary_metadata(ctx.item_index, property_name)

    # タイトル未指定の場合はWordPressがファイル名から生成する
    form_fields = fields.collect_non_empty(
        (name, ctx.get_text(name, "")) for name in ("title", "alt_text", "caption", "description")
    )
    form = MultipartForm(
        file=BinaryData(content=buffer, file_name=metadata.file_name, mime_type=metadata.mime_type),
        fields=form_fields,
    )
    logger.debug("Uploading media %s (%s, %d bytes)", metadata.file_name, metadata.mime_type, len(buffer))
    return ctx.client.send_binary_request("/media", form, item_index=ctx.item_index)


def _media_get(ctx: HandlerContext) -> Any:
    media_id = _media_id(ctx)
    return ctx.client.send_request("GET", f"/media/{media_id}", item_index=ctx.item_index)


def _media_update(ctx: HandlerContext) -> Any:
    media_id = _media_id(ctx)
    body = fields.collect_present(
        (name, ctx.get_text(name, None)) for name in ("title", "alt_text", "caption", "description")
    )
    if not body:
        return _no_fields_result(ctx, "メディアの更新項目が指定されていません。")
    return ctx.client.send_request("POST", f"/media/{media_id}", body, item_index=ctx.item_index)


def _media_delete(ctx: HandlerContext) -> Any:
    media_id = _media_id(ctx)
    ctx.client.send_request("DELETE", f"/media/{media_id}?force=true", item_index=ctx.item_index)
    return {"message": f"メディア {media_id} を完全に削除しました。", "id": media_id}


# ---- Custom post type ------------------------------------------------------


def _custom_post_type_create(ctx: HandlerContext) -> Any:
    slug = _slug(ctx)
    body = _create_body(ctx)
    meta = fields.fold_custom_fields(ctx.get("custom_fields", None))
    if meta:
        body["meta"] = meta
    return ctx.client.send_request("POST", f"/{slug}", body, item_index=ctx.item_index)


def _custom_post_type_get(ctx: HandlerContext) -> Any:
    slug = _slug(ctx)
    post_id = _post_id(ctx)
    return ctx.client.send_request("GET", f"/{slug}/{post_id}", item_index=ctx.item_index)


def _custom_post_type_update(ctx: HandlerContext) -> Any:
    slug = _slug(ctx)
    post_id = _post_id(ctx)
    body = _update_body(ctx)
    meta = fields.fold_custom_fields(ctx.get("custom_fields", None))
    if meta:
        body["meta"] = meta

    if not body:
        return _no_fields_result(ctx, "カスタム投稿タイプの更新項目が指定されていません。")
    return ctx.client.send_request("POST", f"/{slug}/{post_id}", body, item_index=ctx.item_index)


def _custom_post_type_delete(ctx: HandlerContext) -> Any:
    slug = _slug(ctx)
    post_id = _post_id(ctx)
    ctx.client.send_request("DELETE", f"/{slug}/{post_id}?force=true", item_index=ctx.item_index)
    return {"message": f"カスタム投稿 {post_id} (slug: {slug}) を完全に削除しました。", "id": post_id}


HANDLERS: dict[tuple[ResourceKind, OperationKind], Handler] = {
    (ResourceKind.POST, OperationKind.CREATE): _post_create,
    (ResourceKind.POST, OperationKind.GET): _post_get,
    (ResourceKind.POST, OperationKind.UPDATE): _post_update,
    (ResourceKind.POST, OperationKind.DELETE): _post_delete,
    (ResourceKind.MEDIA, OperationKind.CREATE): _media_create,
    (ResourceKind.MEDIA, OperationKind.GET): _media_get,
    (ResourceKind.MEDIA, OperationKind.UPDATE): _media_update,
    (ResourceKind.MEDIA, OperationKind.DELETE): _media_delete,
    (ResourceKind.CUSTOM_POST_TYPE, OperationKind.CREATE): _custom_post_type_create,
    (ResourceKind.CUSTOM_POST_TYPE, OperationKind.GET): _custom_post_type_get,
    (ResourceKind.CUSTOM_POST_TYPE, OperationKind.UPDATE): _custom_post_type_update,
    (ResourceKind.CUSTOM_POST_TYPE, OperationKind.DELETE): _custom_post_type_delete,
}


def dispatch(
    resource: ResourceKind | str,
    operation: OperationKind | str,
    item_index: int,
    params: ParameterSource,
    client: WordPressHttpClient,
    binaries: BinarySource | None = None,
) -> ItemResult:
    """Run the handler registered for ``(resource, operation)`` on a single item."""
    resource_kind = parse_resource(resource)
    operation_kind = parse_operation(operation)

    handler = HANDLERS.get((resource_kind, operation_kind))
    if handler is None:
        # getAll はまだ実装されていない
        raise UnsupportedOperationError(
            f"リソース '{resource_kind.value}' の操作 '{operation_kind.value}' はまだ実装されていません",
            item_index=item_index,
        )

    ctx = HandlerContext(item_index=item_index, params=params, client=client, binaries=binaries)
    return ItemResult(item_index=item_index, json=handler(ctx))


def run_batch(
    resource: ResourceKind | str,
    operation: OperationKind | str,
    params: ParameterSource,
    client: WordPressHttpClient,
    binaries: BinarySource | None = None,
    *,
    continue_on_fail: bool = False,
) -> list[ItemResult]:
    """Dispatch every item in order.

    With ``continue_on_fail`` a failing item becomes an error-shaped result and the
    loop moves on; otherwise the first failure is re-raised and later items are
    not processed. Remote writes that already succeeded are not rolled back.
    """
    results: list[ItemResult] = []
    for item_index in range(params.item_count):
        try:
            results.append(dispatch(resource, operation, item_index, params, client, binaries))
        except Exception as exc:
            # 通信エラーなど外部の例外にもアイテム番号を付けて呼び出し元で特定できるようにする
            if getattr(exc, "item_index", None) is None:
                exc.item_index = item_index
            if not continue_on_fail:
                logger.debug("Aborting batch at item %d", item_index)
                raise
            logger.error("WordPress %s %s failed for item %d: %s", resource, operation, item_index, exc)
            results.append(ItemResult(item_index=item_index, json={"error": str(exc)}, error=exc))
    return results
