"""MCPツール用共通ヘルパー関数。"""

import logging
from typing import Any

from pydantic import BaseModel

from src.context import AppContext
from src.errors import ViewerError

logger = logging.getLogger(__name__)


def get_app_context(ctx: Any) -> AppContext:
    """MCP Context から AppContext を取り出す。"""
    return ctx.request_context.lifespan_context


def error_response(error: ViewerError) -> dict[str, Any]:
    """例外をツールのエラーレスポンスに変換する。"""
    return {
        "success": False,
        "error": str(error),
        "error_type": error.error_type,
    }


def dump(model: BaseModel) -> dict[str, Any]:
    """モデルを JSON 互換の dict に変換する（from / to などの別名を使う）。"""
    return model.model_dump(mode="json", by_alias=True)


def dump_list(models: list[BaseModel]) -> list[dict[str, Any]]:
    return [dump(m) for m in models]
