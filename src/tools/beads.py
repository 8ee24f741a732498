"""Beads（Issue トラッカー）参照ツール。"""

import logging
from typing import Any

from mcp.server.fastmcp import Context, FastMCP
from pydantic import ValidationError

from src.errors import ViewerError
from src.models.issue import IssueFilter
from src.tools.helpers import dump, dump_list, error_response, get_app_context

logger = logging.getLogger(__name__)

GRAPH_FORMATS = ("json", "dot")


def register_tools(mcp: FastMCP) -> None:
    """Beads 参照ツールを登録する。"""

    @mcp.tool()
    async def list_issues(
        status: str | None = None,
        limit: int | None = None,
        offset: int = 0,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """Issue 一覧を取得する。

        Args:
            status: bd の --status に渡すステータス（省略時は全件）
            limit: 最大件数
            offset: 先頭からのスキップ件数

        Returns:
            一覧（success, issues, count）
        """
        app_ctx = get_app_context(ctx)
        try:
            issue_filter = IssueFilter(status=status, limit=limit, offset=offset)
        except ValidationError as e:
            return {
                "success": False,
                "error": f"無効な絞り込み条件です: {e.errors()[0]['msg']}",
                "error_type": "invalid_argument",
            }

        try:
            issues = await app_ctx.beads.list_issues(issue_filter)
        except ViewerError as e:
            return error_response(e)

        return {
            "success": True,
            "issues": dump_list(issues),
            "count": len(issues),
        }

    @mcp.tool()
    async def get_issue(issue_id: str, ctx: Context = None) -> dict[str, Any]:
        """Issue の詳細を取得する。

        Args:
            issue_id: Issue ID

        Returns:
            詳細（success, issue）
        """
        app_ctx = get_app_context(ctx)
        try:
            issue = await app_ctx.beads.get_issue(issue_id)
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "issue": dump(issue)}

    @mcp.tool()
    async def get_board(ctx: Context = None) -> dict[str, Any]:
        """ステータス別のカンバンボードを取得する。

        Returns:
            ボード（success, board）
        """
        app_ctx = get_app_context(ctx)
        try:
            board = await app_ctx.beads.board()
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "board": dump(board)}

    @mcp.tool()
    async def get_graph(format: str = "json", ctx: Context = None) -> dict[str, Any]:
        """依存関係グラフを取得する。

        Args:
            format: json（ノード・エッジ）または dot（Graphviz）

        Returns:
            グラフ（success, graph または dot）
        """
        if format not in GRAPH_FORMATS:
            return {
                "success": False,
                "error": f"無効なフォーマットです: {format}（有効: json, dot）",
                "error_type": "invalid_argument",
            }

        app_ctx = get_app_context(ctx)
        try:
            graph = await app_ctx.beads.graph()
        except ViewerError as e:
            return error_response(e)

        if format == "dot":
            return {"success": True, "dot": graph.to_dot(), "stats": dump(graph.stats)}
        return {"success": True, "graph": dump(graph)}

    @mcp.tool()
    async def get_beads_health(ctx: Context = None) -> dict[str, Any]:
        """bd の導入状況と初期化状態を確認する。

        Returns:
            状態（success, initialized, bd_version, error, error_type）
        """
        app_ctx = get_app_context(ctx)
        health = await app_ctx.beads.health()
        return {"success": True, **health}
