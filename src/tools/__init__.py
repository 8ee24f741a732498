"""MCP Tools モジュール。"""

from mcp.server.fastmcp import FastMCP

from src.tools import beads, gastown


def register_all_tools(mcp: FastMCP) -> None:
    """全ツールをMCPサーバーに登録する。

    Args:
        mcp: FastMCPインスタンス
    """
    # Beads（Issue トラッカー）
    beads.register_tools(mcp)

    # Gas Town（トポロジー・エージェント・ワークフロー）
    gastown.register_tools(mcp)
