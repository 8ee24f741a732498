"""Gas Town Viewer MCP Server エントリーポイント。"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from mcp.server.fastmcp import FastMCP

from src.config.settings import Settings
from src.context import AppContext
from src.managers.beads_manager import BeadsManager
from src.managers.command_executor import CommandExecutor
from src.managers.gastown_manager import GastownManager
from src.tools import register_all_tools

# ログ設定（stderrに出力）
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def build_app_context(settings: Settings) -> AppContext:
    """設定からマネージャーを組み立てる。

    bd / gt / tmux は同じ CommandExecutor を共有する。
    """
    executor = CommandExecutor(timeout=settings.command_timeout_seconds)
    beads = BeadsManager(
        work_dir=settings.beads_dir,
        executor=executor,
        command=settings.bd_command,
    )
    gastown = GastownManager(settings, executor=executor)
    return AppContext(settings=settings, beads=beads, gastown=gastown)


@asynccontextmanager
async def app_lifespan(server: FastMCP) -> AsyncIterator[AppContext]:
    """サーバーライフサイクルを管理する。

    Args:
        server: FastMCPサーバーインスタンス

    Yields:
        アプリケーションコンテキスト
    """
    settings = Settings()
    logging.getLogger().setLevel(settings.get_log_level())

    logger.info("Gas Town Viewer MCP Server を起動しています...")
    logger.info(f"town_root={settings.town_root}, beads_dir={settings.beads_dir or '(cwd)'}")

    try:
        yield build_app_context(settings)
    finally:
        logger.info("サーバーをシャットダウンしています...")


# FastMCPサーバーを作成
mcp = FastMCP("Gas Town Viewer", lifespan=app_lifespan)
register_all_tools(mcp)


def main() -> None:
    """MCPサーバーを起動する。"""
    mcp.run()


if __name__ == "__main__":
    main()
