"""server モジュールのテスト。"""

import logging

import pytest

from src.managers.beads_manager import BeadsManager
from src.managers.gastown_manager import GastownManager


@pytest.mark.asyncio
async def test_app_lifespan_builds_context(temp_dir, monkeypatch):
    """ライフスパンが設定からマネージャーを組み立てることをテスト。"""
    from src import server

    monkeypatch.setenv("GTV_TOWN_ROOT", str(temp_dir / "gt"))
    monkeypatch.setenv("GTV_BEADS_DIR", str(temp_dir))
    monkeypatch.setenv("GTV_LOG_LEVEL", "WARNING")

    async with server.app_lifespan(server.mcp) as app_ctx:
        assert isinstance(app_ctx.beads, BeadsManager)
        assert isinstance(app_ctx.gastown, GastownManager)
        assert app_ctx.settings.town_root == str(temp_dir / "gt")
        assert app_ctx.beads.work_dir == str(temp_dir)
        assert logging.getLogger().level == logging.WARNING

    logging.getLogger().setLevel(logging.INFO)


def test_build_app_context_shares_executor(settings):
    """bd / gt / tmux が同じ実行器を共有することをテスト。"""
    from src.server import build_app_context

    app_ctx = build_app_context(settings)

    assert app_ctx.beads.executor is app_ctx.gastown.executor
    assert app_ctx.gastown.tmux.executor is app_ctx.gastown.executor
    assert app_ctx.gastown.executor.timeout == settings.command_timeout_seconds


def test_all_tools_registered():
    from src.server import mcp

    names = {tool.name for tool in mcp._tool_manager._tools.values()}

    assert {
        "list_issues",
        "get_issue",
        "get_board",
        "get_graph",
        "get_beads_health",
        "get_town_status",
        "get_town",
        "list_rigs",
        "get_rig",
        "list_agents",
        "list_convoys",
        "get_convoy",
        "list_molecules",
        "get_molecule",
        "get_mail",
    } <= names
