"""Gas Town 参照ツール。"""

import logging
from typing import Any

from mcp.server.fastmcp import Context, FastMCP

from src.errors import ViewerError
from src.tools.helpers import dump, dump_list, error_response, get_app_context

logger = logging.getLogger(__name__)


def register_tools(mcp: FastMCP) -> None:
    """Gas Town 参照ツールを登録する。"""

    @mcp.tool()
    async def get_town_status(ctx: Context = None) -> dict[str, Any]:
        """Town の健全性サマリーを取得する。

        Town が無い場合も失敗にはせず、healthy=false と error を返す。

        Returns:
            サマリー（success, status）
        """
        app_ctx = get_app_context(ctx)
        status = await app_ctx.gastown.status()
        return {"success": True, "status": dump(status)}

    @mcp.tool()
    async def get_town(ctx: Context = None) -> dict[str, Any]:
        """Town 全体（mayor, deacon, rigs, convoys）を取得する。

        Returns:
            Town（success, town）
        """
        app_ctx = get_app_context(ctx)
        try:
            town = await app_ctx.gastown.town()
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "town": dump(town)}

    @mcp.tool()
    async def list_rigs(ctx: Context = None) -> dict[str, Any]:
        """Rig 一覧を取得する。

        Returns:
            一覧（success, rigs, count）
        """
        app_ctx = get_app_context(ctx)
        try:
            rigs = await app_ctx.gastown.rigs()
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "rigs": dump_list(rigs), "count": len(rigs)}

    @mcp.tool()
    async def get_rig(name: str, ctx: Context = None) -> dict[str, Any]:
        """Rig を名前で取得する。

        Args:
            name: Rig 名

        Returns:
            Rig（success, rig）
        """
        app_ctx = get_app_context(ctx)
        try:
            rig = await app_ctx.gastown.rig(name)
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "rig": dump(rig)}

    @mcp.tool()
    async def list_agents(
        status: str | None = None,
        ctx: Context = None,
    ) -> dict[str, Any]:
        """エージェント一覧を取得する。

        Args:
            status: 指定した状態（active/idle/stuck/offline/unknown）のみ返す

        Returns:
            一覧（success, agents, count）
        """
        app_ctx = get_app_context(ctx)
        try:
            agents = await app_ctx.gastown.agents()
        except ViewerError as e:
            return error_response(e)

        if status:
            agents = [a for a in agents if a.status.value == status]

        return {"success": True, "agents": dump_list(agents), "count": len(agents)}

    @mcp.tool()
    async def list_convoys(ctx: Context = None) -> dict[str, Any]:
        """Convoy（バッチ）一覧を取得する。gt が使えない場合は空。

        Returns:
            一覧（success, convoys, count）
        """
        app_ctx = get_app_context(ctx)
        convoys = await app_ctx.gastown.convoys()
        return {"success": True, "convoys": dump_list(convoys), "count": len(convoys)}

    @mcp.tool()
    async def get_convoy(convoy_id: str, ctx: Context = None) -> dict[str, Any]:
        """Convoy を ID で取得する。

        Args:
            convoy_id: Convoy ID

        Returns:
            Convoy（success, convoy）
        """
        app_ctx = get_app_context(ctx)
        try:
            convoy = await app_ctx.gastown.convoy(convoy_id)
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "convoy": dump(convoy)}

    @mcp.tool()
    async def list_molecules(ctx: Context = None) -> dict[str, Any]:
        """稼働中の Molecule（ワークフロー）一覧を取得する。

        Returns:
            一覧（success, molecules, count）
        """
        app_ctx = get_app_context(ctx)
        try:
            molecules = await app_ctx.gastown.molecules()
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "molecules": dump_list(molecules), "count": len(molecules)}

    @mcp.tool()
    async def get_molecule(molecule_id: str, ctx: Context = None) -> dict[str, Any]:
        """Molecule を ID で取得する。

        Args:
            molecule_id: Molecule ID

        Returns:
            Molecule（success, molecule）
        """
        app_ctx = get_app_context(ctx)
        try:
            molecule = await app_ctx.gastown.molecule(molecule_id)
        except ViewerError as e:
            return error_response(e)
        return {"success": True, "molecule": dump(molecule)}

    @mcp.tool()
    async def get_mail(address: str, ctx: Context = None) -> dict[str, Any]:
        """エージェントの受信箱を取得する。

        Args:
            address: 宛先アドレス（例: mayor/, myrig/witness, myrig/alice）

        Returns:
            一覧（success, address, messages, count）
        """
        app_ctx = get_app_context(ctx)
        messages = await app_ctx.gastown.mail(address)
        return {
            "success": True,
            "address": address,
            "messages": dump_list(messages),
            "count": len(messages),
        }
