"""Gas Town アダプター。

ディレクトリ走査（TownScanner）・tmux セッション（TmuxManager）・gt CLI を
組み合わせて Town のトポロジーを毎回再構築する。状態は保持しない。
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from pydantic import TypeAdapter, ValidationError

from src.errors import NotFoundError, NotInitializedError, ViewerError
from src.managers.agent_status import MOLECULE_FILE, AgentEnricher
from src.managers.command_executor import CommandExecutor, CommandRunner
from src.managers.tmux_manager import TmuxManager
from src.managers.town_scanner import RigLayout, TownScanner
from src.managers.workflow_parser import (
    dedupe_molecules,
    parse_convoy_output,
    parse_molecule_file,
)
from src.models.message import Message
from src.models.town import Agent, AgentRole, AgentStatus, Rig, Town, TownStatus
from src.models.workflow import Convoy, Molecule

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = logging.getLogger(__name__)

# gt mail inbox が宛先を読む環境変数
MAIL_ADDRESS_ENV = "GT_ROLE"

_MESSAGE_LIST = TypeAdapter(list[Message])


class GastownAdapter(Protocol):
    """Gas Town へのクエリの集合。"""

    async def status(self) -> TownStatus: ...

    async def town(self) -> Town: ...

    async def rigs(self) -> list[Rig]: ...

    async def rig(self, name: str) -> Rig: ...

    async def agents(self) -> list[Agent]: ...

    async def convoys(self) -> list[Convoy]: ...

    async def convoy(self, convoy_id: str) -> Convoy: ...

    async def molecules(self) -> list[Molecule]: ...

    async def molecule(self, molecule_id: str) -> Molecule: ...

    async def mail(self, address: str) -> list[Message]: ...


class GastownManager:
    """ファイルシステムと gt CLI から Gas Town の状態を読み取る。"""

    def __init__(
        self,
        settings: "Settings",
        executor: CommandRunner | None = None,
    ) -> None:
        """GastownManagerを初期化する。

        Args:
            settings: アプリケーション設定（town_root, gt_command など）
            executor: コマンド実行器（テストではフェイクを渡す）
        """
        self.settings = settings
        self.town_root = settings.town_root
        self.gt_command = settings.gt_command
        self.executor = executor or CommandExecutor(timeout=settings.command_timeout_seconds)
        self.scanner = TownScanner(settings.town_root)
        self.tmux = TmuxManager(settings, executor=self.executor)
        self.enricher = AgentEnricher(
            session_prefix=settings.session_prefix,
            stuck_after=timedelta(seconds=settings.stuck_threshold_seconds),
            idle_after=timedelta(seconds=settings.idle_threshold_seconds),
        )

    # ========== 内部ヘルパー ==========

    async def _run_gt(self, *args: str, env: dict[str, str] | None = None) -> bytes:
        return await self.executor.execute(
            self.gt_command, list(args), work_dir=self.town_root, env=env
        )

    def _require_town(self) -> None:
        if not self.scanner.town_exists():
            raise NotInitializedError(f"Town が見つかりません: {self.town_root}")

    def _build_agent(
        self,
        role: AgentRole,
        name: str,
        rig: str,
        sessions: set[str],
        now: datetime,
    ) -> Agent:
        agent = Agent(role=role, name=name, rig=rig)
        work_dir = self.scanner.agent_work_dir(role, rig, name)
        return self.enricher.enrich(agent, work_dir, sessions, now=now)

    def _build_rig(self, layout: RigLayout, sessions: set[str], now: datetime) -> Rig:
        rig = Rig(name=layout.name, path=layout.path)
        if layout.has_witness:
            rig.witness = self._build_agent(AgentRole.WITNESS, "witness", layout.name, sessions, now)
        if layout.has_refinery:
            rig.refinery = self._build_agent(
                AgentRole.REFINERY, "refinery", layout.name, sessions, now
            )
        rig.polecats = [
            self._build_agent(AgentRole.POLECAT, name, layout.name, sessions, now)
            for name in layout.polecats
        ]
        rig.crew = [
            self._build_agent(AgentRole.CREW, name, layout.name, sessions, now)
            for name in layout.crew
        ]
        return rig

    def _collect_rigs(self, sessions: set[str]) -> list[Rig]:
        if not self.scanner.root_exists():
            raise NotInitializedError(f"Town ルートが存在しません: {self.town_root}")
        try:
            layouts = self.scanner.scan_rigs()
        except OSError as e:
            raise NotInitializedError(f"Town ルートを読み取れません: {e}") from e
        now = datetime.now(timezone.utc)
        return [self._build_rig(layout, sessions, now) for layout in layouts]

    async def _deacon_running(self) -> bool:
        """mayor/daemon.pid があるか、gt daemon status が成功すれば稼働中。"""
        if self.scanner.daemon_pid_exists():
            return True
        try:
            await self._run_gt("daemon", "status")
        except ViewerError as e:
            logger.debug("gt daemon status: %s", e)
            return False
        return True

    # ========== クエリ ==========

    async def status(self) -> TownStatus:
        """Town の健全性サマリーを返す。失敗は例外にせず error に入れる。"""
        status = TownStatus(town_root=self.town_root)

        if not self.scanner.town_exists():
            status.error = f"Town が見つかりません: {self.town_root}"
            return status

        try:
            town = await self.town()
        except ViewerError as e:
            status.error = str(e)
            return status

        agents = town.all_agents()
        status.total_agents = len(agents)
        status.active_agents = sum(1 for a in agents if a.status == AgentStatus.ACTIVE)
        status.active_rigs = len(town.rigs)
        status.open_convoys = len(town.convoys)
        status.healthy = True
        return status

    async def town(self) -> Town:
        """Town 全体を再構築する。

        Raises:
            NotInitializedError: Town が存在しない
        """
        self._require_town()

        sessions, deacon_running, convoys = await asyncio.gather(
            self.tmux.list_sessions(),
            self._deacon_running(),
            self.convoys(),
        )

        town = Town(root=self.town_root, convoys=convoys)
        config = self.scanner.read_town_config()
        if config is not None:
            town.name = config.name

        now = datetime.now(timezone.utc)
        town.mayor = self._build_agent(AgentRole.MAYOR, "mayor", "", sessions, now)
        if deacon_running:
            town.deacon = self._build_agent(AgentRole.DEACON, "deacon", "", sessions, now)

        try:
            town.rigs = self._collect_rigs(sessions)
        except NotInitializedError as e:
            logger.warning(f"Rig を走査できません: {e}")

        return town

    async def rigs(self) -> list[Rig]:
        """全 Rig を返す。mayor/ が無くても走査する。

        Raises:
            NotInitializedError: Town ルートが存在しない
        """
        sessions = await self.tmux.list_sessions()
        return self._collect_rigs(sessions)

    async def rig(self, name: str) -> Rig:
        """名前で Rig を取得する。

        Raises:
            NotFoundError: Rig が存在しない
        """
        for rig in await self.rigs():
            if rig.name == name:
                return rig
        raise NotFoundError("rig", name)

    async def agents(self) -> list[Agent]:
        """全エージェント（mayor, deacon, 各 Rig の順）を返す。"""
        self._require_town()

        sessions, deacon_running = await asyncio.gather(
            self.tmux.list_sessions(),
            self._deacon_running(),
        )
        now = datetime.now(timezone.utc)

        agents = [self._build_agent(AgentRole.MAYOR, "mayor", "", sessions, now)]
        if deacon_running:
            agents.append(self._build_agent(AgentRole.DEACON, "deacon", "", sessions, now))
        for rig in self._collect_rigs(sessions):
            agents.extend(rig.all_agents())
        return agents

    async def convoys(self) -> list[Convoy]:
        """gt convoy list の結果を返す。gt が失敗した場合は空リスト。"""
        try:
            output = await self._run_gt("convoy", "list", "--json")
        except ViewerError as e:
            logger.debug("gt convoy list が失敗しました: %s", e)
            return []
        return parse_convoy_output(output)

    async def convoy(self, convoy_id: str) -> Convoy:
        """ID で Convoy を取得する。

        Raises:
            NotFoundError: Convoy が存在しない
        """
        for convoy in await self.convoys():
            if convoy.id == convoy_id:
                return convoy
        raise NotFoundError("convoy", convoy_id)

    async def molecules(self) -> list[Molecule]:
        """全エージェントの作業ディレクトリから molecule を集める。

        同じ ID の molecule は最初に見つかったものだけを返す。
        """
        found: list[Molecule] = []
        for agent in await self.agents():
            if not agent.work_dir:
                continue
            molecule = parse_molecule_file(Path(agent.work_dir) / MOLECULE_FILE)
            if molecule is None:
                continue
            molecule.agent = agent.name
            molecule.rig = agent.rig
            found.append(molecule)
        return dedupe_molecules(found)

    async def molecule(self, molecule_id: str) -> Molecule:
        """ID で Molecule を取得する。

        Raises:
            NotFoundError: Molecule が存在しない
        """
        for molecule in await self.molecules():
            if molecule.id == molecule_id:
                return molecule
        raise NotFoundError("molecule", molecule_id)

    async def mail(self, address: str) -> list[Message]:
        """宛先アドレスの受信箱を返す。失敗・解析不能は空リスト。"""
        try:
            output = await self._run_gt("mail", "inbox", "--json", env={MAIL_ADDRESS_ENV: address})
        except ViewerError as e:
            logger.debug("gt mail inbox が失敗しました: %s", e)
            return []

        text = output.decode("utf-8", errors="replace")
        if not text.strip():
            return []
        try:
            return _MESSAGE_LIST.validate_json(text)
        except ValidationError as e:
            logger.debug("メール一覧を解析できません: %s", e)
            return []
