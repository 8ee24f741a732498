"""エージェント状態の推定。

tmux セッションの有無と作業ディレクトリの最終更新時刻から状態を決める。

    セッションなし                               → offline
    セッションあり かつ 経過 > stuck 閾値        → stuck
    セッションあり かつ 経過 > idle 閾値 かつ hook なし → idle
    それ以外（セッションあり）                   → active
"""

import json
import logging
from datetime import datetime, timedelta, timezone
from pathlib import Path

from pydantic import BaseModel, ValidationError

from src.managers.town_scanner import last_modified
from src.models.town import Agent, AgentRole, AgentStatus

logger = logging.getLogger(__name__)

DEFAULT_STUCK_AFTER = timedelta(minutes=10)
DEFAULT_IDLE_AFTER = timedelta(minutes=2)

# エージェント作業ディレクトリ内のサイドファイル
SEANCE_FILE = Path(".claude") / "seance.json"
HOOK_FILE = Path(".claude") / "hook.json"
MOLECULE_FILE = Path(".beads") / "molecule.json"


def infer_agent_status(
    session_present: bool,
    elapsed: timedelta | None,
    hook_attached: bool,
    stuck_after: timedelta = DEFAULT_STUCK_AFTER,
    idle_after: timedelta = DEFAULT_IDLE_AFTER,
) -> AgentStatus:
    """エージェントの状態を推定する。

    Args:
        session_present: tmux セッションが存在するか
        elapsed: 最終更新からの経過時間（不明なら None）
        hook_attached: hook に作業が接続されているか
        stuck_after: stuck 判定の閾値
        idle_after: idle 判定の閾値

    Returns:
        推定した AgentStatus
    """
    if not session_present:
        return AgentStatus.OFFLINE
    if elapsed is None:
        return AgentStatus.ACTIVE
    if elapsed > stuck_after:
        return AgentStatus.STUCK
    if elapsed > idle_after and not hook_attached:
        return AgentStatus.IDLE
    return AgentStatus.ACTIVE


def session_name_for(role: AgentRole, rig: str, name: str, prefix: str = "gt") -> str:
    """gt が作成する tmux セッション名を返す。

    gt-mayor / gt-deacon / gt-{rig}-witness / gt-{rig}-refinery /
    gt-{rig}-{name}（polecat） / gt-{rig}-crew-{name}（crew）
    """
    if role == AgentRole.MAYOR:
        return f"{prefix}-mayor"
    if role == AgentRole.DEACON:
        return f"{prefix}-deacon"
    if role == AgentRole.WITNESS:
        return f"{prefix}-{rig}-witness"
    if role == AgentRole.REFINERY:
        return f"{prefix}-{rig}-refinery"
    if role == AgentRole.POLECAT:
        return f"{prefix}-{rig}-{name}"
    if role == AgentRole.CREW:
        return f"{prefix}-{rig}-crew-{name}"
    return ""


class SeanceFile(BaseModel):
    """.claude/seance.json"""

    compaction: int = 0
    molecule: str | None = None


class HookFile(BaseModel):
    """.claude/hook.json"""

    molecule: str | None = None
    attached: bool = False


class MoleculeRef(BaseModel):
    """.beads/molecule.json のうち ID 部分。"""

    id: str | None = None
    title: str | None = None


def _read_side_file(path: Path, model: type[BaseModel]) -> BaseModel | None:
    """サイドファイルを読み込む。無い・壊れている場合は None。"""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return model.model_validate(data)
    except FileNotFoundError:
        return None
    except (OSError, ValueError, ValidationError) as e:
        logger.debug("サイドファイルを読み込めません: %s: %s", path, e)
        return None


class AgentEnricher:
    """作業ディレクトリとセッション一覧からエージェント情報を補完する。"""

    def __init__(
        self,
        session_prefix: str = "gt",
        stuck_after: timedelta = DEFAULT_STUCK_AFTER,
        idle_after: timedelta = DEFAULT_IDLE_AFTER,
    ) -> None:
        self.session_prefix = session_prefix
        self.stuck_after = stuck_after
        self.idle_after = idle_after

    def enrich(
        self,
        agent: Agent,
        work_dir: str,
        sessions: set[str],
        now: datetime | None = None,
    ) -> Agent:
        """エージェントにセッション・molecule・hook・状態を設定する。

        作業ディレクトリが無い場合は状態を unknown のまま返す。
        """
        if not work_dir:
            return agent
        agent.work_dir = work_dir
        agent.session = session_name_for(agent.role, agent.rig, agent.name, self.session_prefix)

        base = Path(work_dir)

        seance = _read_side_file(base / SEANCE_FILE, SeanceFile)
        if isinstance(seance, SeanceFile):
            agent.compaction = seance.compaction
            if seance.molecule:
                agent.molecule = seance.molecule

        hook = _read_side_file(base / HOOK_FILE, HookFile)
        if isinstance(hook, HookFile):
            agent.hook_attached = hook.attached or bool(hook.molecule)
            if hook.molecule:
                agent.molecule = hook.molecule

        molecule = _read_side_file(base / MOLECULE_FILE, MoleculeRef)
        if isinstance(molecule, MoleculeRef) and molecule.id:
            agent.molecule = molecule.id
            agent.hook_attached = True

        agent.last_active = last_modified(base)

        elapsed = None
        if agent.last_active is not None:
            elapsed = (now or datetime.now(timezone.utc)) - agent.last_active

        agent.status = infer_agent_status(
            session_present=agent.session in sessions,
            elapsed=elapsed,
            hook_attached=agent.hook_attached,
            stuck_after=self.stuck_after,
            idle_after=self.idle_after,
        )
        return agent
