"""Gas Town のトポロジーモデル定義。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from .workflow import Convoy


class AgentRole(str, Enum):
    """Gas Town エージェントの役割。"""

    MAYOR = "mayor"
    """Town 全体の指揮"""

    DEACON = "deacon"
    """デーモン（Town の巡回・監視）"""

    WITNESS = "witness"
    """Rig 内の polecat 監視"""

    REFINERY = "refinery"
    """マージキュー処理"""

    POLECAT = "polecat"
    """使い捨てワーカー"""

    CREW = "crew"
    """常駐ワーカー"""


class AgentStatus(str, Enum):
    """推定されたエージェントの状態。"""

    ACTIVE = "active"
    IDLE = "idle"
    STUCK = "stuck"
    OFFLINE = "offline"
    UNKNOWN = "unknown"


class Agent(BaseModel):
    """ファイルシステムと tmux セッションから再構築したエージェント。"""

    role: AgentRole = Field(..., description="役割")
    name: str = Field(..., description="エージェント名")
    rig: str = Field(default="", description="所属 Rig 名（mayor/deacon は空）")
    status: AgentStatus = Field(default=AgentStatus.UNKNOWN, description="推定状態")
    session: str = Field(default="", description="tmux セッション名")
    molecule: str = Field(default="", description="実行中の molecule ID")
    hook_attached: bool = Field(default=False, description="hook に作業が接続されているか")
    compaction: int = Field(default=0, description="コンテキスト圧縮回数（seance）")
    work_dir: str = Field(default="", description="作業ディレクトリ")
    last_active: datetime | None = Field(default=None, description="作業ディレクトリの最終更新")

    @computed_field
    @property
    def address(self) -> str:
        """メール宛先アドレスを返す。"""
        return agent_address(self.role, self.rig, self.name)


def agent_address(role: AgentRole, rig: str, name: str) -> str:
    """役割・Rig・名前からメール宛先アドレスを組み立てる。"""
    if role == AgentRole.MAYOR:
        return "mayor/"
    if role == AgentRole.DEACON:
        return "deacon/"
    if role == AgentRole.WITNESS:
        return f"{rig}/witness"
    if role == AgentRole.REFINERY:
        return f"{rig}/refinery"
    return f"{rig}/{name}"


class Rig(BaseModel):
    """エージェントを束ねるプロジェクト単位のコンテナ。"""

    name: str = Field(..., description="Rig 名（ディレクトリ名）")
    path: str = Field(..., description="Rig のパス")
    witness: Agent | None = Field(default=None, description="Witness エージェント")
    refinery: Agent | None = Field(default=None, description="Refinery エージェント")
    polecats: list[Agent] = Field(default_factory=list, description="Polecat 一覧")
    crew: list[Agent] = Field(default_factory=list, description="Crew 一覧")

    def all_agents(self) -> list[Agent]:
        """Rig 内の全エージェント（witness, refinery, polecats, crew の順）。"""
        agents: list[Agent] = []
        if self.witness is not None:
            agents.append(self.witness)
        if self.refinery is not None:
            agents.append(self.refinery)
        agents.extend(self.polecats)
        agents.extend(self.crew)
        return agents


class TownConfig(BaseModel):
    """mayor/town.json の内容。"""

    name: str = ""
    rigs: list[str] = Field(default_factory=list)
    version: str = ""


class Town(BaseModel):
    """Gas Town ワークスペース全体。"""

    root: str = Field(..., description="Town ルート")
    name: str = Field(default="", description="Town 名（town.json）")
    mayor: Agent | None = Field(default=None, description="Mayor エージェント")
    deacon: Agent | None = Field(default=None, description="Deacon エージェント")
    rigs: list[Rig] = Field(default_factory=list, description="Rig 一覧")
    convoys: list[Convoy] = Field(default_factory=list, description="Convoy 一覧")

    def all_agents(self) -> list[Agent]:
        """Town 内の全エージェント（mayor, deacon, 各 Rig の順）。"""
        agents: list[Agent] = []
        if self.mayor is not None:
            agents.append(self.mayor)
        if self.deacon is not None:
            agents.append(self.deacon)
        for rig in self.rigs:
            agents.extend(rig.all_agents())
        return agents


class TownStatus(BaseModel):
    """Town の健全性サマリー。"""

    healthy: bool = False
    town_root: str = ""
    active_agents: int = 0
    total_agents: int = 0
    active_rigs: int = 0
    open_convoys: int = 0
    error: str | None = None
