"""Convoy（バッチ）と Molecule（ワークフロー）のモデル定義。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class WorkStatus(str, Enum):
    """Convoy / Molecule 共通のステータス。"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETE = "complete"
    BLOCKED = "blocked"
    FAILED = "failed"


class Convoy(BaseModel):
    """まとめて処理される Issue の集合。"""

    id: str = Field(..., description="Convoy ID")
    title: str = Field(default="", description="タイトル")
    status: WorkStatus = Field(default=WorkStatus.PENDING, description="ステータス")
    priority: str = Field(default="", description="優先度")
    rig: str = Field(default="", description="対象 Rig")
    issues: list[str] = Field(default_factory=list, description="Issue ID 一覧")
    progress: int = Field(default=0, description="進捗率（0-100）")
    total: int = Field(default=0, description="Issue 総数")
    completed: int = Field(default=0, description="完了数")
    blocked: int = Field(default=0, description="ブロック中の数")
    in_progress: int = Field(default=0, description="進行中の数")
    created_at: datetime | None = Field(default=None, description="作成日時")
    updated_at: datetime | None = Field(default=None, description="更新日時")
    subscribers: list[str] = Field(default_factory=list, description="購読者アドレス")
    agents: list[str] = Field(default_factory=list, description="担当エージェント")


class MoleculeStep(BaseModel):
    """Molecule の 1 ステップ。status は gt の生の値を保持する。"""

    index: int = Field(default=0, description="ステップ番号")
    id: str = Field(default="", description="ステップ ID")
    description: str = Field(default="", description="説明")
    status: str = Field(default="", description="ステータス（生の値）")
    needs: list[str] = Field(default_factory=list, description="前提ステップ ID")
    started_at: datetime | None = Field(default=None, description="開始日時")
    completed_at: datetime | None = Field(default=None, description="完了日時")


class Molecule(BaseModel):
    """エージェントが実行中の複数ステップのワークフロー。"""

    id: str = Field(..., description="Molecule ID")
    title: str = Field(default="", description="タイトル")
    status: WorkStatus = Field(default=WorkStatus.PENDING, description="ステータス")
    formula: str = Field(default="", description="生成元 formula")
    current_step: int = Field(default=0, description="現在のステップ番号")
    steps: list[MoleculeStep] = Field(default_factory=list, description="ステップ一覧")
    progress: int = Field(default=0, description="完了ステップ数")
    total: int = Field(default=0, description="ステップ総数")
    agent: str = Field(default="", description="実行エージェント名")
    rig: str = Field(default="", description="実行エージェントの Rig")
    created_at: datetime | None = Field(default=None, description="作成日時")
    updated_at: datetime | None = Field(default=None, description="更新日時")
