"""Beads Issue モデル定義。"""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class IssueStatus(str, Enum):
    """Issue のステータス（表示用に 4 値へ正規化済み）。"""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    DONE = "done"
    BLOCKED = "blocked"


class IssuePriority(str, Enum):
    """Issue の優先度。"""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class IssueSummary(BaseModel):
    """一覧・参照用の簡易表現。"""

    id: str = Field(..., description="Issue ID")
    title: str = Field(default="", description="タイトル")
    status: IssueStatus = Field(default=IssueStatus.PENDING, description="ステータス")
    priority: IssuePriority = Field(default=IssuePriority.MEDIUM, description="優先度")


class Issue(BaseModel):
    """Beads Issue の完全な表現。"""

    id: str = Field(..., description="Issue ID")
    title: str = Field(default="", description="タイトル")
    description: str = Field(default="", description="本文")
    status: IssueStatus = Field(default=IssueStatus.PENDING, description="ステータス")
    priority: IssuePriority = Field(default=IssuePriority.MEDIUM, description="優先度")
    issue_type: str = Field(default="", description="bd 上の種別（task/bug/epic など）")
    parent: IssueSummary | None = Field(default=None, description="親 Issue")
    children: list[IssueSummary] = Field(default_factory=list, description="子 Issue")
    blocks: list[IssueSummary] = Field(
        default_factory=list, description="この Issue がブロックしている Issue"
    )
    blocked_by: list[IssueSummary] = Field(
        default_factory=list, description="この Issue をブロックしている Issue"
    )
    done_when: list[str] = Field(default_factory=list, description="完了条件（Done when:）")
    created_at: datetime | None = Field(default=None, description="作成日時")
    updated_at: datetime | None = Field(default=None, description="更新日時")
    closed_at: datetime | None = Field(default=None, description="クローズ日時")

    def to_summary(self) -> IssueSummary:
        """IssueSummary に変換する。"""
        return IssueSummary(
            id=self.id,
            title=self.title,
            status=self.status,
            priority=self.priority,
        )


class IssueFilter(BaseModel):
    """Issue 一覧の絞り込み条件。

    status は bd に渡し、limit / offset は取得後に適用する。
    """

    status: str | None = Field(default=None, description="bd の --status に渡す値")
    limit: int | None = Field(default=None, ge=1, description="最大件数")
    offset: int = Field(default=0, ge=0, description="先頭からのスキップ件数")

    def paginate(self, issues: list[Issue]) -> list[Issue]:
        """limit / offset を適用する。"""
        sliced = issues[self.offset :]
        if self.limit is not None:
            sliced = sliced[: self.limit]
        return sliced
