"""カンバンボードモデル。"""

from pydantic import BaseModel, Field

from .issue import IssueStatus, IssueSummary

# 列の並び順と表示ラベル（固定）
BOARD_COLUMNS: list[tuple[IssueStatus, str]] = [
    (IssueStatus.PENDING, "Pending"),
    (IssueStatus.IN_PROGRESS, "In Progress"),
    (IssueStatus.DONE, "Done"),
    (IssueStatus.BLOCKED, "Blocked"),
]


class Column(BaseModel):
    """ステータス列。"""

    status: IssueStatus = Field(..., description="列のステータス")
    label: str = Field(..., description="表示ラベル")
    count: int = Field(default=0, description="列内の Issue 数")
    issues: list[IssueSummary] = Field(default_factory=list, description="列内の Issue")


def _default_columns() -> list[Column]:
    return [Column(status=status, label=label) for status, label in BOARD_COLUMNS]


class Board(BaseModel):
    """ステータス別に Issue をまとめたボード。

    total は常に各列の count の合計と一致する。
    """

    columns: list[Column] = Field(default_factory=_default_columns, description="4 列固定")
    total: int = Field(default=0, description="全 Issue 数")

    def add_issue(self, issue: IssueSummary) -> None:
        """Issue を該当する列へ追加する。"""
        for column in self.columns:
            if column.status == issue.status:
                column.issues.append(issue)
                column.count += 1
                self.total += 1
                return

    def get_column(self, status: IssueStatus) -> Column:
        """指定ステータスの列を取得する。"""
        for column in self.columns:
            if column.status == status:
                return column
        raise KeyError(status)
