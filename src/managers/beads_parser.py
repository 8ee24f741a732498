"""bd --json 出力のパーサー。

bd の生のレコードを BeadsIssueRecord として受け取り、表示用の Issue へ正規化する。
ステータス・優先度の語彙は大文字小文字を区別せず、未知の値はデフォルトに倒す。
"""

import json
import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from src.errors import ParseError
from src.models.issue import Issue, IssuePriority, IssueStatus, IssueSummary

logger = logging.getLogger(__name__)

_STATUS_MAP: dict[str, IssueStatus] = {
    "open": IssueStatus.PENDING,
    "pending": IssueStatus.PENDING,
    "in_progress": IssueStatus.IN_PROGRESS,
    "in-progress": IssueStatus.IN_PROGRESS,
    "inprogress": IssueStatus.IN_PROGRESS,
    "closed": IssueStatus.DONE,
    "done": IssueStatus.DONE,
    "complete": IssueStatus.DONE,
    "blocked": IssueStatus.BLOCKED,
}

_PRIORITY_MAP: dict[int, IssuePriority] = {
    1: IssuePriority.HIGH,
    2: IssuePriority.MEDIUM,
    3: IssuePriority.LOW,
}

# 依存関係の種類
RELATION_BLOCKS = "blocks"
RELATION_PARENT_CHILD = "parent-child"

_DONE_WHEN_HEADER = "done when:"
_BULLET_PREFIXES = ("- ", "* ")


def map_status(value: str | None) -> IssueStatus:
    """bd のステータス文字列を IssueStatus に変換する。未知の値は PENDING。"""
    if not value:
        return IssueStatus.PENDING
    return _STATUS_MAP.get(value.strip().lower(), IssueStatus.PENDING)


def map_priority(value: int | None) -> IssuePriority:
    """bd の優先度（1..3）を IssuePriority に変換する。範囲外は MEDIUM。"""
    if value is None:
        return IssuePriority.MEDIUM
    return _PRIORITY_MAP.get(value, IssuePriority.MEDIUM)


def parse_done_when(description: str | None) -> list[str]:
    """本文から「Done when:」セクションの箇条書きを抽出する。

    "done when:" で始まる行（大文字小文字無視）でセクションが始まり、最初の空行で
    終わる。セクション内の "- " / "* " で始まる行を、接頭辞を 1 回だけ除いて返す。
    """
    items: list[str] = []
    if not description:
        return items

    in_section = False
    for raw_line in description.splitlines():
        line = raw_line.strip()

        if not in_section:
            if line.lower().startswith(_DONE_WHEN_HEADER):
                in_section = True
            continue

        if not line:
            break
        for prefix in _BULLET_PREFIXES:
            if line.startswith(prefix):
                items.append(line[len(prefix) :])
                break

    return items


def _none_to_empty_list(value: Any) -> Any:
    return [] if value is None else value


def _none_to_empty_str(value: Any) -> Any:
    return "" if value is None else value


class BeadsIssueRecord(BaseModel):
    """bd --json が返す Issue 1 件（依存先・依存元は同じ形で入れ子になる）。"""

    id: str
    title: str = ""
    description: str = ""
    status: str = ""
    priority: int = 0
    issue_type: str = ""
    created_at: datetime | None = None
    updated_at: datetime | None = None
    closed_at: datetime | None = None
    dependency_count: int = 0
    dependent_count: int = 0
    dependencies: list["BeadsIssueRecord"] = Field(default_factory=list)
    dependents: list["BeadsIssueRecord"] = Field(default_factory=list)
    blocked_by: list[str] = Field(default_factory=list)
    blocked_by_count: int = 0
    dependency_type: str = ""

    @field_validator("dependencies", "dependents", "blocked_by", mode="before")
    @classmethod
    def null_lists(cls, value: Any) -> Any:
        return _none_to_empty_list(value)

    @field_validator(
        "title", "description", "status", "issue_type", "dependency_type", mode="before"
    )
    @classmethod
    def null_strings(cls, value: Any) -> Any:
        return _none_to_empty_str(value)

    @field_validator("priority", mode="before")
    @classmethod
    def null_priority(cls, value: Any) -> Any:
        return 0 if value is None else value

    def to_summary(self) -> IssueSummary:
        """IssueSummary に変換する。"""
        return IssueSummary(
            id=self.id,
            title=self.title,
            status=map_status(self.status),
            priority=map_priority(self.priority),
        )

    def to_issue(self) -> Issue:
        """表示用の Issue に変換する。

        dependencies（この Issue が依存する側）:
            blocks → blocked_by, parent-child → parent
        dependents（この Issue に依存する側）:
            blocks → blocks, parent-child → children
        それ以外の種類は捨てる。
        """
        issue = Issue(
            id=self.id,
            title=self.title,
            description=self.description,
            status=map_status(self.status),
            priority=map_priority(self.priority),
            issue_type=self.issue_type,
            done_when=parse_done_when(self.description),
            created_at=self.created_at,
            updated_at=self.updated_at,
            closed_at=self.closed_at,
        )

        for dep in self.dependencies:
            if dep.dependency_type == RELATION_BLOCKS:
                issue.blocked_by.append(dep.to_summary())
            elif dep.dependency_type == RELATION_PARENT_CHILD:
                issue.parent = dep.to_summary()
            else:
                logger.debug(
                    "未対応の依存種別を無視します: %s -> %s (%s)",
                    self.id,
                    dep.id,
                    dep.dependency_type,
                )

        for dep in self.dependents:
            if dep.dependency_type == RELATION_BLOCKS:
                issue.blocks.append(dep.to_summary())
            elif dep.dependency_type == RELATION_PARENT_CHILD:
                issue.children.append(dep.to_summary())
            else:
                logger.debug(
                    "未対応の依存種別を無視します: %s <- %s (%s)",
                    self.id,
                    dep.id,
                    dep.dependency_type,
                )

        return issue


class BeadsBlockedRecord(BaseModel):
    """bd blocked --json が返す 1 件。"""

    id: str
    title: str = ""
    blocked_by_count: int = 0
    blocked_by: list[str] = Field(default_factory=list)

    @field_validator("blocked_by", mode="before")
    @classmethod
    def null_lists(cls, value: Any) -> Any:
        return _none_to_empty_list(value)


_ISSUE_LIST = TypeAdapter(list[BeadsIssueRecord])
_BLOCKED_LIST = TypeAdapter(list[BeadsBlockedRecord])


def _load_rows(data: bytes | str, command: str) -> list[Any]:
    """JSON 配列を読み込む。空出力は空リスト、単一オブジェクトは 1 件として扱う。"""
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    if not text.strip():
        return []
    try:
        loaded = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(command, e) from e
    if loaded is None:
        return []
    if isinstance(loaded, dict):
        return [loaded]
    if not isinstance(loaded, list):
        error = ValueError(f"JSON 配列を期待しましたが {type(loaded).__name__} でした")
        raise ParseError(command, error) from error
    return loaded


def parse_issue_list(data: bytes | str, command: str = "list") -> list[BeadsIssueRecord]:
    """bd list / bd show の JSON 出力を解析する。

    Raises:
        ParseError: JSON として不正、またはレコードの形が不正
    """
    rows = _load_rows(data, command)
    try:
        return _ISSUE_LIST.validate_python(rows)
    except ValidationError as e:
        raise ParseError(command, e) from e


def parse_blocked_list(data: bytes | str) -> list[BeadsBlockedRecord]:
    """bd blocked の JSON 出力を解析する。"""
    rows = _load_rows(data, "blocked")
    try:
        return _BLOCKED_LIST.validate_python(rows)
    except ValidationError as e:
        raise ParseError("blocked", e) from e


def parse_version(data: bytes | str) -> str:
    """bd --version の出力からバージョン番号を取り出す。

    "bd version 0.29.0 (dev)" → "0.29.0"。version が無い場合は全体を返す。
    """
    text = (data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data).strip()
    parts = text.split()
    for i, part in enumerate(parts):
        if part == "version" and i + 1 < len(parts):
            return parts[i + 1]
    return text
