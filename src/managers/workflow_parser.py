"""Molecule（ワークフロー）と Convoy（バッチ）の解析。

どちらも部分的なデータを許容し、解析できないものは捨てて空として扱う。
"""

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from pydantic import (
    BaseModel,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)

from src.models.workflow import Convoy, Molecule, MoleculeStep, WorkStatus

logger = logging.getLogger(__name__)

_WORK_STATUS_MAP: dict[str, WorkStatus] = {
    "in_progress": WorkStatus.IN_PROGRESS,
    "complete": WorkStatus.COMPLETE,
    "completed": WorkStatus.COMPLETE,
    "blocked": WorkStatus.BLOCKED,
    "failed": WorkStatus.FAILED,
}

# 進捗に数えるステップのステータス
DONE_STEP_STATUSES = frozenset({"complete", "completed", "done"})


def map_work_status(value: str | None) -> WorkStatus:
    """Convoy / Molecule のステータス文字列を WorkStatus に変換する。未知は PENDING。"""
    if not value:
        return WorkStatus.PENDING
    return _WORK_STATUS_MAP.get(value, WorkStatus.PENDING)


_DATETIME = TypeAdapter(datetime)


def parse_timestamp(value: Any) -> datetime | None:
    """RFC 3339 の日時文字列を解析する。解析できない場合は None。

    小数秒の桁数は任意（9 桁はマイクロ秒に切り詰める）。
    """
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return _DATETIME.validate_python(value.strip())
    except ValidationError:
        return None


class _Lenient(BaseModel):
    """null を既定値として扱う基底モデル。"""

    @field_validator("*", mode="before")
    @classmethod
    def null_as_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is not None:
            return value
        field_info = cls.model_fields[info.field_name]
        return field_info.get_default(call_default_factory=True)


class RawMoleculeStep(_Lenient):
    index: int = 0
    id: str = ""
    description: str = ""
    status: str = ""
    needs: list[str] = Field(default_factory=list)
    started_at: Any = None
    completed_at: Any = None


class RawMolecule(_Lenient):
    id: str = ""
    title: str = ""
    status: str = ""
    formula: str = ""
    current_step: int = 0
    steps: list[RawMoleculeStep] = Field(default_factory=list)
    created_at: Any = None
    updated_at: Any = None


class RawConvoy(_Lenient):
    id: str = ""
    title: str = ""
    status: str = ""
    priority: str = ""
    rig: str = ""
    issues: list[str] = Field(default_factory=list)
    progress: int = 0
    total: int = 0
    completed: int = 0
    blocked: int = 0
    in_progress: int = 0
    created_at: Any = None
    updated_at: Any = None
    subscribers: list[str] = Field(default_factory=list)
    agents: list[str] = Field(default_factory=list)


_CONVOY_LIST = TypeAdapter(list[RawConvoy])


def build_molecule(raw: RawMolecule) -> Molecule:
    """RawMolecule から Molecule を組み立てる。progress は完了ステップ数。"""
    steps = [
        MoleculeStep(
            index=step.index,
            id=step.id,
            description=step.description,
            status=step.status,
            needs=step.needs,
            started_at=parse_timestamp(step.started_at),
            completed_at=parse_timestamp(step.completed_at),
        )
        for step in raw.steps
    ]
    progress = sum(1 for step in steps if step.status in DONE_STEP_STATUSES)
    return Molecule(
        id=raw.id,
        title=raw.title,
        status=map_work_status(raw.status),
        formula=raw.formula,
        current_step=raw.current_step,
        steps=steps,
        progress=progress,
        total=len(steps),
        created_at=parse_timestamp(raw.created_at),
        updated_at=parse_timestamp(raw.updated_at),
    )


def parse_molecule_file(path: str | Path) -> Molecule | None:
    """molecule.json を読み込む。

    Returns:
        Molecule。ファイルが無い・解析できない・ID が無い場合は None
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
        raw = RawMolecule.model_validate(data)
    except FileNotFoundError:
        return None
    except (OSError, ValueError, ValidationError) as e:
        logger.debug("molecule.json を解析できません: %s: %s", path, e)
        return None

    if not raw.id:
        return None
    return build_molecule(raw)


def dedupe_molecules(molecules: list[Molecule]) -> list[Molecule]:
    """ID で重複を除く（先に現れたものを残す）。"""
    seen: set[str] = set()
    unique: list[Molecule] = []
    for molecule in molecules:
        if molecule.id in seen:
            continue
        seen.add(molecule.id)
        unique.append(molecule)
    return unique


def build_convoy(raw: RawConvoy) -> Convoy:
    """RawConvoy から Convoy を組み立て、未設定の total / progress を補う。"""
    total = raw.total
    if total == 0 and raw.issues:
        total = len(raw.issues)

    progress = raw.progress
    if progress == 0 and total > 0:
        progress = raw.completed * 100 // total

    return Convoy(
        id=raw.id,
        title=raw.title,
        status=map_work_status(raw.status),
        priority=raw.priority,
        rig=raw.rig,
        issues=raw.issues,
        progress=progress,
        total=total,
        completed=raw.completed,
        blocked=raw.blocked,
        in_progress=raw.in_progress,
        created_at=parse_timestamp(raw.created_at),
        updated_at=parse_timestamp(raw.updated_at),
        subscribers=raw.subscribers,
        agents=raw.agents,
    )


def parse_convoy_output(data: bytes | str) -> list[Convoy]:
    """gt convoy list --json の出力を解析する。

    配列・単一オブジェクトのどちらも受け付け、それ以外は空リストとして扱う。
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, bytes) else data
    if not text.strip():
        return []

    try:
        loaded = json.loads(text)
    except json.JSONDecodeError as e:
        logger.debug("convoy 出力を解析できません: %s", e)
        return []

    try:
        if isinstance(loaded, list):
            raws = _CONVOY_LIST.validate_python(loaded)
        elif isinstance(loaded, dict):
            raws = [RawConvoy.model_validate(loaded)]
        else:
            return []
    except ValidationError as e:
        logger.debug("convoy 出力の形式が不正です: %s", e)
        return []

    return [build_convoy(raw) for raw in raws]
