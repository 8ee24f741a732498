"""Gas Town のディレクトリ構成を走査するモジュール。

gt はトポロジーを API として公開しないため、ディレクトリの有無をスキーマとして
扱う。ここの判定規則は gt のディスク上のレイアウトと一致させる必要がある。

    {town_root}/
        mayor/                 … これがあれば Town が存在する
            town.json          … Town 設定（任意）
            daemon.pid         … Deacon（デーモン）稼働の目印
        {rig}/                 … polecats/ witness/ .beads/ のいずれかがあれば Rig
            witness/
            refinery/
            polecats/{name}/
            crew/{name}/
"""

import json
import logging
import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from src.models.town import AgentRole, TownConfig

logger = logging.getLogger(__name__)

MAYOR_DIR = "mayor"
WITNESS_DIR = "witness"
REFINERY_DIR = "refinery"
POLECATS_DIR = "polecats"
CREW_DIR = "crew"
BEADS_DIR = ".beads"

TOWN_CONFIG_FILE = "town.json"
DAEMON_PID_FILE = "daemon.pid"

# Rig 候補から除外するディレクトリ（ドットで始まるものも全て除外）
_EXCLUDED_DIRS = {MAYOR_DIR, BEADS_DIR, ".git"}

# いずれかが存在すれば Rig とみなす
_RIG_MARKERS = (POLECATS_DIR, WITNESS_DIR, BEADS_DIR)


@dataclass
class RigLayout:
    """ディレクトリから読み取った Rig の構成（状態推定前）。"""

    name: str
    path: str
    has_witness: bool = False
    has_refinery: bool = False
    polecats: list[str] = field(default_factory=list)
    crew: list[str] = field(default_factory=list)


def dir_exists(path: str | Path) -> bool:
    """ディレクトリが存在するか（シンボリックリンク先も含む）。"""
    return os.path.isdir(path)


def _list_subdirs(path: Path) -> list[str]:
    """直下のサブディレクトリ名（ドット始まりを除く）を名前順で返す。"""
    names: list[str] = []
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                if entry.name.startswith("."):
                    continue
                if entry.is_dir(follow_symlinks=False):
                    names.append(entry.name)
    except OSError as e:
        logger.debug("ディレクトリを読み取れません: %s: %s", path, e)
        return []
    return sorted(names)


class TownScanner:
    """Town ルート配下のディレクトリ構成を読み取る。"""

    def __init__(self, town_root: str) -> None:
        """TownScannerを初期化する。

        Args:
            town_root: Town のルートディレクトリ
        """
        self.town_root = Path(town_root)

    def town_exists(self) -> bool:
        """mayor/ があれば Town が存在する。"""
        return dir_exists(self.town_root / MAYOR_DIR)

    def root_exists(self) -> bool:
        return dir_exists(self.town_root)

    def read_town_config(self) -> TownConfig | None:
        """mayor/town.json を読み込む。無い・壊れている場合は None。"""
        config_path = self.town_root / MAYOR_DIR / TOWN_CONFIG_FILE
        try:
            data = json.loads(config_path.read_text(encoding="utf-8"))
            return TownConfig.model_validate(data)
        except FileNotFoundError:
            return None
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"town.json を読み込めません: {e}")
            return None

    def daemon_pid_exists(self) -> bool:
        """mayor/daemon.pid があるか。"""
        return (self.town_root / MAYOR_DIR / DAEMON_PID_FILE).exists()

    def scan_rigs(self) -> list[RigLayout]:
        """Town ルート直下から Rig を探す。

        Raises:
            OSError: Town ルートを読み取れない
        """
        rigs: list[RigLayout] = []

        with os.scandir(self.town_root) as entries:
            candidates = sorted(
                entry.name for entry in entries if entry.is_dir(follow_symlinks=False)
            )

        for name in candidates:
            if name in _EXCLUDED_DIRS or name.startswith("."):
                continue

            rig_path = self.town_root / name
            if not any(dir_exists(rig_path / marker) for marker in _RIG_MARKERS):
                continue

            rigs.append(
                RigLayout(
                    name=name,
                    path=str(rig_path),
                    has_witness=dir_exists(rig_path / WITNESS_DIR),
                    has_refinery=dir_exists(rig_path / REFINERY_DIR),
                    polecats=_list_subdirs(rig_path / POLECATS_DIR),
                    crew=_list_subdirs(rig_path / CREW_DIR),
                )
            )

        return rigs

    def agent_work_dir(self, role: AgentRole, rig: str, name: str) -> str:
        """エージェントの作業ディレクトリを返す。Deacon は mayor/ で動く。"""
        if role in (AgentRole.MAYOR, AgentRole.DEACON):
            return str(self.town_root / MAYOR_DIR)
        if role == AgentRole.WITNESS:
            return str(self.town_root / rig / WITNESS_DIR)
        if role == AgentRole.REFINERY:
            return str(self.town_root / rig / REFINERY_DIR)
        if role == AgentRole.POLECAT:
            return str(self.town_root / rig / POLECATS_DIR / name)
        if role == AgentRole.CREW:
            return str(self.town_root / rig / CREW_DIR / name)
        return ""


def last_modified(path: str | Path) -> datetime | None:
    """パスの最終更新時刻（UTC）。取得できなければ None。"""
    try:
        return datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)
    except OSError:
        return None
