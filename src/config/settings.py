"""設定管理モジュール。"""

import logging
import os
from pathlib import Path

from pydantic import ConfigDict, Field, field_validator, model_validator
from pydantic_settings import BaseSettings

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


def resolve_project_env_file(project_root: str | os.PathLike[str] | None) -> str | None:
    """指定した project_root から .env ファイルを解決する。

    Args:
        project_root: プロジェクトルートパス

    Returns:
        .env ファイルのパス（存在する場合）、または None
    """
    if not project_root:
        return None

    env_file = Path(project_root) / ".gastown-viewer" / ".env"
    if env_file.exists():
        return str(env_file)
    return None


def get_project_env_file() -> str | None:
    """プロジェクト別 .env ファイルのパスを取得。

    GTV_PROJECT_ROOT 環境変数が設定されている場合、
    {project_root}/.gastown-viewer/.env を返す。
    """
    return resolve_project_env_file(os.getenv("GTV_PROJECT_ROOT"))


def default_town_root() -> str:
    """Gas Town のデフォルトルート（~/gt）を返す。"""
    return str(Path.home() / "gt")


class Settings(BaseSettings):
    """Viewer の設定。

    環境変数で上書き可能。プレフィックスは GTV_。
    例: GTV_TOWN_ROOT=/srv/gt

    優先順位:
    1. 環境変数（最優先）
    2. プロジェクト別 .env ファイル（{project}/.gastown-viewer/.env）
    3. デフォルト値
    """

    model_config = ConfigDict(
        env_prefix="GTV_",
        env_file=get_project_env_file(),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Gas Town 設定
    town_root: str = Field(default_factory=default_town_root)
    """Town のルートディレクトリ（デフォルト: ~/gt）"""

    # Beads 設定
    beads_dir: str | None = None
    """bd を実行する作業ディレクトリ（None の場合はカレントディレクトリ）"""

    # 外部コマンド
    bd_command: str = "bd"
    """Beads CLI のコマンド名"""

    gt_command: str = "gt"
    """Gas Town CLI のコマンド名"""

    tmux_command: str = "tmux"
    """tmux のコマンド名"""

    command_timeout_seconds: float = 30.0
    """外部コマンド 1 回あたりのタイムアウト（秒）。"""

    # tmux セッション名
    session_prefix: str = "gt"
    """gt が作成する tmux セッション名のプレフィックス（gt-mayor など）"""

    # エージェント状態推定
    stuck_threshold_seconds: int = 600
    """セッションあり かつ 最終更新からこの秒数を超えたら stuck と判定する。"""

    idle_threshold_seconds: int = 120
    """セッションあり かつ hook 未接続でこの秒数を超えたら idle と判定する。"""

    log_level: str = "INFO"
    """ログレベル"""

    @field_validator("town_root")
    @classmethod
    def expand_town_root(cls, value: str) -> str:
        """~ を展開する。"""
        candidate = value.strip()
        if not candidate:
            raise ValueError("GTV_TOWN_ROOT に空文字は指定できません")
        return str(Path(candidate).expanduser())

    @field_validator("beads_dir")
    @classmethod
    def expand_beads_dir(cls, value: str | None) -> str | None:
        if value is None or not value.strip():
            return None
        return str(Path(value.strip()).expanduser())

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"不正なログレベルです: {value}（有効: {sorted(_LOG_LEVELS)}）")
        return level

    @field_validator("command_timeout_seconds", "stuck_threshold_seconds", "idle_threshold_seconds")
    @classmethod
    def validate_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("0 より大きい値を指定してください")
        return value

    @model_validator(mode="after")
    def validate_thresholds(self) -> "Settings":
        """idle 閾値は stuck 閾値より短くなければならない。"""
        if self.idle_threshold_seconds >= self.stuck_threshold_seconds:
            raise ValueError(
                "idle_threshold_seconds は stuck_threshold_seconds より小さくしてください"
            )
        return self

    def get_log_level(self) -> int:
        """logging モジュールのレベル値を返す。"""
        return logging.getLevelName(self.log_level)


def load_settings_for_project(project_root: str | os.PathLike[str] | None) -> Settings:
    """指定 project_root の .env を優先して Settings を生成する。

    優先順位:
    1. プロセス環境変数 GTV_*
    2. {project_root}/.gastown-viewer/.env
    3. デフォルト値
    """
    env_file = resolve_project_env_file(project_root)
    if env_file:
        return Settings(_env_file=env_file)
    # model_config 側の env_file を使わず、環境変数 + デフォルトのみで構築
    return Settings(_env_file=None)
