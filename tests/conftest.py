"""pytest設定とフィクスチャ。"""

import json
import tempfile
from collections.abc import Mapping, Sequence
from pathlib import Path

import pytest

from src.config.settings import Settings
from src.errors import ExecutionError


class FakeExecutor:
    """CommandRunner のフェイク。

    "コマンド 引数..." を空白で連結した文字列をキーに、応答（stdout）または例外を返す。
    登録されていないコマンドは ExecutionError になる。
    """

    def __init__(
        self,
        responses: Mapping[str, bytes | str] | None = None,
        errors: Mapping[str, Exception] | None = None,
    ) -> None:
        self.responses = dict(responses or {})
        self.errors = dict(errors or {})
        self.calls: list[dict] = []

    async def execute(
        self,
        command: str,
        args: Sequence[str],
        work_dir: str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        key = " ".join([command, *args])
        self.calls.append(
            {
                "key": key,
                "work_dir": work_dir,
                "env": dict(env) if env else None,
            }
        )
        if key in self.errors:
            raise self.errors[key]
        if key in self.responses:
            value = self.responses[key]
            return value.encode("utf-8") if isinstance(value, str) else value
        raise ExecutionError(key, stderr="unexpected command", returncode=1)

    def keys(self) -> list[str]:
        """呼び出されたコマンドキーの一覧。"""
        return [call["key"] for call in self.calls]


def write_json(path: Path, data) -> None:
    """ディレクトリを作成して JSON を書き込む。"""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(data), encoding="utf-8")


@pytest.fixture
def temp_dir():
    """一時ディレクトリを作成する。"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir):
    """テスト用の設定を作成する（town_root は一時ディレクトリ配下）。"""
    return Settings(
        _env_file=None,
        town_root=str(temp_dir / "gt"),
        command_timeout_seconds=5.0,
    )


@pytest.fixture
def fake_executor():
    """空のフェイク実行器。"""
    return FakeExecutor()


@pytest.fixture
def town_root(temp_dir):
    """テスト用の Town ディレクトリを作成する。

    gt/
        mayor/town.json
        myrig/   witness/ refinery/ polecats/{alice,bob}/ crew/carol/
        emptyrig/.beads/        … .beads だけの Rig
        docs/                   … マーカーが無いので Rig ではない
        .hidden/polecats/       … ドット始まりは除外
        .beads/                 … 除外
    """
    root = temp_dir / "gt"
    write_json(root / "mayor" / "town.json", {"name": "test-town", "version": "1"})

    rig = root / "myrig"
    for sub in ("witness", "refinery", "polecats/alice", "polecats/bob", "crew/carol"):
        (rig / sub).mkdir(parents=True)

    (root / "emptyrig" / ".beads").mkdir(parents=True)
    (root / "docs").mkdir()
    (root / ".hidden" / "polecats").mkdir(parents=True)
    (root / ".beads").mkdir()
    return root


def get_tool_fn(mcp, tool_name: str):
    """MCP ツール関数をツール名から取得するヘルパー。"""
    for tool in mcp._tool_manager._tools.values():
        if tool.name == tool_name:
            return tool.fn
    return None
