"""外部コマンド実行モジュール。

bd / gt / tmux を子プロセスとして実行し、stdout を返す。
失敗は stderr の文言と OS の「実行ファイルなし」で分類する（終了コードだけでは
判別できないため）。分類ルールは classify_failure に集約する。
"""

import asyncio
import logging
import os
from collections.abc import Mapping, Sequence
from typing import Protocol

from src.errors import (
    CommandTimeoutError,
    ExecutionError,
    NotFoundError,
    NotInitializedError,
    ToolNotFoundError,
    ViewerError,
)

logger = logging.getLogger(__name__)

_NOT_INITIALIZED_MARKERS = ("not initialized", "no .beads")
_NOT_FOUND_MARKERS = ("not found", "does not exist")

# ID 指定で 1 件を取得するサブコマンド
_LOOKUP_SUBCOMMANDS = ("show",)

# NotFoundError に載せるエンティティ種別（コマンド名 → 種別）
_ENTITY_KINDS = {"bd": "issue"}
DEFAULT_ENTITY_KIND = "entity"


class CommandRunner(Protocol):
    """外部コマンド実行のインターフェース。テストではフェイクに差し替える。"""

    async def execute(
        self,
        command: str,
        args: Sequence[str],
        work_dir: str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes: ...


def extract_target_id(args: Sequence[str]) -> str:
    """引数列から参照対象の ID を取り出す（show <id> 形式）。"""
    for i, arg in enumerate(args):
        if arg in _LOOKUP_SUBCOMMANDS and i + 1 < len(args):
            return args[i + 1]
    return ""


def format_command(command: str, args: Sequence[str]) -> str:
    """ログ・エラー表示用のコマンド文字列。"""
    return " ".join([command, *args])


def classify_failure(
    command: str,
    args: Sequence[str],
    stderr: str,
    returncode: int | None = None,
) -> ViewerError:
    """異常終了したコマンドの stderr から失敗の種類を判定する。

    Args:
        command: 実行したコマンド名
        args: 引数
        stderr: 標準エラー出力
        returncode: 終了コード

    Returns:
        分類済みの例外インスタンス（送出は呼び出し側で行う）
    """
    lowered = stderr.lower()

    if any(marker in lowered for marker in _NOT_INITIALIZED_MARKERS):
        return NotInitializedError(stderr)

    if any(marker in lowered for marker in _NOT_FOUND_MARKERS):
        kind = _ENTITY_KINDS.get(os.path.basename(command), DEFAULT_ENTITY_KIND)
        return NotFoundError(kind, extract_target_id(args))

    return ExecutionError(format_command(command, args), stderr=stderr, returncode=returncode)


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    """子プロセスを強制終了して回収する。"""
    if proc.returncode is not None:
        return
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


class CommandExecutor:
    """asyncio の子プロセスとして外部コマンドを実行する。

    呼び出し元タスクのキャンセル、またはタイムアウト時は子プロセスを kill して
    回収してから戻る。リトライはしない。
    """

    def __init__(self, timeout: float | None = 30.0) -> None:
        """CommandExecutorを初期化する。

        Args:
            timeout: デフォルトのタイムアウト秒数（None で無制限）
        """
        self.timeout = timeout

    async def execute(
        self,
        command: str,
        args: Sequence[str],
        work_dir: str | None = None,
        env: Mapping[str, str] | None = None,
        timeout: float | None = None,
    ) -> bytes:
        """コマンドを実行して stdout を返す。

        Args:
            command: 実行ファイル名
            args: 引数
            work_dir: 作業ディレクトリ（None でカレント）
            env: 追加する環境変数（プロセス環境に上書きマージ）
            timeout: このコマンドのタイムアウト秒数（None でデフォルト）

        Returns:
            標準出力のバイト列

        Raises:
            ToolNotFoundError: 実行ファイルが見つからない
            NotInitializedError: 対象が未初期化
            NotFoundError: 対象が存在しない
            ExecutionError: その他の異常終了
        """
        label = format_command(command, args)
        effective_timeout = self.timeout if timeout is None else timeout

        if work_dir and not os.path.isdir(work_dir):
            raise ExecutionError(label, stderr=f"作業ディレクトリが存在しません: {work_dir}")

        merged_env = None
        if env:
            merged_env = {**os.environ, **env}

        logger.debug("コマンド実行: %s (cwd=%s)", label, work_dir)
        try:
            proc = await asyncio.create_subprocess_exec(
                command,
                *args,
                cwd=work_dir or None,
                env=merged_env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as e:
            raise ToolNotFoundError(command) from e
        except OSError as e:
            raise ExecutionError(label, os_error=e) from e

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=effective_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"コマンドがタイムアウトしました: {label}")
            await _terminate(proc)
            raise CommandTimeoutError(label, effective_timeout) from None
        except asyncio.CancelledError:
            await _terminate(proc)
            raise

        if proc.returncode != 0:
            stderr_text = stderr.decode("utf-8", errors="replace")
            logger.debug("コマンド失敗: %s (exit=%s): %s", label, proc.returncode, stderr_text)
            raise classify_failure(command, args, stderr_text, proc.returncode)

        return stdout
