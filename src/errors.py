"""状態集約エンジンの例外定義。

外部ツール（bd / gt / tmux）の失敗はすべてここで定義する型に分類される。
呼び出し側（MCP ツール層）は型で分岐してレスポンスに変換する。
"""


class ViewerError(Exception):
    """全ての例外の基底クラス。"""

    error_type = "viewer_error"


class ToolNotFoundError(ViewerError):
    """外部 CLI が PATH 上に存在しない。"""

    error_type = "tool_not_found"

    def __init__(self, command: str) -> None:
        self.command = command
        super().__init__(f"{command} CLI が PATH 上に見つかりません")


class NotInitializedError(ViewerError):
    """対象ディレクトリが初期化されていない（beads 未初期化 / town 不在）。"""

    error_type = "not_initialized"

    def __init__(self, message: str = "") -> None:
        self.detail = message.strip()
        if self.detail:
            super().__init__(f"初期化されていません: {self.detail}")
        else:
            super().__init__("初期化されていません。'bd init' を実行してください")


class NotFoundError(ViewerError):
    """要求されたエンティティが存在しない。"""

    error_type = "not_found"

    def __init__(self, kind: str, entity_id: str = "") -> None:
        self.kind = kind
        self.entity_id = entity_id
        if entity_id:
            super().__init__(f"{kind} が見つかりません: {entity_id}")
        else:
            super().__init__(f"{kind} が見つかりません")


class ParseError(ViewerError):
    """外部ツールの出力を解析できない。

    元のデコード例外は ``__cause__`` と ``error`` の両方で参照できる。
    """

    error_type = "parse_error"

    def __init__(self, command: str, error: Exception) -> None:
        self.command = command
        self.error = error
        super().__init__(f"{command} の出力を解析できません: {error}")


class ExecutionError(ViewerError):
    """外部コマンドが異常終了した（分類不能な失敗）。"""

    error_type = "execution_error"

    def __init__(
        self,
        command: str,
        stderr: str = "",
        returncode: int | None = None,
        os_error: OSError | None = None,
    ) -> None:
        self.command = command
        self.stderr = stderr
        self.returncode = returncode
        self.os_error = os_error
        if stderr.strip():
            super().__init__(f"{command} が失敗しました: {stderr.strip()}")
        elif os_error is not None:
            super().__init__(f"{command} が失敗しました: {os_error}")
        else:
            super().__init__(f"{command} が失敗しました (exit={returncode})")


class CommandTimeoutError(ExecutionError):
    """外部コマンドがタイムアウトした。子プロセスは終了済み。"""

    error_type = "timeout"

    def __init__(self, command: str, timeout: float) -> None:
        self.timeout = timeout
        super().__init__(command, stderr=f"{timeout} 秒でタイムアウトしました")
