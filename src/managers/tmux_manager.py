"""tmuxセッション参照モジュール。

エージェントの生存判定に使う tmux セッション名の一覧だけを取得する。
セッションの作成・操作は行わない。
"""

import logging
from typing import TYPE_CHECKING

from src.errors import ViewerError
from src.managers.command_executor import CommandExecutor, CommandRunner

if TYPE_CHECKING:
    from src.config.settings import Settings

logger = logging.getLogger(__name__)

SESSION_NAME_FORMAT = "#{session_name}"


class TmuxManager:
    """tmuxセッションの一覧を取得するクラス。"""

    def __init__(
        self,
        settings: "Settings",
        executor: CommandRunner | None = None,
    ) -> None:
        """TmuxManagerを初期化する。

        Args:
            settings: アプリケーション設定
            executor: コマンド実行器（テストではフェイクを渡す）
        """
        self.settings = settings
        self.command = settings.tmux_command
        self.executor = executor or CommandExecutor(timeout=settings.command_timeout_seconds)

    async def list_sessions(self) -> set[str]:
        """稼働中のセッション名を取得する。

        tmux が無い、サーバーが起動していない等の失敗は空集合として扱う。

        Returns:
            セッション名の集合
        """
        try:
            output = await self.executor.execute(
                self.command, ["list-sessions", "-F", SESSION_NAME_FORMAT]
            )
        except ViewerError as e:
            logger.debug("tmux セッション一覧を取得できません: %s", e)
            return set()

        sessions: set[str] = set()
        for line in output.decode("utf-8", errors="replace").splitlines():
            name = line.strip()
            if name:
                sessions.add(name)
        return sessions

    async def session_exists(self, session_name: str) -> bool:
        """セッションが存在するか確認する。"""
        return session_name in await self.list_sessions()
