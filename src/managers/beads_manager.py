"""Beads（bd CLI）アダプター。

全てのクエリは bd を都度実行して JSON を解析する。キャッシュは持たない。
"""

import logging
from typing import Protocol

from src.errors import NotFoundError, NotInitializedError, ParseError, ViewerError
from src.managers.beads_parser import (
    parse_blocked_list,
    parse_issue_list,
    parse_version,
)
from src.managers.command_executor import CommandExecutor, CommandRunner
from src.models.board import Board
from src.models.graph import EdgeType, Graph, GraphEdge, GraphNode
from src.models.issue import Issue, IssueFilter

logger = logging.getLogger(__name__)


class BeadsAdapter(Protocol):
    """Beads へのクエリの集合。"""

    async def list_issues(self, issue_filter: IssueFilter | None = None) -> list[Issue]: ...

    async def get_issue(self, issue_id: str) -> Issue: ...

    async def board(self) -> Board: ...

    async def graph(self) -> Graph: ...

    async def is_initialized(self) -> bool: ...

    async def version(self) -> str: ...

    async def health(self) -> dict: ...


class BeadsManager:
    """bd CLI を実行して Beads の状態を読み取る。"""

    def __init__(
        self,
        work_dir: str | None = None,
        executor: CommandRunner | None = None,
        command: str = "bd",
    ) -> None:
        """BeadsManagerを初期化する。

        Args:
            work_dir: bd を実行するディレクトリ（None でカレント）
            executor: コマンド実行器（テストではフェイクを渡す）
            command: bd のコマンド名
        """
        self.work_dir = work_dir
        self.executor = executor or CommandExecutor()
        self.command = command

    async def _run(self, *args: str) -> bytes:
        return await self.executor.execute(self.command, list(args), work_dir=self.work_dir)

    async def list_issues(self, issue_filter: IssueFilter | None = None) -> list[Issue]:
        """Issue 一覧を取得する。

        Args:
            issue_filter: 絞り込み条件（status は bd に渡す）

        Returns:
            正規化済みの Issue 一覧（出力が空なら空リスト）
        """
        issue_filter = issue_filter or IssueFilter()
        args = ["list", "--json"]
        if issue_filter.status:
            args.extend(["--status", issue_filter.status])

        output = await self._run(*args)
        records = parse_issue_list(output, command="list")
        issues = [record.to_issue() for record in records]
        return issue_filter.paginate(issues)

    async def get_issue(self, issue_id: str) -> Issue:
        """Issue を 1 件取得する。

        Raises:
            NotFoundError: Issue が存在しない
        """
        try:
            output = await self._run("show", issue_id, "--json")
        except NotFoundError as e:
            raise NotFoundError("issue", issue_id) from e

        records = parse_issue_list(output, command="show")
        if not records:
            raise NotFoundError("issue", issue_id)
        return records[0].to_issue()

    async def board(self) -> Board:
        """ステータス別の 4 列ボードを組み立てる。"""
        issues = await self.list_issues()
        board = Board()
        for issue in issues:
            board.add_issue(issue.to_summary())
        return board

    async def graph(self) -> Graph:
        """依存グラフを組み立てる。

        ノードは全 Issue、エッジは bd blocked の結果から作る。bd blocked が失敗・
        解析不能の場合はエッジなしのグラフを返す。
        """
        issues = await self.list_issues()

        graph = Graph()
        for issue in issues:
            graph.add_node(
                GraphNode(
                    id=issue.id,
                    title=issue.title,
                    status=issue.status,
                    priority=issue.priority,
                )
            )

        try:
            output = await self._run("blocked", "--json")
            blocked = parse_blocked_list(output)
        except ParseError as e:
            logger.warning(f"bd blocked の出力を解析できません。エッジなしで返します: {e}")
            return graph
        except ViewerError as e:
            # ブロック中の Issue が無い場合にも失敗するため、エッジなしで扱う
            logger.debug("bd blocked が失敗しました: %s", e)
            return graph

        for item in blocked:
            for blocker_id in item.blocked_by:
                added = graph.add_edge(
                    GraphEdge(from_id=blocker_id, to_id=item.id, type=EdgeType.BLOCKS)
                )
                if not added:
                    logger.debug("端点が無いエッジを破棄: %s -> %s", blocker_id, item.id)

        graph.compute_max_depth()
        return graph

    async def is_initialized(self) -> bool:
        """bd status で初期化済みか確認する。

        未初期化は False。それ以外の失敗は例外として伝播する。
        """
        try:
            await self._run("status")
        except NotInitializedError:
            return False
        return True

    async def version(self) -> str:
        """bd のバージョン文字列を返す。"""
        output = await self._run("--version")
        return parse_version(output)

    async def health(self) -> dict:
        """初期化状態と bd バージョンをまとめて返す。

        bd 自体が無い場合も例外にせず、error に理由を入れる。
        """
        result: dict = {
            "initialized": False,
            "bd_version": None,
            "error": None,
            "error_type": None,
        }
        try:
            result["bd_version"] = await self.version()
            result["initialized"] = await self.is_initialized()
        except ViewerError as e:
            result["error"] = str(e)
            result["error_type"] = e.error_type
        return result
