"""BeadsManager のテスト。"""

import json

import pytest

from src.errors import (
    ExecutionError,
    NotFoundError,
    NotInitializedError,
    ParseError,
    ToolNotFoundError,
)
from src.managers.beads_manager import BeadsManager
from src.models.issue import IssueFilter, IssueStatus
from tests.conftest import FakeExecutor

ISSUES = [
    {"id": "bd-1", "title": "Design", "status": "closed", "priority": 1},
    {"id": "bd-2", "title": "Build", "status": "in_progress", "priority": 2},
    {"id": "bd-3", "title": "Ship", "status": "blocked", "priority": 2},
    {"id": "bd-4", "title": "Docs", "status": "open", "priority": 3},
    {"id": "bd-5", "title": "Polish", "status": "weird", "priority": 9},
]

BLOCKED = [
    {"id": "bd-3", "blocked_by_count": 2, "blocked_by": ["bd-2", "bd-99"]},
    {"id": "bd-4", "blocked_by_count": 1, "blocked_by": ["bd-3"]},
]


def _manager(responses=None, errors=None, work_dir="/repo") -> tuple[BeadsManager, FakeExecutor]:
    executor = FakeExecutor(responses=responses, errors=errors)
    return BeadsManager(work_dir=work_dir, executor=executor), executor


class TestListIssues:
    """list_issues のテスト。"""

    @pytest.mark.asyncio
    async def test_runs_in_work_dir(self):
        """作業ディレクトリで bd list --json を実行することをテスト。"""
        manager, executor = _manager({"bd list --json": json.dumps(ISSUES)})

        issues = await manager.list_issues()

        assert [i.id for i in issues] == ["bd-1", "bd-2", "bd-3", "bd-4", "bd-5"]
        assert executor.calls[0]["work_dir"] == "/repo"
        assert issues[4].status == IssueStatus.PENDING

    @pytest.mark.asyncio
    async def test_status_filter_is_passed_to_bd(self):
        manager, executor = _manager({"bd list --json --status open": json.dumps(ISSUES[3:4])})

        issues = await manager.list_issues(IssueFilter(status="open"))

        assert [i.id for i in issues] == ["bd-4"]
        assert executor.keys() == ["bd list --json --status open"]

    @pytest.mark.asyncio
    async def test_paging(self):
        """limit / offset を取得後に適用することをテスト。"""
        manager, _ = _manager({"bd list --json": json.dumps(ISSUES)})

        issues = await manager.list_issues(IssueFilter(limit=2, offset=1))

        assert [i.id for i in issues] == ["bd-2", "bd-3"]

    @pytest.mark.asyncio
    async def test_empty_output(self):
        """出力が空でも空リストを返すことをテスト。"""
        manager, _ = _manager({"bd list --json": ""})
        assert await manager.list_issues() == []

    @pytest.mark.asyncio
    async def test_malformed_output(self):
        manager, _ = _manager({"bd list --json": "not json"})
        with pytest.raises(ParseError):
            await manager.list_issues()

    @pytest.mark.asyncio
    async def test_not_initialized_propagates(self):
        manager, _ = _manager(errors={"bd list --json": NotInitializedError("no .beads")})
        with pytest.raises(NotInitializedError):
            await manager.list_issues()


class TestGetIssue:
    """get_issue のテスト。"""

    @pytest.mark.asyncio
    async def test_returns_issue(self):
        payload = [
            {
                "id": "bd-3",
                "title": "Ship",
                "status": "blocked",
                "description": "Done when:\n- released",
                "dependencies": [{"id": "bd-2", "dependency_type": "blocks"}],
            }
        ]
        manager, _ = _manager({"bd show bd-3 --json": json.dumps(payload)})

        issue = await manager.get_issue("bd-3")

        assert issue.id == "bd-3"
        assert issue.done_when == ["released"]
        assert [s.id for s in issue.blocked_by] == ["bd-2"]

    @pytest.mark.asyncio
    async def test_not_found_from_bd(self):
        """bd の not found を ID 付きの NotFoundError にすることをテスト。"""
        manager, _ = _manager(errors={"bd show bd-404 --json": NotFoundError("issue")})

        with pytest.raises(NotFoundError) as exc_info:
            await manager.get_issue("bd-404")

        assert exc_info.value.entity_id == "bd-404"

    @pytest.mark.asyncio
    async def test_empty_result_is_not_found(self):
        manager, _ = _manager({"bd show bd-404 --json": "[]"})
        with pytest.raises(NotFoundError):
            await manager.get_issue("bd-404")


class TestBoard:
    """board のテスト。"""

    @pytest.mark.asyncio
    async def test_columns_and_total(self):
        """4 列固定で、total が各列の合計と一致することをテスト。"""
        manager, _ = _manager({"bd list --json": json.dumps(ISSUES)})

        board = await manager.board()

        assert [c.status for c in board.columns] == [
            IssueStatus.PENDING,
            IssueStatus.IN_PROGRESS,
            IssueStatus.DONE,
            IssueStatus.BLOCKED,
        ]
        assert [c.label for c in board.columns] == ["Pending", "In Progress", "Done", "Blocked"]
        assert board.total == len(ISSUES)
        assert sum(c.count for c in board.columns) == board.total
        assert board.get_column(IssueStatus.PENDING).count == 2

    @pytest.mark.asyncio
    async def test_empty_board_keeps_columns(self):
        manager, _ = _manager({"bd list --json": "[]"})
        board = await manager.board()
        assert len(board.columns) == 4
        assert board.total == 0


class TestGraph:
    """graph のテスト。"""

    @pytest.mark.asyncio
    async def test_edges_point_from_blocker(self):
        """エッジはブロックする側から張られ、端点の無いエッジは捨てることをテスト。"""
        manager, _ = _manager(
            {
                "bd list --json": json.dumps(ISSUES),
                "bd blocked --json": json.dumps(BLOCKED),
            }
        )

        graph = await manager.graph()

        assert len(graph.nodes) == len(ISSUES)
        pairs = [(e.from_id, e.to_id) for e in graph.edges]
        assert pairs == [("bd-2", "bd-3"), ("bd-3", "bd-4")]
        node_ids = {n.id for n in graph.nodes}
        assert all(e.from_id in node_ids and e.to_id in node_ids for e in graph.edges)
        assert graph.stats.node_count == 5
        assert graph.stats.edge_count == 2
        assert graph.stats.max_depth == 2

    @pytest.mark.asyncio
    async def test_blocked_failure_degrades_to_nodes_only(self):
        manager, _ = _manager(
            {"bd list --json": json.dumps(ISSUES)},
            errors={"bd blocked --json": ExecutionError("bd blocked --json", stderr="x")},
        )

        graph = await manager.graph()

        assert len(graph.nodes) == len(ISSUES)
        assert graph.edges == []

    @pytest.mark.asyncio
    async def test_blocked_garbage_degrades_to_nodes_only(self):
        manager, _ = _manager(
            {"bd list --json": json.dumps(ISSUES), "bd blocked --json": "{{{"}
        )

        graph = await manager.graph()

        assert graph.edges == []
        assert graph.stats.max_depth == 0

    @pytest.mark.asyncio
    async def test_list_failure_propagates(self):
        manager, _ = _manager(errors={"bd list --json": ToolNotFoundError("bd")})
        with pytest.raises(ToolNotFoundError):
            await manager.graph()


class TestHealth:
    """is_initialized / version / health のテスト。"""

    @pytest.mark.asyncio
    async def test_initialized(self):
        manager, _ = _manager({"bd status": "ok"})
        assert await manager.is_initialized() is True

    @pytest.mark.asyncio
    async def test_not_initialized(self):
        manager, _ = _manager(errors={"bd status": NotInitializedError("not initialized")})
        assert await manager.is_initialized() is False

    @pytest.mark.asyncio
    async def test_other_errors_propagate(self):
        manager, _ = _manager(errors={"bd status": ToolNotFoundError("bd")})
        with pytest.raises(ToolNotFoundError):
            await manager.is_initialized()

    @pytest.mark.asyncio
    async def test_health_ok(self):
        manager, _ = _manager({"bd --version": "bd version 0.29.0\n", "bd status": ""})

        health = await manager.health()

        assert health == {
            "initialized": True,
            "bd_version": "0.29.0",
            "error": None,
            "error_type": None,
        }

    @pytest.mark.asyncio
    async def test_health_without_bd(self):
        """bd が無い場合も例外にせず error を返すことをテスト。"""
        manager, _ = _manager(errors={"bd --version": ToolNotFoundError("bd")})

        health = await manager.health()

        assert health["initialized"] is False
        assert health["error_type"] == "tool_not_found"
