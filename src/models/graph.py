"""依存グラフモデル。"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PrivateAttr

from .issue import IssuePriority, IssueStatus


class EdgeType(str, Enum):
    """依存関係の種類。"""

    BLOCKS = "blocks"
    PARENT = "parent"


class GraphNode(BaseModel):
    """グラフのノード（Issue 1 件）。"""

    id: str = Field(..., description="Issue ID")
    title: str = Field(default="", description="タイトル")
    status: IssueStatus = Field(default=IssueStatus.PENDING, description="ステータス")
    priority: IssuePriority = Field(default=IssuePriority.MEDIUM, description="優先度")


class GraphEdge(BaseModel):
    """有向エッジ（from が to をブロックする）。"""

    from_id: str = Field(..., alias="from", description="始点 Issue ID")
    to_id: str = Field(..., alias="to", description="終点 Issue ID")
    type: EdgeType = Field(default=EdgeType.BLOCKS, description="エッジ種別")

    model_config = ConfigDict(populate_by_name=True)


class GraphStats(BaseModel):
    """グラフの統計情報。"""

    node_count: int = 0
    edge_count: int = 0
    max_depth: int = 0


class Graph(BaseModel):
    """依存グラフ。

    全てのエッジの両端はノード集合に含まれる。生成時と add_edge はこれを満たさない
    エッジを追加しない。
    """

    nodes: list[GraphNode] = Field(default_factory=list)
    edges: list[GraphEdge] = Field(default_factory=list)
    stats: GraphStats = Field(default_factory=GraphStats)

    _node_ids: set[str] = PrivateAttr(default_factory=set)

    def model_post_init(self, __context: Any) -> None:
        self._node_ids = {node.id for node in self.nodes}
        self.edges = [
            edge for edge in self.edges if self.has_node(edge.from_id) and self.has_node(edge.to_id)
        ]
        self.stats.node_count = len(self.nodes)
        self.stats.edge_count = len(self.edges)

    def has_node(self, node_id: str) -> bool:
        """ノードが存在するか。"""
        return node_id in self._node_ids

    def add_node(self, node: GraphNode) -> None:
        """ノードを追加する。"""
        self.nodes.append(node)
        self._node_ids.add(node.id)
        self.stats.node_count += 1

    def add_edge(self, edge: GraphEdge) -> bool:
        """エッジを追加する。

        Returns:
            追加した場合 True、端点が存在せず破棄した場合 False
        """
        if not (self.has_node(edge.from_id) and self.has_node(edge.to_id)):
            return False
        self.edges.append(edge)
        self.stats.edge_count += 1
        return True

    def compute_max_depth(self) -> int:
        """最長のブロック連鎖（エッジ数）を計算して stats に反映する。

        循環がある場合、循環を閉じるエッジは無視する。
        """
        adjacency: dict[str, list[str]] = {}
        for edge in self.edges:
            adjacency.setdefault(edge.from_id, []).append(edge.to_id)

        depth: dict[str, int] = {}
        visiting: set[str] = set()

        def _walk(node_id: str) -> int:
            if node_id in depth:
                return depth[node_id]
            visiting.add(node_id)
            best = 0
            for child in adjacency.get(node_id, []):
                if child in visiting:
                    continue
                best = max(best, _walk(child) + 1)
            visiting.discard(node_id)
            depth[node_id] = best
            return best

        max_depth = 0
        for node in self.nodes:
            max_depth = max(max_depth, _walk(node.id))
        self.stats.max_depth = max_depth
        return max_depth

    def to_dot(self) -> str:
        """Graphviz DOT 形式に変換する。"""

        def _escape(value: str) -> str:
            return value.replace("\\", "\\\\").replace('"', '\\"')

        def _quote(value: str) -> str:
            return f'"{_escape(value)}"'

        lines = ["digraph beads {", "  rankdir=LR;"]
        for node in self.nodes:
            if node.title:
                label = f'"{_escape(node.id)}\\n{_escape(node.title)}"'
            else:
                label = _quote(node.id)
            lines.append(
                f"  {_quote(node.id)} [label={label}, "
                f"status={_quote(node.status.value)}];"
            )
        for edge in self.edges:
            lines.append(
                f"  {_quote(edge.from_id)} -> {_quote(edge.to_id)} "
                f"[label={_quote(edge.type.value)}];"
            )
        lines.append("}")
        return "\n".join(lines)
