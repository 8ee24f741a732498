"""データモデルモジュール。"""

from .board import Board, Column
from .graph import EdgeType, Graph, GraphEdge, GraphNode, GraphStats
from .issue import Issue, IssueFilter, IssuePriority, IssueStatus, IssueSummary
from .message import Message
from .town import (
    Agent,
    AgentRole,
    AgentStatus,
    Rig,
    Town,
    TownConfig,
    TownStatus,
    agent_address,
)
from .workflow import Convoy, Molecule, MoleculeStep, WorkStatus

__all__ = [
    "Agent",
    "AgentRole",
    "AgentStatus",
    "Board",
    "Column",
    "Convoy",
    "EdgeType",
    "Graph",
    "GraphEdge",
    "GraphNode",
    "GraphStats",
    "Issue",
    "IssueFilter",
    "IssuePriority",
    "IssueStatus",
    "IssueSummary",
    "Message",
    "Molecule",
    "MoleculeStep",
    "Rig",
    "Town",
    "TownConfig",
    "TownStatus",
    "WorkStatus",
    "agent_address",
]
