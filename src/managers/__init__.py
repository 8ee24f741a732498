"""マネージャーモジュール。"""

from .agent_status import AgentEnricher, infer_agent_status, session_name_for
from .beads_manager import BeadsAdapter, BeadsManager
from .command_executor import CommandExecutor, CommandRunner
from .gastown_manager import GastownAdapter, GastownManager
from .tmux_manager import TmuxManager
from .town_scanner import TownScanner

__all__ = [
    "AgentEnricher",
    "BeadsAdapter",
    "BeadsManager",
    "CommandExecutor",
    "CommandRunner",
    "GastownAdapter",
    "GastownManager",
    "TmuxManager",
    "TownScanner",
    "infer_agent_status",
    "session_name_for",
]
