"""アプリケーションコンテキストの定義。

マネージャーはサーバー起動時に一度だけ生成され、全ツール呼び出しで共有される。
どちらも状態を持たないため、リクエストごとに最新のディスク・CLI の内容を読む。
"""

from dataclasses import dataclass

from src.config.settings import Settings
from src.managers.beads_manager import BeadsAdapter
from src.managers.gastown_manager import GastownAdapter


@dataclass
class AppContext:
    """アプリケーションコンテキスト。"""

    settings: Settings
    beads: BeadsAdapter
    gastown: GastownAdapter
