"""エージェント状態推定のテスト。"""

import os
from datetime import datetime, timedelta

import pytest

from src.managers.agent_status import (
    AgentEnricher,
    infer_agent_status,
    session_name_for,
)
from src.models.town import Agent, AgentRole, AgentStatus
from tests.conftest import write_json

STUCK = timedelta(minutes=10)
IDLE = timedelta(minutes=2)


class TestInferAgentStatus:
    """infer_agent_status の判定表のテスト。"""

    @pytest.mark.parametrize(
        ("session", "elapsed", "hook", "expected"),
        [
            (False, timedelta(seconds=1), False, AgentStatus.OFFLINE),
            (False, None, True, AgentStatus.OFFLINE),
            (True, timedelta(minutes=11), False, AgentStatus.STUCK),
            (True, timedelta(minutes=11), True, AgentStatus.STUCK),
            (True, timedelta(minutes=5), False, AgentStatus.IDLE),
            (True, timedelta(minutes=5), True, AgentStatus.ACTIVE),
            (True, timedelta(seconds=30), False, AgentStatus.ACTIVE),
            (True, None, False, AgentStatus.ACTIVE),
        ],
    )
    def test_state_table(self, session, elapsed, hook, expected):
        assert infer_agent_status(session, elapsed, hook, STUCK, IDLE) == expected

    def test_thresholds_are_exclusive(self):
        """閾値ちょうどは超えていないとみなすことをテスト。"""
        assert infer_agent_status(True, STUCK, False, STUCK, IDLE) == AgentStatus.IDLE
        assert infer_agent_status(True, IDLE, False, STUCK, IDLE) == AgentStatus.ACTIVE


class TestSessionName:
    """session_name_for のテスト。"""

    @pytest.mark.parametrize(
        ("role", "rig", "name", "expected"),
        [
            (AgentRole.MAYOR, "", "mayor", "gt-mayor"),
            (AgentRole.DEACON, "", "deacon", "gt-deacon"),
            (AgentRole.WITNESS, "myrig", "witness", "gt-myrig-witness"),
            (AgentRole.REFINERY, "myrig", "refinery", "gt-myrig-refinery"),
            (AgentRole.POLECAT, "myrig", "alice", "gt-myrig-alice"),
            (AgentRole.CREW, "myrig", "carol", "gt-myrig-crew-carol"),
        ],
    )
    def test_session_names(self, role, rig, name, expected):
        assert session_name_for(role, rig, name) == expected

    def test_custom_prefix(self):
        assert session_name_for(AgentRole.MAYOR, "", "mayor", prefix="xx") == "xx-mayor"


def _age(path, minutes: int) -> None:
    stamp = (datetime.now() - timedelta(minutes=minutes)).timestamp()
    os.utime(path, (stamp, stamp))


class TestAgentEnricher:
    """AgentEnricher のテスト。"""

    def _polecat(self) -> Agent:
        return Agent(role=AgentRole.POLECAT, name="alice", rig="myrig")

    def test_without_work_dir_stays_unknown(self):
        agent = AgentEnricher().enrich(self._polecat(), "", {"gt-myrig-alice"})
        assert agent.status == AgentStatus.UNKNOWN
        assert agent.session == ""

    def test_offline_without_session(self, temp_dir):
        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), set())

        assert agent.session == "gt-myrig-alice"
        assert agent.work_dir == str(temp_dir)
        assert agent.status == AgentStatus.OFFLINE

    def test_active_with_recent_activity(self, temp_dir):
        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), {"gt-myrig-alice"})

        assert agent.status == AgentStatus.ACTIVE
        assert agent.last_active is not None

    def test_last_active_is_utc(self, temp_dir):
        """last_active がタイムゾーン付き（UTC）であることをテスト。"""
        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), set())

        assert agent.last_active.utcoffset() == timedelta(0)

    def test_stuck_after_threshold(self, temp_dir):
        _age(temp_dir, 30)
        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), {"gt-myrig-alice"})
        assert agent.status == AgentStatus.STUCK

    def test_idle_without_hook(self, temp_dir):
        _age(temp_dir, 5)
        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), {"gt-myrig-alice"})
        assert agent.status == AgentStatus.IDLE

    def test_hook_keeps_agent_active(self, temp_dir):
        """hook に作業があれば idle にならないことをテスト。"""
        write_json(temp_dir / ".claude" / "hook.json", {"molecule": "mol-1", "attached": True})
        _age(temp_dir, 5)

        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), {"gt-myrig-alice"})

        assert agent.hook_attached is True
        assert agent.molecule == "mol-1"
        assert agent.status == AgentStatus.ACTIVE

    def test_reads_seance(self, temp_dir):
        write_json(temp_dir / ".claude" / "seance.json", {"compaction": 3, "molecule": "mol-s"})

        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), set())

        assert agent.compaction == 3
        assert agent.molecule == "mol-s"
        assert agent.hook_attached is False

    def test_molecule_file_attaches_hook(self, temp_dir):
        """.beads/molecule.json があれば hook 接続ありとみなすことをテスト。"""
        write_json(temp_dir / ".claude" / "seance.json", {"molecule": "mol-old"})
        write_json(temp_dir / ".beads" / "molecule.json", {"id": "mol-2", "title": "Deploy"})

        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), set())

        assert agent.molecule == "mol-2"
        assert agent.hook_attached is True

    def test_broken_side_files_are_ignored(self, temp_dir):
        (temp_dir / ".claude").mkdir()
        (temp_dir / ".claude" / "hook.json").write_text("{nope")

        agent = AgentEnricher().enrich(self._polecat(), str(temp_dir), {"gt-myrig-alice"})

        assert agent.hook_attached is False
        assert agent.status == AgentStatus.ACTIVE

    def test_custom_thresholds(self, temp_dir):
        _age(temp_dir, 3)
        enricher = AgentEnricher(stuck_after=timedelta(minutes=1), idle_after=timedelta(seconds=10))

        agent = enricher.enrich(self._polecat(), str(temp_dir), {"gt-myrig-alice"})

        assert agent.status == AgentStatus.STUCK
