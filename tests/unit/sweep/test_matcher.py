"""Tests for MatchEngine."""

from __future__ import annotations

import logging

import pytest

from awssweep.models.candidate import Candidate
from awssweep.models.match_rule import MatchRule
from awssweep.sweep.matcher import MatchEngine


@pytest.fixture
def engine() -> MatchEngine:
    return MatchEngine()


class TestMatchEngine:
    """Test suite for MatchEngine class."""

    def test_sweep_all_matches_everything(self, engine: MatchEngine) -> None:
        rule = MatchRule("aws_vpc")

        assert engine.matches(Candidate(id="vpc-1"), rule) is True
        assert engine.matches(Candidate(id="vpc-2", tags={"env": "prod"}), rule) is True

    def test_id_pattern_is_unanchored(self, engine: MatchEngine) -> None:
        rule = MatchRule("aws_iam_role", id_patterns=["temp"])

        assert engine.matches(Candidate(id="ci-temp-runner"), rule) is True
        assert engine.matches(Candidate(id="prod-api"), rule) is False

    def test_any_id_pattern_matches(self, engine: MatchEngine) -> None:
        rule = MatchRule("aws_iam_role", id_patterns=["^temp-", "^scratch-"])

        assert engine.matches(Candidate(id="scratch-1"), rule) is True

    def test_tag_pattern(self, engine: MatchEngine) -> None:
        rule = MatchRule("aws_instance", tag_patterns={"env": "^dev$"})

        assert engine.matches(Candidate(id="i-1", tags={"env": "dev"}), rule) is True
        assert engine.matches(Candidate(id="i-2", tags={"env": "prod"}), rule) is False
        assert engine.matches(Candidate(id="i-3", tags={"env": "develop"}), rule) is False
        assert engine.matches(Candidate(id="i-4"), rule) is False

    def test_id_or_tag(self, engine: MatchEngine) -> None:
        rule = MatchRule("aws_instance", id_patterns=["^i-keep$"], tag_patterns={"owner": "ci"})

        assert engine.matches(Candidate(id="i-9", tags={"owner": "ci-bot"}), rule) is True
        assert engine.matches(Candidate(id="i-keep"), rule) is True
        assert engine.matches(Candidate(id="i-9", tags={"team": "ci"}), rule) is False

    def test_malformed_pattern_never_matches_and_logs_once(self, engine: MatchEngine, caplog) -> None:
        rule = MatchRule("aws_instance", id_patterns=["(", "^i-2$"])

        with caplog.at_level(logging.WARNING):
            assert engine.matches(Candidate(id="i-1("), rule) is False
            assert engine.matches(Candidate(id="i-2"), rule) is True

        assert caplog.text.count("Invalid pattern '('") == 1

    def test_filter_keeps_order(self, engine: MatchEngine) -> None:
        rule = MatchRule("aws_subnet", id_patterns=["a$"])
        candidates = [Candidate(id="subnet-a"), Candidate(id="subnet-b"), Candidate(id="subnet-aa")]

        assert [c.id for c in engine.filter(candidates, rule)] == ["subnet-a", "subnet-aa"]
