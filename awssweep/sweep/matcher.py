"""Match engine evaluating match rules against candidates."""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Optional, Pattern

from ..models.candidate import Candidate
from ..models.match_rule import MatchRule

logger = logging.getLogger(__name__)


class MatchEngine:
    """Evaluates MatchRules against Candidates.

    Patterns are unanchored: a pattern matches if it is found anywhere in the
    value (``re.search``). Each pattern is compiled once; a malformed pattern
    is logged the first time it is seen and never matches.
    """

    def __init__(self) -> None:
        self._compiled: Dict[str, Optional[Pattern[str]]] = {}

    def matches(self, candidate: Candidate, rule: MatchRule) -> bool:
        """Decide whether a candidate is in scope for a rule.

        Args:
            candidate: Normalized resource
            rule: Rule configured for the candidate's type

        Returns:
            True if the candidate should be deleted
        """
        if rule.sweeps_all:
            return True

        for pattern in rule.id_patterns:
            if self._search(pattern, candidate.id, rule.resource_type):
                return True

        for tag_key, pattern in rule.tag_patterns.items():
            if tag_key in candidate.tags and self._search(pattern, candidate.tags[tag_key], rule.resource_type):
                return True

        return False

    def filter(self, candidates: Iterable[Candidate], rule: MatchRule) -> List[Candidate]:
        """Matching candidates, in input order."""
        return [c for c in candidates if self.matches(c, rule)]

    def _search(self, pattern: str, value: str, resource_type: str) -> bool:
        compiled = self._compile(pattern, resource_type)
        return compiled is not None and compiled.search(value) is not None

    def _compile(self, pattern: str, resource_type: str) -> Optional[Pattern[str]]:
        if pattern in self._compiled:
            return self._compiled[pattern]

        try:
            compiled: Optional[Pattern[str]] = re.compile(pattern)
        except re.error as e:
            logger.warning(f"Invalid pattern '{pattern}' for {resource_type} will never match: {e}")
            compiled = None

        self._compiled[pattern] = compiled
        return compiled
