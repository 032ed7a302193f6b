from __future__ import annotations

"""
Exclusion Rule Set.

An immutable, de-duplicated collection of path-glob exclusion patterns.
Rule sets merge by set union and are always rendered in sorted order so that
persisted artifacts are byte-identical across runs.
"""

import fnmatch
from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, Optional, Tuple


@dataclass(frozen=True)
class RuleSet:
    """
    Set of glob patterns excluded from a packaging unit.

    Patterns follow gitignore anchoring: a pattern containing a '/' before its
    last character is relative to the unit root, anything else matches at any
    depth.
    """
    _patterns: FrozenSet[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, patterns: Optional[Iterable[str]] = None) -> "RuleSet":
        """Build a rule set from raw strings, dropping blanks and duplicates."""
        cleaned = set()
        for p in patterns or ():
            if not isinstance(p, str):
                continue
            s = p.strip()
            if s:
                cleaned.add(s)
        return cls(frozenset(cleaned))

    @property
    def patterns(self) -> Tuple[str, ...]:
        """Sorted, unique patterns."""
        return tuple(sorted(self._patterns))

    def merge(self, other: "RuleSet") -> "RuleSet":
        """Union of both rule sets."""
        return RuleSet(self._patterns | other._patterns)

    def with_patterns(self, patterns: Iterable[str]) -> "RuleSet":
        """Union with raw pattern strings."""
        return self.merge(RuleSet.of(patterns))

    def rebase(self, child_name: str) -> "RuleSet":
        """
        Re-express the rules for an immediate child directory.

        Unanchored patterns and '**/'-prefixed patterns apply unchanged.
        Anchored patterns whose first segment matches the child's name lose
        that segment; anchored patterns pointing elsewhere cannot match inside
        the child and are dropped.

        Args:
            child_name: Name of the immediate child directory.

        Returns:
            RuleSet: Patterns relative to the child directory.
        """
        rebased = set()
        for p in self._patterns:
            body = p.lstrip("/")
            anchored = p.startswith("/") or "/" in body.rstrip("/")
            if not anchored or body.startswith("**/"):
                rebased.add(p)
                continue

            head, _, rest = body.partition("/")
            if not rest or not fnmatch.fnmatchcase(child_name, head):
                continue
            if "/" in rest.rstrip("/"):
                rebased.add(rest)
            else:
                # Keep single-segment remainders anchored to the child root
                rebased.add("/" + rest)
        return RuleSet(frozenset(rebased))

    def __contains__(self, pattern: object) -> bool:
        return pattern in self._patterns

    def __len__(self) -> int:
        return len(self._patterns)

    def __iter__(self):
        return iter(self.patterns)
