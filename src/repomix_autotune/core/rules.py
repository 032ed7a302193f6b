from __future__ import annotations

"""
Glob Exclusion Matching Engine.

Compiles rule-set glob patterns into matchers with gitignore-style anchoring
and evaluates root-relative POSIX paths against them. Patterns without an
inner separator match a path component at any depth; anchored patterns are
translated to regular expressions over the full relative path, with '**'
spanning separators.
"""

import fnmatch
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional

from repomix_autotune.domain.rule_set import RuleSet

# -----------------------------------------------------------------------------
# COMPILED PATTERN MODEL
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class CompiledRule:
    """
    One exclusion pattern ready for evaluation.

    Attributes:
        pattern: Original glob string.
        anchored: True if the rule is relative to the unit root.
        dir_only: True if the rule only matches directories (trailing '/').
        name_glob: Component glob for unanchored rules.
        regex: Full-path regex for anchored rules.
        dir_regex: Regex matching the directory itself for 'X/**' rules.
    """
    pattern: str
    anchored: bool
    dir_only: bool
    name_glob: str = ""
    regex: Optional[re.Pattern] = None
    dir_regex: Optional[re.Pattern] = None


def glob_to_regex(glob_pattern: str) -> str:
    """
    Translate a path glob into an anchored regex string.

    '**' matches across separators, '*' and '?' stay within one component and
    '[!...]' negated classes follow shell syntax.

    Args:
        glob_pattern: Root-relative glob without a leading '/'.

    Returns:
        str: Regex source (use with fullmatch).
    """
    out: List[str] = []
    i = 0
    n = len(glob_pattern)
    while i < n:
        c = glob_pattern[i]
        if c == "*":
            if glob_pattern.startswith("**", i):
                at_start = i == 0 or glob_pattern[i - 1] == "/"
                followed_by_sep = glob_pattern.startswith("**/", i)
                if at_start and followed_by_sep:
                    out.append("(?:.*/)?")
                    i += 3
                    continue
                out.append(".*")
                i += 2
                continue
            out.append("[^/]*")
        elif c == "?":
            out.append("[^/]")
        elif c == "[":
            end = glob_pattern.find("]", i + 2)
            if end == -1:
                out.append(re.escape(c))
            else:
                body = glob_pattern[i + 1:end].replace("\\", "\\\\")
                if body.startswith("!"):
                    body = "^" + body[1:]
                elif body.startswith("^"):
                    body = "\\" + body
                out.append(f"[{body}]")
                i = end + 1
                continue
        else:
            out.append(re.escape(c))
        i += 1
    return "".join(out)


def compile_rule(pattern: str) -> Optional[CompiledRule]:
    """
    Compile a single glob pattern.

    Returns:
        Optional[CompiledRule]: None for blank or malformed patterns.
    """
    raw = (pattern or "").strip()
    if not raw or raw.startswith("#"):
        return None

    dir_only = raw.endswith("/") and not raw.endswith("**/")
    body = raw.rstrip("/") if dir_only else raw
    leading_slash = body.startswith("/")
    body = body.lstrip("/")
    if not body:
        return None

    anchored = leading_slash or "/" in body
    if not anchored:
        return CompiledRule(pattern=raw, anchored=False, dir_only=dir_only, name_glob=body)

    try:
        regex = re.compile(glob_to_regex(body))
        dir_regex = None
        if body.endswith("/**"):
            dir_regex = re.compile(glob_to_regex(body[:-3]))
    except re.error:
        return None

    return CompiledRule(
        pattern=raw,
        anchored=True,
        dir_only=dir_only,
        regex=regex,
        dir_regex=dir_regex,
    )


def compile_patterns(patterns: Iterable[str]) -> List[CompiledRule]:
    """
    Transform raw glob strings into compiled rules.

    Malformed patterns are discarded so one bad suggestion cannot break a run.
    """
    compiled: List[CompiledRule] = []
    for p in patterns:
        rule = compile_rule(p)
        if rule is not None:
            compiled.append(rule)
    return compiled

# -----------------------------------------------------------------------------
# MATCHER
# -----------------------------------------------------------------------------

class RuleMatcher:
    """
    Evaluates root-relative paths against a rule set.

    Paths use '/' separators and never start with '/'.
    """

    def __init__(self, rule_set: RuleSet) -> None:
        self.rule_set = rule_set
        self._rules = compile_patterns(rule_set.patterns)

    def matches(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        Check one path level without looking at its ancestors.

        Used during directory walks where excluded parents are already pruned.
        """
        name = rel_path.rsplit("/", 1)[-1]
        for rule in self._rules:
            if rule.dir_only and not is_dir:
                continue
            if not rule.anchored:
                if fnmatch.fnmatchcase(name, rule.name_glob):
                    return True
                continue
            if rule.regex is not None and rule.regex.fullmatch(rel_path):
                return True
            if is_dir and rule.dir_regex is not None and rule.dir_regex.fullmatch(rel_path):
                return True
        return False

    def is_excluded(self, rel_path: str, is_dir: bool = False) -> bool:
        """
        Check a path including every ancestor directory.

        A file is excluded if it, or any directory containing it, matches.
        """
        parts = [p for p in rel_path.split("/") if p]
        for i in range(1, len(parts) + 1):
            prefix = "/".join(parts[:i])
            level_is_dir = i < len(parts) or is_dir
            if self.matches(prefix, is_dir=level_is_dir):
                return True
        return False

    def __bool__(self) -> bool:
        return bool(self._rules)
