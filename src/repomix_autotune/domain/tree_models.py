from __future__ import annotations

"""
Directory Tree Structure Data Models.

Provides the immutable snapshot of a subtree used by the assessment and
splitting engine. Nodes are rebuilt per recursion level and never mutated.
"""

import os
from dataclasses import dataclass, field
from typing import Tuple

# -----------------------------------------------------------------------------
# STRUCTURAL COMPONENTS
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class PathNode:
    """
    A directory under the analyzed root.

    Attributes:
        path: Absolute filesystem path.
        file_count: Recursive count of non-excluded files.
        byte_size: Recursive size in bytes of non-excluded files.
        children: Immediate child directories (shallow nodes, no grandchildren).
    """
    path: str
    file_count: int = 0
    byte_size: int = 0
    children: Tuple["PathNode", ...] = field(default_factory=tuple)

    @property
    def name(self) -> str:
        return os.path.basename(self.path.rstrip(os.sep)) or self.path

    @property
    def is_hidden(self) -> bool:
        return self.name.startswith(".")

    def sort_key(self) -> Tuple[int, str]:
        """Largest first, ties broken by path."""
        return (-self.file_count, self.path)
