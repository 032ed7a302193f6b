from __future__ import annotations

"""
Packaging Tool Configuration Renderer.

Produces the repomix configuration document shared by the persisted units and
the temporary measurement runs of the estimator, so that measured and
persisted output are configured identically.
"""

from typing import Any, Dict

from repomix_autotune.domain.constants import OUTPUT_HEADER_TEXT
from repomix_autotune.domain.rule_set import RuleSet


def render_config_document(output_path: str, rule_set: RuleSet, encoding: str) -> Dict[str, Any]:
    """
    Build the repomix configuration for one unit.

    Args:
        output_path: Artifact path written into output.filePath.
        rule_set: Exclusions (rendered sorted and unique).
        encoding: Tokenizer encoding for the token count summary.

    Returns:
        Dict[str, Any]: JSON-serializable configuration document.
    """
    return {
        "include": [],
        "ignore": list(rule_set.patterns),
        "output": {
            "filePath": output_path,
            "style": "xml",
            "headerText": OUTPUT_HEADER_TEXT,
            "topFilesLength": 5,
            "showLineNumbers": False,
            "removeComments": False,
            "removeEmptyLines": False,
            "instructionFilePath": "",
            "includeEmptyDirectories": False,
        },
        "security": {
            "enableSecurityCheck": True,
        },
        "tokenCount": {
            "encoding": encoding,
            "enableTokenCount": True,
        },
    }
