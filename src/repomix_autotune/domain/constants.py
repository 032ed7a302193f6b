from __future__ import annotations

"""
Domain Constants and Static Data Structures.

Provides centralized access to application-wide constants: budget defaults,
persisted artifact names, the built-in exclusion pattern list used when no
AI suggestion is available, and the process exit codes of the CLI.
"""

from typing import List

CURRENT_CONFIG_VERSION = "1.0.0"

# -----------------------------------------------------------------------------
# BUDGET DEFAULTS
# -----------------------------------------------------------------------------

DEFAULT_TARGET_TOKENS: int = 25000
DEFAULT_ENCODING: str = "o200k_base"
DEFAULT_BUFFER_RATIO: float = 0.10
MAX_RECURSION_DEPTH: int = 3

# Bytes per token for the offline heuristic
BYTES_PER_TOKEN: int = 4

# Split extraction stops once this share of the subtree's files is covered
SPLIT_EXTRACTION_RATIO: float = 0.5
FALLBACK_SPLIT_LIMIT: int = 3

# -----------------------------------------------------------------------------
# PERSISTED ARTIFACTS
# -----------------------------------------------------------------------------

REPOMIX_CONFIG_NAME = "repomix.config.json"
ROOT_OUTPUT_NAME = "repomix-output.xml"
SPLIT_OUTPUT_TEMPLATE = "repomix-output-{slug}.xml"
OUTPUT_HEADER_TEXT = "Repository packed by repomix-autotune"
SPLIT_EXCLUSION_SUFFIX = "/**"

# Files this tool and repomix write into the tree; never counted as source
TOOL_ARTIFACT_PATTERNS = (
    REPOMIX_CONFIG_NAME,
    "repomix-output*.xml",
)

# -----------------------------------------------------------------------------
# EXTERNAL TOOLS
# -----------------------------------------------------------------------------

REPOMIX_EXECUTABLE = "repomix"
CLAUDE_EXECUTABLE = "claude"

DEFAULT_TOOL_TIMEOUT: float = 120.0
DEFAULT_SUGGESTION_TIMEOUT: float = 30.0

ESTIMATOR_CHOICES = ("repomix", "tiktoken", "heuristic")
SUGGESTER_CHOICES = ("claude-cli", "anthropic-api")

ANTHROPIC_API_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"
ANTHROPIC_DEFAULT_MODEL = "claude-sonnet-4-5-20250929"

# -----------------------------------------------------------------------------
# EXIT CODES
# -----------------------------------------------------------------------------

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_MISSING_TOOL = 2
EXIT_INVALID_ARGS = 3
EXIT_CONFIG_CONFLICT = 64
EXIT_INTERRUPTED = 130

# -----------------------------------------------------------------------------
# BUILT-IN EXCLUSION PATTERNS
# -----------------------------------------------------------------------------

DEFAULT_IGNORE_PATTERNS: List[str] = [
    # Dependency, build and VCS directories
    "node_modules/**",
    ".*/**",
    "build/**",
    "dist/**",
    "target/**",
    "__pycache__/**",
    "*.pyc",
    ".git/**",
    ".svn/**",
    ".hg/**",
    "vendor/**",
    "deps/**",

    # Logs, temp and editor files
    "*.log",
    "*.tmp",
    "*.temp",
    "*.cache",
    "*.swp",
    "*.swo",
    "*~",
    ".DS_Store",
    "Thumbs.db",

    # Databases and binaries
    "*.sqlite",
    "*.sqlite3",
    "*.db",
    "*.exe",
    "*.dll",
    "*.so",
    "*.dylib",
    "*.bin",
    "*.zip",
    "*.tar.gz",
    "*.rar",
    "*.7z",

    # Media and office documents
    "*.ico",
    "*.png",
    "*.jpg",
    "*.jpeg",
    "*.gif",
    "*.svg",
    "*.bmp",
    "*.tiff",
    "*.webp",
    "*.mp4",
    "*.avi",
    "*.mov",
    "*.wmv",
    "*.mp3",
    "*.wav",
    "*.ogg",
    "*.pdf",
    "*.doc",
    "*.docx",
    "*.xls",
    "*.xlsx",
    "*.ppt",
    "*.pptx",

    # Minified assets, coverage and lockfiles
    "*.min.js",
    "*.min.css",
    "coverage/**",
    "test-results/**",
    "*.coverage",
    ".nyc_output/**",
    "*.lock",
    "yarn.lock",
    "package-lock.json",
    "Pipfile.lock",
    "poetry.lock",
    "Cargo.lock",
]

# Build manifest globs reported to the suggestion service
BUILD_MANIFEST_NAMES = (
    "package.json",
    "Cargo.toml",
    "pom.xml",
    "build.gradle",
    "Makefile",
    "CMakeLists.txt",
    "setup.py",
    "requirements*.txt",
    "go.mod",
)
