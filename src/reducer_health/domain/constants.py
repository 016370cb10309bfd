"""
Reducer Health: shared constants for extraction, rules, scoring and rendering.
"""

# REDUCER HEALTH: ANSI Cyan (\033[36m)
_CYAN: str = "\033[36m"
_RESET: str = "\033[0m"
_BANNER_ART: str = r"""
   ___         __                    __ __         ____  __
  / _ \___ ___/ /_ _____ ___ ____   / // /__ ___ _/ / /_/ /
 / , _/ -_) _  / // / __/ -_) __/  / _  / -_) _ `/ / __/ _ \
/_/|_|\__/\_,_/\_,_/\__/\__/_/    /_//_/\__/\_,_/_/\__/_//_/
"""
REDUCER_HEALTH_BANNER = _CYAN + _BANNER_ART + _RESET

TOOL_NAME: str = "reducer-health"
CONFIG_SECTION: str = "reducer-health"
ARTIFACT_DIR: str = ".reducer-health"
LAST_REPORT_FILE: str = "last_report.json"
SOURCE_SUFFIXES: tuple[str, ...] = (".swift",)

# Process exit status
EXIT_PASS: int = 0
EXIT_VIOLATIONS: int = 1
EXIT_CONFIG_ERROR: int = 2
EXIT_INTERNAL_ERROR: int = 3
EXIT_WRITE_ERROR: int = 4

# Configuration defaults
DEFAULT_MODE: str = "human"
VALID_MODES: frozenset[str] = frozenset({"human", "json"})
DEFAULT_THRESHOLD: int = 75
DEFAULT_MAX_EFFORT_CAP_HOURS: float = 40.0

DEFAULT_RULE_THRESHOLDS: dict[str, int] = {
    "max_state_properties": 15,
    "max_actions": 40,
    "max_closure_properties": 0,
    "min_duplicate_handlers": 2,
    "min_vague_methods": 5,
    "min_child_references": 5,
}

# Points deducted from 100 per occurrence
DEFAULT_PENALTIES: dict[str, int] = {
    "closure": 15,
    "missing_injection": 10,
    "duplicate_handler": 5,
    "vague_method": 3,
}

# Effort (hours) for breaking one composition cycle edge
CYCLE_EFFORT_HOURS: tuple[float, float] = (4.0, 8.0)
# Effort (hours) per deduction for a unit below threshold that no rule covers
TESTABILITY_EFFORT_HOURS: tuple[float, float] = (1.0, 2.0)

SEVERITY_GLYPHS: dict[str, str] = {
    "CRITICAL": "✖",
    "HIGH": "▲",
    "MEDIUM": "●",
    "LOW": "·",
}

# Method names that say nothing about what the method does: verb + optional filler
VAGUE_METHOD_VERBS: frozenset[str] = frozenset(
    {
        "handle",
        "process",
        "manage",
        "do",
        "perform",
        "update",
        "run",
        "execute",
        "helper",
        "util",
        "misc",
    }
)
VAGUE_METHOD_SUFFIXES: frozenset[str] = frozenset(
    {
        "",
        "data",
        "stuff",
        "things",
        "action",
        "actions",
        "event",
        "events",
        "logic",
        "helper",
        "misc",
        "internal",
        "all",
        "everything",
        "it",
        "info",
        "state",
    }
)

# Ambient side effects reached without going through an injected dependency
UNCONTROLLED_EFFECT_PATTERNS: dict[str, str] = {
    "URLSession.shared": r"\bURLSession\s*\.\s*shared\b",
    "Date()": r"(?<![\w.])Date\s*\(\s*\)",
    "UUID()": r"(?<![\w.])UUID\s*\(\s*\)",
    "DispatchQueue.main": r"\bDispatchQueue\s*\.\s*main\b",
    "UserDefaults.standard": r"\bUserDefaults\s*\.\s*standard\b",
    "FileManager.default": r"\bFileManager\s*\.\s*default\b",
    "NotificationCenter.default": r"\bNotificationCenter\s*\.\s*default\b",
    "Task.sleep": r"\bTask\s*\.\s*sleep\b",
}

# Capitalised calls and `X.State` references that never name a child feature
FRAMEWORK_TYPE_NAMES: frozenset[str] = frozenset(
    {
        "Reduce",
        "EmptyReducer",
        "BindingReducer",
        "CombineReducers",
        "Scope",
        "Effect",
        "Store",
        "StoreOf",
        "State",
        "Action",
        "Self",
        "Date",
        "UUID",
        "Optional",
        "Never",
        "Void",
    }
)
