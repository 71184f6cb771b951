"""SQL safety guard — keyword classifier for READ_ONLY mode.

This is a heuristic over statement text, not a parser. A deny-listed word
inside a string literal or comment still marks the statement as mutating;
false positives are accepted, false negatives are what the list guards against.

EXPLAIN statements bypass the mutation check entirely, including
``EXPLAIN ANALYZE <dml>``, which the engine will actually execute.
"""

import re

from app.core.errors import SafetyDenialError

DENY_LIST_VERSION = 1

DENY_KEYWORDS: tuple[str, ...] = (
    "INSERT",
    "UPDATE",
    "DELETE",
    "MERGE",
    "TRUNCATE",
    "ALTER",
    "DROP",
    "CREATE",
    "REINDEX",
    "VACUUM",
    "GRANT",
    "REVOKE",
    "COPY",
    "ANALYZE",
    "SET ROLE",
    "BEGIN",
    "COMMIT",
    "ROLLBACK",
)

_MUTATING = re.compile(
    r"\b(" + "|".join(r"\s+".join(kw.split()) for kw in DENY_KEYWORDS) + r")\b",
    re.I,
)
_EXPLAIN = re.compile(r"^\s*EXPLAIN\b", re.I)


def is_explain(sql: str) -> bool:
    return _EXPLAIN.match(sql) is not None


def is_mutating(sql: str) -> bool:
    return _MUTATING.search(sql) is not None


def mutating_keywords(sql: str) -> list[str]:
    """Distinct deny-listed keywords found in ``sql``, in first-seen order."""
    found: list[str] = []
    for match in _MUTATING.finditer(sql):
        keyword = " ".join(match.group(1).upper().split())
        if keyword not in found:
            found.append(keyword)
    return found


def is_permitted(sql: str, read_only: bool) -> bool:
    if not read_only:
        return True
    return is_explain(sql) or not is_mutating(sql)


def check_sql(sql: str, read_only: bool) -> None:
    """Raise SafetyDenialError when ``sql`` may not run under ``read_only``."""
    if not is_permitted(sql, read_only):
        raise SafetyDenialError(mutating_keywords(sql))


def clamp_limit(requested: int | None, default: int = 100, ceiling: int = 1000) -> int:
    """Effective row limit: ``default`` when unset, never above ``ceiling``."""
    if requested is None:
        return min(default, ceiling)
    return min(requested, ceiling)


def truncate_rows(rows: list, limit: int) -> tuple[list, bool]:
    """Return the first ``limit`` rows and whether any were cut off."""
    return rows[:limit], len(rows) > limit
