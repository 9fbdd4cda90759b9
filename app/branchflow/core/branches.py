"""Branch display-name normalization.

Transfers carry both the canonical location id and the branch display name.
Display names pass through a small alias table so that spellings typed by
staff ("maus home", " HIDALGO ") read the same everywhere. The same
function is applied when a name is written and when it is rendered.
"""

from __future__ import annotations

from collections.abc import Mapping

from app.branchflow.core.config import settings


def normalize_branch_key(value: object | None) -> str:
    return str(value or "").strip().lower()


def display_branch(value: object | None, aliases: Mapping[str, str] | None = None) -> str:
    table = settings.BRANCH_ALIASES if aliases is None else aliases
    key = normalize_branch_key(value)
    for alias, display in table.items():
        if normalize_branch_key(alias) == key:
            return display
    return str(value or "").strip()


def same_branch(left: object | None, right: object | None) -> bool:
    return normalize_branch_key(display_branch(left)) == normalize_branch_key(display_branch(right))
