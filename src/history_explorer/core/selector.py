"""Point-in-time version selection.

Given the unordered changes of one subject and a target time, pick the one
change that represents the subject's state at that time. The filtering and
ordering are fixed; the final pick is an overridable policy.
"""

from collections.abc import Callable, Sequence
from datetime import datetime
from typing import Any

from history_explorer.core.models import Change, as_utc

VersionSelector = Callable[[Sequence[Change]], Change | None]
"""Policy receiving the filtered changes, newest first, and returning one or None."""


def changes_as_of(changes: Sequence[Change], at: datetime) -> list[Change]:
    """Return changes with timestamp <= at, newest first.

    The sort is stable, so changes sharing a timestamp keep the order the
    history provider returned them in and the result is deterministic for
    identical input.

    Args:
        changes: All changes of one subject, in any order.
        at: The target time. Naive datetimes are treated as UTC.

    Returns:
        The surviving changes ordered by timestamp descending.
    """
    at = as_utc(at)
    eligible = [change for change in changes if change.timestamp <= at]
    eligible.sort(key=lambda change: change.timestamp, reverse=True)
    return eligible


def latest_version(changes: Sequence[Change]) -> Change | None:
    """Default policy: the most recent change, or None if there are none."""
    return changes[0] if changes else None


def latest_where(predicate: Callable[[Any], bool]) -> VersionSelector:
    """Build a policy selecting the most recent change whose value satisfies predicate.

    Useful for resolutions such as "latest published version" where drafts
    recorded later must be ignored.

    Args:
        predicate: Called with each change's snapshot value, newest first.

    Returns:
        A VersionSelector.
    """

    def select(changes: Sequence[Change]) -> Change | None:
        for change in changes:
            if predicate(change.value):
                return change
        return None

    return select


def select_version(
    changes: Sequence[Change],
    at: datetime,
    policy: VersionSelector | None = None,
) -> Change | None:
    """Pick the change representing the subject's state at time at.

    Args:
        changes: All changes of one subject, in any order.
        at: The target time.
        policy: Optional custom selection over the filtered, newest-first
            changes. Defaults to latest_version.

    Returns:
        The selected change, or None when no change was recorded at or
        before at (the caller then falls back to the live subject).
    """
    ordered = changes_as_of(changes, at)
    if not ordered:
        return None
    return (policy or latest_version)(ordered)
