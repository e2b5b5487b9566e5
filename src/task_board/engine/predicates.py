"""Predicate evaluation of a task against a view configuration."""

import logging
import math
from collections.abc import Callable
from datetime import datetime
from typing import Protocol

from task_board.engine.view_config import ViewConfig
from task_board.models import Task, TaskStatus, normalize_assignees, parse_instant

logger = logging.getLogger(__name__)

_SECONDS_PER_DAY = 86400


class AccountLookup(Protocol):
    """Resolves account names for search."""

    def account_name(self, account_id: str) -> str | None:
        """Return the display name of an account, or None if unknown."""
        ...


def is_overdue(task: Task, now: datetime) -> bool:
    """Return True if the task is past due and not completed.

    Raises:
        ValueError, TypeError: If the due date is missing or malformed
    """
    return parse_instant(task.due_date) < parse_instant(now) and task.status != TaskStatus.COMPLETED


def _resolve_account_name(task: Task, accounts: AccountLookup | None) -> str:
    if accounts is not None and task.account_id:
        name = accounts.account_name(task.account_id)
        if name:
            return name
    return task.account_name or ""


def _match_search(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if not config.search:
        return True
    query = config.search.lower()
    return (
        query in task.title.lower()
        or query in (task.description or "").lower()
        or query in _resolve_account_name(task, accounts).lower()
    )


def _match_status(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    return not config.status or task.status in config.status


def _match_priority(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    return not config.priority or task.priority in config.priority


def _match_account(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    return not config.account_id or task.account_id in config.account_id


def _match_category(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if not config.category_id:
        return True
    return (task.category_id or "") in config.category_id


def _match_assigned_to(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if not config.assigned_to:
        return True
    return not normalize_assignees(task.assigned_to).isdisjoint(config.assigned_to)


def _match_tags(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if not config.tags:
        return True
    return not frozenset(task.tags or ()).isdisjoint(config.tags)


def _match_progress(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    minimum, maximum = config.progress_range
    return minimum <= task.progress <= maximum


def _match_overdue(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if not config.show_overdue:
        return True
    return is_overdue(task, now)


def _match_completed(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    return config.show_completed or task.status != TaskStatus.COMPLETED


def _match_due_date_range(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if config.due_date_range is None:
        return True
    lower, upper = config.due_date_range
    if lower is None and upper is None:
        return True
    due = parse_instant(task.due_date)
    if lower is not None and due < parse_instant(lower):
        return False
    if upper is not None and due > parse_instant(upper):
        return False
    return True


def _match_due_in(task: Task, config: ViewConfig, now: datetime, accounts: AccountLookup | None) -> bool:
    if config.due_in is None:
        return True
    delta = parse_instant(task.due_date) - parse_instant(now)
    diff_days = math.ceil(delta.total_seconds() / _SECONDS_PER_DAY)
    return 0 <= diff_days <= config.due_in.days


_Predicate = Callable[[Task, ViewConfig, datetime, "AccountLookup | None"], bool]

_PREDICATES: tuple[tuple[str, _Predicate], ...] = (
    ("search", _match_search),
    ("status", _match_status),
    ("priority", _match_priority),
    ("account_id", _match_account),
    ("category_id", _match_category),
    ("assigned_to", _match_assigned_to),
    ("tags", _match_tags),
    ("progress_range", _match_progress),
    ("show_overdue", _match_overdue),
    ("show_completed", _match_completed),
    ("due_date_range", _match_due_date_range),
    ("due_in", _match_due_in),
)


def matches(
    task: Task,
    config: ViewConfig,
    now: datetime,
    accounts: AccountLookup | None = None,
) -> bool:
    """Return True if the task passes every active dimension of config.

    Dimensions are ANDed; multi-valued dimensions match on membership or
    intersection. A dimension that cannot be evaluated because of a missing
    or malformed field counts as a non-match and never raises.

    Args:
        task: Task to test
        config: Active filter selection
        now: Reference instant for overdue and due-in windows
        accounts: Optional directory used to resolve account names for search

    Returns:
        True if the task should be shown
    """
    for name, predicate in _PREDICATES:
        try:
            if not predicate(task, config, now, accounts):
                return False
        except (TypeError, ValueError, AttributeError) as e:
            logger.debug(f"[Predicates] Task {getattr(task, 'id', '?')} failed '{name}': {e}")
            return False
    return True
