"""Filter/sort pipeline producing the list view."""

import logging
from collections.abc import Iterable
from datetime import datetime

from task_board.engine.predicates import AccountLookup, matches
from task_board.engine.sorting import sort_tasks
from task_board.engine.view_config import SortSpec, ViewConfig
from task_board.models import Task

logger = logging.getLogger(__name__)


def project(
    tasks: Iterable[Task],
    config: ViewConfig,
    sort: SortSpec,
    now: datetime,
    accounts: AccountLookup | None = None,
) -> list[Task]:
    """Filter tasks with config and order the survivors with sort.

    Pure: the input collection is only read, and identical inputs always
    produce the same output.

    Args:
        tasks: Task collection (not mutated)
        config: Active filter selection
        sort: Active sort key and direction
        now: Reference instant for date-relative filters
        accounts: Optional account name lookup for search

    Returns:
        New list of matching tasks in sort order
    """
    task_list = list(tasks)
    selected = [task for task in task_list if matches(task, config, now, accounts)]
    logger.debug(
        f"[Pipeline] {len(selected)}/{len(task_list)} tasks matched, sort={sort.key} {sort.direction.value}"
    )
    return sort_tasks(selected, sort)
