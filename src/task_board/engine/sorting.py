"""Task comparator and stable sort."""

import locale
import logging
import unicodedata
from collections.abc import Iterable
from functools import cmp_to_key
from typing import Any

from task_board.engine.view_config import SortDirection, SortSpec
from task_board.models import Task, parse_instant

logger = logging.getLogger(__name__)


def _sign(value: float) -> int:
    return (value > 0) - (value < 0)


def configure_collation(name: str = "") -> str:
    """Select the collation used for text sorting.

    An empty name takes it from the environment (LC_ALL / LC_COLLATE / LANG).
    Falls back to the C collation if the locale is not installed.

    Returns:
        Name of the active collation locale
    """
    try:
        active = locale.setlocale(locale.LC_COLLATE, name)
    except locale.Error as e:
        logger.warning(f"[Sorting] Collation locale {name!r} unavailable, using C: {e}")
        active = locale.setlocale(locale.LC_COLLATE, "C")
    logger.info(f"[Sorting] Text collation: {active}")
    return active


def _fold(text: str) -> str:
    """Case and accent insensitive form: "Émile" folds to "emile"."""
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()


def _compare_text(a: str, b: str) -> int:
    # Folded form first, then case, then the raw strings, each by the active collation
    for left, right in ((_fold(a), _fold(b)), (a.casefold(), b.casefold()), (a, b)):
        result = locale.strcoll(left, right)
        if result:
            return _sign(result)
    return 0


def _is_number(value: Any) -> bool:
    return isinstance(value, int | float) and not isinstance(value, bool)


def _instant_key(value: Any) -> tuple[int, float, str]:
    """Total order for non-text, non-numeric values.

    Parseable instants come first in time order, then everything else by its
    string form, then missing values.
    """
    if value is None:
        return (2, 0.0, "")
    try:
        return (0, parse_instant(value).timestamp(), "")
    except (TypeError, ValueError, OverflowError):
        pass
    if isinstance(value, set | frozenset):
        return (1, 0.0, ",".join(sorted(str(v) for v in value)))
    if isinstance(value, list | tuple):
        return (1, 0.0, ",".join(str(v) for v in value))
    return (1, 0.0, str(value))


def compare(a: Task, b: Task, sort: SortSpec) -> int:
    """Compare two tasks on sort.key.

    Returns -1, 0 or 1. Never raises: an unknown key compares equal.
    """
    a_value = getattr(a, sort.key, None)
    b_value = getattr(b, sort.key, None)

    if isinstance(a_value, str) and isinstance(b_value, str):
        result = _compare_text(a_value, b_value)
    elif _is_number(a_value) and _is_number(b_value):
        result = _sign(a_value - b_value)
    else:
        a_key = _instant_key(a_value)
        b_key = _instant_key(b_value)
        result = (a_key > b_key) - (a_key < b_key)

    if sort.direction == SortDirection.DESC:
        return -result
    return result


def sort_tasks(tasks: Iterable[Task], sort: SortSpec) -> list[Task]:
    """Return tasks sorted by sort; ties keep their incoming order."""
    # list.sort is stable, so equal elements keep insertion order
    return sorted(tasks, key=cmp_to_key(lambda a, b: compare(a, b, sort)))
