"""View configuration: active filter and sort selections for one view."""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum

logger = logging.getLogger(__name__)


class DueUnit(str, Enum):
    """Unit of a relative due window."""

    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"


# Months are approximated as 30 days
_DAYS_PER_UNIT: dict[DueUnit, int] = {
    DueUnit.DAYS: 1,
    DueUnit.WEEKS: 7,
    DueUnit.MONTHS: 30,
}


@dataclass(frozen=True)
class DueIn:
    """Relative forward window from now, e.g. "due in 2 weeks"."""

    value: int
    unit: DueUnit = DueUnit.DAYS

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, int) or self.value <= 0:
            raise ValueError(f"DueIn value must be a positive integer, got {self.value!r}")
        object.__setattr__(self, "unit", DueUnit(self.unit))

    @property
    def days(self) -> int:
        """Window length converted to days."""
        return self.value * _DAYS_PER_UNIT[self.unit]


class SortDirection(str, Enum):
    """Sort direction."""

    ASC = "asc"
    DESC = "desc"


@dataclass(frozen=True)
class SortSpec:
    """Single active sort key and its direction."""

    key: str = "due_date"
    direction: SortDirection = SortDirection.ASC

    def toggled(self, key: str) -> "SortSpec":
        """Sort by key: flip direction on the active key, else start ascending."""
        if key == self.key:
            flipped = SortDirection.DESC if self.direction == SortDirection.ASC else SortDirection.ASC
            return SortSpec(key=key, direction=flipped)
        return SortSpec(key=key, direction=SortDirection.ASC)


def _as_set(values: Iterable[str] | None) -> frozenset[str]:
    if values is None:
        return frozenset()
    if isinstance(values, str):
        return frozenset([values])
    return frozenset(values)


@dataclass(frozen=True)
class ViewConfig:
    """Immutable filter selection.

    Empty sets mean "no restriction" on that dimension. Every `with_*`
    method returns a new config and leaves the other dimensions untouched.
    """

    search: str = ""
    status: frozenset[str] = field(default_factory=frozenset)
    priority: frozenset[str] = field(default_factory=frozenset)
    assigned_to: frozenset[str] = field(default_factory=frozenset)
    account_id: frozenset[str] = field(default_factory=frozenset)
    category_id: frozenset[str] = field(default_factory=frozenset)
    tags: frozenset[str] = field(default_factory=frozenset)
    due_date_range: tuple[datetime | None, datetime | None] | None = None
    due_in: DueIn | None = None
    progress_range: tuple[int, int] = (0, 100)
    show_overdue: bool = False
    show_completed: bool = True

    def with_search(self, search: str | None) -> "ViewConfig":
        return replace(self, search=search or "")

    def with_status(self, values: Iterable[str] | None) -> "ViewConfig":
        return replace(self, status=_as_set(values))

    def with_priority(self, values: Iterable[str] | None) -> "ViewConfig":
        return replace(self, priority=_as_set(values))

    def with_assigned_to(self, values: Iterable[str] | None) -> "ViewConfig":
        return replace(self, assigned_to=_as_set(values))

    def with_account_id(self, values: Iterable[str] | None) -> "ViewConfig":
        return replace(self, account_id=_as_set(values))

    def with_category_id(self, values: Iterable[str] | None) -> "ViewConfig":
        return replace(self, category_id=_as_set(values))

    def with_tags(self, values: Iterable[str] | None) -> "ViewConfig":
        return replace(self, tags=_as_set(values))

    def with_due_date_range(
        self, lower: datetime | None = None, upper: datetime | None = None
    ) -> "ViewConfig":
        if lower is None and upper is None:
            return replace(self, due_date_range=None)
        return replace(self, due_date_range=(lower, upper))

    def with_due_in(self, due_in: DueIn | None) -> "ViewConfig":
        return replace(self, due_in=due_in)

    def with_progress_range(self, minimum: int = 0, maximum: int = 100) -> "ViewConfig":
        if minimum > maximum:
            raise ValueError(f"Progress range min {minimum} exceeds max {maximum}")
        return replace(self, progress_range=(minimum, maximum))

    def with_show_overdue(self, show_overdue: bool) -> "ViewConfig":
        return replace(self, show_overdue=bool(show_overdue))

    def with_show_completed(self, show_completed: bool) -> "ViewConfig":
        return replace(self, show_completed=bool(show_completed))

    @property
    def is_default(self) -> bool:
        """True when no dimension restricts the result."""
        return self == ViewConfig()


class ViewConfigStore:
    """Mutable holder of the active ViewConfig and SortSpec for one view.

    Each setter swaps in a new immutable config, so previous states can be
    restored with `undo()`.
    """

    def __init__(self, config: ViewConfig | None = None, sort: SortSpec | None = None) -> None:
        self._config = config or ViewConfig()
        self._sort = sort or SortSpec()
        self._history: list[ViewConfig] = []

    @property
    def config(self) -> ViewConfig:
        return self._config

    @property
    def sort(self) -> SortSpec:
        return self._sort

    def _apply(self, config: ViewConfig) -> ViewConfig:
        if config != self._config:
            self._history.append(self._config)
            self._config = config
        return self._config

    def set_search(self, search: str | None) -> ViewConfig:
        return self._apply(self._config.with_search(search))

    def set_status(self, values: Iterable[str] | None) -> ViewConfig:
        return self._apply(self._config.with_status(values))

    def set_priority(self, values: Iterable[str] | None) -> ViewConfig:
        return self._apply(self._config.with_priority(values))

    def set_assigned_to(self, values: Iterable[str] | None) -> ViewConfig:
        return self._apply(self._config.with_assigned_to(values))

    def set_account_id(self, values: Iterable[str] | None) -> ViewConfig:
        return self._apply(self._config.with_account_id(values))

    def set_category_id(self, values: Iterable[str] | None) -> ViewConfig:
        return self._apply(self._config.with_category_id(values))

    def set_tags(self, values: Iterable[str] | None) -> ViewConfig:
        return self._apply(self._config.with_tags(values))

    def set_due_date_range(
        self, lower: datetime | None = None, upper: datetime | None = None
    ) -> ViewConfig:
        return self._apply(self._config.with_due_date_range(lower, upper))

    def set_due_in(self, due_in: DueIn | None) -> ViewConfig:
        return self._apply(self._config.with_due_in(due_in))

    def set_progress_range(self, minimum: int = 0, maximum: int = 100) -> ViewConfig:
        return self._apply(self._config.with_progress_range(minimum, maximum))

    def set_show_overdue(self, show_overdue: bool) -> ViewConfig:
        return self._apply(self._config.with_show_overdue(show_overdue))

    def set_show_completed(self, show_completed: bool) -> ViewConfig:
        return self._apply(self._config.with_show_completed(show_completed))

    def clear(self) -> ViewConfig:
        """Reset every filter dimension to its default. Sort is kept."""
        logger.debug("[ViewConfig] Clearing filters")
        return self._apply(ViewConfig())

    def sort_by(self, key: str) -> SortSpec:
        """Activate key, flipping direction if it is already active."""
        self._sort = self._sort.toggled(key)
        return self._sort

    def undo(self) -> ViewConfig:
        """Restore the config that preceded the last change, if any."""
        if self._history:
            self._config = self._history.pop()
        return self._config
