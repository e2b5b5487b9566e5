"""Configuration for TaskBoard."""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from task_board.engine.view_config import SortDirection


class Config(BaseSettings):
    """Application configuration (environment prefix TASK_BOARD_)."""

    model_config = SettingsConfigDict(env_prefix="TASK_BOARD_")

    tasks_dir: str = Field(default="tasks")
    directory_file: str | None = Field(default=None)
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000)
    drag_activation_distance: float = Field(default=8.0, ge=0)
    rollback_on_persist_failure: bool = Field(default=True)
    permissions: list[str] = Field(default_factory=lambda: ["tasks:read", "tasks:update"])
    default_sort_key: str = Field(default="due_date")
    default_sort_direction: SortDirection = Field(default=SortDirection.ASC)
    collation_locale: str = Field(default="")  # Empty: taken from the environment
