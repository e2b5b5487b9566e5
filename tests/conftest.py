"""Test fixtures for TaskBoard."""

from datetime import datetime
from pathlib import Path

import pytest
from factories import NOW


@pytest.fixture
def now() -> datetime:
    """Fixed reference instant."""
    return NOW


@pytest.fixture
def tmp_tasks_dir(tmp_path: Path) -> Path:
    """Create temporary task folder."""
    tasks_dir = tmp_path / "tasks"
    tasks_dir.mkdir(parents=True)
    return tasks_dir


@pytest.fixture
def sample_task_file(tmp_tasks_dir: Path) -> Path:
    """Create a sample task file."""
    task_file = tmp_tasks_dir / "call-acme.md"

    content = """---
title: Call Acme about renewal
status: In Progress
priority: High
due_date: 2026-03-15T09:00:00Z
assigned_to:
  - u-1
  - u-2
account_id: acc-1
account_name: Acme (old name)
category_id: cat-1
tags: [renewal, q1]
progress: 40
created_at: 2026-03-01T08:00:00Z
updated_at: 2026-03-02T08:00:00Z
---
Discuss renewal terms and the expansion seats.
"""

    task_file.write_text(content)
    return task_file


@pytest.fixture
def directory_file(tmp_path: Path) -> Path:
    """Create a directory YAML file."""
    path = tmp_path / "directory.yaml"
    path.write_text(
        """accounts:
  acc-1: Acme Corp
  acc-2: Globex
categories:
  cat-1: Renewals
users:
  u-1: Jane Doe
  u-2: John Roe
"""
    )
    return path
