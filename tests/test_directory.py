"""Tests for Directory."""

from pathlib import Path

from task_board.directory import Directory


def test_load(directory_file: Path) -> None:
    directory = Directory()
    directory.load(directory_file)

    assert directory.account_name("acc-1") == "Acme Corp"
    assert directory.category_name("cat-1") == "Renewals"
    assert directory.user_name("u-2") == "John Roe"
    assert directory.account_name("acc-9") is None
    assert directory.counts() == {"accounts": 2, "categories": 1, "users": 2}


def test_missing_file_leaves_directory_empty(tmp_path: Path) -> None:
    directory = Directory({"accounts": {"acc-1": "Stale"}})

    directory.load(tmp_path / "missing.yaml")

    assert directory.account_name("acc-1") is None
    assert directory.counts() == {"accounts": 0, "categories": 0, "users": 0}


def test_invalid_yaml_leaves_directory_empty(tmp_path: Path) -> None:
    path = tmp_path / "broken.yaml"
    path.write_text("accounts: [unclosed\n")
    directory = Directory()

    directory.load(path)

    assert directory.counts()["accounts"] == 0


def test_list_of_records(tmp_path: Path) -> None:
    path = tmp_path / "directory.yaml"
    path.write_text(
        """accounts:
  - id: acc-1
    name: Acme Corp
  - id: acc-2
  - name: no id
users:
  - {id: u-1, name: Jane Doe}
"""
    )
    directory = Directory()

    directory.load(path)

    assert directory.counts() == {"accounts": 1, "categories": 0, "users": 1}
    assert directory.user_name("u-1") == "Jane Doe"


def test_reload_picks_up_changes(directory_file: Path) -> None:
    directory = Directory()
    directory.load(directory_file)

    directory_file.write_text("accounts:\n  acc-1: Acme Holdings\n")
    directory.reload()

    assert directory.account_name("acc-1") == "Acme Holdings"
    assert directory.user_name("u-1") is None


def test_reload_without_load_is_noop() -> None:
    directory = Directory({"users": {"u-1": "Jane Doe"}})

    directory.reload()

    assert directory.user_name("u-1") == "Jane Doe"
