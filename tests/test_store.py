"""Tests for the on-disk data tree."""

import json

import pytest

from conduit.errors import ConfigError, ValidationError
from conduit.store import DataTree, read_json, trees_overlap, write_json


def test_tree_layout(tmp_path):
    tree = DataTree(tmp_path / "original")

    assert tree.customers_path == tmp_path / "original" / "customers.json"
    assert tree.accounts_path == tmp_path / "original" / "accounts.json"
    assert tree.transaction_page_path("acct1", 3) == tmp_path / "original" / "transactions" / "transactions_acct1_page_3.json"
    assert tree.institution_path("101732") == tmp_path / "original" / "institutions" / "institution_101732.json"


def test_reset_clears_previous_run(tmp_path):
    tree = DataTree(tmp_path / "original")
    write_json(tree.institution_path("old"), {"institution": {}})

    tree.reset()

    assert tree.transactions_dir.is_dir()
    assert tree.institutions_dir.is_dir()
    assert tree.institution_files() == []


def test_file_listings_are_sorted_and_filtered(tmp_path):
    tree = DataTree(tmp_path)
    tree.reset()
    write_json(tree.transaction_page_path("b", 1), {})
    write_json(tree.transaction_page_path("a", 2), {})
    write_json(tree.transaction_page_path("a", 1), {})
    (tree.transactions_dir / "notes.txt").write_text("ignored")

    names = [p.name for p in tree.transaction_files()]

    assert names == ["transactions_a_page_1.json", "transactions_a_page_2.json", "transactions_b_page_1.json"]


def test_listings_of_missing_dirs_are_empty(tmp_path):
    tree = DataTree(tmp_path / "nowhere")

    assert tree.transaction_files() == []
    assert tree.institution_files() == []


def test_write_json_pretty_prints(tmp_path):
    path = write_json(tmp_path / "nested" / "data.json", {"name": "Café", "n": 1})

    text = path.read_text(encoding="utf-8")
    assert text.endswith("\n")
    assert "Café" in text
    assert json.loads(text) == {"name": "Café", "n": 1}


def test_read_json_missing_file(tmp_path):
    with pytest.raises(ValidationError) as exc_info:
        read_json(tmp_path / "missing.json")

    assert "File not found" in str(exc_info.value)


def test_read_json_invalid_file(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")

    with pytest.raises(ValidationError) as exc_info:
        read_json(path)

    assert "Invalid JSON" in str(exc_info.value)
    assert exc_info.value.identifier == str(path)


def test_trees_overlap(tmp_path):
    assert trees_overlap(tmp_path / "a", tmp_path / "a")
    assert trees_overlap(tmp_path / "a", tmp_path / "a" / "b")
    assert trees_overlap(tmp_path / "a" / "b", tmp_path / "a")
    assert not trees_overlap(tmp_path / "a", tmp_path / "ab")
    assert not trees_overlap(tmp_path / "a" / "x", tmp_path / "a" / "y")


def test_reset_refuses_working_directory(tmp_path, monkeypatch):
    (tmp_path / ".env").write_text("FINICITY_CUSTOMER_ID=7001\n")
    monkeypatch.chdir(tmp_path)

    with pytest.raises(ConfigError):
        DataTree(".").reset()

    assert (tmp_path / ".env").exists()


def test_reset_refuses_ancestor_of_working_directory(tmp_path, monkeypatch):
    work = tmp_path / "project" / "work"
    work.mkdir(parents=True)
    monkeypatch.chdir(work)

    with pytest.raises(ConfigError):
        DataTree(tmp_path / "project").reset()

    assert work.is_dir()
