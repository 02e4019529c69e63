"""Tests for Notion task-database detection."""

from mindmesh.sync.classifier import is_task_database


def test_title_and_status_is_task_database():
    props = {"Name": {"type": "title"}, "Status": {"type": "status"}}
    assert is_task_database(props) is True


def test_title_and_select_is_task_database():
    props = {"Name": {"type": "title"}, "Stage": {"type": "select"}}
    assert is_task_database(props) is True


def test_title_only_is_not_task_database():
    props = {"Name": {"type": "title"}, "Notes": {"type": "rich_text"}}
    assert is_task_database(props) is False


def test_status_without_title_is_not_task_database():
    assert is_task_database({"Status": {"type": "status"}}) is False


def test_empty_properties():
    assert is_task_database({}) is False
    assert is_task_database(None) is False
