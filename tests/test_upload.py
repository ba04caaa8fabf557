"""Tests for conduit.upload module."""

import logging
from unittest.mock import Mock

import pytest

from conduit.errors import UploadError
from conduit.ocrolus_client import MASKED_TOKEN, OcrolusClient
from conduit.store import DataTree, write_json
from conduit.upload import collect_bundle, describe_request, interpret_response, upload_tree


@pytest.fixture
def tree(tmp_path):
    tree = DataTree(tmp_path / "transformed")
    tree.reset()
    write_json(tree.customers_path, {"id": "7001", "firstName": "Test"})
    write_json(tree.accounts_path, {"accounts": [{"id": "a1"}]})
    write_json(tree.transaction_page_path("a1", 1), {"transactions": [{"id": 1}, {"id": 2}]})
    write_json(tree.transaction_page_path("a1", 2), {"transactions": [{"id": 3}]})
    write_json(tree.institution_path("101732"), {"institution": {"id": 101732}})
    return tree


class TestCollectBundle:
    """Preconditions are checked before any network call."""

    def test_collects_all_files(self, tree):
        bundle = collect_bundle(tree)

        assert bundle.customers == tree.customers_path
        assert len(bundle.transactions) == 2
        assert bundle.transaction_count == 3
        assert len(bundle.institutions) == 1

    def test_no_transaction_files(self, tree):
        for path in tree.transaction_files():
            path.unlink()
        client = Mock()

        with pytest.raises(UploadError) as exc_info:
            upload_tree(client, "42", tree)

        assert "No transaction files" in str(exc_info.value)
        client.upload_bundle.assert_not_called()

    def test_no_institution_files(self, tree):
        for path in tree.institution_files():
            path.unlink()
        client = Mock()

        with pytest.raises(UploadError) as exc_info:
            upload_tree(client, "42", tree)

        assert "No institution files" in str(exc_info.value)
        client.upload_bundle.assert_not_called()

    def test_missing_customers_file(self, tree):
        tree.customers_path.unlink()

        with pytest.raises(UploadError) as exc_info:
            collect_bundle(tree)

        assert exc_info.value.kind == "UploadError"

    def test_invalid_transaction_file(self, tree):
        tree.transaction_page_path("a1", 1).write_text("not json")

        with pytest.raises(UploadError):
            collect_bundle(tree)

    def test_missing_directory(self, tmp_path):
        tree = DataTree(tmp_path / "partial")
        write_json(tree.customers_path, {"id": "1"})
        write_json(tree.accounts_path, {"accounts": []})

        with pytest.raises(UploadError) as exc_info:
            collect_bundle(tree)

        assert "directory not found" in str(exc_info.value)


class TestInterpretResponse:
    """Ocrolus signals success with status 200 in the body."""

    def test_success(self):
        result = interpret_response({"status": 200, "message": "OK", "response": {"uploaded": 4}}, "42")

        assert result.status == "200"
        assert result.response == {"uploaded": 4}

    def test_failure_status(self):
        with pytest.raises(UploadError) as exc_info:
            interpret_response({"status": 400, "message": "Book not found"}, "42")

        assert "400" in str(exc_info.value)
        assert "Book not found" in str(exc_info.value)

    def test_failure_message_from_response(self):
        with pytest.raises(UploadError) as exc_info:
            interpret_response({"status": 500, "response": {"message": "Parse failure"}}, "42")

        assert "Parse failure" in str(exc_info.value)

    def test_missing_status_is_failure(self):
        with pytest.raises(UploadError):
            interpret_response({}, "42")


def test_describe_request_masks_token(tree):
    client = OcrolusClient("super-secret")

    text = describe_request(client, "42", collect_bundle(tree))

    assert "super-secret" not in text
    assert f"Bearer {MASKED_TOKEN}" in text
    assert "aggregate_source=FINICITY" in text
    assert "-F pk=42" in text


def test_upload_tree_success(tree, caplog):
    client = OcrolusClient("super-secret", session=Mock())
    client.session.post.return_value = Mock(status_code=200, text='{"status": 200}')
    client.session.post.return_value.json.return_value = {"status": 200, "message": "OK"}

    with caplog.at_level(logging.INFO):
        result = upload_tree(client, "42", tree)

    assert result.status == "200"
    client.session.post.assert_called_once()
    files = client.session.post.call_args.kwargs["files"]
    assert [field for field, _ in files] == ["accounts", "customers", "transactions", "transactions", "institutions"]
    assert "super-secret" not in caplog.text


def test_upload_tree_failure(tree):
    client = Mock()
    client.upload_url = "https://api.ocrolus.com/v1/book/upload/json"
    client.masked_headers.return_value = {"Authorization": f"Bearer {MASKED_TOKEN}"}
    client.upload_bundle.return_value = {"status": 400, "message": "Invalid book"}

    with pytest.raises(UploadError):
        upload_tree(client, "42", tree)


def test_upload_requires_book_pk(tree):
    client = Mock()

    with pytest.raises(UploadError):
        upload_tree(client, "", tree)

    client.upload_bundle.assert_not_called()
