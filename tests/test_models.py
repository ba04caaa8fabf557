"""Tests for Finicity and Ocrolus response models."""

import pytest
from pydantic import ValidationError

from conduit.models import (
    DocumentState,
    FinicityAccounts,
    FinicityCustomer,
    OcrolusEnvelope,
    TransactionPage,
)


class TestFinicityModels:
    """Test Finicity payload models."""

    def test_customer_keeps_unknown_fields(self):
        customer = FinicityCustomer.model_validate({"id": 7001, "firstName": "Ana", "createdDate": 1600000000})

        assert customer.id == "7001"
        assert customer.first_name == "Ana"
        assert customer.model_dump(by_alias=True)["createdDate"] == 1600000000

    def test_customer_requires_id(self):
        with pytest.raises(ValidationError):
            FinicityCustomer.model_validate({"username": "jdoe"})

    def test_institution_ids_distinct_and_sorted(self):
        accounts = FinicityAccounts.model_validate({
            "accounts": [
                {"id": "a1", "institutionId": 102105},
                {"id": "a2", "institutionId": "101732"},
                {"id": "a3", "institutionId": 101732},
                {"id": "a4"},
            ]
        })

        assert accounts.institution_ids() == ["101732", "102105"]

    def test_duplicate_account_ids(self):
        with pytest.raises(ValidationError):
            FinicityAccounts.model_validate({"accounts": [{"id": "a1"}, {"id": "a1"}]})

    def test_transaction_page(self):
        page = TransactionPage.model_validate({
            "found": 3,
            "displaying": 2,
            "moreAvailable": "true",
            "transactions": [{"id": 1}, {"id": 2}],
            "dailyBalances": None,
        })

        assert page.count == 2
        assert page.has_next is True
        assert page.daily_balances == []

    def test_null_page_metadata_defaults(self):
        page = TransactionPage.model_validate({"found": None, "displaying": None, "moreAvailable": None, "transactions": [{"id": 1}]})

        assert (page.found, page.displaying, page.more_available) == (0, 0, False)
        assert page.has_next is False

    def test_empty_page_has_no_next(self):
        page = TransactionPage.model_validate({"found": 3, "moreAvailable": True, "transactions": None})

        assert page.count == 0
        assert page.has_next is False


class TestOcrolusModels:
    """Test Ocrolus response models."""

    @pytest.mark.parametrize("status,expected", [
        ("VERIFICATION_COMPLETE", DocumentState.VERIFIED),
        ("REJECTED", DocumentState.REJECTED),
        ("PENDING_UPLOAD", DocumentState.PENDING),
        ("PROCESSING", DocumentState.PENDING),
        ("SOMETHING_NEW", DocumentState.OTHER),
        (None, DocumentState.OTHER),
    ])
    def test_document_state(self, status, expected):
        assert DocumentState.from_status(status) == expected

    def test_envelope_status_numeric_or_string(self):
        assert OcrolusEnvelope.model_validate({"status": 200}).ok
        assert OcrolusEnvelope.model_validate({"status": "200"}).ok
        assert not OcrolusEnvelope.model_validate({"status": 400}).ok

    def test_envelope_error_message_fallback(self):
        envelope = OcrolusEnvelope.model_validate({"status": 400, "response": {"message": "Bad pk"}})

        assert envelope.error_message == "Bad pk"
