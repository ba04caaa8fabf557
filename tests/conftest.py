"""Test configuration: no real keyring, no leaking environment."""

from unittest.mock import patch

import pytest

from conduit import credential_manager
from conduit.models.config import TRANSFORM_ENV, RecordType

CONFIG_ENV = [key.upper() for key in credential_manager.CREDENTIAL_KEYS] + [
    "FINICITY_CUSTOMER_ID",
    "FINICITY_ACCOUNT_ID",
    "OCROLUS_BOOK_PK",
    "TXN_FROM_DATE",
    "TXN_TO_DATE",
    "TXN_LIMIT",
    "OUTPUT_DIR",
    "TRANSFORMED_DIR",
] + list(TRANSFORM_ENV.values()) + [f"FETCH_POLICY_{r.name}" for r in RecordType]


@pytest.fixture(autouse=True)
def isolated_credentials(monkeypatch):
    for name in CONFIG_ENV:
        monkeypatch.delenv(name, raising=False)
    with patch("conduit.credential_manager.keyring.get_password", return_value=None):
        yield
