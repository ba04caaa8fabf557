"""Runtime configuration loading for Conduit."""

import os
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path
from typing import Dict, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from conduit import credential_manager
from conduit.errors import ConfigError, missing_variables
from conduit.paths import get_default_env_file, get_default_output_dir, get_default_transformed_dir
from conduit.store import trees_overlap

DEFAULT_PAGE_SIZE = 20
DEFAULT_LOOKBACK_DAYS = 90


class RecordType(str, Enum):
    """The four record groups of an upload bundle."""

    CUSTOMER = "customer"
    ACCOUNTS = "accounts"
    TRANSACTIONS = "transactions"
    INSTITUTIONS = "institutions"


class FetchPolicy(str, Enum):
    """How a fetch stage reacts to a bad item.

    strict: abort the stage on the first bad response.
    lenient: warn, drop the item, keep going.
    """

    STRICT = "strict"
    LENIENT = "lenient"


class InstitutionPolicy(str, Enum):
    """Alternative institution transforms; exactly one applies per run."""

    PASSTHROUGH = "passthrough"
    REMOVE_FLAGS = "remove_flags"


DEFAULT_FETCH_POLICIES = {
    RecordType.CUSTOMER: FetchPolicy.STRICT,
    RecordType.ACCOUNTS: FetchPolicy.STRICT,
    RecordType.TRANSACTIONS: FetchPolicy.STRICT,
    RecordType.INSTITUTIONS: FetchPolicy.LENIENT,
}


def _now() -> int:
    return int(datetime.now(timezone.utc).timestamp())


def _default_from_date() -> int:
    return int((datetime.now(timezone.utc) - timedelta(days=DEFAULT_LOOKBACK_DAYS)).timestamp())


class TransformSettings(BaseModel):
    """Enable flags for each record type and each individual rule."""

    customer: bool = True
    accounts: bool = True
    transactions: bool = True
    institutions: bool = True

    customer_first_name: bool = True
    customer_last_name: bool = True
    customer_phone: bool = True
    customer_email: bool = True
    customer_application_id: bool = True

    account_oldest_transaction_date: bool = True
    account_detail: bool = True
    account_last4: bool = True

    institution_policy: InstitutionPolicy = InstitutionPolicy.PASSTHROUGH


# Environment variable for every TransformSettings field
TRANSFORM_ENV = {
    "customer": "TRANSFORM_CUSTOMER",
    "accounts": "TRANSFORM_ACCOUNTS",
    "transactions": "TRANSFORM_TRANSACTIONS",
    "institutions": "TRANSFORM_INSTITUTIONS",
    "customer_first_name": "TRANSFORM_CUSTOMER_FIRSTNAME",
    "customer_last_name": "TRANSFORM_CUSTOMER_LASTNAME",
    "customer_phone": "TRANSFORM_CUSTOMER_PHONE",
    "customer_email": "TRANSFORM_CUSTOMER_EMAIL",
    "customer_application_id": "TRANSFORM_CUSTOMER_APPLICATIONID",
    "account_oldest_transaction_date": "TRANSFORM_ACCOUNT_OLDEST_TXN_DATE",
    "account_detail": "TRANSFORM_ACCOUNT_DETAIL",
    "account_last4": "TRANSFORM_ACCOUNT_LAST4",
    "institution_policy": "INSTITUTION_TRANSFORM_POLICY",
}


class RuntimeConfig(BaseModel):
    """Runtime configuration for Conduit (credentials, date range, directories)."""

    finicity_partner_id: Optional[str] = None
    finicity_partner_secret: Optional[str] = None
    finicity_app_key: Optional[str] = None
    finicity_customer_id: Optional[str] = None
    finicity_account_id: Optional[str] = None

    ocrolus_client_id: Optional[str] = None
    ocrolus_client_secret: Optional[str] = None
    ocrolus_book_pk: Optional[str] = None

    txn_from_date: int = Field(default_factory=_default_from_date, ge=0, description="Unix timestamp, start of transaction range")
    txn_to_date: int = Field(default_factory=_now, ge=0, description="Unix timestamp, end of transaction range")
    txn_limit: int = Field(DEFAULT_PAGE_SIZE, ge=1, description="Transactions per page")

    output_dir: Path = Field(default_factory=get_default_output_dir)
    transformed_dir: Path = Field(default_factory=get_default_transformed_dir)

    transform: TransformSettings = Field(default_factory=TransformSettings)
    fetch_policies: Dict[RecordType, FetchPolicy] = Field(default_factory=lambda: dict(DEFAULT_FETCH_POLICIES))

    @model_validator(mode="after")
    def validate_ranges(self):
        if self.txn_from_date > self.txn_to_date:
            raise ValueError(
                f"TXN_FROM_DATE ({self.txn_from_date}) is after TXN_TO_DATE ({self.txn_to_date})"
            )
        if trees_overlap(self.output_dir, self.transformed_dir):
            raise ValueError("OUTPUT_DIR and TRANSFORMED_DIR must be separate directories, neither inside the other")
        for record_type in RecordType:
            self.fetch_policies.setdefault(record_type, DEFAULT_FETCH_POLICIES[record_type])
        return self

    def policy_for(self, record_type: RecordType) -> FetchPolicy:
        return self.fetch_policies[record_type]

    def require(self, *fields: str) -> None:
        """Raise ConfigError naming every listed field that is not set."""
        missing = [name.upper() for name in fields if not getattr(self, name)]
        if missing:
            raise ConfigError(missing_variables(missing))

    @classmethod
    def load(cls, env_file: Optional[Path] = None, **overrides) -> "RuntimeConfig":
        """
        Load configuration from keyring and environment.

        Credentials come from the system keyring first, then from the
        environment. A .env file is loaded into the environment without
        overriding variables that are already set. Keyword overrides win
        over both (used by CLI flags).
        """
        load_dotenv(env_file or get_default_env_file())

        values = credential_manager.get_all_credentials(fallback_to_env=True)

        plain = {
            "finicity_customer_id": "FINICITY_CUSTOMER_ID",
            "finicity_account_id": "FINICITY_ACCOUNT_ID",
            "ocrolus_book_pk": "OCROLUS_BOOK_PK",
            "txn_from_date": "TXN_FROM_DATE",
            "txn_to_date": "TXN_TO_DATE",
            "txn_limit": "TXN_LIMIT",
            "output_dir": "OUTPUT_DIR",
            "transformed_dir": "TRANSFORMED_DIR",
        }
        for field, env_name in plain.items():
            value = os.getenv(env_name)
            if value:
                values[field] = value

        transform = {}
        for field, env_name in TRANSFORM_ENV.items():
            value = os.getenv(env_name)
            if value:
                transform[field] = value.strip().lower()
        values["transform"] = transform

        policies = {}
        for record_type in RecordType:
            value = os.getenv(f"FETCH_POLICY_{record_type.name}")
            if value:
                policies[record_type] = value.strip().lower()
        values["fetch_policies"] = {**DEFAULT_FETCH_POLICIES, **policies}

        values.update({k: v for k, v in overrides.items() if v is not None})

        try:
            return cls(**values)
        except ValidationError as e:
            problems = []
            for error in e.errors():
                field = ".".join(str(part) for part in error["loc"]) or "config"
                problems.append(f"  {field}: {error['msg']}")
            raise ConfigError("Invalid configuration:\n" + "\n".join(problems)) from e
