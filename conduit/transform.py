"""Reshape Finicity records so Ocrolus accepts them.

Transforms never touch their input: each function works on a deep copy and
the tree-level Transformer always writes into a separate directory. Every
rule can be switched off on its own through TransformSettings.
"""

import copy
import json
import shutil
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List

from pydantic import BaseModel

from conduit.errors import ConfigError, TransformError, ValidationError
from conduit.logger import get_logger
from conduit.models.config import InstitutionPolicy, RecordType, TransformSettings
from conduit.store import DataTree, read_json, trees_overlap, validate_json, write_json

logger = get_logger("conduit.transform")

PLACEHOLDER_FIRST_NAME = "Test"
PLACEHOLDER_LAST_NAME = "User"
PLACEHOLDER_PHONE = "0000000000"
PLACEHOLDER_EMAIL = "test.user@example.com"
PLACEHOLDER_APPLICATION_ID = "0000000000"

# 2000-01-01T00:00:00Z
DEFAULT_OLDEST_TRANSACTION_DATE = 946684800

INSTITUTION_FLAG_FIELDS = ("offerBusinessAccounts", "offerPersonalAccounts")


def is_missing(record: Dict[str, Any], field: str) -> bool:
    value = record.get(field)
    return value is None or value == ""


class Rule:
    """One named edit of a record; `name` is the TransformSettings flag gating it."""

    def __init__(self, name: str):
        self.name = name

    def apply(self, record: Dict[str, Any]) -> bool:
        """Edit record in place. Returns True if anything changed."""
        raise NotImplementedError


class DefaultIfMissing(Rule):
    """Set field to a fixed value when it is absent, null or empty."""

    def __init__(self, name: str, field: str, value: Any):
        super().__init__(name)
        self.field = field
        self.value = value

    def apply(self, record):
        if not is_missing(record, self.field):
            return False
        record[self.field] = copy.deepcopy(self.value)
        return True


class CopyIfMissing(Rule):
    """Fill field from another field of the same record."""

    def __init__(self, name: str, field: str, source: str):
        super().__init__(name)
        self.field = field
        self.source = source

    def apply(self, record):
        if not is_missing(record, self.field) or is_missing(record, self.source):
            return False
        record[self.field] = record[self.source]
        return True


class RemoveFields(Rule):
    """Delete fields wholesale, whatever their value."""

    def __init__(self, name: str, fields: Iterable[str]):
        super().__init__(name)
        self.fields = tuple(fields)

    def apply(self, record):
        changed = False
        for field in self.fields:
            if field in record:
                del record[field]
                changed = True
        return changed


CUSTOMER_RULES: List[Rule] = [
    DefaultIfMissing("customer_first_name", "firstName", PLACEHOLDER_FIRST_NAME),
    DefaultIfMissing("customer_last_name", "lastName", PLACEHOLDER_LAST_NAME),
    DefaultIfMissing("customer_phone", "phone", PLACEHOLDER_PHONE),
    DefaultIfMissing("customer_email", "email", PLACEHOLDER_EMAIL),
    DefaultIfMissing("customer_application_id", "applicationId", PLACEHOLDER_APPLICATION_ID),
]

ACCOUNT_RULES: List[Rule] = [
    DefaultIfMissing("account_oldest_transaction_date", "oldestTransactionDate", DEFAULT_OLDEST_TRANSACTION_DATE),
    DefaultIfMissing("account_detail", "detail", {}),
    CopyIfMissing("account_last4", "realAccountNumberLast4", "accountNumberDisplay"),
]

REMOVE_INSTITUTION_FLAGS = RemoveFields("institution_policy", INSTITUTION_FLAG_FIELDS)


def enabled_rules(rules: List[Rule], settings: TransformSettings) -> List[Rule]:
    return [rule for rule in rules if getattr(settings, rule.name)]


def _apply(rules: List[Rule], record: Dict[str, Any]) -> None:
    for rule in rules:
        rule.apply(record)


def transform_customer(record: Dict[str, Any], settings: TransformSettings) -> Dict[str, Any]:
    result = copy.deepcopy(record)
    if settings.customer:
        _apply(enabled_rules(CUSTOMER_RULES, settings), result)
    return result


def transform_accounts(record: Dict[str, Any], settings: TransformSettings) -> Dict[str, Any]:
    result = copy.deepcopy(record)
    if settings.accounts:
        rules = enabled_rules(ACCOUNT_RULES, settings)
        for account in result.get("accounts") or []:
            if isinstance(account, dict):
                _apply(rules, account)
    return result


def transform_transaction_page(record: Dict[str, Any], settings: TransformSettings) -> Dict[str, Any]:
    # No transaction rules yet; pages pass through.
    return copy.deepcopy(record)


def _institution_objects(record: Dict[str, Any]) -> List[Dict[str, Any]]:
    found = [i for i in record.get("institutions") or [] if isinstance(i, dict)]
    if isinstance(record.get("institution"), dict):
        found.append(record["institution"])
    return found


def transform_institution(record: Dict[str, Any], settings: TransformSettings) -> Dict[str, Any]:
    result = copy.deepcopy(record)
    if settings.institutions and settings.institution_policy == InstitutionPolicy.REMOVE_FLAGS:
        for institution in _institution_objects(result):
            REMOVE_INSTITUTION_FLAGS.apply(institution)
    return result


TRANSFORMS: Dict[RecordType, Callable[[Dict[str, Any], TransformSettings], Dict[str, Any]]] = {
    RecordType.CUSTOMER: transform_customer,
    RecordType.ACCOUNTS: transform_accounts,
    RecordType.TRANSACTIONS: transform_transaction_page,
    RecordType.INSTITUTIONS: transform_institution,
}


def transform_record(record_type: RecordType, record: Dict[str, Any], settings: TransformSettings) -> Dict[str, Any]:
    """Map one original record to its transformed copy."""
    if not isinstance(record, dict):
        raise TransformError(f"Expected a JSON object for {record_type.value}, got {type(record).__name__}")
    return TRANSFORMS[record_type](record, settings)


class TransformSummary(BaseModel):
    """Counts reported by a transform run."""

    customers: int = 0
    accounts: int = 0
    transactions: int = 0
    institutions: int = 0
    changed: int = 0

    @property
    def files(self) -> int:
        return self.customers + self.accounts + self.transactions + self.institutions


class Transformer:
    """Builds the transformed tree from the original tree."""

    def __init__(self, source: DataTree, target: DataTree, settings: TransformSettings = None):
        self.source = source
        self.target = target
        self.settings = settings or TransformSettings()

    def run(self) -> TransformSummary:
        if trees_overlap(self.source.root, self.target.root):
            raise ConfigError(
                f"Source {self.source.root} and target {self.target.root} must be separate directories, neither inside the other"
            )
        if not self.source.root.is_dir():
            raise ValidationError(f"Source directory does not exist: {self.source.root}", identifier=str(self.source.root))

        logger.info("Transforming Finicity JSON for Ocrolus")
        logger.info(f"Source directory: {self.source.root}")
        logger.info(f"Target directory: {self.target.root}")
        self._log_settings()
        self.target.reset()
        summary = TransformSummary()

        logger.info("Step 1/4: Transforming customers.json...")
        summary.changed += self.transform_file(RecordType.CUSTOMER, self.source.customers_path, self.target.customers_path)
        summary.customers = 1

        logger.info("Step 2/4: Transforming accounts.json...")
        summary.changed += self.transform_file(RecordType.ACCOUNTS, self.source.accounts_path, self.target.accounts_path)
        summary.accounts = 1

        logger.info("Step 3/4: Transforming transactions...")
        if self.source.transactions_dir.is_dir():
            for path in self.source.transaction_files():
                summary.changed += self.transform_file(RecordType.TRANSACTIONS, path, self.target.transactions_dir / path.name)
                summary.transactions += 1
            logger.info(f"Transaction files transformed ({summary.transactions} file(s))")
        else:
            logger.warning("No transactions directory found")

        logger.info("Step 4/4: Transforming institutions...")
        if self.source.institutions_dir.is_dir():
            for path in self.source.institution_files():
                summary.changed += self.transform_file(RecordType.INSTITUTIONS, path, self.target.institutions_dir / path.name)
                summary.institutions += 1
            logger.info(f"Institution files transformed ({summary.institutions} file(s))")
        else:
            logger.warning("No institutions directory found")

        logger.info("Transformation complete!")
        logger.info(f"Transformed files saved to: {self.target.root}")
        return summary

    def _log_settings(self) -> None:
        s = self.settings
        logger.info(f"Record types: customer={s.customer} accounts={s.accounts} transactions={s.transactions} institutions={s.institutions}")
        logger.info(f"Institution policy: {s.institution_policy.value}")
        logger.debug(f"Transform settings: {s.model_dump()}")

    def transform_file(self, record_type: RecordType, src: Path, dst: Path) -> int:
        """Transform one file. Returns 1 if a rule changed it, else 0."""
        original = read_json(src)
        transformed = transform_record(record_type, original, self.settings)

        if transformed == original:
            shutil.copyfile(src, dst)
            validate_json(dst)
            return 0

        try:
            json.dumps(transformed)
        except (TypeError, ValueError) as e:
            raise TransformError(f"Transformed {record_type.value} is not valid JSON: {e}", identifier=str(src)) from e

        write_json(dst, transformed)
        logger.debug(f"  Rules applied: {src.name}")
        return 1
