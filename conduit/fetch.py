"""Fetching Finicity records into a data tree."""

import json
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from conduit.errors import ConduitError, FetchError
from conduit.finicity_client import FinicityClient
from conduit.logger import get_logger
from conduit.models import FinicityAccounts, FinicityCustomer, TransactionPage
from conduit.models.config import DEFAULT_FETCH_POLICIES, DEFAULT_PAGE_SIZE, FetchPolicy, RecordType, RuntimeConfig
from conduit.store import DataTree, write_json

logger = get_logger("conduit.fetch")


class FetchSummary(BaseModel):
    """Counts reported by a fetch run."""

    customers: int = 0
    accounts: int = 0
    transactions: int = 0
    pages: int = 0
    institutions: int = 0
    skipped: List[str] = Field(default_factory=list)


def _malformed(what: str, identifier: str, data, error: PydanticValidationError) -> FetchError:
    return FetchError(
        f"Unexpected {what} payload: {error.error_count()} validation error(s)",
        identifier=identifier,
        body=json.dumps(data)[:2000],
    )


class Fetcher:
    """Handles fetching customer, accounts, transactions and institutions from Finicity."""

    def __init__(
        self,
        client: FinicityClient,
        tree: DataTree,
        customer_id: str,
        from_date: int,
        to_date: int,
        page_size: int = DEFAULT_PAGE_SIZE,
        account_id: Optional[str] = None,
        policies: Optional[Dict[RecordType, FetchPolicy]] = None,
    ):
        self.client = client
        self.tree = tree
        self.customer_id = customer_id
        self.from_date = from_date
        self.to_date = to_date
        self.page_size = page_size
        self.account_id = account_id
        self.policies = {**DEFAULT_FETCH_POLICIES, **(policies or {})}

    @classmethod
    def from_config(cls, client: FinicityClient, config: RuntimeConfig, tree: Optional[DataTree] = None) -> "Fetcher":
        config.require("finicity_customer_id")
        return cls(
            client,
            tree or DataTree(config.output_dir),
            customer_id=config.finicity_customer_id,
            from_date=config.txn_from_date,
            to_date=config.txn_to_date,
            page_size=config.txn_limit,
            account_id=config.finicity_account_id,
            policies={record_type: config.policy_for(record_type) for record_type in RecordType},
        )

    def _lenient(self, record_type: RecordType) -> bool:
        return self.policies[record_type] == FetchPolicy.LENIENT

    def fetch_all(self) -> FetchSummary:
        """Fetch every record type into a freshly cleaned tree."""
        self.tree.reset()
        logger.info(f"Output directory: {self.tree.root}")
        summary = FetchSummary()

        logger.info("Step 1/4: Fetching customer data...")
        summary.customers = 1 if self.fetch_customer() is not None else 0

        logger.info("Step 2/4: Fetching accounts data...")
        accounts = self.fetch_accounts()
        summary.accounts = len(accounts.accounts)

        logger.info("Step 3/4: Fetching transactions data...")
        summary.transactions, summary.pages = self.fetch_transactions(accounts)

        logger.info("Step 4/4: Fetching institutions data...")
        institution_ids = accounts.institution_ids()
        summary.institutions = self.fetch_institutions(institution_ids)
        summary.skipped = [i for i in institution_ids if not self.tree.institution_path(i).exists()]

        logger.info("All Finicity data fetched successfully!")
        logger.info(f"Files saved to: {self.tree.root}")
        return summary

    def fetch_customer(self) -> Optional[dict]:
        """Fetch the customer and save it unwrapped to customers.json."""
        logger.info(f"Fetching customer data for customer ID: {self.customer_id}")
        try:
            data = self.client.get_customer(self.customer_id)
            try:
                FinicityCustomer.model_validate(data)
            except PydanticValidationError as e:
                raise _malformed("customer", self.customer_id, data, e) from e
            write_json(self.tree.customers_path, data)
        except ConduitError as e:
            if not self._lenient(RecordType.CUSTOMER):
                raise
            self.tree.customers_path.unlink(missing_ok=True)
            logger.warning(f"Skipping customer {self.customer_id}: {e.message}")
            return None

        logger.info(f"Customer data saved to: {self.tree.customers_path}")
        return data

    def fetch_accounts(self) -> FinicityAccounts:
        """Fetch the account collection and save it to accounts.json."""
        logger.info(f"Fetching all accounts for customer: {self.customer_id}")
        try:
            data = self.client.get_accounts(self.customer_id)
            try:
                accounts = FinicityAccounts.model_validate(data)
            except PydanticValidationError as e:
                raise _malformed("accounts", self.customer_id, data, e) from e

            if self.account_id:
                data, accounts = self._narrow_to_account(data, accounts)

            write_json(self.tree.accounts_path, data)
        except ConduitError as e:
            if not self._lenient(RecordType.ACCOUNTS):
                raise
            self.tree.accounts_path.unlink(missing_ok=True)
            logger.warning(f"Skipping accounts for customer {self.customer_id}: {e.message}")
            return FinicityAccounts()

        logger.info(f"Accounts data saved to: {self.tree.accounts_path} ({len(accounts.accounts)} account(s))")
        return accounts

    def _narrow_to_account(self, data: dict, accounts: FinicityAccounts) -> Tuple[dict, FinicityAccounts]:
        index = [i for i, a in enumerate(accounts.accounts) if a.id == self.account_id]
        if not index:
            raise FetchError(
                f"Account {self.account_id} not found for customer {self.customer_id}",
                identifier=self.account_id,
            )
        logger.info(f"Restricting to account: {self.account_id}")
        narrowed = dict(data)
        narrowed["accounts"] = [data["accounts"][index[0]]]
        return narrowed, FinicityAccounts.model_validate(narrowed)

    def fetch_transactions(self, accounts: FinicityAccounts) -> Tuple[int, int]:
        """Fetch every page for every account. Returns (transactions, pages)."""
        account_ids = [a.id for a in accounts.accounts]
        if not account_ids:
            if not self._lenient(RecordType.TRANSACTIONS):
                raise FetchError(f"No accounts found in {self.tree.accounts_path}")
            logger.warning("No accounts found, skipping transactions")
            return 0, 0

        self.tree.transactions_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Fetching transactions for customer: {self.customer_id}")
        logger.info(f"Date range: {self.from_date} to {self.to_date}")
        logger.info(f"Transactions per page: {self.page_size}")

        total_transactions = 0
        total_pages = 0
        for i, account_id in enumerate(account_ids, 1):
            logger.info(f"[{i}/{len(account_ids)}] Processing account: {account_id}")
            transactions, pages = self.fetch_account_transactions(account_id)
            total_transactions += transactions
            total_pages += pages

        logger.info("All transactions fetched successfully!")
        logger.info(f"  Total accounts: {len(account_ids)}")
        logger.info(f"  Total transactions: {total_transactions}")
        logger.info(f"  Total pages: {total_pages}")
        return total_transactions, total_pages

    def fetch_account_transactions(self, account_id: str) -> Tuple[int, int]:
        """Page through one account's transactions.

        The offset advances by the number of transactions actually received,
        so a short page never skips records. Returns (transactions, pages).
        """
        start = 1
        page_num = 1
        account_count = 0
        pages = 0
        last_page = None

        while True:
            path = self.tree.transaction_page_path(account_id, page_num)
            logger.info(f"  Fetching page {page_num} (start={start}, limit={self.page_size})...")
            try:
                page = self._fetch_page(account_id, start, path)
            except ConduitError as e:
                path.unlink(missing_ok=True)
                if not self._lenient(RecordType.TRANSACTIONS):
                    logger.error(f"Failed to fetch transactions for account {account_id}, page {page_num}")
                    raise
                logger.warning(f"  Stopping account {account_id} at page {page_num}: {e.message}")
                break

            account_count += page.count
            pages += 1
            last_page = page
            logger.info(f"  Page {page_num} saved: {path} ({page.count} transactions)")

            if not page.has_next:
                break
            start += page.count
            page_num += 1

        if last_page is not None and not last_page.more_available and account_count != last_page.found:
            logger.warning(
                f"  Account {account_id}: received {account_count} transactions but Finicity reported {last_page.found}"
            )
        logger.info(f"  Account {account_id} complete: {account_count} transactions across {pages} page(s)")
        return account_count, pages

    def _fetch_page(self, account_id: str, start: int, path: Path) -> TransactionPage:
        data = self.client.get_transactions(
            self.customer_id,
            account_id,
            from_date=self.from_date,
            to_date=self.to_date,
            start=start,
            limit=self.page_size,
        )
        try:
            page = TransactionPage.model_validate(data)
        except PydanticValidationError as e:
            raise _malformed("transactions", account_id, data, e) from e
        write_json(path, data)
        return page

    def fetch_institutions(self, institution_ids: List[str]) -> int:
        """Fetch each institution into its own file. Returns the number saved."""
        self.tree.institutions_dir.mkdir(parents=True, exist_ok=True)
        if not institution_ids:
            logger.warning("No institution IDs provided, no institution files will be created")
            return 0

        logger.info(f"Fetching {len(institution_ids)} institution(s)...")
        fetched = 0
        for institution_id in institution_ids:
            if self.fetch_institution(institution_id):
                fetched += 1

        logger.info(f"Institutions data saved to: {self.tree.institutions_dir} ({fetched} institution(s))")
        return fetched

    def fetch_institution(self, institution_id: str) -> bool:
        """Fetch one institution. Returns True if a file was saved."""
        logger.info(f"Fetching institution {institution_id}...")
        path = self.tree.institution_path(institution_id)
        try:
            data = self.client.get_institution(institution_id)
            if not isinstance(data, dict):
                raise FetchError(
                    f"Unexpected institution payload for {institution_id}",
                    identifier=institution_id,
                    body=json.dumps(data)[:2000],
                )
            write_json(path, data)
        except ConduitError as e:
            path.unlink(missing_ok=True)
            if not self._lenient(RecordType.INSTITUTIONS):
                raise
            logger.warning(f"Invalid response for institution {institution_id}, skipping: {e.message}")
            return False

        logger.info(f"  Saved to: {path}")
        return True
