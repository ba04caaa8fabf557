"""Pydantic models for Finicity API data validation.

The models only pin down the fields the pipeline reads. Every other field
of the API payload is kept so that persisted files stay byte-faithful to
what Finicity returned.
"""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FinicityRecord(BaseModel):
    """Base for Finicity payloads: unknown fields are preserved."""

    model_config = ConfigDict(extra="allow", coerce_numbers_to_str=True, populate_by_name=True)


class FinicityCustomer(FinicityRecord):
    """Finicity customer response (saved unwrapped as customers.json)."""

    id: str
    username: Optional[str] = None
    first_name: Optional[str] = Field(None, alias="firstName")
    last_name: Optional[str] = Field(None, alias="lastName")
    email: Optional[str] = None
    phone: Optional[str] = None


class FinicityAccount(FinicityRecord):
    """One account of a customer."""

    id: str
    institution_id: Optional[str] = Field(None, alias="institutionId")
    account_number_display: Optional[str] = Field(None, alias="accountNumberDisplay")
    type: Optional[str] = None


class FinicityAccounts(FinicityRecord):
    """Wrapper returned by the customer accounts endpoint."""

    accounts: List[FinicityAccount] = []

    @field_validator("accounts")
    @classmethod
    def validate_unique_ids(cls, v: List[FinicityAccount]) -> List[FinicityAccount]:
        seen = set()
        for account in v:
            if account.id in seen:
                raise ValueError(f"Duplicate account id: {account.id}")
            seen.add(account.id)
        return v

    def institution_ids(self) -> List[str]:
        """Distinct institution ids referenced by the accounts, sorted."""
        return sorted({a.institution_id for a in self.accounts if a.institution_id})


class DailyBalance(FinicityRecord):
    """Beginning and ending balance for one day of the date range."""

    date: Optional[Union[int, str]] = None
    begin_balance: Optional[float] = Field(None, alias="beginBalance")
    end_balance: Optional[float] = Field(None, alias="endBalance")


class TransactionPage(FinicityRecord):
    """One page of transactions for an account."""

    found: int = 0
    displaying: int = 0
    more_available: bool = Field(False, alias="moreAvailable")
    from_date: Optional[str] = Field(None, alias="fromDate")
    to_date: Optional[str] = Field(None, alias="toDate")
    sort: Optional[str] = None
    transactions: List[Dict[str, Any]] = []
    daily_balances: List[DailyBalance] = Field(default_factory=list, alias="dailyBalances")

    @field_validator("transactions", "daily_balances", mode="before")
    @classmethod
    def none_as_empty(cls, v):
        return [] if v is None else v

    @field_validator("found", "displaying", mode="before")
    @classmethod
    def none_as_zero(cls, v):
        return 0 if v is None else v

    @field_validator("more_available", mode="before")
    @classmethod
    def none_as_false(cls, v):
        return False if v is None else v

    @property
    def count(self) -> int:
        return len(self.transactions)

    @property
    def has_next(self) -> bool:
        """More pages follow only if flagged and this page was not empty."""
        return self.more_available and self.count > 0
