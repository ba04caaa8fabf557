"""Simple Finicity API client."""

from typing import Any, Dict, Optional

import requests

from conduit.auth import authenticate_finicity
from conduit.errors import FetchError
from conduit.models.config import RuntimeConfig


class FinicityClient:
    """Basic Finicity API client bound to one app token."""

    base_url = "https://api.finicity.com"

    def __init__(self, app_key: str, token: str, session: Optional[requests.Session] = None):
        self.app_key = app_key
        self.token = token
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: RuntimeConfig, session: Optional[requests.Session] = None) -> "FinicityClient":
        """Authenticate with the configured partner credentials."""
        config.require("finicity_partner_id", "finicity_partner_secret", "finicity_app_key")
        session = session or requests.Session()
        token = authenticate_finicity(
            config.finicity_partner_id,
            config.finicity_partner_secret,
            config.finicity_app_key,
            session=session,
        )
        return cls(config.finicity_app_key, token, session=session)

    def _headers(self) -> Dict[str, str]:
        return {
            "Finicity-App-Key": self.app_key,
            "Finicity-App-Token": self.token,
            "Accept": "application/json",
        }

    def _make_request(self, endpoint: str, params: Optional[Dict[str, Any]] = None, identifier: Optional[str] = None):
        """Make authenticated GET request and return the decoded JSON body."""
        url = f"{self.base_url}{endpoint}"
        try:
            response = self.session.get(url, headers=self._headers(), params=params)
        except requests.RequestException as e:
            raise FetchError(f"Request to {endpoint} failed: {e}", identifier=identifier) from e

        body = response.text
        if response.status_code >= 400:
            raise FetchError(
                f"Finicity returned an error for {endpoint}",
                identifier=identifier,
                status_code=response.status_code,
                body=body,
            )
        if not body or not body.strip():
            raise FetchError(f"Empty response for {endpoint}", identifier=identifier, status_code=response.status_code)

        try:
            return response.json()
        except ValueError as e:
            raise FetchError(
                f"Invalid JSON received for {endpoint}",
                identifier=identifier,
                status_code=response.status_code,
                body=body,
            ) from e

    def get_customer(self, customer_id: str):
        """Get a customer record."""
        return self._make_request(f"/aggregation/v1/customers/{customer_id}", identifier=customer_id)

    def get_accounts(self, customer_id: str):
        """Get all accounts for a customer, wrapped as {"accounts": [...]}."""
        return self._make_request(f"/aggregation/v1/customers/{customer_id}/accounts", identifier=customer_id)

    def get_transactions(
        self,
        customer_id: str,
        account_id: str,
        from_date: int,
        to_date: int,
        start: int = 1,
        limit: int = 20,
    ):
        """Get one page of transactions for an account, with daily balances."""
        params = {
            "fromDate": from_date,
            "toDate": to_date,
            "start": start,
            "limit": limit,
            "showDailyBalance": "true",
        }
        return self._make_request(
            f"/aggregation/v4/customers/{customer_id}/accounts/{account_id}/transactions",
            params=params,
            identifier=account_id,
        )

    def get_institution(self, institution_id: str):
        """Get an institution record."""
        return self._make_request(f"/institution/v2/institutions/{institution_id}", identifier=institution_id)
