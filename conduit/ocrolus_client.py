"""Simple Ocrolus API client."""

from contextlib import ExitStack
from pathlib import Path
from typing import Dict, List, Optional, Type

import requests

from conduit.auth import authenticate_ocrolus
from conduit.errors import HTTPFailure, StatusFetchError, UploadError
from conduit.models.config import RuntimeConfig

MASKED_TOKEN = "***MASKED***"
AGGREGATE_SOURCE = "FINICITY"


class OcrolusClient:
    """Basic Ocrolus API client bound to one bearer token."""

    base_url = "https://api.ocrolus.com"

    def __init__(self, token: str, session: Optional[requests.Session] = None):
        self.token = token
        self.session = session or requests.Session()

    @classmethod
    def from_config(cls, config: RuntimeConfig, session: Optional[requests.Session] = None) -> "OcrolusClient":
        """Authenticate with the configured OAuth2 client credentials."""
        config.require("ocrolus_client_id", "ocrolus_client_secret")
        session = session or requests.Session()
        token = authenticate_ocrolus(config.ocrolus_client_id, config.ocrolus_client_secret, session=session)
        return cls(token, session=session)

    @property
    def upload_url(self) -> str:
        return f"{self.base_url}/v1/book/upload/json"

    @property
    def status_url(self) -> str:
        return f"{self.base_url}/v1/book/status"

    def _headers(self, masked: bool = False) -> Dict[str, str]:
        token = MASKED_TOKEN if masked else self.token
        return {"Authorization": f"Bearer {token}", "Accept": "application/json"}

    def masked_headers(self) -> Dict[str, str]:
        """Request headers safe to log."""
        return self._headers(masked=True)

    @staticmethod
    def _decode(response: requests.Response, error_cls: Type[HTTPFailure], what: str, identifier: str) -> dict:
        try:
            data = response.json()
        except ValueError as e:
            raise error_cls(
                f"Invalid JSON received from Ocrolus {what}",
                identifier=identifier,
                status_code=response.status_code,
                body=response.text,
            ) from e
        if not isinstance(data, dict):
            raise error_cls(
                f"Unexpected response from Ocrolus {what}",
                identifier=identifier,
                status_code=response.status_code,
                body=response.text,
            )
        return data

    def upload_bundle(
        self,
        book_pk: str,
        customers_path: Path,
        accounts_path: Path,
        transaction_paths: List[Path],
        institution_paths: List[Path],
    ) -> dict:
        """POST the four record groups as one multipart submission.

        Returns the decoded response body; interpreting its status is up to
        the caller.
        """
        with ExitStack() as stack:
            def part(field: str, path: Path):
                handle = stack.enter_context(open(path, "rb"))
                return (field, (Path(path).name, handle, "application/json"))

            files = [part("accounts", accounts_path), part("customers", customers_path)]
            files.extend(part("transactions", p) for p in transaction_paths)
            files.extend(part("institutions", p) for p in institution_paths)

            try:
                response = self.session.post(
                    self.upload_url,
                    params={"aggregate_source": AGGREGATE_SOURCE},
                    headers=self._headers(),
                    data={"pk": book_pk},
                    files=files,
                )
            except requests.RequestException as e:
                raise UploadError(f"Upload request failed: {e}", identifier=book_pk) from e

        return self._decode(response, UploadError, "upload", book_pk)

    def get_book_status(self, book_pk: str) -> dict:
        """GET the processing status of a Book and its documents."""
        try:
            response = self.session.get(self.status_url, params={"pk": book_pk}, headers=self._headers())
        except requests.RequestException as e:
            raise StatusFetchError(f"Book status request failed: {e}", identifier=book_pk) from e

        return self._decode(response, StatusFetchError, "book status", book_pk)
