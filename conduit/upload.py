"""Upload a transformed data tree to an Ocrolus Book."""

import json
from pathlib import Path
from typing import List

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from conduit.errors import UploadError, ValidationError
from conduit.logger import get_logger
from conduit.models import OcrolusEnvelope, UploadResult
from conduit.ocrolus_client import AGGREGATE_SOURCE, OcrolusClient
from conduit.store import DataTree, read_json

logger = get_logger("conduit.upload")


class UploadBundle(BaseModel):
    """Files making up one submission, already validated."""

    customers: Path
    accounts: Path
    transactions: List[Path]
    institutions: List[Path]
    transaction_count: int = 0
    institution_count: int = 0


def _count(data, key: str) -> int:
    if isinstance(data, dict) and isinstance(data.get(key), list):
        return len(data[key])
    return 0


def _preview(path: Path, limit: int = 100) -> str:
    return json.dumps(read_json(path), separators=(",", ":"))[:limit]


def collect_bundle(tree: DataTree) -> UploadBundle:
    """Check upload preconditions without touching the network.

    Raises:
        UploadError: If a file is missing or malformed, or a directory holds no files
    """
    logger.info("Validating input files...")
    try:
        for path in (tree.customers_path, tree.accounts_path):
            read_json(path)

        if not tree.transactions_dir.is_dir():
            raise UploadError(f"Transactions directory not found: {tree.transactions_dir}", identifier=str(tree.transactions_dir))
        if not tree.institutions_dir.is_dir():
            raise UploadError(f"Institutions directory not found: {tree.institutions_dir}", identifier=str(tree.institutions_dir))

        transactions = tree.transaction_files()
        if not transactions:
            raise UploadError(f"No transaction files found in: {tree.transactions_dir}", identifier=str(tree.transactions_dir))
        logger.info(f"Found {len(transactions)} transaction file(s)")
        transaction_count = sum(_count(read_json(p), "transactions") for p in transactions)

        institutions = tree.institution_files()
        if not institutions:
            raise UploadError(f"No institution files found in: {tree.institutions_dir}", identifier=str(tree.institutions_dir))
        logger.info(f"Found {len(institutions)} institution file(s)")
        institution_count = sum(_count(read_json(p), "institutions") for p in institutions)
    except ValidationError as e:
        raise UploadError(e.message, identifier=e.identifier) from e

    logger.info("All input files validated")
    return UploadBundle(
        customers=tree.customers_path,
        accounts=tree.accounts_path,
        transactions=transactions,
        institutions=institutions,
        transaction_count=transaction_count,
        institution_count=institution_count,
    )


def describe_request(client: OcrolusClient, book_pk: str, bundle: UploadBundle) -> str:
    """Render the outgoing request for the log, with the bearer token masked."""
    parts = [f"POST {client.upload_url}?aggregate_source={AGGREGATE_SOURCE}"]
    parts.extend(f"-H '{name}: {value}'" for name, value in client.masked_headers().items())
    parts.append(f"-F pk={book_pk}")
    parts.append(f"-F accounts=@{bundle.accounts}")
    parts.append(f"-F customers=@{bundle.customers}")
    parts.extend(f"-F transactions=@{p}" for p in bundle.transactions)
    parts.extend(f"-F institutions=@{p}" for p in bundle.institutions)
    return " ".join(parts)


def interpret_response(body: dict, book_pk: str) -> UploadResult:
    """Turn the upload response into a result, or raise UploadError."""
    try:
        envelope = OcrolusEnvelope.model_validate(body)
    except PydanticValidationError as e:
        raise UploadError("Unexpected upload response", identifier=book_pk, body=json.dumps(body)) from e
    if not envelope.ok:
        raise UploadError(
            f"Upload failed with status: {envelope.status}; message: {envelope.error_message}",
            identifier=book_pk,
            body=json.dumps(body),
        )
    return UploadResult(status=envelope.status, message=envelope.message, response=envelope.response, body=body)


def upload_tree(client: OcrolusClient, book_pk: str, tree: DataTree) -> UploadResult:
    """Validate the tree, upload it as one bundle and check the response."""
    if not book_pk:
        raise UploadError("No Ocrolus Book PK given")

    bundle = collect_bundle(tree)

    logger.info("Preview of JSON files being uploaded:")
    logger.info(f"  Customers: {_preview(bundle.customers)}...")
    logger.info(f"  Accounts: {_preview(bundle.accounts)}...")
    logger.info(f"  Transactions: {bundle.transaction_count} transaction(s) across {len(bundle.transactions)} file(s)")
    logger.info(f"  Institutions: {bundle.institution_count} institution(s) across {len(bundle.institutions)} file(s)")

    logger.info(f"Uploading Finicity JSON bundle to Ocrolus Book PK: {book_pk}...")
    logger.info("Executing request:")
    logger.info(f"  {describe_request(client, book_pk, bundle)}")

    body = client.upload_bundle(
        book_pk,
        customers_path=bundle.customers,
        accounts_path=bundle.accounts,
        transaction_paths=bundle.transactions,
        institution_paths=bundle.institutions,
    )
    result = interpret_response(body, book_pk)

    logger.info("Upload successful!")
    logger.info(json.dumps(body, indent=2))
    return result
