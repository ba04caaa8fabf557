"""Ingestion status report for an Ocrolus Book."""

import json

from pydantic import ValidationError as PydanticValidationError

from conduit.errors import StatusFetchError
from conduit.logger import get_logger
from conduit.models import BookStatus, DocumentReport, DocumentState, OcrolusEnvelope, StatusReport
from conduit.ocrolus_client import OcrolusClient

logger = get_logger("conduit.status")


def build_status_report(body: dict, book_pk: str) -> StatusReport:
    """Parse a book status response into a report.

    A missing `status` field is accepted; any other value than 200 is not.

    Raises:
        StatusFetchError: If Ocrolus reports an error or the payload is malformed
    """
    try:
        envelope = OcrolusEnvelope.model_validate(body)
    except PydanticValidationError as e:
        raise StatusFetchError("Unexpected book status payload", identifier=book_pk, body=json.dumps(body)) from e
    if envelope.status and not envelope.ok:
        raise StatusFetchError(
            f"API request failed with status: {envelope.status}",
            identifier=book_pk,
            body=json.dumps(body),
        )

    try:
        book = BookStatus.model_validate(envelope.response or {})
    except PydanticValidationError as e:
        raise StatusFetchError("Unexpected book status payload", identifier=book_pk, body=json.dumps(body)) from e

    documents = []
    for doc in book.docs:
        rejected = doc.state == DocumentState.REJECTED
        documents.append(
            DocumentReport(
                identifier=doc.identifier,
                name=doc.name,
                state=doc.state,
                status=doc.status,
                reason=doc.rejection if rejected else None,
                description=doc.rejection_detail if rejected else None,
            )
        )
    return StatusReport(book=book, documents=documents)


def log_status_report(report: StatusReport) -> None:
    book = report.book
    logger.info("==========================================")
    logger.info("Book Information")
    logger.info("==========================================")
    logger.info(f"Book PK: {book.pk or 'N/A'}")
    logger.info(f"Book UUID: {book.uuid or 'N/A'}")
    logger.info(f"Book Name: {book.name or 'N/A'}")
    logger.info(f"Book Status: {book.book_status or 'N/A'}")
    logger.info(f"Book Class: {book.book_class or 'N/A'}")
    logger.info(f"Created: {book.created_ts or 'N/A'}")

    if not report.documents:
        logger.info("No documents found in this book")
        return

    logger.info("==========================================")
    logger.info(f"Documents ({report.total} total)")
    logger.info("==========================================")
    for doc in report.documents:
        logger.info(f"- {doc.identifier or 'N/A'} {doc.name or ''} [{doc.state.value}: {doc.status or 'N/A'}]")
        if doc.state == DocumentState.REJECTED:
            logger.warning(f"    Reason: {doc.reason or 'N/A'}")
            if doc.description:
                logger.warning(f"    Description: {doc.description}")

    logger.info("Summary:")
    logger.info(f"  Total Documents: {report.total}")
    logger.info(f"  Verified: {report.verified}")
    logger.info(f"  Rejected: {report.rejected}")

    if report.rejected == 0:
        logger.info("No errors found in any documents")
    else:
        logger.warning(f"Found {report.rejected} document(s) with errors")


def report_book_status(client: OcrolusClient, book_pk: str) -> StatusReport:
    """Fetch one snapshot of the book status and log it.

    Rejected documents are reported as warnings; deciding whether they are
    fatal is left to the caller.
    """
    logger.info(f"Fetching book status for Book PK: {book_pk}")
    body = client.get_book_status(book_pk)
    report = build_status_report(body, book_pk)
    logger.info("Book status retrieved successfully")
    log_status_report(report)
    return report
