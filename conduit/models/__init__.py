"""Conduit data models for API responses and configuration."""

from .finicity import (
    DailyBalance,
    FinicityAccount,
    FinicityAccounts,
    FinicityCustomer,
    TransactionPage,
)
from .ocrolus import (
    BookDocument,
    BookStatus,
    DocumentReport,
    DocumentState,
    OcrolusEnvelope,
    StatusReport,
    UploadResult,
)
from .config import FetchPolicy, InstitutionPolicy, RecordType, RuntimeConfig, TransformSettings
from .cli import DateRangeParams

__all__ = [
    "DailyBalance",
    "FinicityAccount",
    "FinicityAccounts",
    "FinicityCustomer",
    "TransactionPage",
    "BookDocument",
    "BookStatus",
    "DocumentReport",
    "DocumentState",
    "OcrolusEnvelope",
    "StatusReport",
    "UploadResult",
    "FetchPolicy",
    "InstitutionPolicy",
    "RecordType",
    "RuntimeConfig",
    "TransformSettings",
    "DateRangeParams",
]
