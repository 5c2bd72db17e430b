"""
Contract Validation Module

Валидация JSON контрактов: audit log и snapshots рынков/аккаунтов.
"""

from .validators import (
    AccountSnapshotValidator,
    AuditRecordValidator,
    ContractValidator,
    MarketSnapshotValidator,
    SchemaLoader,
    validate_account_snapshot,
    validate_audit_log,
    validate_audit_record,
    validate_market_snapshot,
)

__all__ = [
    # Classes
    "SchemaLoader",
    "ContractValidator",
    "AuditRecordValidator",
    "MarketSnapshotValidator",
    "AccountSnapshotValidator",
    # Functions
    "validate_audit_record",
    "validate_audit_log",
    "validate_market_snapshot",
    "validate_account_snapshot",
]
