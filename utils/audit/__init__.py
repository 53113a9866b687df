"""
Audit Trail
============
Who changed what, when. Writes happen inside each service's transaction;
pages only read.
"""

from .audit_log import (
    AuditLogEntry,
    AUDIT_ACTIONS,
    ENTITY_TYPES,
    get_changed_fields,
    diff_values,
    write_audit_log,
    describe_audit_entry,
)
from .audit_data import AuditLogData

__all__ = [
    'AuditLogEntry',
    'AUDIT_ACTIONS',
    'ENTITY_TYPES',
    'get_changed_fields',
    'diff_values',
    'write_audit_log',
    'describe_audit_entry',
    'AuditLogData',
]
