"""
Audit Log Writer
=================
Builds audit entries and writes them inside the caller's transaction, so a
mutation and its audit row commit (or roll back) together.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import text

from ..common.formatters import to_float

logger = logging.getLogger(__name__)

AUDIT_ACTIONS = (
    'create',
    'update',
    'delete',
    'status_change',
    'bulk_create',
    'bulk_update',
    'bulk_delete',
    'notification_sent',
)

ENTITY_TYPES = (
    'contract',
    'contract_deadline',
    'allocation_bucket',
    'contract_allocation',
    'allocation_inventory',
    'rate_plan',
    'allocation_pool',
)

ACTION_LABELS = {
    'create': 'Created',
    'update': 'Updated',
    'delete': 'Deleted',
    'status_change': 'Changed status of',
    'bulk_create': 'Bulk created',
    'bulk_update': 'Bulk updated',
    'bulk_delete': 'Bulk deleted',
    'notification_sent': 'Sent notification for',
}


@dataclass
class AuditLogEntry:
    """One row of audit_logs"""
    org_id: int
    entity_type: str
    entity_id: int
    action: str
    user_id: Optional[int] = None
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    changed_fields: List[str] = field(default_factory=list)

    def __post_init__(self):
        if self.action not in AUDIT_ACTIONS:
            raise ValueError(f"Unknown audit action: {self.action}")
        if not self.changed_fields and self.old_values is not None and self.new_values is not None:
            self.changed_fields = get_changed_fields(self.old_values, self.new_values)


def _normalize(value: Any) -> Any:
    """Compare DB values and form values on equal footing (Decimal vs float, date vs str)"""
    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)) or type(value).__name__ == 'Decimal':
        return to_float(value)
    return str(value)


def get_changed_fields(old_values: Dict[str, Any], new_values: Dict[str, Any]) -> List[str]:
    """Keys whose value differs, plus keys present in old but missing from new"""
    changed = [
        key for key, value in new_values.items()
        if _normalize(old_values.get(key)) != _normalize(value)
    ]
    changed.extend(key for key in old_values if key not in new_values)
    return changed


def diff_values(old_values: Dict[str, Any], new_values: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Restrict old/new snapshots to the fields that actually changed"""
    fields = [f for f in get_changed_fields(old_values, new_values) if f in new_values]
    return {
        'old': {f: old_values.get(f) for f in fields},
        'new': {f: new_values.get(f) for f in fields},
    }


def _dumps(values: Optional[Dict[str, Any]]) -> Optional[str]:
    if values is None:
        return None
    return json.dumps(values, default=str)


def write_audit_log(conn, entry: AuditLogEntry):
    """Insert audit row using an open connection/transaction"""
    conn.execute(text("""
        INSERT INTO audit_logs
        (org_id, user_id, entity_type, entity_id, action,
         old_values, new_values, changed_fields, created_at)
        VALUES
        (:org_id, :user_id, :entity_type, :entity_id, :action,
         :old_values, :new_values, :changed_fields, CURRENT_TIMESTAMP)
    """), {
        'org_id': entry.org_id,
        'user_id': entry.user_id,
        'entity_type': entry.entity_type,
        'entity_id': entry.entity_id,
        'action': entry.action,
        'old_values': _dumps(entry.old_values),
        'new_values': _dumps(entry.new_values),
        'changed_fields': json.dumps(entry.changed_fields),
    })
    logger.debug(f"Audit: {entry.action} {entry.entity_type} #{entry.entity_id} by {entry.user_id}")


def parse_json_field(value: Any) -> Any:
    """Decode a JSON column that may already be decoded by the driver"""
    if value is None or isinstance(value, (dict, list)):
        return value
    try:
        return json.loads(value)
    except (TypeError, ValueError):
        return value


def describe_audit_entry(row: Dict[str, Any]) -> str:
    """Human summary, e.g. 'Updated contract #12: status, valid_to'"""
    action = row.get('action')
    label = ACTION_LABELS.get(action, str(action).replace('_', ' ').capitalize())
    entity = str(row.get('entity_type', 'record')).replace('_', ' ')
    summary = f"{label} {entity} #{row.get('entity_id')}"

    fields = parse_json_field(row.get('changed_fields')) or []
    if action in ('update', 'status_change') and fields:
        summary += f": {', '.join(fields)}"
    return summary
