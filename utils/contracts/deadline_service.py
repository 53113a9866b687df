"""
Deadline Service
=================
Create / update / delete contract deadlines and move them through
pending -> met / missed / waived.
"""

import logging
from typing import Dict

from sqlalchemy import text

from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log, diff_values
from ..common.formatters import to_iso_date, to_float
from ..common.results import OperationResult, ValidationResult
from ..common.validation import check_choice
from .contract_data import ContractData
from .contract_validators import DeadlineValidator
from .deadline_data import DeadlineData
from .deadline_rules import DEADLINE_STATUSES

logger = logging.getLogger(__name__)

DEADLINE_FIELDS = (
    'ref_type',
    'ref_id',
    'deadline_type',
    'deadline_date',
    'penalty_type',
    'penalty_value',
    'status',
    'notes',
)


def _clean_payload(data: Dict) -> Dict:
    payload = {k: data.get(k) for k in DEADLINE_FIELDS if k in data}
    if payload.get('deadline_date') is not None:
        payload['deadline_date'] = to_iso_date(payload['deadline_date'])
    if 'penalty_value' in payload:
        payload['penalty_value'] = to_float(payload['penalty_value'])
    return payload


class DeadlineService:
    """Business logic for contract deadlines"""

    def __init__(self):
        self.engine = get_db_engine()
        self.data = DeadlineData()
        self.contracts = ContractData()
        self.validator = DeadlineValidator()

    def _clear_caches(self):
        from ..dashboard import DashboardData

        DeadlineData.clear_cache()
        DashboardData.clear_cache()
        AuditLogData.clear_cache()

    def create_deadline(self, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            payload = _clean_payload(data)
            payload.setdefault('ref_type', 'contract')
            payload.setdefault('penalty_type', 'none')
            payload.setdefault('penalty_value', 0.0)
            payload.setdefault('status', 'pending')

            validation = self.validator.validate_deadline(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            if payload['ref_type'] == 'contract' and not self.contracts.get_contract(payload['ref_id'], org_id):
                return OperationResult.not_found("Contract")

            columns = list(payload.keys())
            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    INSERT INTO contract_deadlines
                    (org_id, {', '.join(columns)}, created_at, updated_at)
                    VALUES
                    (:org_id, {', '.join(':' + c for c in columns)}, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """), {**payload, 'org_id': org_id})
                deadline_id = result.lastrowid

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_deadline',
                    entity_id=deadline_id,
                    action='create',
                    new_values=payload,
                ))

            self._clear_caches()
            logger.info(f"Created deadline {deadline_id} for {payload['ref_type']} {payload['ref_id']} by user {user_id}")

            return OperationResult(
                success=True,
                message="Deadline created",
                data={'deadline_id': deadline_id, 'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error creating deadline: {e}")
            return OperationResult.failed("create deadline", e)

    def update_deadline(self, deadline_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            deadline = self.data.get_deadline(deadline_id, org_id)
            if not deadline:
                return OperationResult.not_found("Deadline")

            payload = _clean_payload(data)
            payload.pop('ref_type', None)
            payload.pop('ref_id', None)

            merged = {**deadline, **payload}
            validation = self.validator.validate_deadline(merged, partial=True)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            old_values = {k: deadline.get(k) for k in payload}
            if old_values.get('deadline_date') is not None:
                old_values['deadline_date'] = to_iso_date(old_values['deadline_date'])
            changes = diff_values(old_values, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'deadline_id': deadline_id, 'changed_fields': []})

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE contract_deadlines
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {**changes['new'], 'id': deadline_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_deadline',
                    entity_id=deadline_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            logger.info(f"Updated deadline {deadline_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Deadline updated",
                data={'deadline_id': deadline_id, 'changed_fields': list(changes['new'].keys())}
            )

        except Exception as e:
            logger.error(f"Error updating deadline {deadline_id}: {e}")
            return OperationResult.failed("update deadline", e)

    def delete_deadline(self, deadline_id: int, org_id: int, user_id: int) -> OperationResult:
        """Hard delete; the audit row keeps the last state"""
        try:
            deadline = self.data.get_deadline(deadline_id, org_id)
            if not deadline:
                return OperationResult.not_found("Deadline")

            with self.engine.begin() as conn:
                conn.execute(text("""
                    DELETE FROM contract_deadlines
                    WHERE id = :id AND org_id = :org_id
                """), {'id': deadline_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_deadline',
                    entity_id=deadline_id,
                    action='delete',
                    old_values={k: deadline.get(k) for k in DEADLINE_FIELDS},
                ))

            self._clear_caches()
            logger.info(f"Deleted deadline {deadline_id} by user {user_id}")
            return OperationResult(success=True, message="Deadline deleted", data={'deadline_id': deadline_id})

        except Exception as e:
            logger.error(f"Error deleting deadline {deadline_id}: {e}")
            return OperationResult.failed("delete deadline", e)

    def update_deadline_status(self, deadline_id: int, org_id: int, new_status: str,
                               user_id: int) -> OperationResult:
        try:
            validation = ValidationResult()
            check_choice(validation, new_status, DEADLINE_STATUSES, "Status")
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            deadline = self.data.get_deadline(deadline_id, org_id)
            if not deadline:
                return OperationResult.not_found("Deadline")

            old_status = deadline.get('status')
            if old_status == new_status:
                return OperationResult(success=False, message=f"Deadline is already {new_status}",
                                       errors=[f"Deadline is already {new_status}"])

            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE contract_deadlines
                    SET status = :status, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'status': new_status, 'id': deadline_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_deadline',
                    entity_id=deadline_id,
                    action='status_change',
                    old_values={'status': old_status},
                    new_values={'status': new_status},
                ))

            self._clear_caches()
            logger.info(f"Deadline {deadline_id} status {old_status} -> {new_status} by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Deadline marked {new_status}",
                data={'deadline_id': deadline_id, 'old_status': old_status, 'new_status': new_status}
            )

        except Exception as e:
            logger.error(f"Error updating status of deadline {deadline_id}: {e}")
            return OperationResult.failed("update deadline status", e)

    def mark_deadline_complete(self, deadline_id: int, org_id: int, user_id: int) -> OperationResult:
        """pending -> met. Any other current status is rejected."""
        deadline = self.data.get_deadline(deadline_id, org_id)
        if not deadline:
            return OperationResult.not_found("Deadline")
        if deadline.get('status') != 'pending':
            return OperationResult(
                success=False,
                message="Only pending deadlines can be completed",
                errors=[f"Deadline is {deadline.get('status')}"]
            )
        return self.update_deadline_status(deadline_id, org_id, 'met', user_id)
