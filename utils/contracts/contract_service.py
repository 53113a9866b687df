"""
Contract Service
=================
Create / update / status change / soft delete for supplier contracts.
Every write records an audit entry in the same transaction.
"""

import logging
from datetime import date
from typing import Dict, Optional

from sqlalchemy import text

from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log, diff_values
from ..common.formatters import to_iso_date
from ..common.results import OperationResult
from .contract_data import ContractData
from .deadline_data import DeadlineData
from .contract_rules import generate_contract_number, generate_supplier_code
from .contract_validators import ContractValidator

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = (
    'supplier_id',
    'contract_number',
    'contract_name',
    'contract_type',
    'valid_from',
    'valid_to',
    'currency',
    'total_cost',
    'commission_rate',
    'payment_terms',
    'cancellation_policy',
    'terms_and_conditions',
    'notes',
    'status',
)


def _clean_payload(data: Dict) -> Dict:
    """Editable fields only, dates as ISO strings, currency upper-cased"""
    payload = {k: data.get(k) for k in EDITABLE_FIELDS if k in data}
    for key in ('valid_from', 'valid_to'):
        if payload.get(key) is not None:
            payload[key] = to_iso_date(payload[key])
    if payload.get('currency'):
        payload['currency'] = str(payload['currency']).strip().upper()
    for key in ('contract_name', 'contract_number'):
        if isinstance(payload.get(key), str):
            payload[key] = payload[key].strip() or None
    return payload


def _snapshot(contract: Dict) -> Dict:
    """Stored row restricted to editable fields, comparable with a payload"""
    snapshot = {k: contract.get(k) for k in EDITABLE_FIELDS}
    for key in ('valid_from', 'valid_to'):
        if snapshot.get(key) is not None:
            snapshot[key] = to_iso_date(snapshot[key])
    return snapshot


class ContractService:
    """Business logic for contract operations"""

    def __init__(self):
        self.engine = get_db_engine()
        self.data = ContractData()
        self.validator = ContractValidator()

    def _clear_caches(self):
        # Deadline, allocation, release and dashboard reads all skip deleted contracts
        from ..allocations.allocation_data import ContractAllocationData
        from ..dashboard import DashboardData

        ContractData.clear_cache()
        DeadlineData.clear_cache()
        ContractAllocationData.clear_cache()
        DashboardData.clear_cache()
        AuditLogData.clear_cache()

    # ================================================================
    # CREATE
    # ================================================================

    def create_contract(self, org_id: int, data: Dict, user_id: int,
                        today: Optional[date] = None) -> OperationResult:
        """
        Create contract.

        A contract number is generated from the supplier name when none is
        given. The number must be unique for the supplier.
        """
        try:
            payload = _clean_payload(data)
            payload.setdefault('status', 'draft')

            validation = self.validator.validate_contract(payload, today=today)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            supplier = self.data.get_supplier(payload['supplier_id'], org_id)
            if not supplier:
                return OperationResult(
                    success=False,
                    message="Supplier not found",
                    errors=["Supplier not found or does not belong to your organization"]
                )

            if not payload.get('contract_number'):
                code = supplier.get('code') or generate_supplier_code(supplier.get('name'))
                payload['contract_number'] = generate_contract_number(code, today)

            if self.data.contract_number_exists(org_id, payload['supplier_id'], payload['contract_number']):
                return OperationResult(
                    success=False,
                    message="Duplicate contract number",
                    errors=[f"A contract with number \"{payload['contract_number']}\" already exists for this supplier"]
                )

            columns = list(payload.keys())
            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    INSERT INTO contracts
                    (org_id, {', '.join(columns)}, is_deleted, created_by, created_at, updated_at)
                    VALUES
                    (:org_id, {', '.join(':' + c for c in columns)}, 0, :user_id,
                     CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """), {**payload, 'org_id': org_id, 'user_id': user_id})
                contract_id = result.lastrowid

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract',
                    entity_id=contract_id,
                    action='create',
                    new_values=payload,
                ))

            self._clear_caches()
            logger.info(f"Created contract {contract_id} ({payload['contract_number']}) by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Contract {payload['contract_number']} created",
                data={
                    'contract_id': contract_id,
                    'contract_number': payload['contract_number'],
                    'warnings': validation.warnings
                }
            )

        except Exception as e:
            logger.error(f"Error creating contract: {e}")
            return OperationResult.failed("create contract", e)

    # ================================================================
    # UPDATE
    # ================================================================

    def update_contract(self, contract_id: int, org_id: int, data: Dict, user_id: int,
                        today: Optional[date] = None) -> OperationResult:
        """Update contract fields; the audit entry holds only changed fields"""
        try:
            contract = self.data.get_contract(contract_id, org_id)
            if not contract:
                return OperationResult.not_found("Contract")

            old_values = _snapshot(contract)
            payload = _clean_payload(data)
            merged = {**old_values, **payload}

            validation = self.validator.validate_contract(merged, today=today)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            changes = diff_values(old_values, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'contract_id': contract_id, 'changed_fields': []})

            if 'contract_number' in changes['new'] or 'supplier_id' in changes['new']:
                if not merged.get('contract_number'):
                    return OperationResult(success=False, message="Validation failed",
                                           errors=["Contract number is required"])
                if self.data.contract_number_exists(org_id, merged['supplier_id'],
                                                    merged['contract_number'], exclude_id=contract_id):
                    return OperationResult(
                        success=False,
                        message="Duplicate contract number",
                        errors=[f"A contract with number \"{merged['contract_number']}\" already exists for this supplier"]
                    )

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE contracts
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {**changes['new'], 'id': contract_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract',
                    entity_id=contract_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            changed = list(changes['new'].keys())
            logger.info(f"Updated contract {contract_id} fields {changed} by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Contract updated ({len(changed)} field(s))",
                data={'contract_id': contract_id, 'changed_fields': changed,
                      'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error updating contract {contract_id}: {e}")
            return OperationResult.failed("update contract", e)

    # ================================================================
    # STATUS
    # ================================================================

    def change_status(self, contract_id: int, org_id: int, new_status: str,
                      user_id: int) -> OperationResult:
        """Move contract to another status"""
        try:
            contract = self.data.get_contract(contract_id, org_id)
            validation = self.validator.validate_status_change(contract, new_status)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            old_status = contract.get('status')
            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE contracts
                    SET status = :status, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'status': new_status, 'id': contract_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract',
                    entity_id=contract_id,
                    action='status_change',
                    old_values={'status': old_status},
                    new_values={'status': new_status},
                ))

            self._clear_caches()
            logger.info(f"Contract {contract_id} status {old_status} -> {new_status} by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Status changed: {old_status} → {new_status}",
                data={'contract_id': contract_id, 'old_status': old_status,
                      'new_status': new_status, 'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error changing status of contract {contract_id}: {e}")
            return OperationResult.failed("change contract status", e)

    # ================================================================
    # DELETE (soft)
    # ================================================================

    def delete_contract(self, contract_id: int, org_id: int, user_id: int) -> OperationResult:
        """Soft delete: flag is_deleted, keep the row for the audit trail"""
        try:
            contract = self.data.get_contract(contract_id, org_id)
            if not contract:
                return OperationResult.not_found("Contract")

            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE contracts
                    SET is_deleted = 1, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'id': contract_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract',
                    entity_id=contract_id,
                    action='delete',
                    old_values=_snapshot(contract),
                ))

            self._clear_caches()
            logger.info(f"Deleted contract {contract_id} by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Contract {contract.get('contract_number')} deleted",
                data={'contract_id': contract_id}
            )

        except Exception as e:
            logger.error(f"Error deleting contract {contract_id}: {e}")
            return OperationResult.failed("delete contract", e)
