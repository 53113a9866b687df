"""
Contract Allocation Service
============================
Create / update / deactivate contract allocations and maintain their
inventory lines.
"""

import logging
from typing import Dict

from sqlalchemy import text

from utils.config import config
from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log, diff_values
from ..common.formatters import to_iso_date, to_float, to_int
from ..common.results import OperationResult
from ..contracts.contract_data import ContractData
from .allocation_data import ContractAllocationData
from .allocation_validators import ContractAllocationValidator

logger = logging.getLogger(__name__)

ALLOCATION_FIELDS = (
    'product_id',
    'allocation_name',
    'allocation_type',
    'total_quantity',
    'valid_from',
    'valid_to',
    'total_cost',
    'cost_per_unit',
    'currency',
    'release_days',
    'notes',
)

INVENTORY_FIELDS = (
    'product_variant_id',
    'total_quantity',
    'available_quantity',
    'sold_quantity',
    'batch_cost_per_unit',
    'currency',
    'is_virtual_capacity',
    'minimum_viable_quantity',
    'notes',
)


def _clean_allocation(data: Dict) -> Dict:
    payload = {k: data.get(k) for k in ALLOCATION_FIELDS if k in data}
    for key in ('valid_from', 'valid_to'):
        if payload.get(key) is not None:
            payload[key] = to_iso_date(payload[key])
    if payload.get('currency'):
        payload['currency'] = str(payload['currency']).strip().upper()
    if isinstance(payload.get('allocation_name'), str):
        payload['allocation_name'] = payload['allocation_name'].strip()
    return payload


def _clean_inventory(data: Dict) -> Dict:
    payload = {k: data.get(k) for k in INVENTORY_FIELDS if k in data}
    if 'is_virtual_capacity' in payload:
        payload['is_virtual_capacity'] = int(bool(payload['is_virtual_capacity']))
    if payload.get('currency'):
        payload['currency'] = str(payload['currency']).strip().upper()
    return payload


class ContractAllocationService:
    """Business logic for contract allocations and inventory"""

    def __init__(self):
        self.engine = get_db_engine()
        self.data = ContractAllocationData()
        self.contracts = ContractData()
        self.validator = ContractAllocationValidator()

    def _clear_caches(self):
        from ..dashboard import DashboardData

        ContractAllocationData.clear_cache()
        DashboardData.clear_cache()
        AuditLogData.clear_cache()

    # ================================================================
    # ALLOCATIONS
    # ================================================================

    def create_allocation(self, contract_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            contract = self.contracts.get_contract(contract_id, org_id)
            if not contract:
                return OperationResult.not_found("Contract")

            payload = _clean_allocation(data)
            payload.setdefault('allocation_type', 'allotment')
            payload.setdefault('currency', contract.get('currency') or config.get_app_setting('DEFAULT_CURRENCY', 'EUR'))

            validation = self.validator.validate_allocation(payload, contract)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            if not to_float(payload.get('cost_per_unit')) and payload.get('total_cost') and to_float(payload.get('total_quantity')):
                payload['cost_per_unit'] = round(to_float(payload['total_cost']) / to_float(payload['total_quantity']), 2)

            columns = list(payload.keys())
            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    INSERT INTO contract_allocations
                    (org_id, contract_id, {', '.join(columns)}, is_active, created_by, created_at, updated_at)
                    VALUES
                    (:org_id, :contract_id, {', '.join(':' + c for c in columns)}, 1, :user_id,
                     CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """), {**payload, 'org_id': org_id, 'contract_id': contract_id, 'user_id': user_id})
                allocation_id = result.lastrowid

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_allocation',
                    entity_id=allocation_id,
                    action='create',
                    new_values=payload,
                ))

            self._clear_caches()
            logger.info(f"Created allocation {allocation_id} on contract {contract_id} by user {user_id}")

            return OperationResult(
                success=True,
                message=f"Allocation '{payload['allocation_name']}' created",
                data={'allocation_id': allocation_id, 'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error creating allocation on contract {contract_id}: {e}")
            return OperationResult.failed("create allocation", e)

    def update_allocation(self, allocation_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            allocation = self.data.get_allocation(allocation_id, org_id)
            if not allocation:
                return OperationResult.not_found("Allocation")

            contract = self.contracts.get_contract(allocation['contract_id'], org_id)
            payload = _clean_allocation(data)
            validation = self.validator.validate_allocation({**allocation, **payload}, contract)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            old_values = {k: allocation.get(k) for k in payload}
            for key in ('valid_from', 'valid_to'):
                if old_values.get(key) is not None:
                    old_values[key] = to_iso_date(old_values[key])
            changes = diff_values(old_values, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'allocation_id': allocation_id, 'changed_fields': []})

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE contract_allocations
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {**changes['new'], 'id': allocation_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_allocation',
                    entity_id=allocation_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            logger.info(f"Updated allocation {allocation_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Allocation updated",
                data={'allocation_id': allocation_id, 'changed_fields': list(changes['new'].keys()),
                      'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error updating allocation {allocation_id}: {e}")
            return OperationResult.failed("update allocation", e)

    def deactivate_allocation(self, allocation_id: int, org_id: int, user_id: int) -> OperationResult:
        """is_active = 0; the allocation drops out of lists and release warnings"""
        try:
            allocation = self.data.get_allocation(allocation_id, org_id)
            if not allocation:
                return OperationResult.not_found("Allocation")
            if not allocation.get('is_active'):
                return OperationResult(success=False, message="Allocation is already inactive",
                                       errors=["Allocation is already inactive"])

            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE contract_allocations
                    SET is_active = 0, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'id': allocation_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='contract_allocation',
                    entity_id=allocation_id,
                    action='status_change',
                    old_values={'is_active': 1},
                    new_values={'is_active': 0},
                ))

            self._clear_caches()
            logger.info(f"Deactivated allocation {allocation_id} by user {user_id}")
            return OperationResult(success=True, message="Allocation deactivated",
                                   data={'allocation_id': allocation_id})

        except Exception as e:
            logger.error(f"Error deactivating allocation {allocation_id}: {e}")
            return OperationResult.failed("deactivate allocation", e)

    # ================================================================
    # INVENTORY
    # ================================================================

    def add_inventory(self, allocation_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        """New inventory line. available defaults to total - sold."""
        try:
            allocation = self.data.get_allocation(allocation_id, org_id)
            if not allocation:
                return OperationResult.not_found("Allocation")

            payload = _clean_inventory(data)
            payload.setdefault('sold_quantity', 0)
            payload.setdefault('currency', allocation.get('currency'))
            payload.setdefault('batch_cost_per_unit', allocation.get('cost_per_unit'))
            payload.setdefault('is_virtual_capacity', 0)

            validation = self.validator.validate_inventory(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            if payload.get('available_quantity') is None:
                payload['available_quantity'] = max(
                    to_int(payload['total_quantity']) - to_int(payload.get('sold_quantity')), 0
                )

            columns = list(payload.keys())
            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    INSERT INTO allocation_inventory
                    (contract_allocation_id, {', '.join(columns)}, is_active, created_at, updated_at)
                    VALUES
                    (:allocation_id, {', '.join(':' + c for c in columns)}, 1,
                     CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """), {**payload, 'allocation_id': allocation_id})
                inventory_id = result.lastrowid

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_inventory',
                    entity_id=inventory_id,
                    action='create',
                    new_values={**payload, 'contract_allocation_id': allocation_id},
                ))

            self._clear_caches()
            logger.info(f"Added inventory {inventory_id} to allocation {allocation_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Inventory line added",
                data={'inventory_id': inventory_id, 'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error adding inventory to allocation {allocation_id}: {e}")
            return OperationResult.failed("add inventory", e)

    def update_inventory(self, inventory_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            line = self.data.get_inventory_line(inventory_id, org_id)
            if not line:
                return OperationResult.not_found("Inventory line")

            payload = _clean_inventory(data)
            payload.pop('product_variant_id', None)
            validation = self.validator.validate_inventory({**line, **payload})
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            changes = diff_values({k: line.get(k) for k in payload}, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'inventory_id': inventory_id, 'changed_fields': []})

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE allocation_inventory
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id
                """), {**changes['new'], 'id': inventory_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='allocation_inventory',
                    entity_id=inventory_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            logger.info(f"Updated inventory {inventory_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Inventory updated",
                data={'inventory_id': inventory_id, 'changed_fields': list(changes['new'].keys()),
                      'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error updating inventory {inventory_id}: {e}")
            return OperationResult.failed("update inventory", e)
