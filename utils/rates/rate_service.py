"""
Rate Plan Service
==================
Create / update / soft delete supplier rate plans and manage their
occupancy prices and seasons.
"""

import json
import logging
from typing import Dict

from sqlalchemy import text

from utils.db import get_db_engine
from ..audit import AuditLogEntry, AuditLogData, write_audit_log, diff_values
from ..common.formatters import to_iso_date
from ..common.results import OperationResult
from ..contracts.contract_data import ContractData
from .rate_data import RateData
from .rate_rules import DEFAULT_PRIORITY, ALL_DAYS_MASK, dump_list
from .rate_validators import RateValidator

logger = logging.getLogger(__name__)

RATE_FIELDS = (
    'product_variant_id',
    'rate_type',
    'currency',
    'valid_from',
    'valid_to',
    'inventory_model',
    'markets',
    'channels',
    'priority',
    'rate_doc',
)

OCCUPANCY_FIELDS = ('min_occupancy', 'max_occupancy', 'pricing_model', 'base_amount', 'per_person_amount')
SEASON_FIELDS = ('season_from', 'season_to', 'dow_mask', 'min_stay', 'max_stay', 'min_pax', 'max_pax')


def _clean_rate(data: Dict) -> Dict:
    """Known fields; dates ISO, markets/channels/rate_doc as JSON text"""
    payload = {k: data.get(k) for k in RATE_FIELDS if k in data}
    for key in ('valid_from', 'valid_to'):
        if payload.get(key) is not None:
            payload[key] = to_iso_date(payload[key])
    if payload.get('currency'):
        payload['currency'] = str(payload['currency']).strip().upper()
    for key in ('markets', 'channels'):
        if key in payload:
            payload[key] = dump_list(payload[key])
    if 'rate_doc' in payload:
        doc = payload['rate_doc']
        payload['rate_doc'] = doc if isinstance(doc, str) else json.dumps(doc or {})
    return payload


def _rate_snapshot(rate: Dict) -> Dict:
    """Stored plan in the same shape as a cleaned payload"""
    snapshot = {k: rate.get(k) for k in RATE_FIELDS}
    for key in ('valid_from', 'valid_to'):
        if snapshot.get(key) is not None:
            snapshot[key] = to_iso_date(snapshot[key])
    for key in ('markets', 'channels'):
        snapshot[key] = dump_list(snapshot.get(key))
    snapshot['rate_doc'] = json.dumps(snapshot.get('rate_doc') or {})
    return snapshot


class RateService:
    """Business logic for supplier rate plans"""

    def __init__(self):
        self.engine = get_db_engine()
        self.data = RateData()
        self.contracts = ContractData()
        self.validator = RateValidator()

    def _clear_caches(self):
        RateData.clear_cache()
        AuditLogData.clear_cache()

    # ================================================================
    # RATE PLANS
    # ================================================================

    def create_rate_plan(self, contract_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        """Supplier and currency default from the contract"""
        try:
            contract = self.contracts.get_contract(contract_id, org_id)
            if not contract:
                return OperationResult.not_found("Contract")

            payload = _clean_rate(data)
            payload.setdefault('rate_type', 'supplier_rate')
            payload.setdefault('currency', contract.get('currency'))
            payload.setdefault('valid_from', to_iso_date(contract.get('valid_from')))
            payload.setdefault('valid_to', to_iso_date(contract.get('valid_to')))
            payload.setdefault('markets', '[]')
            payload.setdefault('channels', '[]')
            payload.setdefault('rate_doc', '{}')
            if payload.get('priority') in (None, ''):
                payload['priority'] = DEFAULT_PRIORITY

            validation = self.validator.validate_rate_plan(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            columns = list(payload.keys())
            with self.engine.begin() as conn:
                result = conn.execute(text(f"""
                    INSERT INTO rate_plans
                    (org_id, contract_id, supplier_id, {', '.join(columns)},
                     is_active, created_by, created_at, updated_at)
                    VALUES
                    (:org_id, :contract_id, :supplier_id, {', '.join(':' + c for c in columns)},
                     1, :user_id, CURRENT_TIMESTAMP, CURRENT_TIMESTAMP)
                """), {
                    **payload,
                    'org_id': org_id,
                    'contract_id': contract_id,
                    'supplier_id': contract['supplier_id'],
                    'user_id': user_id,
                })
                rate_id = result.lastrowid

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='rate_plan',
                    entity_id=rate_id,
                    action='create',
                    new_values=payload,
                ))

            self._clear_caches()
            logger.info(f"Created rate plan {rate_id} on contract {contract_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Rate plan created",
                data={'rate_id': rate_id, 'warnings': validation.warnings}
            )

        except Exception as e:
            logger.error(f"Error creating rate plan on contract {contract_id}: {e}")
            return OperationResult.failed("create rate plan", e)

    def update_rate_plan(self, rate_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            rate = self.data.get_rate_plan(rate_id, org_id)
            if not rate:
                return OperationResult.not_found("Rate plan")

            payload = _clean_rate(data)
            old_values = _rate_snapshot(rate)
            validation = self.validator.validate_rate_plan({**old_values, **payload})
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            changes = diff_values(old_values, payload)
            if not changes['new']:
                return OperationResult(success=True, message="No changes to save",
                                       data={'rate_id': rate_id, 'changed_fields': []})

            set_clause = ', '.join(f"{k} = :{k}" for k in changes['new'])
            with self.engine.begin() as conn:
                conn.execute(text(f"""
                    UPDATE rate_plans
                    SET {set_clause}, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {**changes['new'], 'id': rate_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='rate_plan',
                    entity_id=rate_id,
                    action='update',
                    old_values=changes['old'],
                    new_values=changes['new'],
                ))

            self._clear_caches()
            logger.info(f"Updated rate plan {rate_id} by user {user_id}")

            return OperationResult(
                success=True,
                message="Rate plan updated",
                data={'rate_id': rate_id, 'changed_fields': list(changes['new'].keys())}
            )

        except Exception as e:
            logger.error(f"Error updating rate plan {rate_id}: {e}")
            return OperationResult.failed("update rate plan", e)

    def delete_rate_plan(self, rate_id: int, org_id: int, user_id: int) -> OperationResult:
        """Soft delete (is_active = 0)"""
        try:
            rate = self.data.get_rate_plan(rate_id, org_id)
            if not rate:
                return OperationResult.not_found("Rate plan")

            with self.engine.begin() as conn:
                conn.execute(text("""
                    UPDATE rate_plans
                    SET is_active = 0, updated_at = CURRENT_TIMESTAMP
                    WHERE id = :id AND org_id = :org_id
                """), {'id': rate_id, 'org_id': org_id})

                write_audit_log(conn, AuditLogEntry(
                    org_id=org_id,
                    user_id=user_id,
                    entity_type='rate_plan',
                    entity_id=rate_id,
                    action='delete',
                    old_values=_rate_snapshot(rate),
                ))

            self._clear_caches()
            logger.info(f"Deleted rate plan {rate_id} by user {user_id}")
            return OperationResult(success=True, message="Rate plan deleted", data={'rate_id': rate_id})

        except Exception as e:
            logger.error(f"Error deleting rate plan {rate_id}: {e}")
            return OperationResult.failed("delete rate plan", e)

    # ================================================================
    # OCCUPANCIES & SEASONS
    # ================================================================

    def _add_child(self, table: str, fields, label: str, rate_id: int, org_id: int,
                   payload: Dict, user_id: int) -> OperationResult:
        columns = [f for f in fields if f in payload]
        with self.engine.begin() as conn:
            result = conn.execute(text(f"""
                INSERT INTO {table}
                (rate_plan_id, {', '.join(columns)})
                VALUES
                (:rate_plan_id, {', '.join(':' + c for c in columns)})
            """), {**{c: payload[c] for c in columns}, 'rate_plan_id': rate_id})
            child_id = result.lastrowid

            write_audit_log(conn, AuditLogEntry(
                org_id=org_id,
                user_id=user_id,
                entity_type='rate_plan',
                entity_id=rate_id,
                action='update',
                old_values={},
                new_values={f"added_{label}": {**{c: payload[c] for c in columns}, 'id': child_id}},
            ))

        self._clear_caches()
        logger.info(f"Added {label} {child_id} to rate plan {rate_id} by user {user_id}")
        return OperationResult(success=True, message=f"{label.capitalize()} added",
                               data={f"{label}_id": child_id})

    def _delete_child(self, table: str, label: str, rate_id: int, child_id: int,
                      org_id: int, user_id: int) -> OperationResult:
        if not self.data.get_rate_plan(rate_id, org_id):
            return OperationResult.not_found("Rate plan")

        with self.engine.begin() as conn:
            result = conn.execute(text(f"""
                DELETE FROM {table}
                WHERE id = :id AND rate_plan_id = :rate_plan_id
            """), {'id': child_id, 'rate_plan_id': rate_id})

            if result.rowcount == 0:
                return OperationResult.not_found(label.capitalize())

            write_audit_log(conn, AuditLogEntry(
                org_id=org_id,
                user_id=user_id,
                entity_type='rate_plan',
                entity_id=rate_id,
                action='update',
                old_values={f"removed_{label}_id": child_id},
                new_values={},
            ))

        self._clear_caches()
        logger.info(f"Deleted {label} {child_id} from rate plan {rate_id} by user {user_id}")
        return OperationResult(success=True, message=f"{label.capitalize()} deleted")

    def add_occupancy(self, rate_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            if not self.data.get_rate_plan(rate_id, org_id):
                return OperationResult.not_found("Rate plan")

            payload = {k: data.get(k) for k in OCCUPANCY_FIELDS if k in data}
            payload.setdefault('pricing_model', 'fixed')
            validation = self.validator.validate_occupancy(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            result = self._add_child('rate_occupancies', OCCUPANCY_FIELDS, 'occupancy',
                                     rate_id, org_id, payload, user_id)
            result.data['warnings'] = validation.warnings
            return result

        except Exception as e:
            logger.error(f"Error adding occupancy to rate plan {rate_id}: {e}")
            return OperationResult.failed("add occupancy", e)

    def delete_occupancy(self, rate_id: int, occupancy_id: int, org_id: int, user_id: int) -> OperationResult:
        try:
            return self._delete_child('rate_occupancies', 'occupancy', rate_id, occupancy_id, org_id, user_id)
        except Exception as e:
            logger.error(f"Error deleting occupancy {occupancy_id}: {e}")
            return OperationResult.failed("delete occupancy", e)

    def add_season(self, rate_id: int, org_id: int, data: Dict, user_id: int) -> OperationResult:
        try:
            if not self.data.get_rate_plan(rate_id, org_id):
                return OperationResult.not_found("Rate plan")

            payload = {k: data.get(k) for k in SEASON_FIELDS if k in data}
            if payload.get('dow_mask') is None:
                payload['dow_mask'] = ALL_DAYS_MASK
            validation = self.validator.validate_season(payload)
            if not validation.is_valid:
                return OperationResult.invalid(validation)

            for key in ('season_from', 'season_to'):
                payload[key] = to_iso_date(payload[key])

            result = self._add_child('rate_seasons', SEASON_FIELDS, 'season',
                                     rate_id, org_id, payload, user_id)
            result.data['warnings'] = validation.warnings
            return result

        except Exception as e:
            logger.error(f"Error adding season to rate plan {rate_id}: {e}")
            return OperationResult.failed("add season", e)

    def delete_season(self, rate_id: int, season_id: int, org_id: int, user_id: int) -> OperationResult:
        try:
            return self._delete_child('rate_seasons', 'season', rate_id, season_id, org_id, user_id)
        except Exception as e:
            logger.error(f"Error deleting season {season_id}: {e}")
            return OperationResult.failed("delete season", e)
