"""
Contract Data Layer
====================
Data access for the contracts list, detail view and dashboard stats.
Soft-deleted contracts (is_deleted = 1) are never returned.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Tuple

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from ..common.pagination import Page, clamp_page, page_offset, total_pages
from .contract_rules import summarize_contracts, effective_status, days_to_expiry

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    'contract_number': 'c.contract_number',
    'contract_name': 'c.contract_name',
    'supplier_name': 's.name',
    'valid_from': 'c.valid_from',
    'valid_to': 'c.valid_to',
    'status': 'c.status',
    'created_at': 'c.created_at',
}

CONTRACT_COLUMNS = """
    c.id,
    c.org_id,
    c.supplier_id,
    s.name AS supplier_name,
    s.code AS supplier_code,
    c.contract_number,
    c.contract_name,
    c.contract_type,
    c.valid_from,
    c.valid_to,
    c.currency,
    c.total_cost,
    c.commission_rate,
    c.payment_terms,
    c.cancellation_policy,
    c.terms_and_conditions,
    c.notes,
    c.status,
    c.created_by,
    c.created_at,
    c.updated_at
"""


class ContractData:
    """Data access layer for contracts"""

    def __init__(self):
        self.engine = get_db_engine()

    # ================================================================
    # SEARCH CONTRACTS
    # ================================================================

    @st.cache_data(ttl=60)
    def search_contracts(
        _self,
        org_id: int,
        search: str = None,
        statuses: Tuple[str, ...] = None,
        supplier_id: int = None,
        date_from: date = None,
        date_to: date = None,
        currency: str = None,
        sort_by: str = 'created_at',
        sort_dir: str = 'desc',
        page: int = 1,
        page_size: int = 25
    ) -> Page:
        """
        Search contracts with filters, sorting and pagination.

        date_from/date_to select contracts whose validity overlaps the window.
        """
        try:
            conditions = ["c.org_id = :org_id", "c.is_deleted = 0"]
            params = {'org_id': org_id}

            if search:
                conditions.append(
                    "(c.contract_number LIKE :search OR c.contract_name LIKE :search OR s.name LIKE :search)"
                )
                params['search'] = f"%{search.strip()}%"

            if statuses:
                placeholders = []
                for i, status in enumerate(statuses):
                    placeholders.append(f":status_{i}")
                    params[f"status_{i}"] = status
                conditions.append(f"c.status IN ({', '.join(placeholders)})")

            if supplier_id:
                conditions.append("c.supplier_id = :supplier_id")
                params['supplier_id'] = supplier_id

            if date_from:
                conditions.append("c.valid_to >= :date_from")
                params['date_from'] = date_from.isoformat()

            if date_to:
                conditions.append("c.valid_from <= :date_to")
                params['date_to'] = date_to.isoformat()

            if currency:
                conditions.append("c.currency = :currency")
                params['currency'] = currency

            where_clause = " AND ".join(conditions)
            order_column = SORTABLE_COLUMNS.get(sort_by, 'c.created_at')
            direction = 'ASC' if str(sort_dir).lower() == 'asc' else 'DESC'

            with _self.engine.connect() as conn:
                total = conn.execute(text(f"""
                    SELECT COUNT(*)
                    FROM contracts c
                    LEFT JOIN suppliers s ON c.supplier_id = s.id
                    WHERE {where_clause}
                """), params).scalar() or 0

                page = clamp_page(page, total_pages(total, page_size))
                params.update({'limit': page_size, 'offset': page_offset(page, page_size)})

                df = pd.read_sql(text(f"""
                    SELECT {CONTRACT_COLUMNS}
                    FROM contracts c
                    LEFT JOIN suppliers s ON c.supplier_id = s.id
                    WHERE {where_clause}
                    ORDER BY {order_column} {direction}, c.id DESC
                    LIMIT :limit OFFSET :offset
                """), conn, params=params)

            if not df.empty:
                today = date.today()
                df['display_status'] = df.apply(lambda r: effective_status(r.to_dict(), today), axis=1)
                df['days_to_expiry'] = df.apply(lambda r: days_to_expiry(r.to_dict(), today), axis=1)

            return Page(items=df, total=int(total), page=page, page_size=page_size)

        except Exception as e:
            logger.error(f"Error searching contracts: {e}")
            return Page(page_size=page_size)

    # ================================================================
    # SINGLE CONTRACT
    # ================================================================

    def get_contract(self, contract_id: int, org_id: int) -> Optional[Dict]:
        """Get single contract (org-scoped)"""
        try:
            query = text(f"""
                SELECT {CONTRACT_COLUMNS}
                FROM contracts c
                LEFT JOIN suppliers s ON c.supplier_id = s.id
                WHERE c.id = :id AND c.org_id = :org_id AND c.is_deleted = 0
            """)
            with self.engine.connect() as conn:
                result = conn.execute(query, {'id': contract_id, 'org_id': org_id}).fetchone()
                if result:
                    return dict(result._mapping)
            return None

        except Exception as e:
            logger.error(f"Error getting contract {contract_id}: {e}")
            return None

    def contract_number_exists(self, org_id: int, supplier_id: int, contract_number: str,
                               exclude_id: int = None) -> bool:
        """Duplicate contract number check within a supplier"""
        query = """
            SELECT COUNT(*) FROM contracts
            WHERE org_id = :org_id AND supplier_id = :supplier_id
            AND contract_number = :contract_number AND is_deleted = 0
        """
        params = {'org_id': org_id, 'supplier_id': supplier_id, 'contract_number': contract_number}
        if exclude_id:
            query += " AND id <> :exclude_id"
            params['exclude_id'] = exclude_id

        with self.engine.connect() as conn:
            return (conn.execute(text(query), params).scalar() or 0) > 0

    # ================================================================
    # STATS
    # ================================================================

    @st.cache_data(ttl=120)
    def get_contract_stats(_self, org_id: int) -> Dict:
        """Counts per status and total value (per currency)"""
        try:
            with _self.engine.connect() as conn:
                rows = conn.execute(text("""
                    SELECT status, valid_to, total_cost, currency
                    FROM contracts
                    WHERE org_id = :org_id AND is_deleted = 0
                """), {'org_id': org_id}).fetchall()

            return summarize_contracts(dict(r._mapping) for r in rows)

        except Exception as e:
            logger.error(f"Error getting contract stats: {e}")
            return summarize_contracts([])

    # ================================================================
    # LOOKUPS
    # ================================================================

    @st.cache_data(ttl=300)
    def get_suppliers(_self, org_id: int) -> List[Dict]:
        """Active suppliers for selectors"""
        try:
            with _self.engine.connect() as conn:
                rows = conn.execute(text("""
                    SELECT id, name, code, contact_email
                    FROM suppliers
                    WHERE org_id = :org_id AND is_active = 1
                    ORDER BY name
                """), {'org_id': org_id}).fetchall()
            return [dict(r._mapping) for r in rows]

        except Exception as e:
            logger.error(f"Error getting suppliers: {e}")
            return []

    def get_supplier(self, supplier_id: int, org_id: int) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text("""
                    SELECT id, name, code, contact_email
                    FROM suppliers
                    WHERE id = :id AND org_id = :org_id
                """), {'id': supplier_id, 'org_id': org_id}).fetchone()
            return dict(row._mapping) if row else None

        except Exception as e:
            logger.error(f"Error getting supplier {supplier_id}: {e}")
            return None

    @st.cache_data(ttl=300)
    def get_contract_options(_self, org_id: int) -> List[Tuple[int, str]]:
        """(id, label) pairs of non-deleted contracts for selectors"""
        try:
            with _self.engine.connect() as conn:
                rows = conn.execute(text("""
                    SELECT c.id, c.contract_number, c.contract_name, s.name AS supplier_name
                    FROM contracts c
                    LEFT JOIN suppliers s ON c.supplier_id = s.id
                    WHERE c.org_id = :org_id AND c.is_deleted = 0
                    ORDER BY c.contract_number
                """), {'org_id': org_id}).fetchall()

            options = []
            for r in rows:
                label = r.contract_number
                if r.contract_name:
                    label += f" | {r.contract_name}"
                if r.supplier_name:
                    label += f" ({r.supplier_name})"
                options.append((r.id, label))
            return options

        except Exception as e:
            logger.error(f"Error getting contract options: {e}")
            return []

    @st.cache_data(ttl=300)
    def get_filter_options(_self, org_id: int) -> Dict[str, List]:
        """Options for filter dropdowns"""
        try:
            with _self.engine.connect() as conn:
                currencies = conn.execute(text("""
                    SELECT DISTINCT currency FROM contracts
                    WHERE org_id = :org_id AND is_deleted = 0 AND currency IS NOT NULL
                    ORDER BY currency
                """), {'org_id': org_id}).fetchall()

            return {
                'suppliers': [(s['id'], s['name']) for s in _self.get_suppliers(org_id)],
                'currencies': [r[0] for r in currencies],
            }

        except Exception as e:
            logger.error(f"Error getting filter options: {e}")
            return {'suppliers': [], 'currencies': []}

    @staticmethod
    def clear_cache():
        ContractData.search_contracts.clear()
        ContractData.get_contract_stats.clear()
        ContractData.get_contract_options.clear()
        ContractData.get_filter_options.clear()
