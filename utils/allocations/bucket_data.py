"""
Allocation Bucket Data Layer
=============================
Reads for per-day allocation buckets and product variant selectors.
"""

import logging
from datetime import date
from typing import Dict, List, Optional, Set

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from ..common.formatters import to_date
from .bucket_rules import bucket_available, bucket_status

logger = logging.getLogger(__name__)

BUCKET_COLUMNS = """
    b.id,
    b.org_id,
    b.contract_id,
    b.supplier_id,
    b.product_variant_id,
    pv.name AS variant_name,
    p.name AS product_name,
    b.date,
    b.allocation_type,
    b.quantity,
    b.booked,
    b.held,
    b.unit_cost,
    b.currency,
    b.notes,
    b.stop_sell,
    b.blackout,
    b.release_period_hours,
    b.committed_cost,
    b.min_stay_days,
    b.max_stay_days,
    b.min_occupancy,
    b.max_occupancy,
    b.created_at,
    b.updated_at
"""


class BucketData:
    """Data access for allocation buckets"""

    def __init__(self):
        self.engine = get_db_engine()

    @st.cache_data(ttl=60)
    def get_contract_buckets(
        _self,
        contract_id: int,
        org_id: int,
        variant_id: int = None,
        date_from: date = None,
        date_to: date = None
    ) -> pd.DataFrame:
        """Buckets of a contract with available/status columns"""
        try:
            conditions = ["b.org_id = :org_id", "b.contract_id = :contract_id", "b.is_deleted = 0"]
            params = {'org_id': org_id, 'contract_id': contract_id}

            if variant_id:
                conditions.append("b.product_variant_id = :variant_id")
                params['variant_id'] = variant_id
            if date_from:
                conditions.append("b.date >= :date_from")
                params['date_from'] = date_from.isoformat()
            if date_to:
                conditions.append("b.date <= :date_to")
                params['date_to'] = date_to.isoformat()

            query = text(f"""
                SELECT {BUCKET_COLUMNS}
                FROM allocation_buckets b
                LEFT JOIN product_variants pv ON b.product_variant_id = pv.id
                LEFT JOIN products p ON pv.product_id = p.id
                WHERE {" AND ".join(conditions)}
                ORDER BY b.date ASC, pv.name ASC, b.id ASC
            """)

            with _self.engine.connect() as conn:
                df = pd.read_sql(query, conn, params=params)

            if not df.empty:
                rows = df.to_dict('records')
                df['available'] = [bucket_available(r) for r in rows]
                df['availability_status'] = [bucket_status(r) for r in rows]

            return df

        except Exception as e:
            logger.error(f"Error getting buckets for contract {contract_id}: {e}")
            return pd.DataFrame()

    def get_bucket(self, bucket_id: int, org_id: int) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(f"""
                    SELECT {BUCKET_COLUMNS}
                    FROM allocation_buckets b
                    LEFT JOIN product_variants pv ON b.product_variant_id = pv.id
                    LEFT JOIN products p ON pv.product_id = p.id
                    WHERE b.id = :id AND b.org_id = :org_id AND b.is_deleted = 0
                """), {'id': bucket_id, 'org_id': org_id}).fetchone()
            return dict(row._mapping) if row else None

        except Exception as e:
            logger.error(f"Error getting bucket {bucket_id}: {e}")
            return None

    def get_existing_dates(self, contract_id: int, variant_id: int, org_id: int,
                           date_from: date, date_to: date) -> Set[date]:
        """Dates that already have a bucket for this contract + variant"""
        with self.engine.connect() as conn:
            rows = conn.execute(text("""
                SELECT date FROM allocation_buckets
                WHERE org_id = :org_id
                AND contract_id = :contract_id
                AND product_variant_id = :variant_id
                AND is_deleted = 0
                AND date BETWEEN :date_from AND :date_to
            """), {
                'org_id': org_id,
                'contract_id': contract_id,
                'variant_id': variant_id,
                'date_from': date_from.isoformat(),
                'date_to': date_to.isoformat(),
            }).fetchall()
        return {to_date(r[0]) for r in rows}

    @st.cache_data(ttl=300)
    def get_product_variants(_self, org_id: int, supplier_id: int = None) -> List[Dict]:
        """Active product variants, optionally limited to one supplier's products"""
        try:
            conditions = ["pv.org_id = :org_id", "pv.is_active = 1"]
            params = {'org_id': org_id}
            if supplier_id:
                conditions.append("p.supplier_id = :supplier_id")
                params['supplier_id'] = supplier_id

            with _self.engine.connect() as conn:
                rows = conn.execute(text(f"""
                    SELECT pv.id, pv.name, pv.code, p.id AS product_id,
                           p.name AS product_name, p.product_type
                    FROM product_variants pv
                    JOIN products p ON pv.product_id = p.id
                    WHERE {" AND ".join(conditions)}
                    ORDER BY p.name, pv.name
                """), params).fetchall()

            return [dict(r._mapping) for r in rows]

        except Exception as e:
            logger.error(f"Error getting product variants: {e}")
            return []

    @staticmethod
    def clear_cache():
        BucketData.get_contract_buckets.clear()
