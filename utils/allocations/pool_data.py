"""
Allocation Pool Data Layer
===========================
Pools group product variants that draw from one shared capacity.
"""

import logging
from typing import Dict, Optional

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from .pool_rules import pool_utilization, utilization_color, commitment_shortfall

logger = logging.getLogger(__name__)

POOL_COLUMNS = """
    ip.id,
    ip.org_id,
    ip.supplier_id,
    s.name AS supplier_name,
    ip.name,
    ip.reference,
    ip.pool_type,
    ip.valid_from,
    ip.valid_to,
    ip.total_capacity,
    ip.capacity_unit,
    ip.min_commitment,
    ip.release_date,
    ip.cutoff_days,
    ip.currency,
    ip.notes,
    ip.status,
    ip.created_at
"""


class PoolData:
    """Data access for allocation pools"""

    def __init__(self):
        self.engine = get_db_engine()

    @st.cache_data(ttl=60)
    def get_pools(_self, org_id: int, status: str = None) -> pd.DataFrame:
        """Pools with member counts and utilization columns"""
        try:
            conditions = ["ip.org_id = :org_id"]
            params = {'org_id': org_id}
            if status:
                conditions.append("ip.status = :status")
                params['status'] = status

            query = text(f"""
                SELECT {POOL_COLUMNS},
                    (SELECT COUNT(*) FROM pool_variants pv
                     WHERE pv.inventory_pool_id = ip.id AND pv.status = 'active') AS member_count
                FROM inventory_pools ip
                LEFT JOIN suppliers s ON ip.supplier_id = s.id
                WHERE {" AND ".join(conditions)}
                ORDER BY ip.created_at DESC, ip.id DESC
            """)
            with _self.engine.connect() as conn:
                df = pd.read_sql(query, conn, params=params)

            if df.empty:
                return df

            usage = [_self.get_pool_usage(row['id'], org_id) for row in df.to_dict('records')]
            util = [
                pool_utilization(row.get('total_capacity'), u['booked'], u['held'])
                for row, u in zip(df.to_dict('records'), usage)
            ]
            df['booked_units'] = [u['booked_units'] for u in util]
            df['held_units'] = [u['held_units'] for u in util]
            df['available_units'] = [u['available_units'] for u in util]
            df['utilization_percentage'] = [u['utilization_percentage'] for u in util]
            df['utilization_color'] = [utilization_color(u['utilization_percentage']) for u in util]
            df['is_overbooked'] = [u['is_overbooked'] for u in util]
            df['commitment_shortfall'] = [
                commitment_shortfall(row.get('min_commitment') if pd.notna(row.get('min_commitment')) else None,
                                     u['booked_units'])
                for row, u in zip(df.to_dict('records'), util)
            ]
            return df

        except Exception as e:
            logger.error(f"Error getting pools: {e}")
            return pd.DataFrame()

    def get_pool(self, pool_id: int, org_id: int) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(f"""
                    SELECT {POOL_COLUMNS}
                    FROM inventory_pools ip
                    LEFT JOIN suppliers s ON ip.supplier_id = s.id
                    WHERE ip.id = :id AND ip.org_id = :org_id
                """), {'id': pool_id, 'org_id': org_id}).fetchone()
            return dict(row._mapping) if row else None

        except Exception as e:
            logger.error(f"Error getting pool {pool_id}: {e}")
            return None

    @st.cache_data(ttl=60)
    def get_pool_members(_self, pool_id: int, org_id: int) -> pd.DataFrame:
        """Active member variants of a pool"""
        try:
            with _self.engine.connect() as conn:
                return pd.read_sql(text("""
                    SELECT
                        m.id,
                        m.inventory_pool_id,
                        m.product_variant_id,
                        v.name AS variant_name,
                        p.name AS product_name,
                        m.capacity_weight,
                        m.cost_per_unit,
                        m.sell_price_per_unit,
                        m.priority,
                        m.auto_allocate,
                        m.status
                    FROM pool_variants m
                    LEFT JOIN product_variants v ON m.product_variant_id = v.id
                    LEFT JOIN products p ON v.product_id = p.id
                    WHERE m.inventory_pool_id = :pool_id
                    AND m.org_id = :org_id
                    AND m.status = 'active'
                    ORDER BY m.priority ASC, m.id ASC
                """), conn, params={'pool_id': pool_id, 'org_id': org_id})

        except Exception as e:
            logger.error(f"Error getting members of pool {pool_id}: {e}")
            return pd.DataFrame()

    def get_pool_usage(self, pool_id: int, org_id: int) -> Dict[str, int]:
        """Booked / held units of member variants' buckets within the pool validity"""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text("""
                    SELECT
                        COALESCE(SUM(b.booked), 0) AS booked,
                        COALESCE(SUM(b.held), 0) AS held
                    FROM inventory_pools ip
                    JOIN pool_variants m
                        ON m.inventory_pool_id = ip.id AND m.status = 'active'
                    JOIN allocation_buckets b
                        ON b.product_variant_id = m.product_variant_id
                        AND b.org_id = ip.org_id
                        AND b.is_deleted = 0
                        AND b.date BETWEEN ip.valid_from AND ip.valid_to
                    WHERE ip.id = :pool_id AND ip.org_id = :org_id
                """), {'pool_id': pool_id, 'org_id': org_id}).fetchone()
            return {'booked': int(row.booked or 0), 'held': int(row.held or 0)}

        except Exception as e:
            logger.error(f"Error getting usage of pool {pool_id}: {e}")
            return {'booked': 0, 'held': 0}

    def member_exists(self, pool_id: int, variant_id: int) -> bool:
        with self.engine.connect() as conn:
            count = conn.execute(text("""
                SELECT COUNT(*) FROM pool_variants
                WHERE inventory_pool_id = :pool_id
                AND product_variant_id = :variant_id
                AND status = 'active'
            """), {'pool_id': pool_id, 'variant_id': variant_id}).scalar()
        return (count or 0) > 0

    @staticmethod
    def clear_cache():
        PoolData.get_pools.clear()
        PoolData.get_pool_members.clear()
