"""
Rate Plan Data Layer
=====================
Supplier rate plans of a contract, with their occupancy prices and seasons.
"""

import logging
from typing import Dict, Optional

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from .rate_rules import load_json, rate_is_current

logger = logging.getLogger(__name__)

RATE_COLUMNS = """
    r.id,
    r.org_id,
    r.contract_id,
    r.supplier_id,
    r.product_variant_id,
    pv.name AS variant_name,
    p.name AS product_name,
    r.rate_type,
    r.currency,
    r.valid_from,
    r.valid_to,
    r.inventory_model,
    r.markets,
    r.channels,
    r.priority,
    r.rate_doc,
    r.is_active,
    r.created_at,
    r.updated_at
"""


def _decode(rate: Dict) -> Dict:
    rate['markets'] = load_json(rate.get('markets'), [])
    rate['channels'] = load_json(rate.get('channels'), [])
    rate['rate_doc'] = load_json(rate.get('rate_doc'), {})
    return rate


class RateData:
    """Data access for rate plans"""

    def __init__(self):
        self.engine = get_db_engine()

    @st.cache_data(ttl=60)
    def get_contract_rates(_self, contract_id: int, org_id: int,
                           rate_type: str = 'supplier_rate') -> pd.DataFrame:
        """Active rate plans of a contract with occupancy / season counts"""
        try:
            query = text(f"""
                SELECT {RATE_COLUMNS},
                    (SELECT COUNT(*) FROM rate_occupancies o WHERE o.rate_plan_id = r.id) AS occupancy_count,
                    (SELECT COUNT(*) FROM rate_seasons rs WHERE rs.rate_plan_id = r.id) AS season_count
                FROM rate_plans r
                LEFT JOIN product_variants pv ON r.product_variant_id = pv.id
                LEFT JOIN products p ON pv.product_id = p.id
                WHERE r.org_id = :org_id
                AND r.contract_id = :contract_id
                AND r.rate_type = :rate_type
                AND r.is_active = 1
                ORDER BY r.created_at DESC, r.id DESC
            """)
            with _self.engine.connect() as conn:
                df = pd.read_sql(query, conn, params={
                    'org_id': org_id, 'contract_id': contract_id, 'rate_type': rate_type
                })

            if not df.empty:
                df['markets'] = [load_json(v, []) for v in df['markets']]
                df['channels'] = [load_json(v, []) for v in df['channels']]
                df['is_current'] = [rate_is_current(r) for r in df.to_dict('records')]
            return df

        except Exception as e:
            logger.error(f"Error getting rates for contract {contract_id}: {e}")
            return pd.DataFrame()

    def get_rate_plan(self, rate_id: int, org_id: int) -> Optional[Dict]:
        """Rate plan with its occupancies and seasons lists"""
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(f"""
                    SELECT {RATE_COLUMNS}
                    FROM rate_plans r
                    LEFT JOIN product_variants pv ON r.product_variant_id = pv.id
                    LEFT JOIN products p ON pv.product_id = p.id
                    WHERE r.id = :id AND r.org_id = :org_id AND r.is_active = 1
                """), {'id': rate_id, 'org_id': org_id}).fetchone()
                if not row:
                    return None

                occupancies = conn.execute(text("""
                    SELECT id, rate_plan_id, min_occupancy, max_occupancy, pricing_model,
                           base_amount, per_person_amount
                    FROM rate_occupancies
                    WHERE rate_plan_id = :id
                    ORDER BY min_occupancy, id
                """), {'id': rate_id}).fetchall()

                seasons = conn.execute(text("""
                    SELECT id, rate_plan_id, season_from, season_to, dow_mask,
                           min_stay, max_stay, min_pax, max_pax
                    FROM rate_seasons
                    WHERE rate_plan_id = :id
                    ORDER BY season_from, id
                """), {'id': rate_id}).fetchall()

            rate = _decode(dict(row._mapping))
            rate['occupancies'] = [dict(o._mapping) for o in occupancies]
            rate['seasons'] = [dict(s._mapping) for s in seasons]
            return rate

        except Exception as e:
            logger.error(f"Error getting rate plan {rate_id}: {e}")
            return None

    @staticmethod
    def clear_cache():
        RateData.get_contract_rates.clear()
