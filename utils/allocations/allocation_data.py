"""
Contract Allocation Data Layer
===============================
Reads for contract allocations (allotments, batches, ...), their inventory
lines, and the release warnings built from them.
"""

import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.config import config
from utils.db import get_db_engine
from .allocation_rules import inventory_totals, utilization_rate
from .release import release_warnings

logger = logging.getLogger(__name__)

ALLOCATION_COLUMNS = """
    a.id,
    a.org_id,
    a.contract_id,
    a.product_id,
    p.name AS product_name,
    a.allocation_name,
    a.allocation_type,
    a.total_quantity,
    a.valid_from,
    a.valid_to,
    a.total_cost,
    a.cost_per_unit,
    a.currency,
    a.release_days,
    a.notes,
    a.is_active,
    a.created_at,
    a.updated_at
"""

INVENTORY_COLUMNS = """
    i.id,
    i.contract_allocation_id,
    i.product_variant_id,
    pv.name AS variant_name,
    i.total_quantity,
    i.available_quantity,
    i.sold_quantity,
    i.batch_cost_per_unit,
    i.currency,
    i.is_virtual_capacity,
    i.minimum_viable_quantity,
    i.notes,
    i.is_active
"""


class ContractAllocationData:
    """Data access for contract allocations and inventory"""

    def __init__(self):
        self.engine = get_db_engine()

    @st.cache_data(ttl=60)
    def get_contract_allocations(_self, contract_id: int, org_id: int,
                                 include_inactive: bool = False) -> pd.DataFrame:
        """Allocations of a contract with inventory roll-up and utilization"""
        try:
            active_clause = "" if include_inactive else "AND a.is_active = 1"
            query = text(f"""
                SELECT {ALLOCATION_COLUMNS}
                FROM contract_allocations a
                LEFT JOIN products p ON a.product_id = p.id
                WHERE a.org_id = :org_id AND a.contract_id = :contract_id
                {active_clause}
                ORDER BY a.valid_from ASC, a.id ASC
            """)
            with _self.engine.connect() as conn:
                df = pd.read_sql(query, conn, params={'org_id': org_id, 'contract_id': contract_id})

            if df.empty:
                return df

            inventories = _self.get_inventory_by_allocation(df['id'].tolist())
            sold, total = [], []
            for row in df.to_dict('records'):
                totals = inventory_totals(inventories.get(row['id'], []))
                if totals['total_quantity'] > 0:
                    total.append(totals['total_quantity'])
                    sold.append(totals['sold_quantity'])
                else:
                    total.append(int(row.get('total_quantity') or 0))
                    sold.append(0)
            df['inventory_total'] = total
            df['inventory_sold'] = sold
            df['utilization'] = [utilization_rate(s, t) for s, t in zip(sold, total)]
            return df

        except Exception as e:
            logger.error(f"Error getting allocations for contract {contract_id}: {e}")
            return pd.DataFrame()

    def get_allocation(self, allocation_id: int, org_id: int) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(f"""
                    SELECT {ALLOCATION_COLUMNS}
                    FROM contract_allocations a
                    LEFT JOIN products p ON a.product_id = p.id
                    WHERE a.id = :id AND a.org_id = :org_id
                """), {'id': allocation_id, 'org_id': org_id}).fetchone()
            return dict(row._mapping) if row else None

        except Exception as e:
            logger.error(f"Error getting allocation {allocation_id}: {e}")
            return None

    @st.cache_data(ttl=60)
    def get_inventory(_self, allocation_id: int) -> pd.DataFrame:
        """Inventory lines of one allocation"""
        try:
            with _self.engine.connect() as conn:
                return pd.read_sql(text(f"""
                    SELECT {INVENTORY_COLUMNS}
                    FROM allocation_inventory i
                    LEFT JOIN product_variants pv ON i.product_variant_id = pv.id
                    WHERE i.contract_allocation_id = :allocation_id
                    ORDER BY i.id
                """), conn, params={'allocation_id': allocation_id})

        except Exception as e:
            logger.error(f"Error getting inventory for allocation {allocation_id}: {e}")
            return pd.DataFrame()

    def get_inventory_line(self, inventory_id: int, org_id: int) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(f"""
                    SELECT {INVENTORY_COLUMNS}
                    FROM allocation_inventory i
                    JOIN contract_allocations a ON i.contract_allocation_id = a.id
                    LEFT JOIN product_variants pv ON i.product_variant_id = pv.id
                    WHERE i.id = :id AND a.org_id = :org_id
                """), {'id': inventory_id, 'org_id': org_id}).fetchone()
            return dict(row._mapping) if row else None

        except Exception as e:
            logger.error(f"Error getting inventory line {inventory_id}: {e}")
            return None

    def get_active_allocations_with_release(self, org_id: int) -> List[Dict]:
        """Active allocations that have release_days set, with contract/supplier/product names"""
        with self.engine.connect() as conn:
            rows = conn.execute(text("""
                SELECT
                    a.id, a.allocation_name, a.total_quantity, a.total_cost,
                    a.cost_per_unit, a.currency, a.valid_from, a.valid_to,
                    a.release_days, a.contract_id, a.product_id,
                    c.contract_name, c.contract_number,
                    s.name AS supplier_name,
                    p.name AS product_name
                FROM contract_allocations a
                JOIN contracts c ON a.contract_id = c.id
                LEFT JOIN suppliers s ON c.supplier_id = s.id
                LEFT JOIN products p ON a.product_id = p.id
                WHERE a.org_id = :org_id
                AND a.is_active = 1
                AND a.release_days IS NOT NULL
                AND c.is_deleted = 0
                ORDER BY a.valid_from ASC
            """), {'org_id': org_id}).fetchall()
        return [dict(r._mapping) for r in rows]

    def get_inventory_by_allocation(self, allocation_ids: List[int]) -> Dict[int, List[Dict]]:
        """Inventory lines grouped by allocation id"""
        if not allocation_ids:
            return {}
        placeholders = ', '.join(f":a_{i}" for i in range(len(allocation_ids)))
        params = {f"a_{i}": int(a) for i, a in enumerate(allocation_ids)}
        with self.engine.connect() as conn:
            rows = conn.execute(text(f"""
                SELECT contract_allocation_id, total_quantity, available_quantity,
                       sold_quantity, is_active
                FROM allocation_inventory
                WHERE contract_allocation_id IN ({placeholders})
            """), params).fetchall()

        grouped = defaultdict(list)
        for r in rows:
            grouped[r.contract_allocation_id].append(dict(r._mapping))
        return grouped

    @staticmethod
    def clear_cache():
        ContractAllocationData.get_contract_allocations.clear()
        ContractAllocationData.get_inventory.clear()
        ReleaseWarningData.get_release_warnings.clear()


class ReleaseWarningData:
    """Release warnings for an organization"""

    def __init__(self):
        self.engine = get_db_engine()
        self.allocations = ContractAllocationData()

    @st.cache_data(ttl=300)
    def get_release_warnings(_self, org_id: int, today: date = None,
                             window_days: int = None) -> List[Dict]:
        try:
            window = window_days or config.get_app_setting('RELEASE_WARNING_DAYS', 30)
            allocations = _self.allocations.get_active_allocations_with_release(org_id)
            inventories = _self.allocations.get_inventory_by_allocation([a['id'] for a in allocations])
            return release_warnings(allocations, inventories, today=today, window_days=window)

        except Exception as e:
            logger.error(f"Error building release warnings: {e}")
            return []
