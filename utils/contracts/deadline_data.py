"""
Deadline Data Layer
====================
Reads for contract deadlines (detail tab and dashboard widget).
"""

import logging
from datetime import date, timedelta
from typing import Dict, Optional

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from .deadline_rules import is_overdue, days_until, deadline_urgency

logger = logging.getLogger(__name__)

DEADLINE_COLUMNS = """
    d.id,
    d.org_id,
    d.ref_type,
    d.ref_id,
    d.deadline_type,
    d.deadline_date,
    d.penalty_type,
    d.penalty_value,
    d.status,
    d.notes,
    d.created_at,
    d.updated_at
"""


def _add_derived_columns(df: pd.DataFrame) -> pd.DataFrame:
    if df.empty:
        return df
    rows = df.to_dict('records')
    df['is_overdue'] = [is_overdue(r) for r in rows]
    df['days_until'] = [days_until(r.get('deadline_date')) for r in rows]
    df['urgency'] = [deadline_urgency(r) for r in rows]
    return df


class DeadlineData:
    """Data access for contract deadlines"""

    def __init__(self):
        self.engine = get_db_engine()

    @st.cache_data(ttl=60)
    def get_contract_deadlines(_self, contract_id: int, org_id: int) -> pd.DataFrame:
        """All deadlines of a contract ordered by date"""
        try:
            query = text(f"""
                SELECT {DEADLINE_COLUMNS}
                FROM contract_deadlines d
                WHERE d.org_id = :org_id
                AND d.ref_type = 'contract'
                AND d.ref_id = :contract_id
                ORDER BY d.deadline_date ASC, d.id ASC
            """)
            with _self.engine.connect() as conn:
                df = pd.read_sql(query, conn, params={'org_id': org_id, 'contract_id': contract_id})
            return _add_derived_columns(df)

        except Exception as e:
            logger.error(f"Error getting deadlines for contract {contract_id}: {e}")
            return pd.DataFrame()

    @st.cache_data(ttl=60)
    def get_upcoming_deadlines(_self, org_id: int, days_ahead: int = 14,
                               today: Optional[date] = None) -> pd.DataFrame:
        """Pending deadlines due within `days_ahead` days, overdue ones included"""
        try:
            today = today or date.today()
            horizon = today + timedelta(days=days_ahead)

            query = text(f"""
                SELECT {DEADLINE_COLUMNS},
                    c.contract_number,
                    c.contract_name,
                    c.total_cost AS contract_value,
                    c.currency,
                    s.name AS supplier_name
                FROM contract_deadlines d
                JOIN contracts c ON d.ref_type = 'contract' AND d.ref_id = c.id
                LEFT JOIN suppliers s ON c.supplier_id = s.id
                WHERE d.org_id = :org_id
                AND d.status = 'pending'
                AND c.is_deleted = 0
                AND d.deadline_date <= :horizon
                ORDER BY d.deadline_date ASC, d.id ASC
            """)
            with _self.engine.connect() as conn:
                df = pd.read_sql(query, conn, params={'org_id': org_id, 'horizon': horizon.isoformat()})
            return _add_derived_columns(df)

        except Exception as e:
            logger.error(f"Error getting upcoming deadlines: {e}")
            return pd.DataFrame()

    def get_deadline(self, deadline_id: int, org_id: int) -> Optional[Dict]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(text(f"""
                    SELECT {DEADLINE_COLUMNS}
                    FROM contract_deadlines d
                    WHERE d.id = :id AND d.org_id = :org_id
                """), {'id': deadline_id, 'org_id': org_id}).fetchone()
            return dict(row._mapping) if row else None

        except Exception as e:
            logger.error(f"Error getting deadline {deadline_id}: {e}")
            return None

    @staticmethod
    def clear_cache():
        DeadlineData.get_contract_deadlines.clear()
        DeadlineData.get_upcoming_deadlines.clear()
