"""
Dashboard Data
===============
Key metrics for the landing dashboard.
"""

import logging
from datetime import date, datetime
from typing import Dict

import streamlit as st
from sqlalchemy import text

from utils.config import config
from utils.db import get_db_engine
from ..allocations.allocation_data import ReleaseWarningData
from ..allocations.release import warnings_summary
from ..contracts.contract_rules import effective_status, is_expiring_soon
from ..contracts.deadline_rules import deadline_summary

logger = logging.getLogger(__name__)

EMPTY_METRICS = {
    'active_contracts': 0,
    'expiring_contracts': 0,
    'active_allocations': 0,
    'total_allocated_units': 0,
    'sold_units': 0,
    'at_risk_allocations': 0,
    'critical_releases': 0,
    'potential_loss': 0.0,
    'pending_deadlines': 0,
    'overdue_deadlines': 0,
}


class DashboardData:
    """Aggregated numbers for the dashboard header"""

    def __init__(self):
        self.engine = get_db_engine()
        self.release_data = ReleaseWarningData()

    @st.cache_data(ttl=120)
    def get_key_metrics(_self, org_id: int, today: date = None) -> Dict:
        try:
            today = today or date.today()
            metrics = dict(EMPTY_METRICS)

            with _self.engine.connect() as conn:
                contracts = conn.execute(text("""
                    SELECT status, valid_to FROM contracts
                    WHERE org_id = :org_id AND is_deleted = 0
                """), {'org_id': org_id}).fetchall()

                allocation_row = conn.execute(text("""
                    SELECT COUNT(*) AS allocations, COALESCE(SUM(a.total_quantity), 0) AS units
                    FROM contract_allocations a
                    JOIN contracts c ON a.contract_id = c.id
                    WHERE a.org_id = :org_id AND a.is_active = 1 AND c.is_deleted = 0
                """), {'org_id': org_id}).fetchone()

                sold_row = conn.execute(text("""
                    SELECT COALESCE(SUM(i.sold_quantity), 0) AS sold
                    FROM allocation_inventory i
                    JOIN contract_allocations a ON i.contract_allocation_id = a.id
                    JOIN contracts c ON a.contract_id = c.id
                    WHERE a.org_id = :org_id AND a.is_active = 1 AND i.is_active = 1 AND c.is_deleted = 0
                """), {'org_id': org_id}).fetchone()

                deadlines = conn.execute(text("""
                    SELECT d.status, d.deadline_date
                    FROM contract_deadlines d
                    JOIN contracts c ON d.ref_type = 'contract' AND d.ref_id = c.id
                    WHERE d.org_id = :org_id AND d.status = 'pending' AND c.is_deleted = 0
                """), {'org_id': org_id}).fetchall()

            metrics['active_contracts'] = sum(
                1 for c in contracts if effective_status(dict(c._mapping), today) == 'active'
            )
            metrics['active_allocations'] = int(allocation_row.allocations or 0)
            metrics['total_allocated_units'] = int(allocation_row.units or 0)
            metrics['sold_units'] = int(sold_row.sold or 0)

            now = datetime.combine(today, datetime.now().time())
            summary = deadline_summary((dict(d._mapping) for d in deadlines), now)
            metrics['pending_deadlines'] = summary['pending']
            metrics['overdue_deadlines'] = summary['overdue']

            release = warnings_summary(_self.release_data.get_release_warnings(
                org_id, today, config.get_app_setting('RELEASE_WARNING_DAYS', 30)
            ))
            metrics['at_risk_allocations'] = release['count']
            metrics['critical_releases'] = release['critical']
            metrics['potential_loss'] = release['potential_loss']

            metrics['expiring_contracts'] = sum(
                1 for c in contracts if is_expiring_soon(dict(c._mapping), today)
            )

            return metrics

        except Exception as e:
            logger.error(f"Error getting dashboard metrics: {e}")
            return dict(EMPTY_METRICS)

    @staticmethod
    def clear_cache():
        DashboardData.get_key_metrics.clear()
