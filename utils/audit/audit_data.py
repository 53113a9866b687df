"""
Audit Log Data Layer
=====================
Read-only access to audit_logs for the activity feed and audit trail views.
"""

import logging

import pandas as pd
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from ..common.pagination import Page, clamp_page, page_offset, total_pages
from .audit_log import describe_audit_entry, parse_json_field

logger = logging.getLogger(__name__)


class AuditLogData:
    """Data access for audit trail"""

    def __init__(self):
        self.engine = get_db_engine()

    @st.cache_data(ttl=60)
    def get_audit_logs(
        _self,
        org_id: int,
        entity_type: str = None,
        entity_id: int = None,
        action: str = None,
        page: int = 1,
        page_size: int = 50
    ) -> Page:
        """Paginated audit trail, newest first"""
        try:
            conditions = ["a.org_id = :org_id"]
            params = {'org_id': org_id}

            if entity_type:
                conditions.append("a.entity_type = :entity_type")
                params['entity_type'] = entity_type

            if entity_id:
                conditions.append("a.entity_id = :entity_id")
                params['entity_id'] = entity_id

            if action:
                conditions.append("a.action = :action")
                params['action'] = action

            where_clause = " AND ".join(conditions)

            with _self.engine.connect() as conn:
                total = conn.execute(
                    text(f"SELECT COUNT(*) FROM audit_logs a WHERE {where_clause}"), params
                ).scalar() or 0

                page = clamp_page(page, total_pages(total, page_size))
                params.update({'limit': page_size, 'offset': page_offset(page, page_size)})

                df = pd.read_sql(text(f"""
                    SELECT
                        a.id,
                        a.entity_type,
                        a.entity_id,
                        a.action,
                        a.old_values,
                        a.new_values,
                        a.changed_fields,
                        a.user_id,
                        u.full_name AS user_name,
                        a.created_at
                    FROM audit_logs a
                    LEFT JOIN users u ON a.user_id = u.id
                    WHERE {where_clause}
                    ORDER BY a.created_at DESC, a.id DESC
                    LIMIT :limit OFFSET :offset
                """), conn, params=params)

            if not df.empty:
                for column in ('old_values', 'new_values', 'changed_fields'):
                    df[column] = df[column].apply(parse_json_field)
                df['summary'] = df.apply(lambda r: describe_audit_entry(r.to_dict()), axis=1)

            return Page(items=df, total=int(total), page=page, page_size=page_size)

        except Exception as e:
            logger.error(f"Error getting audit logs: {e}")
            return Page(page_size=page_size)

    @st.cache_data(ttl=60)
    def get_recent_activity(_self, org_id: int, limit: int = 10) -> pd.DataFrame:
        """Latest audit entries for the dashboard feed"""
        return _self.get_audit_logs(org_id, page=1, page_size=limit).items

    def get_entity_history(self, org_id: int, entity_type: str, entity_id: int) -> pd.DataFrame:
        """Full history for a single record (uncached, used in detail drawers)"""
        page = self.get_audit_logs(org_id, entity_type=entity_type, entity_id=entity_id,
                                   page=1, page_size=500)
        return page.items

    @staticmethod
    def clear_cache():
        AuditLogData.get_audit_logs.clear()
        AuditLogData.get_recent_activity.clear()
