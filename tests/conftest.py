import os
import tempfile

# The config singleton reads DATABASE_URL on import
_DB_DIR = tempfile.mkdtemp(prefix="contracts-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_DB_DIR, 'test.db')}"
os.environ["ENABLE_EMAIL_NOTIFICATIONS"] = "false"

from datetime import date

import pytest
import streamlit as st
from sqlalchemy import text

from utils.db import get_db_engine
from utils.schema import create_schema, drop_schema

ORG_ID = 1
OTHER_ORG_ID = 2
USER_ID = 1
SUPPLIER_ID = 1
OTHER_SUPPLIER_ID = 2
PRODUCT_ID = 1
DOUBLE_ROOM = 1
SINGLE_ROOM = 2


def _seed(conn):
    conn.execute(text("""
        INSERT INTO organizations (id, name) VALUES (1, 'Sunway Travel'), (2, 'Other Agency')
    """))
    conn.execute(text("""
        INSERT INTO users (id, org_id, username, password_hash, password_salt, full_name)
        VALUES (1, 1, 'maria', 'hash', 'salt', 'Maria Lopez')
    """))
    conn.execute(text("""
        INSERT INTO suppliers (id, org_id, name, code, contact_email)
        VALUES (1, 1, 'Hotel Sol Palma', 'HSOL', 'res@hotelsol.example'),
               (2, 2, 'Elsewhere Inn', NULL, NULL)
    """))
    conn.execute(text("""
        INSERT INTO products (id, org_id, supplier_id, name, product_type)
        VALUES (1, 1, 1, 'Hotel Sol Palma', 'hotel')
    """))
    conn.execute(text("""
        INSERT INTO product_variants (id, org_id, product_id, name, code)
        VALUES (1, 1, 1, 'Double Room', 'DBL'), (2, 1, 1, 'Single Room', 'SGL')
    """))


@pytest.fixture
def db():
    """Fresh schema with one organization, supplier and two room variants"""
    engine = get_db_engine()
    drop_schema(engine)
    create_schema(engine)
    with engine.begin() as conn:
        _seed(conn)
    st.cache_data.clear()
    yield engine
    st.cache_data.clear()


@pytest.fixture
def contract(db):
    """An active contract covering 2030"""
    from utils.contracts import ContractService

    result = ContractService().create_contract(ORG_ID, {
        'supplier_id': SUPPLIER_ID,
        'contract_name': 'Summer 2030',
        'contract_type': 'allocation',
        'valid_from': date(2030, 1, 1),
        'valid_to': date(2030, 12, 31),
        'currency': 'eur',
        'total_cost': 120000,
        'status': 'active',
    }, USER_ID, today=date(2029, 11, 1))
    assert result.success, result.errors
    from utils.contracts import ContractData
    return ContractData().get_contract(result.data['contract_id'], ORG_ID)


def audit_rows(engine, entity_type=None):
    query = "SELECT entity_type, entity_id, action, old_values, new_values, changed_fields FROM audit_logs"
    params = {}
    if entity_type:
        query += " WHERE entity_type = :entity_type"
        params['entity_type'] = entity_type
    with engine.connect() as conn:
        return [dict(r._mapping) for r in conn.execute(text(query + " ORDER BY id"), params)]
