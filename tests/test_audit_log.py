from decimal import Decimal

import pytest

from utils.audit import AuditLogEntry, get_changed_fields, diff_values, describe_audit_entry


def test_unknown_action_is_rejected():
    with pytest.raises(ValueError):
        AuditLogEntry(org_id=1, entity_type='contract', entity_id=1, action='archive')


def test_changed_fields_ignore_representation_differences():
    old = {'status': 'draft', 'total_cost': Decimal('100.00'), 'valid_to': '2030-12-31'}
    new = {'status': 'active', 'total_cost': 100, 'valid_to': '2030-12-31'}
    assert get_changed_fields(old, new) == ['status']


def test_entry_computes_changed_fields():
    entry = AuditLogEntry(
        org_id=1, entity_type='contract', entity_id=7, action='update',
        old_values={'notes': None}, new_values={'notes': 'call back'}
    )
    assert entry.changed_fields == ['notes']


def test_diff_values_keeps_only_changes():
    diff = diff_values({'a': 1, 'b': 2}, {'a': 1, 'b': 3})
    assert diff == {'old': {'b': 2}, 'new': {'b': 3}}


def test_describe_audit_entry():
    assert describe_audit_entry({
        'action': 'update', 'entity_type': 'contract', 'entity_id': 12,
        'changed_fields': '["status", "valid_to"]',
    }) == "Updated contract #12: status, valid_to"

    assert describe_audit_entry({
        'action': 'bulk_create', 'entity_type': 'allocation_bucket', 'entity_id': 3, 'changed_fields': '[]',
    }) == "Bulk created allocation bucket #3"
