import json
from datetime import date

from utils.contracts import ContractService, ContractData

from conftest import ORG_ID, OTHER_ORG_ID, USER_ID, SUPPLIER_ID, OTHER_SUPPLIER_ID, audit_rows

TODAY = date(2029, 11, 1)


def new_contract(**overrides):
    data = {
        'supplier_id': SUPPLIER_ID,
        'contract_name': 'Winter 2030',
        'valid_from': date(2030, 11, 1),
        'valid_to': date(2031, 3, 31),
        'currency': 'GBP',
        'total_cost': 5000,
    }
    data.update(overrides)
    return data


def test_create_generates_number_and_audits(db, contract):
    assert contract['contract_number'].startswith("CON-HSOL-202911-")
    assert len(contract['contract_number']) == len("CON-HSOL-202911-") + 4
    assert contract['currency'] == 'EUR'
    assert contract['status'] == 'active'
    assert contract['supplier_name'] == 'Hotel Sol Palma'

    rows = audit_rows(db, 'contract')
    assert len(rows) == 1
    assert rows[0]['action'] == 'create'
    assert json.loads(rows[0]['new_values'])['contract_number'] == contract['contract_number']


def test_new_contract_defaults_to_draft(db):
    result = ContractService().create_contract(ORG_ID, new_contract(), USER_ID, today=TODAY)
    assert result.success
    assert ContractData().get_contract(result.data['contract_id'], ORG_ID)['status'] == 'draft'


def test_duplicate_number_for_same_supplier_is_rejected(db):
    service = ContractService()
    assert service.create_contract(ORG_ID, new_contract(contract_number='HS-2030'), USER_ID, today=TODAY).success

    result = service.create_contract(ORG_ID, new_contract(contract_number='HS-2030'), USER_ID, today=TODAY)
    assert not result.success
    assert result.message == "Duplicate contract number"


def test_supplier_of_another_organization_is_rejected(db):
    result = ContractService().create_contract(
        ORG_ID, new_contract(supplier_id=OTHER_SUPPLIER_ID), USER_ID, today=TODAY
    )
    assert not result.success
    assert result.message == "Supplier not found"


def test_invalid_contract_is_not_written(db):
    result = ContractService().create_contract(ORG_ID, new_contract(currency=None), USER_ID, today=TODAY)
    assert not result.success
    assert result.errors == ["Currency is required"]
    assert audit_rows(db) == []


def test_update_audits_only_changed_fields(db, contract):
    service = ContractService()
    result = service.update_contract(contract['id'], ORG_ID, {
        'notes': 'Breakfast included',
        'currency': 'eur',
        'valid_to': date(2030, 12, 31),
        'total_cost': 120000,
    }, USER_ID, today=TODAY)

    assert result.success
    assert result.data['changed_fields'] == ['notes']

    last = audit_rows(db, 'contract')[-1]
    assert last['action'] == 'update'
    assert json.loads(last['old_values']) == {'notes': None}
    assert json.loads(last['new_values']) == {'notes': 'Breakfast included'}
    assert ContractData().get_contract(contract['id'], ORG_ID)['notes'] == 'Breakfast included'


def test_update_without_changes(db, contract):
    result = ContractService().update_contract(contract['id'], ORG_ID, {'currency': 'EUR'}, USER_ID, today=TODAY)
    assert result.success
    assert result.message == "No changes to save"
    assert len(audit_rows(db, 'contract')) == 1


def test_update_rejects_reversed_dates(db, contract):
    result = ContractService().update_contract(
        contract['id'], ORG_ID, {'valid_to': date(2029, 12, 1)}, USER_ID, today=TODAY
    )
    assert not result.success


def test_update_of_other_organization_contract(db, contract):
    result = ContractService().update_contract(contract['id'], OTHER_ORG_ID, {'notes': 'x'}, USER_ID)
    assert not result.success
    assert result.message == "Contract not found"


def test_change_status(db, contract):
    service = ContractService()
    result = service.change_status(contract['id'], ORG_ID, 'cancelled', USER_ID)
    assert result.success
    assert result.data['old_status'] == 'active'
    assert ContractData().get_contract(contract['id'], ORG_ID)['status'] == 'cancelled'
    assert audit_rows(db, 'contract')[-1]['action'] == 'status_change'

    assert not service.change_status(contract['id'], ORG_ID, 'cancelled', USER_ID).success


def test_soft_delete_hides_contract(db, contract):
    result = ContractService().delete_contract(contract['id'], ORG_ID, USER_ID)
    assert result.success

    data = ContractData()
    assert data.get_contract(contract['id'], ORG_ID) is None
    assert data.search_contracts(ORG_ID).total == 0
    assert audit_rows(db, 'contract')[-1]['action'] == 'delete'


def test_deleted_number_can_be_reused(db):
    service = ContractService()
    first = service.create_contract(ORG_ID, new_contract(contract_number='HS-1'), USER_ID, today=TODAY)
    service.delete_contract(first.data['contract_id'], ORG_ID, USER_ID)

    assert service.create_contract(ORG_ID, new_contract(contract_number='HS-1'), USER_ID, today=TODAY).success


def test_search_filters(db, contract):
    ContractService().create_contract(ORG_ID, new_contract(), USER_ID, today=TODAY)
    data = ContractData()

    assert data.search_contracts(ORG_ID).total == 2
    assert data.search_contracts(OTHER_ORG_ID).total == 0
    assert data.search_contracts(ORG_ID, statuses=('draft',)).total == 1
    assert data.search_contracts(ORG_ID, currency='EUR').total == 1
    assert data.search_contracts(ORG_ID, search='Winter').total == 1
    assert data.search_contracts(ORG_ID, date_from=date(2031, 1, 1)).total == 1

    page = data.search_contracts(ORG_ID, sort_by='valid_from', sort_dir='asc')
    assert list(page.items['contract_name']) == ['Summer 2030', 'Winter 2030']
    assert 'display_status' in page.items.columns


def test_search_pages(db):
    service = ContractService()
    for i in range(3):
        service.create_contract(ORG_ID, new_contract(contract_number=f"HS-{i}"), USER_ID, today=TODAY)

    page = ContractData().search_contracts(ORG_ID, page=2, page_size=2)
    assert page.total == 3
    assert page.page == 2
    assert len(page.items) == 1


def test_contract_stats(db, contract):
    ContractService().create_contract(ORG_ID, new_contract(), USER_ID, today=TODAY)
    stats = ContractData().get_contract_stats(ORG_ID)

    assert stats['total_contracts'] == 2
    assert stats['active_contracts'] == 1
    assert stats['draft_contracts'] == 1
    assert stats['total_value'] == {'EUR': 120000.0, 'GBP': 5000.0}


def test_contract_options_label(db, contract):
    options = ContractData().get_contract_options(ORG_ID)
    assert options == [(contract['id'], f"{contract['contract_number']} | Summer 2030 (Hotel Sol Palma)")]


def test_malformed_date_is_a_validation_error(db):
    result = ContractService().create_contract(ORG_ID, new_contract(valid_from='not-a-date'), USER_ID, today=TODAY)
    assert not result.success
    assert result.message == "Validation failed"
    assert "Valid from must be a date (YYYY-MM-DD)" in result.errors
    assert audit_rows(db) == []
