from datetime import date

from utils.allocations import ContractAllocationService, ContractAllocationData, ReleaseWarningData

from conftest import ORG_ID, USER_ID, PRODUCT_ID, DOUBLE_ROOM, SINGLE_ROOM, audit_rows


def allotment(**overrides):
    data = {
        'product_id': PRODUCT_ID,
        'allocation_name': 'March block',
        'total_quantity': 20,
        'total_cost': 2000,
        'valid_from': date(2030, 3, 15),
        'valid_to': date(2030, 3, 31),
        'release_days': 14,
    }
    data.update(overrides)
    return data


def create(contract, **overrides):
    result = ContractAllocationService().create_allocation(contract['id'], ORG_ID, allotment(**overrides), USER_ID)
    assert result.success, result.errors
    return result.data['allocation_id']


def test_create_allocation_defaults(db, contract):
    allocation_id = create(contract)
    allocation = ContractAllocationData().get_allocation(allocation_id, ORG_ID)

    assert allocation['currency'] == 'EUR'
    assert allocation['allocation_type'] == 'allotment'
    assert float(allocation['cost_per_unit']) == 100.0
    assert allocation['product_name'] == 'Hotel Sol Palma'
    assert audit_rows(db, 'contract_allocation')[0]['action'] == 'create'


def test_allocation_outside_contract_only_warns(db, contract):
    result = ContractAllocationService().create_allocation(
        contract['id'], ORG_ID, allotment(valid_from=date(2029, 12, 20)), USER_ID
    )
    assert result.success
    assert result.data['warnings'] == ["Allocation dates fall outside the contract validity"]


def test_update_and_deactivate(db, contract):
    service = ContractAllocationService()
    allocation_id = create(contract)

    result = service.update_allocation(allocation_id, ORG_ID, {'release_days': 21, 'valid_to': date(2030, 3, 31)},
                                       USER_ID)
    assert result.data['changed_fields'] == ['release_days']

    assert service.deactivate_allocation(allocation_id, ORG_ID, USER_ID).success
    assert not service.deactivate_allocation(allocation_id, ORG_ID, USER_ID).success
    assert ContractAllocationData().get_contract_allocations(contract['id'], ORG_ID).empty
    assert len(ContractAllocationData().get_contract_allocations(contract['id'], ORG_ID, include_inactive=True)) == 1


def test_inventory_lines(db, contract):
    service = ContractAllocationService()
    allocation_id = create(contract)

    first = service.add_inventory(allocation_id, ORG_ID, {
        'product_variant_id': DOUBLE_ROOM, 'total_quantity': 12, 'sold_quantity': 5,
    }, USER_ID)
    assert first.success
    service.add_inventory(allocation_id, ORG_ID, {'product_variant_id': SINGLE_ROOM, 'total_quantity': 8}, USER_ID)

    lines = ContractAllocationData().get_inventory(allocation_id)
    assert list(lines['available_quantity']) == [7, 8]
    assert list(lines['currency']) == ['EUR', 'EUR']

    df = ContractAllocationData().get_contract_allocations(contract['id'], ORG_ID)
    row = df.to_dict('records')[0]
    assert row['inventory_total'] == 20
    assert row['inventory_sold'] == 5
    assert row['utilization'] == 25.0


def test_inventory_cannot_exceed_total(db, contract):
    service = ContractAllocationService()
    allocation_id = create(contract)
    inventory_id = service.add_inventory(allocation_id, ORG_ID, {
        'product_variant_id': DOUBLE_ROOM, 'total_quantity': 10,
    }, USER_ID).data['inventory_id']

    assert not service.update_inventory(inventory_id, ORG_ID, {'sold_quantity': 11}, USER_ID).success

    result = service.update_inventory(inventory_id, ORG_ID, {'sold_quantity': 4, 'available_quantity': 6}, USER_ID)
    assert result.success
    assert set(result.data['changed_fields']) == {'sold_quantity', 'available_quantity'}


def test_release_warnings_from_database(db, contract):
    service = ContractAllocationService()
    march = create(contract)
    service.add_inventory(march, ORG_ID, {
        'product_variant_id': DOUBLE_ROOM, 'total_quantity': 20, 'sold_quantity': 8,
    }, USER_ID)
    create(contract, allocation_name='No release', release_days=None)
    create(contract, allocation_name='June block', valid_from=date(2030, 6, 1), valid_to=date(2030, 6, 30))

    warnings = ReleaseWarningData().get_release_warnings(ORG_ID, today=date(2030, 2, 27), window_days=30)

    assert len(warnings) == 1
    warning = warnings[0]
    assert warning['allocation_name'] == 'March block'
    assert warning['release_date'] == date(2030, 3, 1)
    assert warning['urgency'] == 'critical'
    assert warning['potential_loss'] == 1200.0
    assert warning['utilization'] == 40.0
    assert warning['supplier_name'] == 'Hotel Sol Palma'


def test_deactivated_allocation_has_no_warning(db, contract):
    allocation_id = create(contract)
    ContractAllocationService().deactivate_allocation(allocation_id, ORG_ID, USER_ID)

    assert ReleaseWarningData().get_release_warnings(ORG_ID, today=date(2030, 2, 27), window_days=30) == []


def test_malformed_allocation_input(db, contract):
    service = ContractAllocationService()
    result = service.create_allocation(contract['id'], ORG_ID, allotment(valid_to='31.03.2030'), USER_ID)
    assert not result.success
    assert "Valid to must be a date (YYYY-MM-DD)" in result.errors

    allocation_id = create(contract)
    result = service.add_inventory(allocation_id, ORG_ID, {
        'product_variant_id': DOUBLE_ROOM, 'total_quantity': 'twenty',
    }, USER_ID)
    assert not result.success
    assert result.message == "Validation failed"
    assert "Total quantity must be a number" in result.errors
    assert ContractAllocationData().get_inventory(allocation_id).empty
