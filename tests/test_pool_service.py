from datetime import date

from sqlalchemy import text

from utils.allocations import PoolService, PoolData, BucketService

from conftest import ORG_ID, OTHER_ORG_ID, USER_ID, SUPPLIER_ID, DOUBLE_ROOM, SINGLE_ROOM, audit_rows


def pool(**overrides):
    data = {
        'name': ' Palma summer ',
        'pool_type': 'shared_allotment',
        'supplier_id': SUPPLIER_ID,
        'valid_from': date(2030, 6, 1),
        'valid_to': date(2030, 6, 30),
        'total_capacity': 20,
        'min_commitment': 10,
        'release_date': date(2030, 5, 15),
    }
    data.update(overrides)
    return data


def create_pool(members=None, **overrides):
    result = PoolService().create_pool(ORG_ID, pool(**overrides), USER_ID, members=members)
    assert result.success, result.errors
    return result


def test_create_pool_with_members(db):
    result = create_pool(members=[
        {'product_variant_id': DOUBLE_ROOM},
        {'product_variant_id': SINGLE_ROOM, 'capacity_weight': 0.5, 'priority': 10},
    ])
    assert len(result.data['member_ids']) == 2
    assert result.data['failed_members'] == []

    stored = PoolData().get_pool(result.data['pool_id'], ORG_ID)
    assert stored['name'] == 'Palma summer'
    assert stored['currency'] == 'EUR'
    assert stored['capacity_unit'] == 'rooms'
    assert stored['status'] == 'active'

    members = PoolData().get_pool_members(result.data['pool_id'], ORG_ID)
    assert list(members['variant_name']) == ['Single Room', 'Double Room']
    assert audit_rows(db, 'allocation_pool')[0]['action'] == 'create'


def test_invalid_member_does_not_block_the_pool(db):
    result = create_pool(members=[{'product_variant_id': DOUBLE_ROOM}, {'product_variant_id': None}])
    assert result.data['failed_members'] == [None]
    assert "1 member(s) could not be added" in result.message


def test_invalid_pool(db):
    result = PoolService().create_pool(ORG_ID, pool(valid_to=date(2030, 5, 1)), USER_ID)
    assert not result.success


def test_pool_utilization_from_member_buckets(db, contract):
    pool_id = create_pool(members=[{'product_variant_id': DOUBLE_ROOM}]).data['pool_id']

    buckets = BucketService()
    ids = buckets.bulk_create_buckets(contract['id'], ORG_ID, {
        'product_variant_id': DOUBLE_ROOM, 'quantity': 10, 'currency': 'EUR',
        'date_from': date(2030, 5, 31), 'date_to': date(2030, 6, 2),
    }, USER_ID).data['bucket_ids']
    with db.begin() as conn:
        conn.execute(text("UPDATE allocation_buckets SET booked = 5, held = 1"))

    # 05-31 is outside the pool window
    assert PoolData().get_pool_usage(pool_id, ORG_ID) == {'booked': 10, 'held': 2}

    row = PoolData().get_pools(ORG_ID).to_dict('records')[0]
    assert row['utilization_percentage'] == 60.0
    assert row['available_units'] == 8
    assert row['utilization_color'] == 'green'
    assert row['commitment_shortfall'] == 0
    assert row['member_count'] == 1
    assert len(ids) == 3


def test_deleted_bucket_refreshes_pool_list(db, contract):
    pool_id = create_pool(members=[{'product_variant_id': DOUBLE_ROOM}]).data['pool_id']
    bucket_id = BucketService().create_bucket(contract['id'], ORG_ID, {
        'product_variant_id': DOUBLE_ROOM, 'date': date(2030, 6, 10), 'quantity': 10, 'currency': 'EUR',
    }, USER_ID).data['bucket_id']
    with db.begin() as conn:
        conn.execute(text("UPDATE allocation_buckets SET booked = 6"))

    assert PoolData().get_pools(ORG_ID).to_dict('records')[0]['booked_units'] == 6

    assert BucketService().delete_bucket(bucket_id, ORG_ID, USER_ID).success

    row = PoolData().get_pools(ORG_ID).to_dict('records')[0]
    assert row['id'] == pool_id
    assert row['booked_units'] == 0
    assert row['available_units'] == 20


def test_members_add_and_remove(db):
    service = PoolService()
    pool_id = create_pool(members=[{'product_variant_id': DOUBLE_ROOM}]).data['pool_id']

    duplicate = service.add_member(pool_id, ORG_ID, {'product_variant_id': DOUBLE_ROOM}, USER_ID)
    assert duplicate.message == "Variant already in pool"

    added = service.add_member(pool_id, ORG_ID, {'product_variant_id': SINGLE_ROOM}, USER_ID)
    assert added.success

    assert service.remove_member(pool_id, added.data['member_id'], ORG_ID, USER_ID).success
    assert not service.remove_member(pool_id, added.data['member_id'], ORG_ID, USER_ID).success
    assert len(PoolData().get_pool_members(pool_id, ORG_ID)) == 1

    # a removed variant can join again
    assert service.add_member(pool_id, ORG_ID, {'product_variant_id': SINGLE_ROOM}, USER_ID).success


def test_update_and_deactivate_pool(db):
    service = PoolService()
    pool_id = create_pool().data['pool_id']

    result = service.update_pool(pool_id, ORG_ID, {'total_capacity': 25, 'valid_to': date(2030, 6, 30)}, USER_ID)
    assert result.data['changed_fields'] == ['total_capacity']

    assert service.deactivate_pool(pool_id, ORG_ID, USER_ID).success
    assert not service.deactivate_pool(pool_id, ORG_ID, USER_ID).success
    assert PoolData().get_pools(ORG_ID, 'active').empty
    assert len(PoolData().get_pools(ORG_ID, 'inactive')) == 1


def test_pools_are_org_scoped(db):
    pool_id = create_pool().data['pool_id']
    assert PoolData().get_pool(pool_id, OTHER_ORG_ID) is None
    assert PoolData().get_pools(OTHER_ORG_ID).empty
