from datetime import date

from utils.rates import RateService, RateData, occupancy_price, find_occupancy

from conftest import ORG_ID, USER_ID, DOUBLE_ROOM, audit_rows


def create_rate(contract, **overrides):
    data = {
        'product_variant_id': DOUBLE_ROOM,
        'inventory_model': 'committed',
        'markets': 'GB, IE',
    }
    data.update(overrides)
    result = RateService().create_rate_plan(contract['id'], ORG_ID, data, USER_ID)
    assert result.success, result.errors
    return result.data['rate_id']


def test_rate_plan_defaults_from_contract(db, contract):
    rate = RateData().get_rate_plan(create_rate(contract), ORG_ID)

    assert rate['currency'] == 'EUR'
    assert rate['valid_from'] == '2030-01-01'
    assert rate['valid_to'] == '2030-12-31'
    assert rate['priority'] == 100
    assert rate['rate_type'] == 'supplier_rate'
    assert rate['markets'] == ['GB', 'IE']
    assert rate['channels'] == []
    assert rate['occupancies'] == []
    assert audit_rows(db, 'rate_plan')[0]['action'] == 'create'


def test_rate_plan_requires_inventory_model(db, contract):
    result = RateService().create_rate_plan(contract['id'], ORG_ID, {'product_variant_id': DOUBLE_ROOM}, USER_ID)
    assert not result.success


def test_contract_rates_by_type(db, contract):
    create_rate(contract)
    create_rate(contract, rate_type='master_rate')

    data = RateData()
    supplier_rates = data.get_contract_rates(contract['id'], ORG_ID)
    assert len(supplier_rates) == 1
    assert list(supplier_rates['markets']) == [['GB', 'IE']]
    assert len(data.get_contract_rates(contract['id'], ORG_ID, 'master_rate')) == 1


def test_update_rate_plan(db, contract):
    service = RateService()
    rate_id = create_rate(contract)

    result = service.update_rate_plan(rate_id, ORG_ID, {'markets': ['GB', 'IE'], 'priority': 50}, USER_ID)
    assert result.data['changed_fields'] == ['priority']

    assert service.update_rate_plan(rate_id, ORG_ID, {'priority': 50}, USER_ID).message == "No changes to save"


def test_occupancies_and_pricing(db, contract):
    service = RateService()
    rate_id = create_rate(contract)

    service.add_occupancy(rate_id, ORG_ID, {
        'min_occupancy': 1, 'max_occupancy': 1, 'pricing_model': 'fixed', 'base_amount': 90,
    }, USER_ID)
    service.add_occupancy(rate_id, ORG_ID, {
        'min_occupancy': 2, 'max_occupancy': 4, 'pricing_model': 'base_plus_pax',
        'base_amount': 100, 'per_person_amount': 30,
    }, USER_ID)
    bad = service.add_occupancy(rate_id, ORG_ID, {'min_occupancy': 3, 'max_occupancy': 1, 'base_amount': 1}, USER_ID)
    assert not bad.success

    rate = RateData().get_rate_plan(rate_id, ORG_ID)
    assert len(rate['occupancies']) == 2
    assert occupancy_price(find_occupancy(rate['occupancies'], 4), 4) == 160.0
    assert occupancy_price(find_occupancy(rate['occupancies'], 1), 1) == 90.0

    occupancy_id = rate['occupancies'][0]['id']
    assert service.delete_occupancy(rate_id, occupancy_id, ORG_ID, USER_ID).success
    assert not service.delete_occupancy(rate_id, occupancy_id, ORG_ID, USER_ID).success


def test_seasons(db, contract):
    service = RateService()
    rate_id = create_rate(contract)

    result = service.add_season(rate_id, ORG_ID, {'season_from': date(2030, 7, 1), 'season_to': date(2030, 8, 31)},
                                USER_ID)
    assert result.success

    season = RateData().get_rate_plan(rate_id, ORG_ID)['seasons'][0]
    assert season['dow_mask'] == 127
    assert season['season_from'] == '2030-07-01'

    assert service.delete_season(rate_id, season['id'], ORG_ID, USER_ID).success


def test_deleted_rate_plan_is_hidden(db, contract):
    service = RateService()
    rate_id = create_rate(contract)

    assert service.delete_rate_plan(rate_id, ORG_ID, USER_ID).success
    assert RateData().get_rate_plan(rate_id, ORG_ID) is None
    assert RateData().get_contract_rates(contract['id'], ORG_ID).empty
    assert not service.add_season(rate_id, ORG_ID, {'season_from': date(2030, 7, 1),
                                                    'season_to': date(2030, 7, 2)}, USER_ID).success
