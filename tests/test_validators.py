from datetime import date

from utils.contracts import ContractValidator, DeadlineValidator
from utils.allocations import BucketValidator, ContractAllocationValidator, PoolValidator
from utils.rates import RateValidator

TODAY = date(2029, 11, 1)


def contract_data(**overrides):
    data = {
        'supplier_id': 1,
        'contract_name': 'Summer 2030',
        'valid_from': '2030-01-01',
        'valid_to': '2030-12-31',
        'currency': 'EUR',
        'total_cost': 1000,
        'status': 'draft',
    }
    data.update(overrides)
    return data


class TestContractValidator:

    def test_valid_contract(self):
        result = ContractValidator().validate_contract(contract_data(), today=TODAY)
        assert result.is_valid
        assert result.warnings == []

    def test_reversed_dates_and_bad_currency(self):
        result = ContractValidator().validate_contract(
            contract_data(valid_from='2030-02-01', valid_to='2030-01-01', currency='EURO'), today=TODAY
        )
        assert not result.is_valid
        assert len(result.errors) == 2

    def test_missing_supplier(self):
        result = ContractValidator().validate_contract(contract_data(supplier_id=None), today=TODAY)
        assert result.errors == ["Supplier is required"]

    def test_contract_name_is_required(self):
        result = ContractValidator().validate_contract(contract_data(contract_name='  '), today=TODAY)
        assert result.errors == ["Contract name is required"]

    def test_unparseable_date(self):
        result = ContractValidator().validate_contract(contract_data(valid_from='31/02/2030'), today=TODAY)
        assert result.errors == ["Valid from must be a date (YYYY-MM-DD)"]

    def test_commission_rate_bounds(self):
        result = ContractValidator().validate_contract(contract_data(commission_rate=120), today=TODAY)
        assert not result.is_valid

    def test_warnings_do_not_block(self):
        result = ContractValidator().validate_contract(
            contract_data(valid_from='2025-01-01', valid_to='2029-06-30'), today=TODAY
        )
        assert result.is_valid
        assert len(result.warnings) == 2

    def test_status_change_to_same_status_fails(self):
        result = ContractValidator().validate_status_change({'status': 'active'}, 'active')
        assert not result.is_valid

    def test_unknown_status(self):
        result = ContractValidator().validate_status_change({'status': 'draft'}, 'archived')
        assert not result.is_valid


class TestDeadlineValidator:

    def test_percentage_penalty_over_100(self):
        result = DeadlineValidator().validate_deadline({
            'ref_id': 1, 'deadline_type': 'release', 'deadline_date': '2030-01-01',
            'penalty_type': 'percentage', 'penalty_value': 150,
        })
        assert "Percentage penalty cannot exceed 100%" in result.errors

    def test_penalty_without_value_warns(self):
        result = DeadlineValidator().validate_deadline({
            'ref_id': 1, 'deadline_type': 'payment', 'deadline_date': '2030-01-01', 'penalty_type': 'fixed',
        })
        assert result.is_valid
        assert result.warnings

    def test_partial_update_checks_only_given_fields(self):
        assert DeadlineValidator().validate_deadline({'notes': 'called supplier'}, partial=True).is_valid
        assert not DeadlineValidator().validate_deadline({'deadline_date': 'soon'}, partial=True).is_valid


class TestBucketValidator:

    def bucket(self, **overrides):
        data = {'product_variant_id': 1, 'date': '2030-01-01', 'quantity': 5, 'currency': 'EUR'}
        data.update(overrides)
        return data

    def test_valid_bucket(self):
        assert BucketValidator().validate_bucket(self.bucket()).is_valid

    def test_unlimited_bucket_is_valid(self):
        assert BucketValidator().validate_bucket(self.bucket(quantity=None)).is_valid

    def test_currency_required(self):
        result = BucketValidator().validate_bucket(self.bucket(currency=None))
        assert result.errors == ["Currency is required"]

    def test_negative_quantity(self):
        assert not BucketValidator().validate_bucket(self.bucket(quantity=-1)).is_valid

    def test_min_stay_above_max_stay(self):
        result = BucketValidator().validate_bucket(self.bucket(min_stay_days=5, max_stay_days=3))
        assert not result.is_valid

    def test_blackout_with_stop_sell_warns(self):
        result = BucketValidator().validate_bucket(self.bucket(blackout=True, stop_sell=True))
        assert result.is_valid
        assert result.warnings

    def test_bulk_range_limit(self):
        data = self.bucket(date_from='2030-01-01', date_to='2030-12-31')
        assert BucketValidator().validate_bulk(data).is_valid

        data['date_to'] = '2031-01-02'
        assert not BucketValidator().validate_bulk(data).is_valid

    def test_quantity_cannot_drop_below_booked_and_held(self):
        bucket = {'quantity': 10, 'booked': 4, 'held': 1}
        assert not BucketValidator().validate_quantity_change(bucket, 4).is_valid
        assert BucketValidator().validate_quantity_change(bucket, 5).is_valid
        assert BucketValidator().validate_quantity_change(bucket, None).is_valid


class TestContractAllocationValidator:

    def test_allocation_outside_contract_warns(self):
        result = ContractAllocationValidator().validate_allocation(
            {'allocation_name': 'Block', 'total_quantity': 10, 'valid_from': '2029-12-01',
             'valid_to': '2030-01-31', 'currency': 'EUR'},
            contract={'valid_from': '2030-01-01', 'valid_to': '2030-12-31'}
        )
        assert result.is_valid
        assert result.warnings == ["Allocation dates fall outside the contract validity"]

    def test_total_quantity_required(self):
        result = ContractAllocationValidator().validate_allocation(
            {'allocation_name': 'Block', 'valid_from': '2030-01-01', 'valid_to': '2030-01-31', 'currency': 'EUR'}
        )
        assert "Total quantity is required" in result.errors

    def test_inventory_quantities(self):
        validator = ContractAllocationValidator()
        assert not validator.validate_inventory(
            {'product_variant_id': 1, 'total_quantity': 10, 'available_quantity': 11}).is_valid

        result = validator.validate_inventory(
            {'product_variant_id': 1, 'total_quantity': 10, 'available_quantity': 6, 'sold_quantity': 5})
        assert result.is_valid
        assert result.warnings


class TestPoolValidator:

    def pool(self, **overrides):
        data = {'name': 'Palma summer', 'pool_type': 'shared_allotment', 'valid_from': '2030-06-01',
                'valid_to': '2030-09-30', 'total_capacity': 20}
        data.update(overrides)
        return data

    def test_valid_pool(self):
        assert PoolValidator().validate_pool(self.pool()).is_valid

    def test_capacity_required(self):
        assert not PoolValidator().validate_pool(self.pool(total_capacity=None)).is_valid

    def test_unknown_type(self):
        assert not PoolValidator().validate_pool(self.pool(pool_type='timeshare')).is_valid

    def test_commitment_above_capacity_warns(self):
        result = PoolValidator().validate_pool(self.pool(min_commitment=25))
        assert result.is_valid
        assert result.warnings


class TestRateValidator:

    def test_rate_plan_requires_inventory_model(self):
        result = RateValidator().validate_rate_plan({
            'product_variant_id': 1, 'currency': 'EUR', 'valid_from': '2030-01-01', 'valid_to': '2030-12-31',
        })
        assert result.errors == ["Inventory model is required"]

    def test_priority_bounds(self):
        result = RateValidator().validate_rate_plan({
            'product_variant_id': 1, 'currency': 'EUR', 'valid_from': '2030-01-01', 'valid_to': '2030-12-31',
            'inventory_model': 'committed', 'priority': 0,
        })
        assert not result.is_valid

    def test_occupancy_rules(self):
        validator = RateValidator()
        assert not validator.validate_occupancy(
            {'min_occupancy': 3, 'max_occupancy': 2, 'pricing_model': 'fixed', 'base_amount': 100}).is_valid
        assert not validator.validate_occupancy(
            {'min_occupancy': 1, 'max_occupancy': 2, 'pricing_model': 'base_plus_pax'}).is_valid

        result = validator.validate_occupancy(
            {'min_occupancy': 1, 'max_occupancy': 3, 'pricing_model': 'base_plus_pax', 'base_amount': 100})
        assert result.is_valid
        assert result.warnings

    def test_season_rules(self):
        validator = RateValidator()
        assert not validator.validate_season(
            {'season_from': '2030-01-01', 'season_to': '2030-03-31', 'dow_mask': 200}).is_valid

        result = validator.validate_season({'season_from': '2030-01-01', 'season_to': '2030-03-31', 'dow_mask': 0})
        assert result.is_valid
        assert result.warnings
