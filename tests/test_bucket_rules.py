from datetime import date

from utils.allocations import bucket_available, bucket_status, summarize_buckets, calendar_view, date_range


def test_available_is_quantity_minus_booked_and_held():
    assert bucket_available({'quantity': 10, 'booked': 3, 'held': 2}) == 5
    assert bucket_available({'quantity': 0, 'booked': 0, 'held': 0}) == 0
    assert bucket_available({'quantity': 5, 'booked': 4, 'held': 3}) == -2


def test_missing_quantity_means_unlimited():
    assert bucket_available({'quantity': None, 'booked': 3}) is None
    assert bucket_available({'quantity': float('nan'), 'booked': 3}) is None
    assert bucket_status({'quantity': None}) == 'unlimited'


def test_status_precedence():
    assert bucket_status({'quantity': 10, 'blackout': 1, 'stop_sell': 1}) == 'blackout'
    assert bucket_status({'quantity': None, 'stop_sell': 1}) == 'stop_sell'
    assert bucket_status({'quantity': 10, 'booked': 10}) == 'sold_out'
    assert bucket_status({'quantity': 0}) == 'sold_out'
    assert bucket_status({'quantity': 5, 'booked': 6}) == 'sold_out'
    assert bucket_status({'quantity': 10, 'booked': 8}) == 'low'
    assert bucket_status({'quantity': 10, 'booked': 7}) == 'available'


def test_summary_clamps_oversold_and_skips_unlimited():
    summary = summarize_buckets([
        {'quantity': 10, 'booked': 4, 'held': 1, 'unit_cost': 50},
        {'quantity': 5, 'booked': 6, 'held': 0, 'unit_cost': 20},
        {'quantity': None, 'booked': 2, 'held': 0, 'unit_cost': 99},
    ])

    assert summary['count'] == 3
    assert summary['total_quantity'] == 15
    assert summary['total_booked'] == 12
    assert summary['total_held'] == 1
    assert summary['total_available'] == 5
    assert summary['oversold'] == 1
    assert summary['unlimited'] == 1
    assert summary['total_value'] == 600.0
    assert summary['occupancy_pct'] == 66.7


def test_summary_of_nothing():
    summary = summarize_buckets([])
    assert summary['count'] == 0
    assert summary['occupancy_pct'] == 0.0


def test_calendar_groups_by_day_in_order():
    grouped = calendar_view([
        {'id': 1, 'date': '2030-01-03'},
        {'id': 2, 'date': date(2030, 1, 1)},
        {'id': 3, 'date': '2030-01-03'},
        {'id': 4, 'date': None},
    ])
    assert list(grouped.keys()) == [date(2030, 1, 1), date(2030, 1, 3)]
    assert [b['id'] for b in grouped[date(2030, 1, 3)]] == [1, 3]


def test_date_range_is_inclusive():
    days = date_range('2030-01-30', '2030-02-02')
    assert days == [date(2030, 1, 30), date(2030, 1, 31), date(2030, 2, 1), date(2030, 2, 2)]
    assert date_range(date(2030, 1, 5), date(2030, 1, 5)) == [date(2030, 1, 5)]
    assert date_range(date(2030, 1, 5), date(2030, 1, 4)) == []
