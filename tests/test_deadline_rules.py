from datetime import datetime, date

from utils.contracts import is_overdue, days_until, deadline_summary, penalty_amount, deadline_urgency

NOW = datetime(2030, 1, 10, 12, 0)


def test_overdue_only_for_pending():
    assert is_overdue({'status': 'pending', 'deadline_date': '2030-01-09'}, NOW)
    assert not is_overdue({'status': 'met', 'deadline_date': '2030-01-09'}, NOW)
    assert not is_overdue({'status': 'pending', 'deadline_date': '2030-01-11'}, NOW)
    assert not is_overdue({'status': 'pending', 'deadline_date': None}, NOW)


def test_deadline_due_today_is_overdue_after_midnight():
    assert is_overdue({'status': 'pending', 'deadline_date': '2030-01-10'}, NOW)


def test_days_until():
    assert days_until('2030-01-15', date(2030, 1, 10)) == 5
    assert days_until('2030-01-08', date(2030, 1, 10)) == -2
    assert days_until(None, date(2030, 1, 10)) is None


def test_deadline_summary():
    summary = deadline_summary([
        {'status': 'pending', 'deadline_date': '2030-01-01'},
        {'status': 'pending', 'deadline_date': '2030-02-01'},
        {'status': 'met', 'deadline_date': '2030-01-01'},
        {'status': 'waived', 'deadline_date': '2030-01-01'},
    ], NOW)
    assert summary['total'] == 4
    assert summary['pending'] == 2
    assert summary['met'] == 1
    assert summary['waived'] == 1
    assert summary['missed'] == 0
    assert summary['overdue'] == 1


def test_penalty_amount():
    assert penalty_amount({'penalty_type': 'fixed', 'penalty_value': 500}) == 500.0
    assert penalty_amount({'penalty_type': 'percentage', 'penalty_value': 10}, 20000) == 2000.0
    assert penalty_amount({'penalty_type': 'percentage', 'penalty_value': 10}) == 0.0
    assert penalty_amount({'penalty_type': None, 'penalty_value': 10}) == 0.0


def test_deadline_urgency():
    assert deadline_urgency({'status': 'met', 'deadline_date': '2030-01-01'}, NOW) == 'closed'
    assert deadline_urgency({'status': 'pending', 'deadline_date': '2030-01-01'}, NOW) == 'overdue'
    assert deadline_urgency({'status': 'pending', 'deadline_date': '2030-01-13'}, NOW) == 'due_soon'
    assert deadline_urgency({'status': 'pending', 'deadline_date': '2030-01-25'}, NOW) == 'normal'
