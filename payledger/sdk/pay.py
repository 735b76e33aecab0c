"""Net pay for a single daily record.

SDK layer - pure logic. Nothing here is stored; callers recompute from the
record and the rate entry resolved for the record's date.
"""

from .schemas import DailyRecord, RateEntry

# Monthly salary is spread over a fixed 30-day month
MONTHLY_DIVISOR = 30


def daily_equivalent_rate(rate: RateEntry) -> float:
    """Pay for one work-day unit under daily or monthly terms."""
    if rate.payment_type == "daily":
        return rate.daily_rate
    return rate.monthly_salary / MONTHLY_DIVISOR


def compute_gross_pay(record: DailyRecord, rate: RateEntry) -> float:
    """Earnings for the day before deductions.

    Absent days earn nothing. Hourly pay is work_day (hours) x hourly_rate.
    Daily and monthly pay is work_day x daily equivalent, plus overtime only
    when the worker was present (paid leave earns no overtime).
    """
    if record.status == "absent":
        return 0.0

    if rate.payment_type == "hourly":
        return record.work_day * rate.hourly_rate

    gross = record.work_day * daily_equivalent_rate(rate)
    if record.status == "present":
        gross += record.overtime_hours * rate.overtime_rate
    return gross


def compute_net_pay(record: DailyRecord, rate: RateEntry) -> float:
    """Net pay: gross minus advance, smoking and expense deductions.

    Returns:
        Net amount rounded to 2 decimals; negative when deductions exceed
        earnings (always the case for an absent day with deductions).
    """
    return round(compute_gross_pay(record, rate) - record.deductions, 2)
