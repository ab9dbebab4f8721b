"""
Surcharges for range bookings.

Early check-in and late check-out fees are flat amounts charged when the
requested time falls outside the standard policy time. A stay longer than
24 hours (measured between the timestamped check-in and check-out) costs
one extra unit price. A property with no standard check-in or check-out
time charges no surcharge at all.
"""

from dataclasses import dataclass
from typing import Optional

from booking_engine.utils import (
    DateLike,
    is_earlier_clock,
    is_later_clock,
    stay_duration_hours,
)

OVER_24H_THRESHOLD_HOURS = 24.0


@dataclass(frozen=True)
class FeeBreakdown:
    early_fee: float = 0.0
    late_fee: float = 0.0
    over_24h_penalty: float = 0.0

    @property
    def total(self) -> float:
        return self.early_fee + self.late_fee + self.over_24h_penalty


def compute_fees(
    requested_check_in_time: Optional[str],
    requested_check_out_time: Optional[str],
    standard_check_in_time: Optional[str],
    standard_check_out_time: Optional[str],
    early_fee_amount: float,
    late_fee_amount: float,
    check_in_date: Optional[DateLike],
    check_out_date: Optional[DateLike],
    unit_price: float,
) -> FeeBreakdown:
    """Compute surcharges.

    With neither standard time set there is no policy to measure against,
    so every component is zero, the over-24h penalty included.
    """
    if not standard_check_in_time and not standard_check_out_time:
        return FeeBreakdown()

    early_fee = 0.0
    if (
        requested_check_in_time
        and standard_check_in_time
        and is_earlier_clock(requested_check_in_time, standard_check_in_time)
    ):
        early_fee = early_fee_amount

    late_fee = 0.0
    if (
        requested_check_out_time
        and standard_check_out_time
        and is_later_clock(requested_check_out_time, standard_check_out_time)
    ):
        late_fee = late_fee_amount

    over_24h_penalty = 0.0
    if check_in_date and check_out_date and requested_check_in_time and requested_check_out_time:
        hours = stay_duration_hours(
            check_in_date, requested_check_in_time, check_out_date, requested_check_out_time
        )
        if hours > OVER_24H_THRESHOLD_HOURS:
            over_24h_penalty = unit_price

    return FeeBreakdown(early_fee=early_fee, late_fee=late_fee, over_24h_penalty=over_24h_penalty)
