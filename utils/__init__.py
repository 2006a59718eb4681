"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, to_utc, parse_iso, days_until, add_days, month_start, year_start
from utils.account_context import (
    get_current_account_id,
    set_current_account_id,
    clear_current_account_id,
    account_context,
)
