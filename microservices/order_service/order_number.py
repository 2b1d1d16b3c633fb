"""
Order Number Generation

Order numbers look like ``<PREFIX><YY><MM><DD><SEQ>``, e.g. ``TRB2610190007``:
the prefix, the server-local calendar date and a per-day sequence padded to at
least ``min_digits`` digits.

Two strategies:

- ``CounterOrderNumberGenerator`` bumps a per-day counter row in a single
  atomic statement, so concurrent requests always get distinct sequences.
- ``CountOrderNumberGenerator`` derives the sequence from the number of
  orders already created today. Two requests can read the same count before
  either inserts; the UNIQUE constraint on order_number then rejects the
  second insert with DuplicateOrderError.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Optional, Tuple

from core.config import OrderConfig
from .protocols import OrderNumberGeneratorProtocol, OrderRepositoryProtocol

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    """Current time as an aware datetime in the server's local zone"""
    return datetime.now().astimezone()


def start_of_day(now: datetime) -> datetime:
    return now.replace(hour=0, minute=0, second=0, microsecond=0)


def day_boundaries(now: datetime) -> Tuple[datetime, datetime, datetime]:
    """Start of today, start of yesterday and start of this month"""
    today_start = start_of_day(now)
    yesterday_start = start_of_day(today_start - timedelta(days=1))
    month_start = today_start.replace(day=1)
    return today_start, yesterday_start, month_start


def format_order_number(prefix: str, now: datetime, sequence: int, min_digits: int = 4) -> str:
    return f"{prefix}{now:%y%m%d}{str(sequence).zfill(min_digits)}"


def order_number_pattern(prefix: str, min_digits: int = 4) -> "re.Pattern[str]":
    """Regex matching numbers produced with this prefix"""
    return re.compile(rf"^{re.escape(prefix)}\d{{6}}\d{{{min_digits},}}$")


class CounterOrderNumberGenerator:
    """Sequence from an atomic per-day counter"""

    def __init__(self, repository: OrderRepositoryProtocol, prefix: str = "TRB", min_digits: int = 4):
        self.repository = repository
        self.prefix = prefix
        self.min_digits = min_digits

    async def generate(self, now: Optional[datetime] = None) -> str:
        now = now or local_now()
        sequence = await self.repository.next_daily_sequence(now.date().isoformat())
        return format_order_number(self.prefix, now, sequence, self.min_digits)


class CountOrderNumberGenerator:
    """Sequence from today's order count (racy under concurrency)"""

    def __init__(self, repository: OrderRepositoryProtocol, prefix: str = "TRB", min_digits: int = 4):
        self.repository = repository
        self.prefix = prefix
        self.min_digits = min_digits

    async def generate(self, now: Optional[datetime] = None) -> str:
        now = now or local_now()
        count = await self.repository.count_orders_since(start_of_day(now))
        return format_order_number(self.prefix, now, count + 1, self.min_digits)


def create_order_number_generator(
    repository: OrderRepositoryProtocol,
    config: OrderConfig
) -> OrderNumberGeneratorProtocol:
    """Pick the generator named by ORDER_NUMBER_STRATEGY"""
    if config.order_number_strategy == "count":
        logger.warning("Using count-based order numbers; concurrent creations may conflict")
        generator_cls = CountOrderNumberGenerator
    else:
        if config.order_number_strategy != "counter":
            logger.warning(f"Unknown order number strategy '{config.order_number_strategy}', using 'counter'")
        generator_cls = CounterOrderNumberGenerator

    return generator_cls(
        repository,
        prefix=config.order_number_prefix,
        min_digits=config.order_number_min_digits,
    )
