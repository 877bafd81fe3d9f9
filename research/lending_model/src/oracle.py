"""
Oracle price gateway.

Validates round-based price feeds and normalizes their answers:

- answer must be positive
- the answered round must not lag the current round
- the answer must be younger than ORACLE_TIMEOUT
- a jump of more than VOLATILITY_THRESHOLD_PCT against the previous round,
  published within VOLATILITY_WINDOW of it, is rejected

Multi-feed assets are priced by the median of the feeds that pass, subject to a
minimum quorum. A failing check is never replaced by an older price.
"""
import logging
import time
from typing import Callable, Dict, Optional, Sequence

from .constants import (
    ORACLE_TIMEOUT,
    PRICE_DECIMALS,
    VOLATILITY_THRESHOLD_PCT,
    VOLATILITY_WINDOW,
)
from .errors import (
    InsufficientOraclesError,
    InvalidPriceError,
    OracleError,
    OracleTimeoutError,
    PriceVolatilityError,
    StalePriceError,
)
from .interfaces import PriceFeed

logger = logging.getLogger(__name__)


def normalize_price(price: int, from_decimals: int, to_decimals: int = PRICE_DECIMALS) -> int:
    """Rescale a fixed-point price between decimal precisions"""
    if from_decimals == to_decimals:
        return price
    if from_decimals > to_decimals:
        return price // 10 ** (from_decimals - to_decimals)
    return price * 10 ** (to_decimals - from_decimals)


def median(values: Sequence[int]) -> int:
    """Integer median; the two middle values are averaged and floored"""
    ordered = sorted(values)
    mid = len(ordered) // 2
    if len(ordered) % 2:
        return ordered[mid]
    return (ordered[mid - 1] + ordered[mid]) // 2


class OracleGateway:
    """Registry of named price feeds plus the validation rules applied to them."""

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self.clock = clock or (lambda: int(time.time()))
        self.feeds: Dict[str, PriceFeed] = {}

    def add_feed(self, name: str, feed: PriceFeed) -> None:
        self.feeds[name] = feed
        logger.info(
            "Price feed registered",
            extra={"event": "oracle.feed_added", "feed": name},
        )

    def has_feed(self, name: str) -> bool:
        return name in self.feeds

    def _feed(self, name: str) -> PriceFeed:
        try:
            return self.feeds[name]
        except KeyError:
            raise InvalidPriceError(f"Unknown price feed {name}") from None

    def get_price(self, name: str) -> int:
        """Return the validated latest answer of a feed in the feed's own decimals"""
        feed = self._feed(name)
        now = self.clock()
        latest = feed.latest_round_data()

        if latest.answer <= 0:
            raise InvalidPriceError(f"{name}: non-positive answer {latest.answer}")

        if latest.answered_in_round < latest.round_id:
            raise StalePriceError(
                f"{name}: answered in round {latest.answered_in_round}, current round {latest.round_id}"
            )

        if now - latest.updated_at > ORACLE_TIMEOUT:
            raise OracleTimeoutError(
                f"{name}: last update {now - latest.updated_at}s ago exceeds {ORACLE_TIMEOUT}s"
            )

        if latest.round_id > 1:
            previous = feed.get_round_data(latest.round_id - 1)
            if previous.answer > 0 and previous.updated_at > 0:
                delta = abs(latest.answer - previous.answer)
                moved_too_far = delta * 100 > VOLATILITY_THRESHOLD_PCT * previous.answer
                too_recent = latest.updated_at - previous.updated_at < VOLATILITY_WINDOW
                if moved_too_far and too_recent:
                    raise PriceVolatilityError(
                        f"{name}: moved from {previous.answer} to {latest.answer} "
                        f"within {latest.updated_at - previous.updated_at}s"
                    )

        return latest.answer

    def get_normalized_price(self, name: str, decimals: int) -> int:
        return normalize_price(self.get_price(name), decimals)

    def get_median_price(self, names: Sequence[str], decimals: int, min_oracles: int) -> int:
        """Median over the healthy feeds; fewer than ``min_oracles`` healthy feeds is an error"""
        prices = []
        for name in names:
            try:
                prices.append(self.get_normalized_price(name, decimals))
            except OracleError as exc:
                logger.warning(
                    "Price feed rejected",
                    extra={"event": "oracle.feed_rejected", "feed": name, "reason": str(exc)},
                )
        if len(prices) < min_oracles:
            raise InsufficientOraclesError(
                f"{len(prices)} healthy feeds of {len(names)}, {min_oracles} required"
            )
        return median(prices)
