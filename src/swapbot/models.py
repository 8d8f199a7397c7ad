"""Shared data models for the swap bot.

Prices, rates and fractional changes use Decimal. On-chain amounts are plain
ints in the asset's smallest unit (MIST for SUI, 1e-6 for USDC).
"""

import time
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum


class MarketSentiment(str, Enum):
    """Coarse market regime derived from recent price changes."""

    BULL = "BULL"
    BEAR = "BEAR"
    NEUTRAL = "NEUTRAL"


class SwapDirection(str, Enum):
    """Direction of a swap leg on the SUI/USDC pool.

    SUI is coin X and USDC is coin Y of the pool.
    """

    SUI_TO_USDC = "sui_to_usdc"
    USDC_TO_SUI = "usdc_to_sui"

    @property
    def is_x_to_y(self) -> bool:
        return self is SwapDirection.SUI_TO_USDC


@dataclass(frozen=True)
class PriceSample:
    """A single best-effort SUI/USD price observation."""

    price: Decimal
    source: str
    captured_at: float = field(default_factory=time.time)


@dataclass(frozen=True)
class PriceRecord:
    """One entry of the rolling price history."""

    timestamp: float
    price: Decimal
    change: Decimal  # fractional change from the previous sample
    volatility: Decimal  # volatility after this record was added


@dataclass(frozen=True)
class PriceStats:
    """Summary of the price history."""

    current: Decimal
    min: Decimal
    max: Decimal
    avg: Decimal
    volatility: Decimal
    source: str
    last_updated: float


@dataclass(frozen=True)
class Quote:
    """Expected output of a swap, in the output asset's smallest unit."""

    amount_out: int
    fee: int
    price_impact: Decimal
    route: str
    fee_rate: Decimal
    current_price: Decimal | None = None  # None for fallback quotes


@dataclass(frozen=True)
class CoinObject:
    """An owned coin object as reported by the ledger."""

    coin_object_id: str
    coin_type: str
    balance: int
    version: int
    digest: str


@dataclass(frozen=True)
class BalanceChange:
    """Net balance change of one coin type for one owner in a transaction."""

    coin_type: str
    amount: int
    owner: str | None = None


@dataclass
class SwapResult:
    """Interpreted settlement of a swap transaction."""

    digest: str
    success: bool
    error: str | None = None
    balance_changes: list[BalanceChange] = field(default_factory=list)
    swap_events: list[dict] = field(default_factory=list)
    amount_received: int = 0  # positive delta of the output asset
    raw: dict = field(default_factory=dict)


@dataclass
class SwapCycleState:
    """Progress of the swap-then-swap-back schedule.

    Owned and mutated by the CycleOrchestrator only. The running flag is the
    single-flight guard for cycle attempts.
    """

    target_cycles: int
    current_cycle: int = 0
    running: bool = False
    successful_swaps: int = 0
    failed_swaps: int = 0
    volume: dict[str, int] = field(default_factory=dict)  # coin type -> base units swapped
    started_at: float = field(default_factory=time.time)

    @property
    def target_reached(self) -> bool:
        return self.current_cycle >= self.target_cycles

    @property
    def remaining(self) -> int:
        return max(self.target_cycles - self.current_cycle, 0)

    def add_volume(self, coin_type: str, amount: int) -> None:
        self.volume[coin_type] = self.volume.get(coin_type, 0) + amount
