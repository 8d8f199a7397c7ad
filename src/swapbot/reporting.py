"""Portfolio and run statistics reporting.

All reporting goes through structlog events so it renders on the console in
development and as JSON when LOG_FORMAT=json.
"""

import time
from dataclasses import dataclass
from decimal import Decimal

from swapbot.chain.client import LedgerClient
from swapbot.chain.types import from_base_units
from swapbot.config import ProtocolSettings
from swapbot.logging import get_logger
from swapbot.market_data.price_monitor import PriceMonitor
from swapbot.models import SwapCycleState

logger = get_logger(__name__)


@dataclass(frozen=True)
class PortfolioSnapshot:
    sui: Decimal
    usdc: Decimal
    sui_price: Decimal
    sui_value_usd: Decimal
    total_value_usd: Decimal


class Reporter:
    """Reports wallet value and end-of-run statistics."""

    def __init__(
        self,
        ledger: LedgerClient,
        protocol: ProtocolSettings,
        price_monitor: PriceMonitor,
        owner: str,
    ) -> None:
        self._ledger = ledger
        self._protocol = protocol
        self._price_monitor = price_monitor
        self._owner = owner

    async def report_portfolio(self) -> PortfolioSnapshot:
        p = self._protocol
        sui_units = await self._ledger.get_balance(self._owner, p.sui_type)
        usdc_units = await self._ledger.get_balance(self._owner, p.usdc_type)

        price = self._price_monitor.current_price
        sui = from_base_units(sui_units, p.sui_decimals)
        usdc = from_base_units(usdc_units, p.usdc_decimals)
        snapshot = PortfolioSnapshot(
            sui=sui,
            usdc=usdc,
            sui_price=price,
            sui_value_usd=sui * price,
            total_value_usd=sui * price + usdc,
        )

        logger.info(
            "portfolio_status",
            address=self._owner,
            sui=f"{snapshot.sui:.4f}",
            sui_value_usd=f"{snapshot.sui_value_usd:.2f}",
            usdc=f"{snapshot.usdc:.6f}",
            total_value_usd=f"{snapshot.total_value_usd:.2f}",
        )
        return snapshot

    async def report_final_stats(self, state: SwapCycleState) -> None:
        duration = time.time() - state.started_at
        p = self._protocol
        volume = {
            "SUI": str(from_base_units(state.volume.get(p.sui_type, 0), p.sui_decimals)),
            "USDC": str(from_base_units(state.volume.get(p.usdc_type, 0), p.usdc_decimals)),
        }
        logger.info(
            "final_statistics",
            duration_seconds=f"{duration:.2f}",
            cycles=state.current_cycle,
            target_cycles=state.target_cycles,
            successful_swaps=state.successful_swaps,
            failed_swaps=state.failed_swaps,
            volume=volume,
        )

        stats = self._price_monitor.get_price_stats()
        if stats is not None:
            logger.info(
                "price_statistics",
                current=str(stats.current),
                min=str(stats.min),
                max=str(stats.max),
                avg=f"{stats.avg:.4f}",
                volatility=f"{stats.volatility:.6f}",
                source=stats.source,
            )

        await self.report_portfolio()
