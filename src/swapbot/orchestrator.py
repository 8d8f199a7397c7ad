"""Cycle orchestrator -- runs N swap-then-swap-back cycles.

Each cycle swaps a fraction (80% by default) of the wallet's SUI into USDC,
waits for chain state to settle, then swaps the whole USDC balance back into
SUI. Cycles are attempted by:
  1. TIMER: every swap.interval seconds until the target is reached
  2. PRICE: a PriceMonitor change notification, after a short delay, when no
     cycle is running

The state.running flag is the only mutual exclusion. It is checked and set
with no await in between, so with a single event loop at most one cycle runs
at a time whatever triggered it.

Leg aborts (dust balance, no quote) end the cycle early without counting a
failure. Unexpected errors are caught at the cycle boundary, counted as a
failed swap and logged. When the target is reached the final statistics are
reported and start() returns.
"""

import asyncio
import time
from decimal import Decimal

import structlog

from swapbot.chain.client import LedgerClient
from swapbot.chain.types import floor_units, from_base_units
from swapbot.config import AppSettings
from swapbot.logging import get_logger
from swapbot.market_data.price_monitor import PriceMonitor
from swapbot.models import PriceSample, SwapCycleState
from swapbot.reporting import Reporter
from swapbot.swap.executor import SwapExecutor
from swapbot.swap.quote_engine import QuoteEngine

logger = get_logger(__name__)


class CycleOrchestrator:
    """Drives swap-then-swap-back cycles up to a target count.

    Args:
        settings: Application-wide settings.
        ledger: Balance lookups.
        owner: Wallet address whose balances are swapped.
        price_monitor: Price source and change notifications.
        quote_engine: Quotes and minimum outputs.
        executor: Swap execution.
        reporter: Portfolio and final statistics reporting.
        target_cycles: Number of cycles to run.
    """

    def __init__(
        self,
        settings: AppSettings,
        ledger: LedgerClient,
        owner: str,
        price_monitor: PriceMonitor,
        quote_engine: QuoteEngine,
        executor: SwapExecutor,
        reporter: Reporter,
        target_cycles: int,
    ) -> None:
        self._settings = settings
        self._ledger = ledger
        self._owner = owner
        self._price_monitor = price_monitor
        self._quote_engine = quote_engine
        self._executor = executor
        self._reporter = reporter
        self._state = SwapCycleState(target_cycles=target_cycles)
        self._timer_task: asyncio.Task | None = None  # type: ignore[type-arg]
        self._pending: set[asyncio.Task] = set()  # type: ignore[type-arg]
        self._finished = asyncio.Event()
        self._finalized = False
        self._stopped = False

    @property
    def state(self) -> SwapCycleState:
        return self._state

    @property
    def is_finished(self) -> bool:
        return self._finished.is_set()

    async def start(self) -> None:
        """Start monitoring, run the first cycle, then keep the timer armed.

        Returns once the target is reached or stop() is called.
        """
        logger.info("orchestrator_starting", target_cycles=self._state.target_cycles)
        self._state.started_at = time.time()
        await self._price_monitor.start_monitoring()
        self._price_monitor.on_price_change(self._handle_price_change)

        try:
            await self._reporter.report_portfolio()
            await self.execute_cycle()
            if not self._finished.is_set():
                self._timer_task = asyncio.create_task(self._timer_loop())
            await self._finished.wait()
        finally:
            await self._shutdown()
            logger.info("orchestrator_stopped")

    async def stop(self) -> None:
        """Stop triggering cycles and let start() return."""
        logger.info("orchestrator_stopping")
        self._stopped = True
        await self._price_monitor.stop_monitoring()
        self._finished.set()

    async def _shutdown(self) -> None:
        await self._price_monitor.stop_monitoring()
        tasks = [t for t in (self._timer_task, *self._pending) if t is not None]
        for task in tasks:
            if task is not asyncio.current_task():
                task.cancel()
        for task in tasks:
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._timer_task = None

    # -- triggers ---------------------------------------------------------

    async def _timer_loop(self) -> None:
        while not self._stopped and not self._state.target_reached:
            await asyncio.sleep(self._settings.swap.interval)
            if self._stopped:
                break
            logger.info("timer_cycle_trigger")
            await self.execute_cycle()

    def _handle_price_change(self, change: Decimal, sample: PriceSample) -> None:
        sentiment = self._price_monitor.get_market_sentiment()
        logger.info(
            "price_movement_detected",
            change_pct=f"{change * 100:.2f}",
            price=str(sample.price),
            sentiment=sentiment.value,
        )
        state = self._state
        if (
            abs(change) > self._settings.price.change_threshold
            and not state.running
            and not state.target_reached
            and not self._stopped
        ):
            task = asyncio.create_task(self._delayed_cycle())
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)

    async def _delayed_cycle(self) -> None:
        await asyncio.sleep(self._settings.swap.price_trigger_delay)
        if not self._stopped:
            await self.execute_cycle()

    # -- cycles -----------------------------------------------------------

    async def execute_cycle(self) -> None:
        """Attempt one cycle; no-op if one is running or the target is reached."""
        state = self._state
        if state.running or state.target_reached:
            if state.target_reached:
                await self._finalize()
            return

        state.running = True
        state.current_cycle += 1
        structlog.contextvars.bind_contextvars(cycle=state.current_cycle)
        try:
            logger.info(
                "cycle_started",
                cycle=state.current_cycle,
                target_cycles=state.target_cycles,
            )
            if await self._run_cycle():
                await self._reporter.report_portfolio()
                logger.info("cycle_completed", remaining=state.remaining)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            state.failed_swaps += 1
            logger.error("cycle_error", error=str(e), exc_info=True)
        finally:
            state.running = False
            structlog.contextvars.unbind_contextvars("cycle")

        if state.target_reached:
            await self._finalize()

    async def _run_cycle(self) -> bool:
        """Run both legs; False if a leg was aborted."""
        p = self._settings.protocol
        swap = self._settings.swap

        sui_balance = await self._ledger.get_balance(self._owner, p.sui_type)
        usdc_balance = await self._ledger.get_balance(self._owner, p.usdc_type)
        logger.info(
            "balances_before_cycle",
            sui=f"{from_base_units(sui_balance, p.sui_decimals):.4f}",
            usdc=f"{from_base_units(usdc_balance, p.usdc_decimals):.6f}",
        )

        first_leg_amount = floor_units(Decimal(sui_balance) * swap.first_leg_fraction)
        if not await self._swap_leg(p.sui_type, p.usdc_type, first_leg_amount):
            return False

        await asyncio.sleep(swap.settle_delay)

        usdc_after = await self._ledger.get_balance(self._owner, p.usdc_type)
        if not await self._swap_leg(p.usdc_type, p.sui_type, usdc_after):
            return False

        await asyncio.sleep(swap.settle_delay)
        return True

    async def _swap_leg(self, from_type: str, to_type: str, amount_in: int) -> bool:
        """Quote and execute one leg. Returns False if the leg was aborted."""
        state = self._state
        if amount_in < self._settings.swap.dust_threshold:
            logger.warning(
                "swap_leg_aborted",
                reason="balance_below_dust_threshold",
                from_type=from_type,
                amount_in=amount_in,
                dust_threshold=self._settings.swap.dust_threshold,
            )
            return False

        quote = self._quote_engine.get_quote(from_type, to_type, amount_in)
        if quote is None:
            logger.warning("swap_leg_aborted", reason="quote_unavailable", from_type=from_type)
            return False

        min_amount_out = self._quote_engine.calculate_min_amount_out(quote.amount_out)
        result = await self._executor.execute_swap(
            from_type, to_type, amount_in, min_amount_out
        )
        if result.success:
            state.successful_swaps += 1
            state.add_volume(from_type, amount_in)
        else:
            state.failed_swaps += 1
        return True

    async def _finalize(self) -> None:
        """Report final statistics once and release start()."""
        if self._finalized:
            return
        self._finalized = True
        logger.info("target_reached", cycles=self._state.current_cycle)
        try:
            await self._reporter.report_final_stats(self._state)
        finally:
            self._finished.set()
