"""Tests for CycleOrchestrator.

All collaborators are mocked: ledger balances, price monitor, quote engine,
executor and reporter.

Verifies:
- A full cycle swaps 80% of SUI, then the whole USDC balance back
- Dust balances and missing quotes abort the cycle without counting failures
- Settled failures and unexpected errors are counted, never raised
- At most one cycle runs at a time, whatever triggers it
- Price-change triggers respect the threshold, running flag and target
- The timer keeps attempting cycles until the target is reached
- The terminal state reports final stats once; stop() ends start() early
"""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

from swapbot.config import SUI_COIN_TYPE, USDC_COIN_TYPE, AppSettings, SwapSettings
from swapbot.exceptions import LedgerError
from swapbot.models import MarketSentiment, PriceSample, Quote, SwapResult
from swapbot.orchestrator import CycleOrchestrator

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


def _make_ledger(sui: int = 1_000_000_000, usdc: int = 2_000_000) -> AsyncMock:
    balances = {SUI_COIN_TYPE: sui, USDC_COIN_TYPE: usdc}
    ledger = AsyncMock()
    ledger.get_balance = AsyncMock(side_effect=lambda owner, coin_type: balances[coin_type])
    return ledger


@pytest.fixture
def ledger() -> AsyncMock:
    return _make_ledger()


@pytest.fixture
def price_monitor() -> MagicMock:
    monitor = MagicMock()
    monitor.start_monitoring = AsyncMock()
    monitor.stop_monitoring = AsyncMock()
    monitor.current_price = Decimal("3.25")
    monitor.get_market_sentiment.return_value = MarketSentiment.NEUTRAL
    return monitor


@pytest.fixture
def quote_engine() -> MagicMock:
    engine = MagicMock()
    engine.get_quote.return_value = Quote(
        amount_out=2_592_200,
        fee=7_800,
        price_impact=Decimal("0.001"),
        route="Momentum Protocol",
        fee_rate=Decimal("0.003"),
        current_price=Decimal("3.25"),
    )
    engine.calculate_min_amount_out.return_value = 2_589_000
    return engine


@pytest.fixture
def executor() -> AsyncMock:
    executor = AsyncMock()
    executor.execute_swap = AsyncMock(return_value=SwapResult(digest="Dg1", success=True))
    return executor


@pytest.fixture
def reporter() -> AsyncMock:
    return AsyncMock()


def _orchestrator(
    settings: AppSettings,
    ledger: AsyncMock,
    price_monitor: MagicMock,
    quote_engine: MagicMock,
    executor: AsyncMock,
    reporter: AsyncMock,
    target_cycles: int = 1,
) -> CycleOrchestrator:
    return CycleOrchestrator(
        settings=settings,
        ledger=ledger,
        owner="0x" + "ab" * 32,
        price_monitor=price_monitor,
        quote_engine=quote_engine,
        executor=executor,
        reporter=reporter,
        target_cycles=target_cycles,
    )


@pytest.fixture
def orchestrator(
    mock_settings: AppSettings,
    ledger: AsyncMock,
    price_monitor: MagicMock,
    quote_engine: MagicMock,
    executor: AsyncMock,
    reporter: AsyncMock,
) -> CycleOrchestrator:
    return _orchestrator(
        mock_settings, ledger, price_monitor, quote_engine, executor, reporter, target_cycles=3
    )


def _slow_executor(delay: float = 0.02) -> AsyncMock:
    async def execute_swap(*args: object) -> SwapResult:
        await asyncio.sleep(delay)
        return SwapResult(digest="Dg1", success=True)

    return AsyncMock(execute_swap=AsyncMock(side_effect=execute_swap))


# ---------------------------------------------------------------------------
# Cycle execution
# ---------------------------------------------------------------------------


class TestCycle:
    @pytest.mark.asyncio
    async def test_full_cycle(
        self,
        orchestrator: CycleOrchestrator,
        executor: AsyncMock,
        quote_engine: MagicMock,
        reporter: AsyncMock,
    ) -> None:
        await orchestrator.execute_cycle()

        first, second = executor.execute_swap.await_args_list
        assert first.args == (SUI_COIN_TYPE, USDC_COIN_TYPE, 800_000_000, 2_589_000)
        assert second.args == (USDC_COIN_TYPE, SUI_COIN_TYPE, 2_000_000, 2_589_000)
        quote_engine.calculate_min_amount_out.assert_called_with(2_592_200)

        state = orchestrator.state
        assert state.current_cycle == 1
        assert state.successful_swaps == 2
        assert state.failed_swaps == 0
        assert state.running is False
        assert state.volume == {SUI_COIN_TYPE: 800_000_000, USDC_COIN_TYPE: 2_000_000}
        reporter.report_portfolio.assert_awaited_once()
        reporter.report_final_stats.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_first_leg_fraction_rounds_down(
        self,
        mock_settings: AppSettings,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        orchestrator = _orchestrator(
            mock_settings,
            _make_ledger(sui=1_000_000_003),
            price_monitor,
            quote_engine,
            executor,
            reporter,
            target_cycles=2,
        )

        await orchestrator.execute_cycle()

        assert executor.execute_swap.await_args_list[0].args[2] == 800_000_002

    @pytest.mark.asyncio
    async def test_dust_balance_aborts(
        self,
        mock_settings: AppSettings,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        orchestrator = _orchestrator(
            mock_settings,
            _make_ledger(sui=12_000),
            price_monitor,
            quote_engine,
            executor,
            reporter,
            target_cycles=2,
        )

        await orchestrator.execute_cycle()

        executor.execute_swap.assert_not_awaited()
        assert orchestrator.state.current_cycle == 1
        assert orchestrator.state.failed_swaps == 0
        assert orchestrator.state.running is False

    @pytest.mark.asyncio
    async def test_dust_second_leg_aborts(
        self,
        mock_settings: AppSettings,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        orchestrator = _orchestrator(
            mock_settings,
            _make_ledger(usdc=9_999),
            price_monitor,
            quote_engine,
            executor,
            reporter,
            target_cycles=2,
        )

        await orchestrator.execute_cycle()

        assert executor.execute_swap.await_count == 1
        reporter.report_portfolio.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_quote_aborts(
        self,
        orchestrator: CycleOrchestrator,
        quote_engine: MagicMock,
        executor: AsyncMock,
    ) -> None:
        quote_engine.get_quote.return_value = None

        await orchestrator.execute_cycle()

        executor.execute_swap.assert_not_awaited()
        assert orchestrator.state.failed_swaps == 0
        assert orchestrator.state.running is False

    @pytest.mark.asyncio
    async def test_settled_failure_is_counted(
        self, orchestrator: CycleOrchestrator, executor: AsyncMock
    ) -> None:
        executor.execute_swap = AsyncMock(
            side_effect=[
                SwapResult(digest="Dg1", success=False, error="MoveAbort"),
                SwapResult(digest="Dg2", success=True),
            ]
        )

        await orchestrator.execute_cycle()

        assert orchestrator.state.failed_swaps == 1
        assert orchestrator.state.successful_swaps == 1
        assert orchestrator.state.volume == {USDC_COIN_TYPE: 2_000_000}

    @pytest.mark.asyncio
    async def test_unexpected_error_is_counted(
        self, orchestrator: CycleOrchestrator, executor: AsyncMock
    ) -> None:
        executor.execute_swap = AsyncMock(
            side_effect=LedgerError("sui_executeTransactionBlock", "connection reset")
        )

        await orchestrator.execute_cycle()

        assert orchestrator.state.failed_swaps == 1
        assert orchestrator.state.running is False
        assert executor.execute_swap.await_count == 1


# ---------------------------------------------------------------------------
# Single-flight and triggers
# ---------------------------------------------------------------------------


class TestTriggers:
    @pytest.mark.asyncio
    async def test_concurrent_attempts_run_once(
        self,
        mock_settings: AppSettings,
        ledger: AsyncMock,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        reporter: AsyncMock,
    ) -> None:
        executor = _slow_executor()
        orchestrator = _orchestrator(
            mock_settings, ledger, price_monitor, quote_engine, executor, reporter, target_cycles=3
        )

        await asyncio.gather(*(orchestrator.execute_cycle() for _ in range(3)))

        assert orchestrator.state.current_cycle == 1
        assert executor.execute_swap.await_count == 2

    @pytest.mark.asyncio
    async def test_price_change_schedules_cycle(
        self, orchestrator: CycleOrchestrator, executor: AsyncMock
    ) -> None:
        orchestrator._handle_price_change(
            Decimal("0.05"), PriceSample(price=Decimal("3.41"), source="CoinGecko")
        )
        await asyncio.sleep(0.05)

        assert orchestrator.state.current_cycle == 1
        assert executor.execute_swap.await_count == 2

    @pytest.mark.asyncio
    async def test_small_price_change_is_ignored(
        self, orchestrator: CycleOrchestrator, executor: AsyncMock
    ) -> None:
        orchestrator._handle_price_change(
            Decimal("0.01"), PriceSample(price=Decimal("3.28"), source="CoinGecko")
        )
        await asyncio.sleep(0.05)

        assert orchestrator.state.current_cycle == 0
        executor.execute_swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_price_change_ignored_while_running(
        self, orchestrator: CycleOrchestrator, executor: AsyncMock
    ) -> None:
        orchestrator.state.running = True

        orchestrator._handle_price_change(
            Decimal("-0.04"), PriceSample(price=Decimal("3.12"), source="Binance")
        )
        await asyncio.sleep(0.05)

        executor.execute_swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_price_change_ignored_after_target(
        self, orchestrator: CycleOrchestrator, executor: AsyncMock
    ) -> None:
        orchestrator.state.current_cycle = orchestrator.state.target_cycles

        orchestrator._handle_price_change(
            Decimal("0.10"), PriceSample(price=Decimal("3.60"), source="Kraken")
        )
        await asyncio.sleep(0.05)

        executor.execute_swap.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_timer_runs_until_target(
        self,
        ledger: AsyncMock,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        settings = AppSettings(
            swap=SwapSettings(interval=0.01, settle_delay=0.0, price_trigger_delay=0.0)
        )
        orchestrator = _orchestrator(
            settings, ledger, price_monitor, quote_engine, executor, reporter, target_cycles=3
        )

        await asyncio.wait_for(orchestrator.start(), timeout=5)

        assert orchestrator.state.current_cycle == 3
        assert executor.execute_swap.await_count == 6
        reporter.report_final_stats.assert_awaited_once()


# ---------------------------------------------------------------------------
# Lifecycle and terminal state
# ---------------------------------------------------------------------------


class TestLifecycle:
    @pytest.mark.asyncio
    async def test_single_cycle_run_finishes(
        self,
        mock_settings: AppSettings,
        ledger: AsyncMock,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        orchestrator = _orchestrator(
            mock_settings, ledger, price_monitor, quote_engine, executor, reporter
        )

        await asyncio.wait_for(orchestrator.start(), timeout=5)

        assert orchestrator.is_finished
        price_monitor.start_monitoring.assert_awaited_once()
        price_monitor.on_price_change.assert_called_once()
        price_monitor.stop_monitoring.assert_awaited()
        reporter.report_final_stats.assert_awaited_once_with(orchestrator.state)

    @pytest.mark.asyncio
    async def test_no_attempts_after_target(
        self,
        mock_settings: AppSettings,
        ledger: AsyncMock,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        orchestrator = _orchestrator(
            mock_settings, ledger, price_monitor, quote_engine, executor, reporter
        )
        await orchestrator.execute_cycle()

        await orchestrator.execute_cycle()
        await orchestrator.execute_cycle()

        assert orchestrator.state.current_cycle == 1
        assert executor.execute_swap.await_count == 2
        reporter.report_final_stats.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_aborted_final_cycle_still_finishes(
        self,
        mock_settings: AppSettings,
        price_monitor: MagicMock,
        quote_engine: MagicMock,
        executor: AsyncMock,
        reporter: AsyncMock,
    ) -> None:
        orchestrator = _orchestrator(
            mock_settings, _make_ledger(sui=0), price_monitor, quote_engine, executor, reporter
        )

        await asyncio.wait_for(orchestrator.start(), timeout=5)

        assert orchestrator.state.current_cycle == 1
        reporter.report_final_stats.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_stop_ends_run_early(
        self,
        orchestrator: CycleOrchestrator,
        price_monitor: MagicMock,
        reporter: AsyncMock,
    ) -> None:
        task = asyncio.create_task(orchestrator.start())
        await asyncio.sleep(0.05)
        assert not task.done()

        await orchestrator.stop()
        await asyncio.wait_for(task, timeout=5)

        assert orchestrator.state.current_cycle == 1
        price_monitor.stop_monitoring.assert_awaited()
        reporter.report_final_stats.assert_not_awaited()
