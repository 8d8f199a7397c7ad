"""Entry point for the Momentum swap cycler.

Asks for the number of cycles, loads the wallet key and wires the components
together, then runs the orchestrator until the target is reached or a
SIGINT/SIGTERM arrives.

Component wiring order (in _build_components):
1. SuiRpcClient (ledger collaborator)
2. PriceFeedAggregator (CoinGecko, Binance, Kraken)
3. PriceMonitor (polling, history, volatility)
4. QuoteEngine (quotes and minimum outputs)
5. SwapTransactionBuilder + SwapExecutor (swap legs)
6. Reporter (portfolio and final statistics)
7. CycleOrchestrator (cycle triggers and terminal state)
"""

import asyncio
import signal
import sys
from typing import Any, Callable

from swapbot.chain.keys import WalletKey, load_keypair, read_private_key
from swapbot.chain.sui_client import SuiRpcClient
from swapbot.config import AppSettings
from swapbot.exceptions import ConfigurationError, LedgerError
from swapbot.logging import get_logger, setup_logging
from swapbot.market_data.price_feeds import PriceFeedAggregator, build_price_sources
from swapbot.market_data.price_monitor import PriceMonitor
from swapbot.orchestrator import CycleOrchestrator
from swapbot.reporting import Reporter
from swapbot.swap.builder import SwapTransactionBuilder
from swapbot.swap.executor import SwapExecutor
from swapbot.swap.quote_engine import QuoteEngine

CYCLE_PROMPT = "How many swap & swap-back cycles: "


def parse_cycle_count(answer: str) -> int:
    """Parse the operator's answer; anything but a positive integer gives 1."""
    logger = get_logger("swapbot.main")
    try:
        cycles = int(answer.strip())
    except ValueError:
        cycles = 0
    if cycles <= 0:
        logger.warning("invalid_cycle_count", answer=answer.strip(), using=1)
        return 1
    return cycles


def prompt_cycle_count(reader: Callable[[str], str] = input) -> int:
    try:
        answer = reader(CYCLE_PROMPT)
    except EOFError:
        answer = ""
    return parse_cycle_count(answer)


def _build_components(
    settings: AppSettings, wallet: WalletKey, target_cycles: int
) -> dict[str, Any]:
    """Build all bot components from settings.

    Does NOT connect the ledger client or start price monitoring; run()
    connects the ledger and the orchestrator starts monitoring.
    """
    owner = wallet.address

    ledger = SuiRpcClient(settings.chain, wallet)
    aggregator = PriceFeedAggregator(build_price_sources(settings.price), settings.price)
    price_monitor = PriceMonitor(aggregator, settings.price, settings.slippage)
    quote_engine = QuoteEngine(
        settings.quote, settings.protocol, settings.slippage, price_monitor=price_monitor
    )
    builder = SwapTransactionBuilder(settings.protocol, ledger, owner)
    executor = SwapExecutor(ledger, builder, settings.protocol, settings.chain, owner)
    reporter = Reporter(ledger, settings.protocol, price_monitor, owner)

    orchestrator = CycleOrchestrator(
        settings=settings,
        ledger=ledger,
        owner=owner,
        price_monitor=price_monitor,
        quote_engine=quote_engine,
        executor=executor,
        reporter=reporter,
        target_cycles=target_cycles,
    )

    return {
        "ledger": ledger,
        "aggregator": aggregator,
        "price_monitor": price_monitor,
        "quote_engine": quote_engine,
        "executor": executor,
        "reporter": reporter,
        "orchestrator": orchestrator,
    }


def _setup_signal_handlers(orchestrator: CycleOrchestrator) -> None:
    """SIGINT/SIGTERM stop monitoring and the cycle timer, then run() returns.

    Must be called after the asyncio event loop is running.
    """
    logger = get_logger("swapbot.main")
    loop = asyncio.get_running_loop()

    def _graceful_handler() -> None:
        logger.info("graceful_shutdown_signal")
        asyncio.create_task(orchestrator.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, _graceful_handler)


async def run() -> None:
    """Run the swap cycler until the target count is reached or a signal."""
    # 1. Load settings
    settings = AppSettings()

    # 2. Setup logging
    setup_logging(settings.log_level, settings.log_format)
    logger = get_logger("swapbot.main")

    # 3. Ask for the number of cycles
    target_cycles = await asyncio.to_thread(prompt_cycle_count)

    # 4. Load the signing key
    try:
        wallet = load_keypair(read_private_key(settings.chain.private_key_file))
    except ConfigurationError as e:
        logger.critical("wallet_load_failed", error=str(e))
        sys.exit(1)

    # 5. Build all components
    components = _build_components(settings, wallet, target_cycles)
    orchestrator: CycleOrchestrator = components["orchestrator"]
    _setup_signal_handlers(orchestrator)

    logger.info(
        "swapbot_starting",
        address=wallet.address,
        target_cycles=target_cycles,
        rpc_url=settings.chain.rpc_url,
        interval=settings.swap.interval,
    )

    try:
        # 6. Check the node; an unreachable RPC is fatal
        try:
            await components["ledger"].connect()
            await components["executor"].get_pool_info()
        except LedgerError as e:
            logger.critical("ledger_unreachable", rpc_url=settings.chain.rpc_url, error=str(e))
            sys.exit(1)

        # 7. Load exchange markets before the first price poll
        await components["aggregator"].connect()

        # 8. Run cycles until the target is reached or a signal arrives
        await orchestrator.start()
    finally:
        await components["aggregator"].close()
        await components["ledger"].close()
        logger.info("swapbot_stopped")


def main() -> None:
    """Synchronous entry point."""
    asyncio.run(run())


if __name__ == "__main__":
    main()
