"""Swap submission and settlement interpretation.

A settled transaction is always returned as a SwapResult, success or not. A
failed-but-settled transaction (e.g. the on-chain slippage assertion aborted)
has success=False and the chain's error string. Errors while building or
submitting (network failure, malformed call, missing coins) propagate.
"""

from swapbot.chain.client import LedgerClient
from swapbot.chain.types import from_base_units, is_coin_type, normalize_address
from swapbot.config import ChainSettings, ProtocolSettings
from swapbot.exceptions import UnsupportedPairError
from swapbot.logging import get_logger
from swapbot.models import BalanceChange, SwapDirection, SwapResult
from swapbot.swap.builder import SwapTransactionBuilder
from swapbot.swap.pair import output_decimals, output_type, resolve_direction

logger = get_logger(__name__)

EXPLORER_TX_URL = "https://suiscan.xyz/mainnet/tx/{digest}"

_SWAP_EVENT_MARKERS = ("SwapEvent", "::trade::")


def _owner_address(owner: object) -> str | None:
    if isinstance(owner, dict) and "AddressOwner" in owner:
        return normalize_address(owner["AddressOwner"])
    return None


def _event_amount_out(event: dict, direction: SwapDirection) -> int | None:
    parsed = event.get("parsedJson") or {}
    raw = parsed.get("amount_y" if direction.is_x_to_y else "amount_x")
    try:
        return int(raw) if raw is not None else None
    except (TypeError, ValueError):
        return None


def parse_swap_response(
    response: dict,
    direction: SwapDirection,
    protocol: ProtocolSettings,
    owner: str,
) -> SwapResult:
    """Interpret a transaction block response for a swap leg."""
    status = (response.get("effects") or {}).get("status") or {}
    success = status.get("status") == "success"

    changes = [
        BalanceChange(
            coin_type=change["coinType"],
            amount=int(change["amount"]),
            owner=_owner_address(change.get("owner")),
        )
        for change in response.get("balanceChanges") or []
    ]
    swap_events = [
        event
        for event in response.get("events") or []
        if any(marker in event.get("type", "") for marker in _SWAP_EVENT_MARKERS)
    ]

    received = 0
    if success:
        out_type = output_type(protocol, direction)
        me = normalize_address(owner)
        received = sum(
            c.amount
            for c in changes
            if c.amount > 0 and is_coin_type(c.coin_type, out_type) and c.owner in (me, None)
        )
        for event in swap_events:
            event_amount = _event_amount_out(event, direction)
            if event_amount is not None:
                received = event_amount
                break

    return SwapResult(
        digest=response.get("digest", ""),
        success=success,
        error=None if success else status.get("error", "unknown error"),
        balance_changes=changes,
        swap_events=swap_events,
        amount_received=received,
        raw=response,
    )


class SwapExecutor:
    """Builds, signs, submits and interprets swap transactions.

    Args:
        ledger: Client used to submit transactions and read the pool.
        builder: Transaction builder for the pool.
        protocol: Coin types, decimals and pool id.
        chain: Gas budget.
        owner: Signer address; receives swap output.
    """

    def __init__(
        self,
        ledger: LedgerClient,
        builder: SwapTransactionBuilder,
        protocol: ProtocolSettings,
        chain: ChainSettings,
        owner: str,
    ) -> None:
        self._ledger = ledger
        self._builder = builder
        self._protocol = protocol
        self._chain = chain
        self._owner = owner
        self._swap_count = 0

    @property
    def swap_count(self) -> int:
        return self._swap_count

    async def execute_swap(
        self, from_type: str, to_type: str, amount_in: int, min_amount_out: int
    ) -> SwapResult:
        """Execute one swap leg and wait for settlement.

        Raises:
            UnsupportedPairError: If the pair is not SUI/USDC in either direction.
            TransactionBuildError: If the transaction cannot be assembled.
            LedgerError: If submission fails.
        """
        direction = resolve_direction(self._protocol, from_type, to_type)
        if direction is None:
            raise UnsupportedPairError(f"Unsupported swap pair: {from_type} -> {to_type}")

        self._swap_count += 1
        logger.info(
            "executing_swap",
            swap_number=self._swap_count,
            direction=direction.value,
            amount_in=amount_in,
            min_amount_out=min_amount_out,
        )

        tx = await self._builder.build(direction, amount_in)
        response = await self._ledger.sign_and_execute(tx, self._chain.gas_budget)
        result = parse_swap_response(response, direction, self._protocol, self._owner)
        self._log_result(result, direction, min_amount_out)
        return result

    def _log_result(
        self, result: SwapResult, direction: SwapDirection, min_amount_out: int
    ) -> None:
        if not result.success:
            logger.error("swap_failed_on_chain", digest=result.digest, error=result.error)
            return

        p = self._protocol
        deltas = {}
        for change in result.balance_changes:
            if is_coin_type(change.coin_type, p.sui_type):
                deltas["SUI"] = str(from_base_units(change.amount, p.sui_decimals))
            elif is_coin_type(change.coin_type, p.usdc_type):
                deltas["USDC"] = str(from_base_units(change.amount, p.usdc_decimals))

        logger.info(
            "swap_settled",
            digest=result.digest,
            explorer=EXPLORER_TX_URL.format(digest=result.digest),
            balance_changes=deltas,
            swap_events=[e.get("type") for e in result.swap_events],
            amount_received=str(
                from_base_units(result.amount_received, output_decimals(p, direction))
            ),
        )
        if result.amount_received < min_amount_out:
            logger.warning(
                "swap_output_below_minimum",
                amount_received=result.amount_received,
                min_amount_out=min_amount_out,
            )

    async def get_pool_info(self) -> dict:
        """Fetch the pool object with type and content.

        Called at startup, where it doubles as a check that the node serves
        the pool.

        Raises:
            LedgerError: If the node cannot be reached or the read fails.
        """
        pool = await self._ledger.get_object(self._protocol.pool_id)
        logger.info("pool_info", pool_id=self._protocol.pool_id, pool_type=pool.get("type"))
        return pool
