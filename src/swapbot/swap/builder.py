"""Construction of the flash-swap-and-repay transaction for one swap leg.

The transaction, in command order:
1. flash_swap borrows from the pool, returning (balance_x, balance_y, receipt)
2. the zero-valued balance of the input asset is destroyed
3. a zero coin of the output asset is created as the repay placeholder
4. swap_receipt_debts reads the receipt, then both repay coins become
   balances and repay_flash_swap settles the receipt as (balance_x, balance_y)
5. assert_slippage aborts the whole transaction if the pool price moved past
   the direction's sqrt price limit
6. the output balance becomes a coin and is transferred to the signer

SUI input is split from the gas coin. USDC input coins are merged into the
first coin object and split to the exact amount. Commands are appended to a
pysui transaction, which infers object mutability from the Move signatures.
"""

from typing import Any

from pysui.sui.sui_types.address import SuiAddress
from pysui.sui.sui_types.scalars import ObjectID, SuiBoolean, SuiU64, SuiU128

from swapbot.chain.client import LedgerClient
from swapbot.config import ProtocolSettings
from swapbot.exceptions import TransactionBuildError
from swapbot.logging import get_logger
from swapbot.models import SwapDirection
from swapbot.swap.pair import input_type, output_type

logger = get_logger(__name__)

_DESTROY_ZERO = "0x2::balance::destroy_zero"
_COIN_ZERO = "0x2::coin::zero"
_INTO_BALANCE = "0x2::coin::into_balance"
_FROM_BALANCE = "0x2::coin::from_balance"


def _single(result: Any) -> Any:
    """A one-amount split comes back as a list of one result."""
    return result[0] if isinstance(result, list) else result


class SwapTransactionBuilder:
    """Builds swap transactions for the SUI/USDC Momentum pool.

    Args:
        protocol: Package, pool and config ids plus per-direction constants.
        ledger: Creates transactions and enumerates the owner's USDC coins.
        owner: Signer address; receives the swap output.
    """

    def __init__(
        self, protocol: ProtocolSettings, ledger: LedgerClient, owner: str
    ) -> None:
        self._protocol = protocol
        self._ledger = ledger
        self._owner = owner

    def sqrt_price_limit(self, direction: SwapDirection) -> int:
        if direction.is_x_to_y:
            return self._protocol.sqrt_price_limit_x_to_y
        return self._protocol.sqrt_price_limit_y_to_x

    async def build(self, direction: SwapDirection, amount_in: int) -> Any:
        """Build the full transaction swapping amount_in base units."""
        if amount_in <= 0:
            raise TransactionBuildError(f"Swap amount must be positive, got {amount_in}")

        tx = self._ledger.new_transaction()
        if direction is SwapDirection.SUI_TO_USDC:
            input_coin = _single(
                await tx.split_coin(coin=tx.gas, amounts=[SuiU64(amount_in)])
            )
        else:
            input_coin = await self._prepare_usdc_input(tx, amount_in)

        await self._append_flash_swap(tx, direction, amount_in, input_coin)
        logger.debug(
            "swap_transaction_built", direction=direction.value, amount_in=amount_in
        )
        return tx

    async def _prepare_usdc_input(self, tx: Any, amount_in: int) -> Any:
        coins = await self._ledger.get_coins(self._owner, self._protocol.usdc_type)
        if not coins:
            raise TransactionBuildError("No USDC coins found in wallet")

        primary = ObjectID(coins[0].coin_object_id)
        if len(coins) > 1:
            await tx.merge_coins(
                merge_to=primary,
                merge_from=[ObjectID(c.coin_object_id) for c in coins[1:]],
            )
        return _single(await tx.split_coin(coin=primary, amounts=[SuiU64(amount_in)]))

    async def _append_flash_swap(
        self, tx: Any, direction: SwapDirection, amount_in: int, input_coin: Any
    ) -> None:
        p = self._protocol
        pair_types = [p.sui_type, p.usdc_type]
        in_type = input_type(p, direction)
        out_type = output_type(p, direction)
        x_to_y = direction.is_x_to_y
        limit = self.sqrt_price_limit(direction)

        pool = ObjectID(p.pool_id)
        pool_config = ObjectID(p.pool_config_id)

        balance_x, balance_y, receipt = await tx.move_call(
            target=f"{p.package_id}::trade::flash_swap",
            arguments=[
                pool,
                SuiBoolean(x_to_y),
                SuiBoolean(True),  # flash swap
                SuiU64(amount_in),
                SuiU128(limit),
                ObjectID(p.clock_id),
                pool_config,
            ],
            type_arguments=pair_types,
        )
        unused_balance, output_balance = (
            (balance_x, balance_y) if x_to_y else (balance_y, balance_x)
        )

        await tx.move_call(
            target=_DESTROY_ZERO, arguments=[unused_balance], type_arguments=[in_type]
        )
        zero_coin = await tx.move_call(
            target=_COIN_ZERO, arguments=[], type_arguments=[out_type]
        )
        await tx.move_call(
            target=f"{p.package_id}::trade::swap_receipt_debts", arguments=[receipt]
        )

        repay_input = await tx.move_call(
            target=_INTO_BALANCE, arguments=[input_coin], type_arguments=[in_type]
        )
        repay_zero = await tx.move_call(
            target=_INTO_BALANCE, arguments=[zero_coin], type_arguments=[out_type]
        )
        repay_x, repay_y = (repay_input, repay_zero) if x_to_y else (repay_zero, repay_input)
        await tx.move_call(
            target=f"{p.package_id}::trade::repay_flash_swap",
            arguments=[pool, receipt, repay_x, repay_y, pool_config],
            type_arguments=pair_types,
        )

        await tx.move_call(
            target=f"{p.slippage_check_package}::slippage_check::assert_slippage",
            arguments=[pool, SuiU128(limit), SuiBoolean(x_to_y)],
            type_arguments=pair_types,
        )

        output_coin = await tx.move_call(
            target=_FROM_BALANCE, arguments=[output_balance], type_arguments=[out_type]
        )
        await tx.transfer_objects(
            transfers=[output_coin], recipient=SuiAddress(self._owner)
        )
