"""Sui full node client built on the pysui SDK.

Reads balances, coins and objects, and submits programmable transactions.
The SDK resolves object inputs, selects gas coins, signs with the keystring
held in its config, and executes with WaitForLocalExecution.
"""

import asyncio
from typing import Any, Awaitable

import httpx
from pysui import AsyncClient, SuiConfig
from pysui.sui.sui_builders.get_builders import (
    GetCoinTypeBalance,
    GetObject,
    GetReferenceGasPrice,
)
from pysui.sui.sui_txn import AsyncTransaction
from pysui.sui.sui_types.address import SuiAddress
from pysui.sui.sui_types.scalars import ObjectID, SuiString

from swapbot.chain.client import LedgerClient
from swapbot.chain.keys import WalletKey
from swapbot.config import ChainSettings
from swapbot.exceptions import LedgerError
from swapbot.logging import get_logger
from swapbot.models import CoinObject

logger = get_logger(__name__)

EXECUTE_OPTIONS = {
    "showEffects": True,
    "showObjectChanges": True,
    "showBalanceChanges": True,
    "showEvents": True,
}

_OBJECT_OPTIONS = {"showType": True, "showContent": True}


class SuiRpcClient(LedgerClient):
    """Concrete ledger client talking to a Sui full node."""

    def __init__(self, settings: ChainSettings, wallet: WalletKey) -> None:
        self._settings = settings
        self._wallet = wallet
        self._client: AsyncClient | None = None

    async def connect(self) -> None:
        """Build the SDK client and check the node (idempotent).

        Raises:
            LedgerError: If the node is unreachable or rejects the check.
        """
        if self._client is not None:
            return
        config = SuiConfig.user_config(
            rpc_url=self._settings.rpc_url, prv_keys=[self._wallet.keystring]
        )
        try:
            # The SDK discovers the node's RPC API synchronously on construction
            self._client = await asyncio.to_thread(AsyncClient, config)
        except (httpx.HTTPError, OSError, ValueError) as e:
            raise LedgerError("connect", str(e) or type(e).__name__) from e

        gas_price = await self.get_reference_gas_price()
        logger.info(
            "sui_client_connected",
            rpc_url=self._settings.rpc_url,
            reference_gas_price=gas_price,
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
            logger.info("sui_client_closed")

    def _require_client(self) -> AsyncClient:
        if self._client is None:
            raise LedgerError("client", "Not connected")
        return self._client

    async def _call(self, method: str, request: Awaitable[Any]) -> Any:
        """Await one SDK request and return its result data."""
        try:
            result = await request
        except httpx.HTTPError as e:
            raise LedgerError(method, str(e) or type(e).__name__) from e
        if not result.is_ok():
            raise LedgerError(method, str(result.result_string))
        return result.result_data

    # -- reads ------------------------------------------------------------

    async def get_balance(self, owner: str, coin_type: str) -> int:
        try:
            client = self._require_client()
            data = await self._call(
                "suix_getBalance",
                client.execute(
                    GetCoinTypeBalance(
                        owner=SuiAddress(owner), coin_type=SuiString(coin_type)
                    )
                ),
            )
            return int(data.total_balance)
        except (LedgerError, AttributeError, TypeError, ValueError):
            logger.warning("get_balance_failed", coin_type=coin_type, exc_info=True)
            return 0

    async def get_coins(self, owner: str, coin_type: str) -> list[CoinObject]:
        try:
            client = self._require_client()
            data = await self._call(
                "suix_getCoins",
                client.get_coin(
                    coin_type=SuiString(coin_type),
                    address=SuiAddress(owner),
                    fetch_all=True,
                ),
            )
            return [
                CoinObject(
                    coin_object_id=coin.coin_object_id,
                    coin_type=coin.coin_type,
                    balance=int(coin.balance),
                    version=int(coin.version),
                    digest=coin.digest,
                )
                for coin in data.data
            ]
        except (LedgerError, AttributeError, TypeError, ValueError):
            logger.warning("get_coins_failed", coin_type=coin_type, exc_info=True)
            return []

    async def get_object(self, object_id: str) -> dict:
        client = self._require_client()
        data = await self._call(
            "sui_getObject",
            client.execute(
                GetObject(object_id=ObjectID(object_id), options=_OBJECT_OPTIONS)
            ),
        )
        return data.to_dict()

    async def get_reference_gas_price(self) -> int:
        client = self._require_client()
        data = await self._call(
            "suix_getReferenceGasPrice", client.execute(GetReferenceGasPrice())
        )
        return int(getattr(data, "value", data))

    # -- writes -----------------------------------------------------------

    def new_transaction(self) -> AsyncTransaction:
        return AsyncTransaction(
            client=self._require_client(),
            initial_sender=SuiAddress(self._wallet.address),
        )

    async def sign_and_execute(self, tx: AsyncTransaction, gas_budget: int) -> dict:
        logger.debug("submitting_transaction", gas_budget=gas_budget)
        data = await self._call(
            "sui_executeTransactionBlock",
            tx.execute(gas_budget=str(gas_budget), options=EXECUTE_OPTIONS),
        )
        return data.to_dict()
