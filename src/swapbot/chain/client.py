"""Abstract ledger client interface.

Defines the contract for reading wallet state and submitting transactions.
Swap and orchestration code depends only on this interface, keeping the
SDK details isolated in the concrete implementation.
"""

from abc import ABC, abstractmethod
from typing import Any

from swapbot.models import CoinObject


class LedgerClient(ABC):
    """Abstract base class for Sui ledger clients."""

    @abstractmethod
    async def connect(self) -> None:
        """Open the transport and verify the node answers.

        Raises:
            LedgerError: If the node cannot be reached.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """Release transport resources."""
        ...

    @abstractmethod
    async def get_balance(self, owner: str, coin_type: str) -> int:
        """Total balance of coin_type in base units; 0 on failure (never raises)."""
        ...

    @abstractmethod
    async def get_coins(self, owner: str, coin_type: str) -> list[CoinObject]:
        """All coin objects of coin_type owned by owner; [] on failure."""
        ...

    @abstractmethod
    async def get_object(self, object_id: str) -> dict:
        """Fetch an object with its type and content."""
        ...

    @abstractmethod
    async def get_reference_gas_price(self) -> int:
        """Current reference gas price in MIST."""
        ...

    @abstractmethod
    def new_transaction(self) -> Any:
        """Start an empty programmable transaction sent by the signer."""
        ...

    @abstractmethod
    async def sign_and_execute(self, tx: Any, gas_budget: int) -> dict:
        """Sign, submit and wait for local execution of tx.

        Returns the node's transaction block response (digest, effects,
        events, objectChanges, balanceChanges) in its JSON shape.
        Raises LedgerError on transport or validation errors; a transaction
        that executes but aborts is returned normally with a failure status
        in its effects.
        """
        ...
