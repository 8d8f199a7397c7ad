"""Sui ledger layer -- SDK-backed client and key loading."""

from swapbot.chain.client import LedgerClient
from swapbot.chain.keys import WalletKey, load_keypair
from swapbot.chain.sui_client import SuiRpcClient

__all__ = [
    "LedgerClient",
    "SuiRpcClient",
    "WalletKey",
    "load_keypair",
]
