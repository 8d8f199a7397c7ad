"""Swap engine -- quoting, transaction construction and execution."""

from swapbot.swap.builder import SwapTransactionBuilder
from swapbot.swap.executor import SwapExecutor
from swapbot.swap.quote_engine import QuoteEngine

__all__ = ["QuoteEngine", "SwapExecutor", "SwapTransactionBuilder"]
