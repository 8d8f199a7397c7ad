"""The single SUI/USDC pair traded by the pool."""

from swapbot.chain.types import is_coin_type
from swapbot.config import ProtocolSettings
from swapbot.models import SwapDirection


def resolve_direction(
    protocol: ProtocolSettings, from_type: str, to_type: str
) -> SwapDirection | None:
    """Map a (from, to) coin type pair to a swap direction, None if unsupported."""
    sui, usdc = protocol.sui_type, protocol.usdc_type
    if is_coin_type(from_type, sui) and is_coin_type(to_type, usdc):
        return SwapDirection.SUI_TO_USDC
    if is_coin_type(from_type, usdc) and is_coin_type(to_type, sui):
        return SwapDirection.USDC_TO_SUI
    return None


def input_type(protocol: ProtocolSettings, direction: SwapDirection) -> str:
    return protocol.sui_type if direction.is_x_to_y else protocol.usdc_type


def output_type(protocol: ProtocolSettings, direction: SwapDirection) -> str:
    return protocol.usdc_type if direction.is_x_to_y else protocol.sui_type


def output_decimals(protocol: ProtocolSettings, direction: SwapDirection) -> int:
    return protocol.usdc_decimals if direction.is_x_to_y else protocol.sui_decimals
