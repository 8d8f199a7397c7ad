"""Configuration system using pydantic-settings with environment variable loading.

Every settings group is frozen: the tree is built once in main() and handed
to each component constructor, nothing mutates it afterwards.
"""

from decimal import Decimal

from pydantic_settings import BaseSettings, SettingsConfigDict

SUI_COIN_TYPE = "0x2::sui::SUI"
USDC_COIN_TYPE = (
    "0xdba34672e30cb065b1f93e3ab55318768fd6fef66c15942c9f7cb846e2f900e7::usdc::USDC"
)


class ChainSettings(BaseSettings):
    """Sui full node connection and signing settings."""

    model_config = SettingsConfigDict(env_prefix="SUI_", frozen=True)

    rpc_url: str = "https://fullnode.mainnet.sui.io"
    private_key_file: str = "privkey.txt"
    gas_budget: int = 15_000_000  # MIST


class SlippageSettings(BaseSettings):
    """Slippage tolerance bounds."""

    model_config = SettingsConfigDict(env_prefix="SLIPPAGE_", frozen=True)

    min: Decimal = Decimal("0.001")  # base, also the floor of dynamic slippage
    max: Decimal = Decimal("0.01")  # ceiling of dynamic slippage
    default: Decimal = Decimal("0.02")  # used when no price monitor is wired


class SwapSettings(BaseSettings):
    """Cycle sizing and timing."""

    model_config = SettingsConfigDict(env_prefix="SWAP_", frozen=True)

    interval: float = 45.0  # seconds between timer-triggered cycles
    first_leg_fraction: Decimal = Decimal("0.8")
    dust_threshold: int = 10_000  # base units, per leg
    settle_delay: float = 5.0
    price_trigger_delay: float = 1.0


class PriceSettings(BaseSettings):
    """Price polling, history and market regime thresholds."""

    model_config = SettingsConfigDict(env_prefix="PRICE_", frozen=True)

    update_interval: float = 10.0
    change_threshold: Decimal = Decimal("0.02")
    bull_threshold: Decimal = Decimal("0.05")
    bear_threshold: Decimal = Decimal("-0.03")
    initial_price: Decimal = Decimal("3.25")
    source_timeout: float = 5.0
    connect_timeout: float = 30.0  # one-off market loading at startup
    user_agent: str = "Momentum-Bot/1.0"
    max_errors: int = 5
    history_size: int = 100
    volatility_window: int = 10
    sentiment_window: int = 5

    coingecko_url: str = (
        "https://api.coingecko.com/api/v3/simple/price?ids=sui&vs_currencies=usd"
    )
    binance_symbol: str = "SUI/USDT"
    kraken_symbol: str = "SUI/USD"


class QuoteSettings(BaseSettings):
    """Quote model constants.

    The real-time and fallback paths use different fee rates; both are kept
    as configuration rather than unified.
    """

    model_config = SettingsConfigDict(env_prefix="QUOTE_", frozen=True)

    realtime_fee_rate: Decimal = Decimal("0.003")
    fallback_fee_rate: Decimal = Decimal("0.0016")
    fallback_sui_to_usdc_rate: Decimal = Decimal("0.00357794")
    fallback_usdc_to_sui_rate: Decimal = Decimal("279.4")
    price_impact: Decimal = Decimal("0.001")  # placeholder, not modeled
    route: str = "Momentum Protocol"


class ProtocolSettings(BaseSettings):
    """Momentum CLMM object ids and swap constants."""

    model_config = SettingsConfigDict(env_prefix="MOMENTUM_", frozen=True)

    package_id: str = (
        "0xc84b1ef2ac2ba5c3018e2b8c956ba5d0391e0e46d1daa1926d5a99a6a42526b4"
    )
    pool_id: str = (
        "0x455cf8d2ac91e7cb883f515874af750ed3cd18195c970b7a2d46235ac2b0c388"
    )
    pool_config_id: str = (
        "0x2375a0b1ec12010aaea3b2545acfa2ad34cfbba03ce4b59f4c39e1e25eed1b2a"
    )
    clock_id: str = (
        "0x0000000000000000000000000000000000000000000000000000000000000006"
    )
    slippage_check_package: str = (
        "0x8add2f0f8bc9748687639d7eb59b2172ba09a0172d9e63c029e23a7dbdb6abe6"
    )
    sui_type: str = SUI_COIN_TYPE
    usdc_type: str = USDC_COIN_TYPE
    sui_decimals: int = 9
    usdc_decimals: int = 6
    # sqrt price bounds passed to flash_swap and assert_slippage
    sqrt_price_limit_x_to_y: int = 4295048017
    sqrt_price_limit_y_to_x: int = 79226673515401279992447579050


class AppSettings(BaseSettings):
    """Root application settings, composing all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        frozen=True,
    )

    log_level: str = "INFO"
    log_format: str = "console"  # "json" or "console"
    chain: ChainSettings = ChainSettings()
    slippage: SlippageSettings = SlippageSettings()
    swap: SwapSettings = SwapSettings()
    price: PriceSettings = PriceSettings()
    quote: QuoteSettings = QuoteSettings()
    protocol: ProtocolSettings = ProtocolSettings()
