"""Private key loading for the swap signer.

Accepted private key formats, detected in this order:
- "suiprivkey1..." bech32 (flag byte + 32-byte secret, ED25519 only)
- "0x" + 64 hex characters
- a mnemonic phrase (anything containing a space), derived at m/44'/784'/0'/0'/0'
- 32 raw bytes in base64

Every format is normalized to a pysui keystring (base64 of flag || secret),
which is what the SDK config holds for signing. Any other input raises
KeyFormatError, which main() treats as fatal.
"""

import base64
import binascii
from dataclasses import dataclass
from pathlib import Path

import bech32
from bip_utils import Bip39MnemonicValidator
from pysui.abstracts.client_keypair import SignatureScheme
from pysui.sui.sui_crypto import keypair_from_keystring, recover_key_and_address
from pysui.sui.sui_types.address import SuiAddress

from swapbot.exceptions import KeyFormatError
from swapbot.logging import get_logger

logger = get_logger(__name__)

SUI_PRIVATE_KEY_PREFIX = "suiprivkey"
ED25519_FLAG = 0x00
DERIVATION_PATH = "m/44'/784'/0'/0'/0'"


@dataclass(frozen=True)
class WalletKey:
    """Signing key in SDK keystring form plus its Sui address."""

    keystring: str
    address: str
    key_format: str


def _keystring(secret: bytes) -> str:
    return base64.b64encode(bytes([ED25519_FLAG]) + secret).decode("ascii")


def _decode_bech32(private_key: str) -> bytes:
    hrp, data = bech32.bech32_decode(private_key)
    if hrp != SUI_PRIVATE_KEY_PREFIX or data is None:
        raise KeyFormatError("Invalid suiprivkey bech32 encoding")
    decoded = bech32.convertbits(data, 5, 8, False)
    if decoded is None or len(decoded) != 33:
        raise KeyFormatError("Invalid suiprivkey payload length")
    flag, secret = decoded[0], bytes(decoded[1:])
    if flag != ED25519_FLAG:
        raise KeyFormatError(f"Unsupported key schema flag: {flag}")
    return secret


def _decode_hex(private_key: str) -> bytes:
    clean = private_key[2:]
    if len(clean) != 64:
        raise KeyFormatError(
            f"Invalid hex key length. Expected 64 characters, got {len(clean)}"
        )
    try:
        return bytes.fromhex(clean)
    except ValueError as e:
        raise KeyFormatError(f"Invalid hex key: {e}") from e


def _decode_base64(private_key: str) -> bytes:
    try:
        raw = base64.b64decode(private_key, validate=True)
    except binascii.Error as e:
        raise KeyFormatError(f"Invalid private key format: {e}") from e
    if len(raw) != 32:
        raise KeyFormatError(
            f"Invalid base64 key length. Expected 32 bytes, got {len(raw)}"
        )
    return raw


def _from_mnemonic(mnemonic: str) -> WalletKey:
    phrase = " ".join(mnemonic.lower().split())
    if not Bip39MnemonicValidator().IsValid(phrase):
        raise KeyFormatError("Invalid mnemonic phrase (unknown word or bad checksum)")
    _, keypair, address = recover_key_and_address(
        SignatureScheme.ED25519, phrase, DERIVATION_PATH
    )
    return WalletKey(
        keystring=keypair.serialize(), address=address.address, key_format="mnemonic"
    )


def _from_secret(secret: bytes, key_format: str) -> WalletKey:
    keystring = _keystring(secret)
    try:
        keypair_from_keystring(keystring)
        address = SuiAddress.from_keypair_string(keystring)
    except ValueError as e:
        raise KeyFormatError(f"Invalid {key_format} key: {e}") from e
    return WalletKey(keystring=keystring, address=address.address, key_format=key_format)


def load_keypair(private_key: str) -> WalletKey:
    """Detect the key format and resolve it to a keystring and address."""
    private_key = private_key.strip()
    if not private_key:
        raise KeyFormatError("Private key is empty")

    if private_key.startswith(SUI_PRIVATE_KEY_PREFIX + "1"):
        wallet = _from_secret(_decode_bech32(private_key), "bech32")
    elif private_key.startswith("0x"):
        wallet = _from_secret(_decode_hex(private_key), "hex")
    elif " " in private_key:
        wallet = _from_mnemonic(private_key)
    else:
        wallet = _from_secret(_decode_base64(private_key), "base64")

    logger.info("wallet_loaded", key_format=wallet.key_format, address=wallet.address)
    return wallet


def read_private_key(path: str | Path) -> str:
    """Read the private key file; a missing or empty file is a KeyFormatError."""
    try:
        content = Path(path).read_text(encoding="utf-8").strip()
    except OSError as e:
        raise KeyFormatError(f"Cannot read private key file {path}: {e}") from e
    if not content:
        raise KeyFormatError(f"Private key not found in {path}")
    return content
