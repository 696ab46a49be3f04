from __future__ import annotations

from typing import Optional, Union

from eth_hash.auto import keccak

# Block-number sentinel for the pending state.
PENDING_BLOCK_NUMBER = -1


def keccak256(data: bytes) -> bytes:
    # NOTE: Keccak-256 != SHA3-256 (NIST). Never use hashlib.sha3_256 here.
    return keccak(data)


def strip_0x(value: str) -> str:
    return value[2:] if value[:2] in ("0x", "0X") else value


def hex_to_bytes(value: Optional[str]) -> bytes:
    if not value:
        return b""
    raw = strip_0x(value)
    if len(raw) % 2:
        raw = "0" + raw
    return bytes.fromhex(raw)


def hex_to_int(value: Union[str, int, None]) -> Optional[int]:
    """Decode a JSON-RPC quantity. ``None`` passes through."""
    if value is None:
        return None
    if isinstance(value, int):
        return value
    raw = strip_0x(value)
    return int(raw, 16) if raw else 0


def to_block_number_arg(number: Optional[int]) -> str:
    """Map a block height to its RPC form: latest, pending or hex."""
    if number is None:
        return "latest"
    if number == PENDING_BLOCK_NUMBER:
        return "pending"
    if number < 0:
        raise ValueError(f"Invalid block number: {number}")
    return hex(number)


def address_to_bytes(address: Union[str, bytes]) -> bytes:
    """Decode an address into its 20-byte form.

    Longer inputs keep their low 20 bytes and shorter ones are left-padded,
    the same way go-ethereum's HexToAddress treats them.
    """
    raw = bytes(address) if isinstance(address, (bytes, bytearray)) else hex_to_bytes(address)
    if len(raw) > 20:
        raw = raw[-20:]
    return raw.rjust(20, b"\x00")


def normalize_address(address: Union[str, bytes]) -> str:
    """Lowercase 0x-prefixed form, used as the canonical cache key."""
    return "0x" + address_to_bytes(address).hex()


def to_checksum_address(address: Union[str, bytes]) -> str:
    """Convert an address to EIP-55 checksummed format.

    eth-account requires checksummed addresses in transaction fields.
    """
    addr = address_to_bytes(address).hex()
    addr_hash = keccak256(addr.encode("utf-8")).hex()
    result = "0x"
    for i, c in enumerate(addr):
        if c in "abcdef":
            result += c.upper() if int(addr_hash[i], 16) >= 8 else c
        else:
            result += c
    return result


def same_hash(a: Optional[str], b: Optional[str]) -> bool:
    if a is None or b is None:
        return False
    return strip_0x(a).lower() == strip_0x(b).lower()
