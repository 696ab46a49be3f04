"""
ABI parsing and the per-contract ABI cache.

A contract's ABI arrives as the standard JSON description string. Parsing
it into a selector table is cheap but not free, and the same contracts are
called over and over, so the client keeps one parsed ABI per contract
address for its whole lifetime.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass
from typing import Any, Callable, Optional, Union

from eth_abi import decode, encode, is_encodable_type
from eth_abi.exceptions import DecodingError, EncodingError, ParseError

from ..errors import ArgumentEncodingError, MalformedABIError, ResultDecodingError
from ..utils import keccak256, normalize_address

ERC20_ABI = json.dumps([
    {
        "constant": True,
        "inputs": [{"name": "_owner", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"name": "balance", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "decimals",
        "outputs": [{"name": "", "type": "uint8"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "symbol",
        "outputs": [{"name": "", "type": "string"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": True,
        "inputs": [],
        "name": "totalSupply",
        "outputs": [{"name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "constant": False,
        "inputs": [
            {"name": "_to", "type": "address"},
            {"name": "_value", "type": "uint256"},
        ],
        "name": "transfer",
        "outputs": [{"name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
])

_ENTRY_TYPES = {"function", "constructor", "event", "error", "fallback", "receive"}


def _canonical_type(param: dict[str, Any]) -> str:
    """Render a parameter type the way selectors and eth-abi expect it.

    Tuples are spelled out from their components, keeping any array suffix:
    ``tuple[]`` with (address, bytes) components becomes ``(address,bytes)[]``.
    """
    typ = param.get("type")
    if not isinstance(typ, str) or not typ:
        raise MalformedABIError(f"ABI parameter without a type: {param!r}")
    if typ.startswith("tuple"):
        components = param.get("components")
        if not isinstance(components, list) or not all(isinstance(c, dict) for c in components):
            raise MalformedABIError(f"Tuple parameter without components: {param!r}")
        inner = ",".join(_canonical_type(c) for c in components)
        canonical = f"({inner}){typ[len('tuple'):]}"
    else:
        canonical = typ
    if not is_encodable_type(canonical):
        raise MalformedABIError(f"Unsupported ABI type: {canonical!r}")
    return canonical


def _params(entry: dict[str, Any], key: str) -> list[dict[str, Any]]:
    params = entry.get(key)
    if params is None and key not in entry:
        return []
    if not isinstance(params, list) or not all(isinstance(p, dict) for p in params):
        raise MalformedABIError(f"parse abi: {key} must be a list of objects: {entry!r}")
    return params


@dataclass(frozen=True)
class AbiMethod:
    name: str
    raw_name: str
    inputs: tuple[str, ...]
    outputs: tuple[str, ...]
    output_names: tuple[str, ...]
    selector: bytes
    state_mutability: str = "nonpayable"

    @property
    def signature(self) -> str:
        return f"{self.raw_name}({','.join(self.inputs)})"


@dataclass(frozen=True)
class ParsedAbi:
    """Method table of one contract ABI, keyed like go-ethereum keys it.

    Overloaded functions keep their first declaration under the plain name
    and the following ones under ``name0``, ``name1`` and so on.
    """

    methods: dict[str, AbiMethod]

    def method(self, name: str) -> AbiMethod:
        try:
            return self.methods[name]
        except KeyError:
            raise ArgumentEncodingError(f"method '{name}' not found in ABI") from None

    def pack(self, method: str, *args: Any) -> bytes:
        """ABI-encode a call: 4-byte selector followed by the arguments."""
        func = self.method(method)
        if len(args) != len(func.inputs):
            raise ArgumentEncodingError(
                f"pack method: {method}, params: {list(args)!r}: "
                f"expected {len(func.inputs)} arguments, got {len(args)}"
            )
        try:
            encoded = encode(list(func.inputs), list(args)) if args else b""
        except (EncodingError, ParseError, TypeError, ValueError, OverflowError) as exc:
            raise ArgumentEncodingError(
                f"pack method: {method}, params: {list(args)!r}: {exc}"
            ) from exc
        return func.selector + encoded

    def unpack(self, method: str, data: bytes) -> list[Any]:
        func = self.method(method)
        if not func.outputs:
            return []
        try:
            return list(decode(list(func.outputs), bytes(data)))
        except (DecodingError, ParseError, TypeError, ValueError, OverflowError) as exc:
            raise ResultDecodingError(
                f"unpack method: {method}, data: 0x{bytes(data).hex()}: {exc}"
            ) from exc

    def unpack_into(self, dest: Any, method: str, data: bytes) -> Any:
        """Unpack outputs into a caller-supplied destination.

        dicts receive ``name -> value`` (or ``index -> value`` for unnamed
        outputs), lists are extended, and any other object gets one
        attribute per named output.
        """
        values = self.unpack(method, data)
        names = self.method(method).output_names
        if isinstance(dest, list):
            dest.extend(values)
        elif isinstance(dest, dict):
            for i, (name, value) in enumerate(zip(names, values)):
                dest[name or i] = value
        else:
            for name, value in zip(names, values):
                if not name:
                    raise ResultDecodingError(
                        f"unpack method: {method}: cannot assign unnamed output to {type(dest).__name__}"
                    )
                setattr(dest, name, value)
        return dest


def parse_abi(abi_json: Union[str, bytes, list]) -> ParsedAbi:
    """
    Parse a JSON ABI description into a method table.

    Args:
        abi_json: ABI as a JSON string (or an already-decoded list)

    Returns:
        ParsedAbi with selectors computed

    Raises:
        MalformedABIError: If the description is not a valid ABI
    """
    if isinstance(abi_json, (str, bytes)):
        try:
            entries = json.loads(abi_json)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise MalformedABIError(f"parse abi: {exc}") from exc
    else:
        entries = abi_json

    if not isinstance(entries, list):
        raise MalformedABIError("parse abi: top level must be a JSON array")

    methods: dict[str, AbiMethod] = {}

    for entry in entries:
        if not isinstance(entry, dict) or entry.get("type", "function") not in _ENTRY_TYPES:
            raise MalformedABIError(f"parse abi: invalid entry {entry!r}")
        kind = entry.get("type", "function")

        inputs = tuple(_canonical_type(p) for p in _params(entry, "inputs"))
        if kind != "function":
            continue

        raw_name = entry.get("name")
        if not isinstance(raw_name, str) or not raw_name:
            raise MalformedABIError(f"parse abi: function without a name: {entry!r}")

        output_params = _params(entry, "outputs")
        outputs = tuple(_canonical_type(p) for p in output_params)
        output_names = tuple(p.get("name", "") for p in output_params)
        sig = f"{raw_name}({','.join(inputs)})"

        name = raw_name
        n = 0
        while name in methods:
            name = f"{raw_name}{n}"
            n += 1

        methods[name] = AbiMethod(
            name=name,
            raw_name=raw_name,
            inputs=inputs,
            outputs=outputs,
            output_names=output_names,
            selector=keccak256(sig.encode("utf-8"))[:4],
            state_mutability=entry.get("stateMutability", "nonpayable"),
        )

    return ParsedAbi(methods=methods)


class AbiCache:
    """Concurrency-safe ``address -> ParsedAbi`` table.

    One lock guards one dict; entries are never evicted. Keys are the
    lowercase form of the address, so checksummed and lowercase spellings
    hit the same entry.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, ParsedAbi] = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, address: object) -> bool:
        if not isinstance(address, (str, bytes)):
            return False
        key = normalize_address(address)
        with self._lock:
            return key in self._entries

    def load(self, address: str) -> tuple[Optional[ParsedAbi], bool]:
        key = normalize_address(address)
        with self._lock:
            abi = self._entries.get(key)
        return abi, abi is not None

    def store(self, address: str, abi: ParsedAbi) -> None:
        key = normalize_address(address)
        with self._lock:
            self._entries[key] = abi

    def load_or_store(self, address: str, abi: ParsedAbi) -> tuple[ParsedAbi, bool]:
        """Return the existing entry and ``True``, or store ``abi`` and return it with ``False``."""
        key = normalize_address(address)
        with self._lock:
            existing = self._entries.get(key)
            if existing is not None:
                return existing, True
            self._entries[key] = abi
            return abi, False

    def delete(self, address: str) -> None:
        key = normalize_address(address)
        with self._lock:
            self._entries.pop(key, None)

    def range(self, fn: Callable[[str, ParsedAbi], bool]) -> None:
        """Call ``fn(address, abi)`` for each entry until it returns False.

        Iterates over a snapshot, so ``fn`` may itself use the cache.
        """
        with self._lock:
            snapshot = list(self._entries.items())
        for address, abi in snapshot:
            if not fn(address, abi):
                break

    def resolve(self, address: str, abi_json: Union[str, bytes, list]) -> ParsedAbi:
        """Cached ABI for ``address``, parsing ``abi_json`` on a miss.

        Parsing happens outside the lock. A parse failure raises and leaves
        the cache untouched so the next call retries.
        """
        abi, found = self.load(address)
        if found:
            return abi  # type: ignore[return-value]
        parsed = parse_abi(abi_json)
        actual, _ = self.load_or_store(address, parsed)
        return actual
