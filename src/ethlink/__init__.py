__version__ = "0.3.0"

__all__ = [
    # Client
    "CallOpts",
    "Client",
    "dial",
    # ABI
    "AbiCache",
    "ParsedAbi",
    "parse_abi",
    "ERC20_ABI",
    # Chain data
    "Block",
    "CallMsg",
    "FilterQuery",
    "Header",
    "Log",
    "Receipt",
    "Transaction",
    # Transaction building
    "FeePolicy",
    "SignedTx",
    "TransactOpts",
    "build_contract_tx",
    "build_transfer_tx",
    "select_fee_policy",
    # Errors
    "EthlinkError",
    "TransportError",
    "RpcTimeoutError",
    "RpcError",
    "NotFoundError",
    "MalformedResponseError",
    "InconsistentBlockDataError",
    "MissingUncleHeaderError",
    "WrongInclusionError",
    "AbiError",
    "MalformedABIError",
    "ArgumentEncodingError",
    "ResultDecodingError",
    "NoContractCodeError",
    "FeePolicyError",
    "ConflictingFeeFieldsError",
    "FeeCapBelowTipCapError",
    "DynamicFeeNotActiveError",
    # Uniswap
    "calculate_pool_address_v2",
    "calculate_pool_address_v3",
    # Wallet
    "CryptoError",
    "aes_cbc_decrypt",
    "aes_cbc_encrypt",
    "get_account",
    "get_address",
    "load_private_key",
]

from .errors import (
    AbiError,
    ArgumentEncodingError,
    ConflictingFeeFieldsError,
    DynamicFeeNotActiveError,
    EthlinkError,
    FeeCapBelowTipCapError,
    FeePolicyError,
    InconsistentBlockDataError,
    MalformedABIError,
    MalformedResponseError,
    MissingUncleHeaderError,
    NoContractCodeError,
    NotFoundError,
    ResultDecodingError,
    RpcError,
    RpcTimeoutError,
    TransportError,
    WrongInclusionError,
)
from .node.abi import ERC20_ABI, AbiCache, ParsedAbi, parse_abi
from .node.client import CallOpts, Client, dial
from .node.tx import (
    FeePolicy,
    SignedTx,
    TransactOpts,
    build_contract_tx,
    build_transfer_tx,
    select_fee_policy,
)
from .node.types import Block, CallMsg, FilterQuery, Header, Log, Receipt, Transaction
from .uniswap.address import calculate_pool_address_v2, calculate_pool_address_v3
from .wallet.crypto import CryptoError, aes_cbc_decrypt, aes_cbc_encrypt
from .wallet.eth import get_account, get_address, load_private_key
