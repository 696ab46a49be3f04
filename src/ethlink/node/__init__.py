"""
Node - typed access to an Ethereum JSON-RPC endpoint.

- rpc:          HTTP JSON-RPC transport (single calls and batches)
- abi:          ABI parsing and the per-contract ABI cache
- types:        Chain data decoded from RPC payloads
- client:       The Client (blocks, transactions, state, contract calls)
- sender:       Two-tier transaction sender resolution
- subscription: Polled new-head and log subscriptions
- tx:           Fee policy, transaction building and signing
"""
