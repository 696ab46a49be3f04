"""
Wallet - keys and blobs at rest.

- eth:    Private keys, BIP-39 seeds and HD derivation
- crypto: AES-CBC encryption helpers
"""
