"""
Durable record store for wallets, proposals and balances.

- `multisig.store.kv`      : backend-agnostic KV protocols and key helpers
- `multisig.store.sqlite`  : SQLite implementation of those protocols
- `multisig.store.records` : typed, transactional record access on top of a KV
"""
