"""Services Layer — the imperative shell around core/: transactions, ledger, catalog.

Invariants:
    - Every store interaction goes through run_in_transaction (services/transactions.py)
    - Services return core/records.py snapshots, never ORM instances

Design Decisions:
    - PositionLedger and PartitionCatalog are plain classes with the store injected:
      routes receive them via FastAPI dependencies, tests substitute them freely
"""
