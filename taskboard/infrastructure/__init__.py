"""Infrastructure Layer — database engine/session management and logging setup.

Invariants:
    - Infrastructure imports only core/errors.py from the domain layer
    - All store errors mapped to StoreFailureError before leaving this layer

Design Decisions:
    - Session manager owns rollback and error mapping; services own retries
"""
