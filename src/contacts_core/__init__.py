"""Contact manager core: role tiers, undo history and the record store.

Modules:
- models / database / crud: SQLAlchemy record store
- schemas: pydantic input, read and snapshot models
- validation: contact field rules
- permissions: roles and capability tiers
- undo: session-scoped undo ledgers
- search: contact search and sort
- auth: password hashing and login
- session: the per-login session controller
"""

__version__ = "1.0.0"
