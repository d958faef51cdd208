"""
release_orchestrator.db

Persistence package (SQLAlchemy async).

Responsibilities:
- Provide ORM models, engine/session setup, repositories and the DeployStore unit of work.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The engine only sees `db.store.DeployStore` and its repositories, never raw queries.
