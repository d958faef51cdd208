"""
release_orchestrator.services

Service-layer package.

Responsibilities:
- Own transaction boundaries for deploy submission and mutation.
- Validate payloads before anything is written.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Services should be pure Python and easily testable with a real SQLite store.
