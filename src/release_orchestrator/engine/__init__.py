"""
release_orchestrator.engine

Deploy orchestration engine.

Responsibilities:
- Project runner, dependency waiter, status poller and the orchestrator that sequences them.
- Deploy event catalogue and the injected Notifier boundary.
- Tracking of background deploy tasks.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# Engine components hold no state between steps; everything is reloaded from DeployStore.
