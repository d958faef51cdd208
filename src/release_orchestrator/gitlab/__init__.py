"""
release_orchestrator.gitlab

Remote release client package.

Responsibilities:
- Define the `ReleaseClient` boundary the engine depends on.
- Provide the GitLab v4 implementation of that boundary.
"""

# Package marker.


# --- Module Notes -----------------------------------------------------------
# The engine should depend on `gitlab.base.ReleaseClient`, not on httpx or GitLab URLs.
