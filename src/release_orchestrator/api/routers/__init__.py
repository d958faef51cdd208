"""
release_orchestrator.api.routers

Router modules: deploys, projects, websocket stream, health.
"""
