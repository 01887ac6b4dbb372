"""API package: FastAPI app and application services."""

from api.app import create_app, build_state, AppState

__all__ = ["create_app", "build_state", "AppState"]
