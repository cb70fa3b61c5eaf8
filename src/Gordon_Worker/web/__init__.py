"""FastAPI status surface for the Gordon Worker engine.

Re-exports the application factory so consumers can import directly:
    from Gordon_Worker.web import create_app
"""

from Gordon_Worker.web.app import create_app

__all__ = ["create_app"]
