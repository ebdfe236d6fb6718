"""Mini README: Interactive interfaces for modeloverlay.

Exports the FastAPI application factory used by the ``run`` command of the
command line launcher.
"""

from .web_app import create_application

__all__ = ["create_application"]
