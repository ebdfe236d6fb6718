"""Mini README: Core package initializer for modeloverlay.

modeloverlay places 3D models on objects reported by a detector. The
``models`` package caches model loads, ``placement`` tracks what is attached
to the scene, and ``scene`` declares the AR collaborators both talk to.
"""

from .logging_utils import get_logger

__all__ = ["get_logger"]
