"""Mini README: Model cache package.

Exposes ``ResourceLoader``, which coalesces concurrent requests for the same
model key and caches successful loads until cleared.
"""

from .loader import LoadFailure, ResourceEntry, ResourceLoader, ResourceState

__all__ = ["LoadFailure", "ResourceEntry", "ResourceLoader", "ResourceState"]
