"""Mini README: Static tables linking detector labels to models and scales.

Structure:
    * CATEGORY_TO_MODEL / CATEGORY_SCALE_FACTORS - built-in label tables.
    * CategoryCatalog - immutable bundle of both tables with defaults.
    * DEFAULT_CATALOG - catalog instance used unless callers supply another.

Labels come straight from the object detector (COCO style names such as
``"dining table"``). Unknown labels are never an error: they fall back to the
default model and default scale.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import List, Mapping

import numpy as np

CATEGORY_TO_MODEL: Mapping[str, str] = MappingProxyType(
    {
        "chair": "chair.glb",
        "couch": "sofa.glb",
        "dining table": "table.glb",
        "tv": "television.glb",
    }
)
DEFAULT_MODEL = "chair.glb"

CATEGORY_SCALE_FACTORS: Mapping[str, float] = MappingProxyType(
    {
        "chair": 0.5,
        "couch": 0.7,
        "dining table": 0.8,
        "tv": 0.6,
    }
)
DEFAULT_SCALE = 0.5


@dataclass(frozen=True)
class CategoryCatalog:
    """Read-only lookups from category label to model key and scale."""

    models: Mapping[str, str] = field(default_factory=lambda: CATEGORY_TO_MODEL)
    scales: Mapping[str, float] = field(default_factory=lambda: CATEGORY_SCALE_FACTORS)
    default_model: str = DEFAULT_MODEL
    default_scale: float = DEFAULT_SCALE

    def __post_init__(self) -> None:
        if not self.default_model:
            raise ValueError("A default model key is required")
        if self.default_scale <= 0:
            raise ValueError("Default scale factor must be positive")
        for category, factor in self.scales.items():
            if factor <= 0:
                raise ValueError(f"Scale factor for '{category}' must be positive")
        # Snapshot caller-supplied tables.
        object.__setattr__(self, "models", MappingProxyType(dict(self.models)))
        object.__setattr__(self, "scales", MappingProxyType(dict(self.scales)))

    def model_for(self, category: str) -> str:
        """Return the model key for ``category`` or the default key."""

        return self.models.get(category, self.default_model)

    def scale_for(self, category: str) -> float:
        """Return the uniform scale for ``category`` or the default scale."""

        return self.scales.get(category, self.default_scale)

    def scale_vector(self, category: str) -> np.ndarray:
        """Scale expressed as the xyz vector applied to a scene node."""

        return np.full(3, self.scale_for(category), dtype=np.float32)

    def known_categories(self) -> List[str]:
        return sorted(self.models.keys())


DEFAULT_CATALOG = CategoryCatalog()
