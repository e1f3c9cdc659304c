"""
Cloud, Shadow and Water Detection

Algorithms:
    - clouds: Spectral cloud test, connected-component sieve, buffer
    - water: Spectral water test within the historical water extent
    - shadows: Dark-pixel test along the projected cloud corridor
    - mask: Classification compositing and the end-to-end pipeline
"""

from .clouds import (
    CloudLayer,
    cloud_candidates,
    cloud_layer,
)

from .water import water_layer

from .shadows import (
    cloud_projection,
    dark_pixels,
    shadow_layer,
    shadow_search_angle,
)

from .mask import (
    MASK_BAND,
    CloudShadowMasker,
    CloudShadowMaskResult,
    MaskClass,
    add_cloud_shadow_mask,
    apply_cloud_shadow_mask,
    compose_classification,
    compute_cloud_shadow_mask,
    mask_collection,
)

__all__ = [
    # Clouds
    "CloudLayer",
    "cloud_candidates",
    "cloud_layer",
    # Water
    "water_layer",
    # Shadows
    "cloud_projection",
    "dark_pixels",
    "shadow_layer",
    "shadow_search_angle",
    # Mask
    "MASK_BAND",
    "CloudShadowMasker",
    "CloudShadowMaskResult",
    "MaskClass",
    "add_cloud_shadow_mask",
    "apply_cloud_shadow_mask",
    "compose_classification",
    "compute_cloud_shadow_mask",
    "mask_collection",
]
