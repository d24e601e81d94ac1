"""Public façade for the setkeeper.services package.

This module exposes the business services: the track metadata cache, the set
reconciler, catalog search and the playback queue. Other packages should
import service behaviour from this façade instead of the internal modules.
"""

from .catalog import CatalogService
from .playback import PlaybackService
from .reconciler import SetReconciler, derive_images, track_reference
from .track_cache import MetadataCache, dedupe

__all__ = [
    "MetadataCache",
    "dedupe",
    "SetReconciler",
    "derive_images",
    "track_reference",
    "CatalogService",
    "PlaybackService",
]
