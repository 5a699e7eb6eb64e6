"""
app/mappers package marker.
"""

from app.mappers.component_linker import ComponentLinker, LinkResult
from app.mappers.crosswalk import PinaxModsCrosswalk, map_language, map_resource_type
from app.mappers.graph_annotator import AnnotationResult, annotate

__all__ = [
    "AnnotationResult",
    "ComponentLinker",
    "LinkResult",
    "PinaxModsCrosswalk",
    "annotate",
    "map_language",
    "map_resource_type",
]
