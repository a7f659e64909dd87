"""2D structure diagram generation."""

from molsketch.layout.generator import StructureDiagramGenerator, choose_seed, generate_coordinates
from molsketch.layout.geometry import fan_directions, reflect, segment_distance, segments_intersect
from molsketch.layout.refine import count_crossings, layout_penalty
from molsketch.layout.tuning import DEFAULT_TUNING, LayoutTuning

__all__ = [
    "StructureDiagramGenerator",
    "choose_seed",
    "generate_coordinates",
    "fan_directions",
    "reflect",
    "segment_distance",
    "segments_intersect",
    "count_crossings",
    "layout_penalty",
    "DEFAULT_TUNING",
    "LayoutTuning",
]
