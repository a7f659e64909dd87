"""Ring detection and ring-system analysis."""

from molsketch.rings.detection import (
    RingInfo,
    cycle_rank,
    edge_key,
    find_ring_basis,
    get_ring_info,
    ring_atoms,
    ring_edge_set,
    ring_edges,
    shortest_path_excluding_edge,
)
from molsketch.rings.systems import (
    RingAttachment,
    classify_attachment,
    find_ring_systems,
    fused_edge_count,
    ring_edge_multiplicity,
    system_priority_key,
)

__all__ = [
    "RingInfo",
    "cycle_rank",
    "edge_key",
    "find_ring_basis",
    "get_ring_info",
    "ring_atoms",
    "ring_edge_set",
    "ring_edges",
    "shortest_path_excluding_edge",
    "RingAttachment",
    "classify_attachment",
    "find_ring_systems",
    "fused_edge_count",
    "ring_edge_multiplicity",
    "system_priority_key",
]
