"""
Ring placement.

Rings are drawn as regular polygons. The first ring of a system is placed
freely; every further ring is fitted onto the atoms it shares with what is
already drawn by a rigid transform of its polygon, choosing between the
candidate transforms with :func:`ring_placement_score`. A ring that meets
the drawing in three or more atoms, or in atoms that are not adjacent, may
instead have only its missing paths drawn as arcs between the placed ends.
Bridged systems with a fixed frame (see :mod:`.bridged`) are drawn whole.
"""

from __future__ import annotations

import logging
import math
import sys
from typing import TYPE_CHECKING, Sequence

from ..rings import RingAttachment, classify_attachment, ring_edges
from ..types import Point
from .bridged import arc_points, bridged_frame
from .geometry import centroid, degrees_to_radians, open_direction, segment_distance, segments_intersect, unit_vector

if TYPE_CHECKING:
    from .graph import ComponentGraph
    from .tuning import LayoutTuning


logger = logging.getLogger(__name__)

MAX_ANCHOR_PAIRS = 4

Candidate = dict[int, Point]


def ring_radius(size: int, bond_length: float) -> float:
    """Circumradius of a regular polygon with ``size`` sides."""
    return bond_length / (2.0 * math.sin(math.pi / size))


def place_regular_ring(
    ring: Sequence[int],
    center: Point,
    bond_length: float,
    positions: dict[int, Point],
) -> None:
    """Place ``ring`` as a regular polygon around ``center``.

    The starting angle is derived from the first atom id, so the same ring
    always comes out in the same orientation.
    """
    n = len(ring)
    if n < 3:
        return
    radius = ring_radius(n, bond_length)
    base = degrees_to_radians((ring[0] * 11) % 360)
    step = 2.0 * math.pi / n
    for i, atom_idx in enumerate(ring):
        positions[atom_idx] = center + unit_vector(base + i * step) * radius


def local_ring_coordinates(ring: Sequence[int], bond_length: float) -> Candidate:
    """Polygon coordinates around the origin with the first atom on the x axis."""
    n = len(ring)
    if n < 3:
        return {}
    radius = ring_radius(n, bond_length)
    step = 2.0 * math.pi / n
    return {atom_idx: unit_vector(i * step) * radius for i, atom_idx in enumerate(ring)}


def mirrored(local: Candidate) -> Candidate:
    return {idx: Point(p.x, -p.y) for idx, p in local.items()}


def anchor_pairs(ring: Sequence[int], shared: Sequence[int], max_pairs: int = MAX_ANCHOR_PAIRS) -> list[tuple[int, int]]:
    """Pairs of placed ring atoms to fit the polygon onto.

    Adjacent shared atoms (a fused edge) come first, then the remaining
    pairs by decreasing distance along the ring.
    """
    if len(shared) < 2:
        return []
    shared_set = set(shared)
    pairs: list[tuple[int, int]] = []
    seen: set[tuple[int, int]] = set()

    def append(a: int, b: int) -> None:
        key = (min(a, b), max(a, b))
        if key not in seen:
            seen.add(key)
            pairs.append((a, b))

    n = len(ring)
    for i in range(n):
        a, b = ring[i], ring[(i + 1) % n]
        if a in shared_set and b in shared_set:
            append(a, b)

    position = {atom: i for i, atom in enumerate(ring)}
    by_gap: list[tuple[int, int, int]] = []
    for i, a in enumerate(shared):
        for b in shared[i + 1:]:
            if a not in position or b not in position:
                continue
            diff = abs(position[a] - position[b])
            by_gap.append((min(diff, n - diff), a, b))
    by_gap.sort(key=lambda item: (-item[0], item[1], item[2]))

    for _, a, b in by_gap:
        append(a, b)
        if len(pairs) >= max_pairs:
            break
    return pairs[:max(1, max_pairs)]


def transformed_ring(
    local: Candidate,
    ring: Sequence[int],
    anchor1: int,
    anchor2: int,
    target1: Point,
    target2: Point,
) -> Candidate | None:
    """Scale, rotate and translate ``local`` so the anchors land on their targets."""
    if anchor1 not in local or anchor2 not in local:
        return None
    l1 = local[anchor1]
    lv = local[anchor2] - l1
    tv = target2 - target1
    ll = lv.length()
    tl = tv.length()
    if ll <= 1e-4 or tl <= 1e-4:
        return None

    scale = tl / ll
    angle = tv.angle() - lv.angle()
    return {
        atom_idx: target1 + ((local[atom_idx] - l1) * scale).rotated(angle)
        for atom_idx in ring
        if atom_idx in local
    }


def preferred_expansion_direction(graph: ComponentGraph, atom_idx: int, positions: dict[int, Point]) -> Point:
    """Direction in which a ring should grow away from a single placed atom."""
    center = positions.get(atom_idx)
    if center is None:
        return Point(1.0, 0.0)
    placed = [positions[n] for n in graph.mol.neighbors(atom_idx) if n in positions]
    if not placed:
        return unit_vector(degrees_to_radians((atom_idx * 53) % 360))
    direction = open_direction(center, placed)
    if direction is not None:
        return direction
    v = placed[0] - center
    return Point(-v.y, v.x).normalized() or Point(1.0, 0.0)


def single_anchor_candidates(
    graph: ComponentGraph,
    ring: Sequence[int],
    local: Candidate,
    local_mirror: Candidate,
    shared_atom: int,
    target: Point,
    positions: dict[int, Point],
) -> list[Candidate]:
    """Polygon and mirrored polygon hinged on one placed atom."""
    if shared_atom not in ring:
        return []
    i = ring.index(shared_atom)
    n = len(ring)
    forward = ring[(i + 1) % n]
    backward = ring[(i - 1) % n]
    preferred = preferred_expansion_direction(graph, shared_atom, positions).normalized()

    def make(base: Candidate, neighbor: int) -> Candidate | None:
        if shared_atom not in base or neighbor not in base or preferred is None:
            return None
        anchor = base[shared_atom]
        along = (base[neighbor] - anchor).normalized()
        if along is None:
            return None
        angle = preferred.angle() - along.angle()
        return {
            atom_idx: target + (base[atom_idx] - anchor).rotated(angle)
            for atom_idx in ring
            if atom_idx in base
        }

    return [c for c in (make(local, forward), make(local_mirror, backward)) if c is not None]


def ring_placement_score(
    graph: ComponentGraph,
    candidate: Candidate,
    ring: Sequence[int],
    shared: Sequence[int],
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> float:
    """Penalty of a ring candidate; lower is better.

    Sums anchor drift, clashes of the new atoms with placed atoms and with
    each other, and crossings or near misses of the new ring edges with
    placed non-ring edges.
    """
    score = 0.0
    shared_set = set(shared)
    ring_set = set(ring)

    for atom_idx in shared:
        if atom_idx in candidate and atom_idx in positions:
            score += candidate[atom_idx].distance_to(positions[atom_idx]) * tuning.anchor_drift_weight

    existing = [positions[idx] for idx in graph.sorted_atoms() if idx in positions and idx not in ring_set]
    new_atoms = [idx for idx in ring if idx not in shared_set]

    hard = tuning.scaled(tuning.hard_overlap_ratio)
    soft = tuning.scaled(tuning.soft_overlap_ratio)
    for atom_idx in new_atoms:
        p = candidate.get(atom_idx)
        if p is None:
            continue
        for q in existing:
            d = p.distance_to(q)
            if d < hard:
                score += (hard - d) ** 2 * tuning.hard_overlap_penalty
            elif d < soft:
                score += (soft - d) ** 2 * tuning.soft_overlap_penalty

    intra = tuning.scaled(tuning.intra_ring_hard_ratio)
    for i, a in enumerate(new_atoms):
        for b in new_atoms[i + 1:]:
            if a in candidate and b in candidate:
                d = candidate[a].distance_to(candidate[b])
                if d < intra:
                    score += (intra - d) ** 2 * tuning.intra_ring_penalty

    own_edges = ring_edges(ring)
    own_set = set(own_edges)
    existing_edges = [
        (bond.atom1_idx, bond.atom2_idx)
        for bond in graph.bonds()
        if bond.atom1_idx in positions
        and bond.atom2_idx in positions
        and (min(bond.atom1_idx, bond.atom2_idx), max(bond.atom1_idx, bond.atom2_idx)) not in own_set
    ]
    near = tuning.scaled(tuning.edge_near_ratio)
    for a, b in own_edges:
        if a not in candidate or b not in candidate:
            continue
        pa, pb = candidate[a], candidate[b]
        for u, v in existing_edges:
            if a in (u, v) or b in (u, v):
                continue
            pu, pv = positions[u], positions[v]
            if segments_intersect(pa, pb, pu, pv):
                score += tuning.edge_cross_penalty
            else:
                d = segment_distance(pa, pb, pu, pv)
                if d < near:
                    score += (near - d) ** 2 * tuning.edge_near_penalty

    return score


def best_ring_placement(
    graph: ComponentGraph,
    ring: Sequence[int],
    shared: Sequence[int],
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> Candidate | None:
    """Lowest-penalty candidate for ``ring`` given its placed atoms ``shared``.

    Ties keep the earlier candidate.
    """
    local = local_ring_coordinates(ring, tuning.bond_length)
    local_mirror = mirrored(local)
    candidates: list[Candidate] = []

    if len(shared) >= 2:
        for a, b in anchor_pairs(ring, shared):
            if a not in positions or b not in positions:
                continue
            for base in (local, local_mirror):
                fitted = transformed_ring(base, ring, a, b, positions[a], positions[b])
                if fitted is not None:
                    candidates.append(fitted)
    elif shared and shared[0] in positions:
        candidates.extend(
            single_anchor_candidates(graph, ring, local, local_mirror, shared[0], positions[shared[0]], positions)
        )

    best: Candidate | None = None
    best_score = math.inf
    for candidate in candidates:
        score = ring_placement_score(graph, candidate, ring, shared, positions, tuning)
        if score < best_score:
            best, best_score = candidate, score

    runs = unplaced_runs(ring, positions)
    if runs and (len(shared) >= 3 or len(runs) > 1):
        paths = path_candidate(graph, ring, shared, runs, positions, tuning)
        if ring_placement_score(graph, paths, ring, shared, positions, tuning) < best_score:
            best = paths
    return best


def unplaced_runs(ring: Sequence[int], positions: dict[int, Point]) -> list[tuple[int, list[int], int]]:
    """Maximal runs of unplaced ring atoms with the placed atoms before and after them."""
    start = next((i for i, idx in enumerate(ring) if idx in positions), None)
    if start is None:
        return []
    rotated = list(ring[start:]) + list(ring[:start])
    runs: list[tuple[int, list[int], int]] = []
    before = rotated[0]
    run: list[int] = []
    for idx in rotated[1:] + rotated[:1]:
        if idx in positions:
            if run:
                runs.append((before, run, idx))
                run = []
            before = idx
        else:
            run.append(idx)
    return runs


def path_candidate(
    graph: ComponentGraph,
    ring: Sequence[int],
    shared: Sequence[int],
    runs: Sequence[tuple[int, list[int], int]],
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> Candidate:
    """Placed atoms kept, each missing run drawn as an arc between its ends.

    Every run bows to whichever side scores better, the left one on ties.
    """
    candidate: Candidate = {idx: positions[idx] for idx in shared}
    for before, run, after in runs:
        options = []
        for side in (1.0, -1.0):
            points = arc_points(positions[before], positions[after], len(run) + 1, tuning.bond_length, side)
            option = dict(candidate)
            option.update(zip(run, points))
            options.append(option)
        candidate = min(
            options,
            key=lambda option: ring_placement_score(graph, option, ring, shared, positions, tuning),
        )
    return candidate


def attach_ring(
    graph: ComponentGraph,
    ring: Sequence[int],
    positions: dict[int, Point],
    tuning: LayoutTuning,
) -> bool:
    """Fit a partly placed ring onto its placed atoms.

    Only unplaced atoms receive coordinates. A ring of a framed bridged
    system brings in the whole frame.

    Returns:
        True if at least one atom was placed, or a frame was applied.
    """
    shared = [idx for idx in ring if idx in positions]
    if not shared:
        return False
    if ring[0] in graph.frame_atoms:
        system = graph.system_of(tuple(ring))
        members = sorted({idx for member in system for idx in member})
        center = centroid([positions[idx] for idx in members if idx in positions]) or positions[shared[0]]
        return place_bridged_system(graph, system, positions, center, tuning)
    candidate = best_ring_placement(graph, ring, shared, positions, tuning)
    if candidate is None:
        return False
    placed_any = False
    for atom_idx in ring:
        if atom_idx not in positions and atom_idx in candidate:
            positions[atom_idx] = candidate[atom_idx]
            placed_any = True
    return placed_any


def fit_frame(graph: ComponentGraph, frame: Candidate, positions: dict[int, Point], center: Point) -> Candidate:
    """Move a rigid frame onto the drawing.

    With nothing placed the frame is centred on ``center``. One placed atom
    becomes the hinge and the frame opens away from its neighbours; with
    more, the first two placed atoms set the orientation.
    """
    placed = [idx for idx in sorted(frame) if idx in positions]
    middle = centroid(list(frame.values())) or Point()
    if not placed:
        shift = center - middle
        return {idx: p + shift for idx, p in frame.items()}

    hinge = placed[0]
    if len(placed) == 1:
        outward = middle - frame[hinge]
        wanted = preferred_expansion_direction(graph, hinge, positions)
        angle = wanted.angle() - outward.angle() if outward.length() > 1e-4 else 0.0
    else:
        other = placed[1]
        angle = (positions[other] - positions[hinge]).angle() - (frame[other] - frame[hinge]).angle()
    target = positions[hinge]
    return {idx: target + (p - frame[hinge]).rotated(angle) for idx, p in frame.items()}


def place_bridged_system(
    graph: ComponentGraph,
    rings: Sequence[Sequence[int]],
    positions: dict[int, Point],
    center: Point,
    tuning: LayoutTuning,
) -> bool:
    """Draw a whole bridged system from its frame.

    Atoms that already have coordinates keep them.

    Returns:
        True if the system has a frame, whether or not atoms were placed.
    """
    frame = bridged_frame(rings, tuning.bond_length)
    if frame is None:
        return False
    for idx, point in fit_frame(graph, frame, positions, center).items():
        positions.setdefault(idx, point)
    logger.debug("placed bridged system of %d atoms from a frame", len(frame))
    return True


def place_ring_system(
    graph: ComponentGraph,
    rings: Sequence[Sequence[int]],
    positions: dict[int, Point],
    center: Point,
    tuning: LayoutTuning,
) -> None:
    """Place the rings of one ring system.

    The ring with the most placed atoms (ties: smaller, then earlier) seeds
    the system; it becomes a regular polygon at ``center`` when none of its
    atoms is placed yet and is fitted onto its placed atoms otherwise. The
    other rings follow, preferring fused over spiro over bridged attachment
    to an already placed ring and, within a mode, rings attached to rings
    placed earlier. Systems with a fixed frame are drawn from it instead.
    """
    if not rings or place_bridged_system(graph, rings, positions, center, tuning):
        return
    ordered = sorted((tuple(ring) for ring in rings), key=lambda ring: (len(ring), ring))

    def placed_count(ring: Sequence[int]) -> int:
        return sum(1 for idx in ring if idx in positions)

    seed_index = 0
    for i, ring in enumerate(ordered):
        best = ordered[seed_index]
        if (placed_count(ring), -len(ring)) > (placed_count(best), -len(best)):
            seed_index = i
    seed = ordered[seed_index]

    if placed_count(seed) == 0:
        place_regular_ring(seed, center, tuning.bond_length, positions)
    elif placed_count(seed) < len(seed):
        attach_ring(graph, seed, positions, tuning)

    placed_rings: set[int] = set()
    placement_order: list[int] = []
    if placed_count(seed) > 0:
        placed_rings.add(seed_index)
        placement_order.append(seed_index)

    progress = True
    while progress:
        progress = False
        queue: list[tuple[int, int, int, int]] = []
        for i, ring in enumerate(ordered):
            if i in placed_rings:
                continue
            shared = placed_count(ring)
            if shared == 0:
                continue
            best_mode = RingAttachment.ISOLATED
            best_rank = sys.maxsize
            for rank, parent in enumerate(placement_order):
                mode = classify_attachment(ring, ordered[parent])
                if mode < best_mode or (mode == best_mode and rank < best_rank):
                    best_mode, best_rank = mode, rank
            if best_mode is RingAttachment.ISOLATED:
                best_mode, best_rank = RingAttachment.BRIDGED, sys.maxsize // 2
            queue.append((i, best_mode, best_rank, shared))

        queue.sort(key=lambda item: (item[1], item[2], -item[3], len(ordered[item[0]]), ordered[item[0]]))

        for i, _, _, _ in queue:
            if i in placed_rings:
                continue
            ring = ordered[i]
            placed_any = attach_ring(graph, ring, positions, tuning)
            if placed_any or placed_count(ring) == len(ring):
                placed_rings.add(i)
                placement_order.append(i)
                progress = True

    logger.debug("placed ring system of %d rings (%d with coordinates)", len(ordered), len(placed_rings))
