"""
Structure diagram generation.

Computes 2D coordinates for a molecular graph. Each connected component
is drawn on its own: ring systems first (bridged cages from fixed
frames), then chains and branches grown from what is placed, followed
by bond flips and a force relaxation.
Components are packed left to right.

    >>> from molsketch import parse
    >>> mol = generate_coordinates(parse("C1CCCCC1"))
    >>> round(mol.atoms[0].position.distance_to(mol.atoms[1].position), 3)
    1.4
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..rings import find_ring_basis, ring_edge_multiplicity, system_priority_key
from ..types import BoundingBox, Point
from .branches import place_distributed_partners
from .chains import place_longest_unplaced_chains
from .geometry import centroid, degrees_to_radians, unit_vector
from .graph import ComponentGraph
from .refine import optimize_by_bond_flips, relax
from .rings import place_ring_system
from .tuning import DEFAULT_TUNING, LayoutTuning

if TYPE_CHECKING:
    from ..types import Molecule


logger = logging.getLogger(__name__)


def choose_seed(graph: ComponentGraph) -> int:
    """Atom to start an acyclic component from.

    Ring atoms score 100 plus their degree, other atoms their degree; the
    larger id wins ties.
    """
    def score(idx: int) -> tuple[int, int]:
        return ((100 if idx in graph.ring_atoms else 0) + len(graph.neighbors(idx)), idx)

    return max(graph.atoms, key=score)


class StructureDiagramGenerator:
    """Generate 2D depiction coordinates.

    The generator is stateless apart from its tuning; the input molecule is
    never modified and a positioned copy is returned.

    Example:
        >>> sdg = StructureDiagramGenerator()
        >>> laid_out = sdg.generate(parse("CC(C)O"))
        >>> laid_out.bounding_box().width > 1.0
        True
    """

    def __init__(self, tuning: LayoutTuning | None = None) -> None:
        self.tuning = tuning or DEFAULT_TUNING

    def generate(self, mol: Molecule) -> Molecule:
        """Return a copy of ``mol`` with coordinates for every atom.

        Molecules with fewer than two atoms are returned unchanged (as a
        copy).
        """
        if mol.num_atoms < 2:
            return mol.copy()

        basis = find_ring_basis(mol)
        final: dict[int, Point] = {}
        offset_x = 0.0

        for atoms in mol.connected_components():
            graph = ComponentGraph.build(mol, atoms, basis)
            positions = self._layout_component(graph, offset_x)
            box = BoundingBox.around([positions[idx] for idx in graph.sorted_atoms()])
            if box is None:
                offset_x += self.tuning.min_component_advance
                continue
            shift = Point(offset_x - box.min_x, -box.mid_y)
            for idx in graph.atoms:
                final[idx] = positions[idx] + shift
            offset_x += max(self.tuning.min_component_advance, box.width + self.tuning.component_gap)

        logger.debug("laid out %d atoms in %d components", len(final), len(mol.connected_components()))
        return mol.with_positions(final)

    def _layout_component(self, graph: ComponentGraph, offset_x: float) -> dict[int, Point]:
        tuning = self.tuning
        origin = Point(offset_x, 0.0)
        positions: dict[int, Point] = {}

        multiplicity = ring_edge_multiplicity(graph.rings)
        systems = sorted(
            graph.systems,
            key=lambda system: system_priority_key(system, multiplicity),
        )
        if systems:
            place_ring_system(graph, systems[0], positions, origin, tuning)
        if not positions:
            positions[choose_seed(graph)] = origin

        rounds = 0
        progressed = True
        while progressed and rounds < tuning.chain_pass_limit:
            chains = place_longest_unplaced_chains(graph, positions, tuning)
            branches = place_distributed_partners(graph, positions, tuning)
            progressed = chains or branches
            rounds += 1

        for system in systems:
            members = {idx for ring in system for idx in ring}
            if all(idx in positions for idx in members):
                continue
            center = centroid([positions[idx] for idx in sorted(members) if idx in positions]) or origin
            place_ring_system(graph, system, positions, center, tuning)
        place_distributed_partners(graph, positions, tuning)

        for idx in graph.sorted_atoms():
            if idx in positions:
                continue
            anchor = next((n for n in graph.neighbors(idx) if n in positions), None)
            if anchor is None:
                positions[idx] = origin
            else:
                angle = degrees_to_radians((idx * 37) % 360)
                positions[idx] = positions[anchor] + unit_vector(angle) * tuning.bond_length
            logger.debug("atom %d placed by fallback", idx)

        locked = graph.locked_atoms()
        flips = optimize_by_bond_flips(graph, positions, locked, tuning)
        relax(graph, positions, locked, tuning)
        logger.debug(
            "component of %d atoms: %d rings, %d systems, %d flips",
            len(graph.atoms),
            len(graph.rings),
            len(systems),
            flips,
        )
        return positions


def generate_coordinates(mol: Molecule, tuning: LayoutTuning | None = None) -> Molecule:
    """Compute 2D coordinates with a :class:`StructureDiagramGenerator`.

    Args:
        mol: Molecule to lay out; left untouched.
        tuning: Optional layout constants.

    Returns:
        Positioned copy of the molecule.
    """
    return StructureDiagramGenerator(tuning).generate(mol)
