"""
Layout tuning parameters.

Every distance ratio is relative to ``bond_length``; penalties are weights
of quadratic terms unless noted otherwise.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class LayoutTuning:
    """Constants steering the structure diagram generator.

    Attributes:
        bond_length: Target length of every bond.
        anchor_drift_weight: Linear penalty for moving an already placed
            ring atom when scoring a ring candidate.
        hard_overlap_ratio: Distance below which a new ring atom clashes
            hard with an existing atom.
        hard_overlap_penalty: Weight of the hard clash term.
        soft_overlap_ratio: Distance below which a soft clash applies.
        soft_overlap_penalty: Weight of the soft clash term.
        intra_ring_hard_ratio: Minimum spacing between new atoms of the
            same ring candidate.
        intra_ring_penalty: Weight of the intra-ring term.
        edge_cross_penalty: Flat penalty per crossing of a new ring edge
            with an existing non-ring edge.
        edge_near_ratio: Distance below which non-crossing edges count as
            a near miss.
        edge_near_penalty: Weight of the near-miss term.
        chain_angle: Turn angle between consecutive chain bonds, radians.
        chain_hard_ratio: Hard clash distance when scoring chain points.
        chain_hard_penalty: Weight of the chain hard clash term.
        chain_soft_ratio: Soft clash distance when scoring chain points.
        chain_soft_penalty: Weight of the chain soft clash term.
        chain_centroid_weight: Reward per unit distance from the centroid
            of the placed atoms.
        chain_turn_tolerance: Factor by which the alternating turn may score
            worse than the other one and still be kept.
        chain_pass_limit: Chains placed per pass, and passes of the
            chain/branch alternation.
        sp2_angle: Substituent angle next to a pi system, radians.
        sp3_angle: Substituent angle otherwise, radians.
        branch_fan_spread: Fan width for atoms with two or more placed
            neighbours, radians.
        branch_open_spread: Upper bound of the half fan width for atoms with
            a single placed neighbour, radians.
        flip_gain_threshold: A bond flip is kept when the layout penalty
            drops below this fraction of its previous value.
        penalty_hard_ratio: Non-bonded hard clash distance of the layout
            penalty.
        penalty_hard_weight: Weight of the hard clash term.
        penalty_soft_ratio: Non-bonded soft clash distance.
        penalty_soft_weight: Weight of the soft clash term.
        penalty_crossing: Flat penalty per bond crossing.
        penalty_near_ratio: Near-miss distance between bonds.
        penalty_near_weight: Weight of the near-miss term.
        relax_iterations: Relaxation sweeps.
        spring_factor: Fraction of the bond length error corrected per
            sweep at each end.
        non_bonded_min_ratio: Non-bonded atoms closer than this are pushed
            apart.
        non_bonded_push_factor: Fraction of the shortfall applied per push.
        crossing_push_ratio: Perpendicular push applied to crossing bonds.
        component_gap: Horizontal gap between packed components.
        min_component_advance: Minimum horizontal advance per component.
    """

    bond_length: float = 1.4

    anchor_drift_weight: float = 260.0
    hard_overlap_ratio: float = 0.76
    hard_overlap_penalty: float = 300.0
    soft_overlap_ratio: float = 1.12
    soft_overlap_penalty: float = 70.0
    intra_ring_hard_ratio: float = 0.86
    intra_ring_penalty: float = 115.0
    edge_cross_penalty: float = 280.0
    edge_near_ratio: float = 0.42
    edge_near_penalty: float = 34.0

    chain_angle: float = 2.0 * math.pi / 3.0
    chain_hard_ratio: float = 0.95
    chain_hard_penalty: float = 180.0
    chain_soft_ratio: float = 1.20
    chain_soft_penalty: float = 24.0
    chain_centroid_weight: float = 0.22
    chain_turn_tolerance: float = 1.08
    chain_pass_limit: int = 32

    sp2_angle: float = 2.0 * math.pi / 3.0
    sp3_angle: float = 109.5 * math.pi / 180.0
    branch_fan_spread: float = math.pi / 2.2
    branch_open_spread: float = math.pi

    flip_gain_threshold: float = 0.97
    penalty_hard_ratio: float = 0.95
    penalty_hard_weight: float = 120.0
    penalty_soft_ratio: float = 1.20
    penalty_soft_weight: float = 16.0
    penalty_crossing: float = 160.0
    penalty_near_ratio: float = 0.35
    penalty_near_weight: float = 40.0

    relax_iterations: int = 150
    spring_factor: float = 0.40
    non_bonded_min_ratio: float = 1.14
    non_bonded_push_factor: float = 0.28
    crossing_push_ratio: float = 0.15

    component_gap: float = 4.0
    min_component_advance: float = 6.0

    def __post_init__(self) -> None:
        if not self.bond_length > 0:
            raise ValueError(f"bond_length must be positive, got {self.bond_length}")
        if self.hard_overlap_ratio >= self.soft_overlap_ratio:
            raise ValueError(
                "hard_overlap_ratio must be smaller than soft_overlap_ratio "
                f"({self.hard_overlap_ratio} >= {self.soft_overlap_ratio})"
            )
        if self.chain_hard_ratio >= self.chain_soft_ratio:
            raise ValueError("chain_hard_ratio must be smaller than chain_soft_ratio")
        if self.penalty_hard_ratio >= self.penalty_soft_ratio:
            raise ValueError("penalty_hard_ratio must be smaller than penalty_soft_ratio")
        for name in ("relax_iterations", "chain_pass_limit"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be non-negative, got {getattr(self, name)}")
        if not 0 < self.flip_gain_threshold <= 1:
            raise ValueError(f"flip_gain_threshold must be in (0, 1], got {self.flip_gain_threshold}")

    def scaled(self, ratio: float) -> float:
        """Convert a ratio into an absolute distance."""
        return self.bond_length * ratio


DEFAULT_TUNING = LayoutTuning()
