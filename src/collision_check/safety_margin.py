"""Pairwise safety margins for discrete collision costs.

A safety margin is the minimum clearance required between two
collision bodies together with the penalty coefficient applied when
the clearance drops below it. Every pair uses the default entry unless
it is listed in the override table. Pairs are unordered:
("a", "b") and ("b", "a") name the same entry. Tables handed to a
problem are frozen copies; set_pair on them raises TypeError.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping


@dataclass(frozen=True)
class MarginData:
    """Clearance requirement for one body pair.

    Attributes:
        distance: Minimum clearance [m]. Negative values allow
            interpenetration up to that depth.
        coeff: Penalty coefficient.
    """

    distance: float
    coeff: float


def pair_key(link_a: str, link_b: str) -> frozenset[str]:
    """Unordered key for a body pair."""
    return frozenset((link_a, link_b))


@dataclass
class SafetyMarginSpec:
    """Default margin plus per-pair overrides.

    Attributes:
        default: Margin applied to all pairs not listed in ``overrides``.
        overrides: Mapping from unordered body pair to its margin.
    """

    default: MarginData = field(
        default_factory=lambda: MarginData(distance=0.025, coeff=20.0)
    )
    overrides: Mapping[frozenset[str], MarginData] = field(default_factory=dict)

    @classmethod
    def uniform(cls, distance: float, coeff: float) -> "SafetyMarginSpec":
        return cls(default=MarginData(distance=distance, coeff=coeff))

    def set_pair(
        self,
        link_a: str,
        link_b: str,
        distance: float,
        coeff: float,
    ) -> None:
        """Override the margin of one pair (order of names is irrelevant)."""
        self.overrides[pair_key(link_a, link_b)] = MarginData(
            distance=distance, coeff=coeff,
        )

    def get_pair(self, link_a: str, link_b: str) -> MarginData:
        """Margin for a pair, falling back to the default."""
        return self.overrides.get(pair_key(link_a, link_b), self.default)

    def frozen(self) -> "SafetyMarginSpec":
        """Copy whose override table can no longer be changed."""
        return SafetyMarginSpec(
            default=self.default,
            overrides=MappingProxyType(dict(self.overrides)),
        )


def create_safety_margin_data_vector(
    n_steps: int,
    distance: float,
    coeff: float,
) -> list[SafetyMarginSpec]:
    """Create one independent SafetyMarginSpec per timestep.

    Args:
        n_steps: Number of timesteps.
        distance: Default minimum clearance [m].
        coeff: Default penalty coefficient.

    Returns:
        List of n_steps specs sharing no override tables.
    """
    return [SafetyMarginSpec.uniform(distance, coeff) for _ in range(n_steps)]
