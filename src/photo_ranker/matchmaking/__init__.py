from .sampler import (
    POLICIES,
    PairSelection,
    Policy,
    RandomSource,
    choose_policy,
    exploration_pair,
    placement_pair,
    refinement_pair,
    select_pair,
)

__all__ = [
    "POLICIES",
    "PairSelection",
    "Policy",
    "RandomSource",
    "choose_policy",
    "exploration_pair",
    "placement_pair",
    "refinement_pair",
    "select_pair",
]
