"""
Task generation: combinatorial selection of input files.

Pure functions only. Nothing here touches the filesystem or the engine.
"""

from .combinations import (
    CombinationTuple,
    SortSpec,
    cartesian_product,
    max_combinations,
    select_combinations,
    select_evenly_distributed,
    sort_combinations,
)
from .pairs import Pair, build_pairs
from .tasks import (
    RESIZE_MODES,
    generate_merge_tasks,
    generate_paired_stitch_tasks,
    generate_resize_tasks,
    generate_stitch_tasks,
)

__all__ = [
    "CombinationTuple",
    "SortSpec",
    "cartesian_product",
    "max_combinations",
    "select_combinations",
    "select_evenly_distributed",
    "sort_combinations",
    "Pair",
    "build_pairs",
    "RESIZE_MODES",
    "generate_merge_tasks",
    "generate_paired_stitch_tasks",
    "generate_resize_tasks",
    "generate_stitch_tasks",
]
