from __future__ import annotations
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence
import numpy as np
from .errors import AggregationError


@dataclass(frozen=True, eq=False)
class ShadedSample:
    pixel_id: int
    rgb: np.ndarray   # (3,)


def reduce_samples(
    shaded_samples: Iterable[ShadedSample],
    all_pixel_identities: Sequence[int],
) -> Dict[int, np.ndarray]:
    """Average shaded samples per pixel identity.

    Must only run once every sample of the pass is available. Each channel
    is summed with ``math.fsum`` (exactly rounded), so the result does not
    depend on the order in which samples arrive. Output keys follow the order
    of ``all_pixel_identities``.
    """
    slots: Dict[int, int] = {}
    for pid in all_pixel_identities:
        pid = int(pid)
        if pid in slots:
            raise AggregationError(f"Pixel identity {pid} appears more than once in the cell set.")
        slots[pid] = len(slots)

    buckets: List[List[np.ndarray]] = [[] for _ in range(len(slots))]
    for sample in shaded_samples:
        slot = slots.get(int(sample.pixel_id))
        if slot is None:
            raise AggregationError(f"Shaded sample for unknown pixel identity {sample.pixel_id}.")
        buckets[slot].append(sample.rgb)

    out: Dict[int, np.ndarray] = {}
    for pid, slot in slots.items():
        colors = buckets[slot]
        if not colors:
            raise AggregationError(f"Pixel identity {pid} received no samples.")
        stacked = np.asarray(colors, dtype=np.float64).reshape(-1, 3)
        n = stacked.shape[0]
        out[pid] = np.array([math.fsum(stacked[:, c]) / n for c in range(3)], dtype=np.float64)
    return out
