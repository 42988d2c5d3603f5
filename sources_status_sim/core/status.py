"""Fabricates availability verdicts, randomly unless a status is pinned."""

import random

from sources_status_sim.core.types import AVAILABLE, UNAVAILABLE, StatusVerdict

RESOURCE_TYPE = "application"
UNAVAILABLE_ERROR = "I have spoken."


def synthesize(
    resource_type: str,
    resource_id: str,
    forced: str | None = None,
    rng: random.Random | None = None,
) -> StatusVerdict:
    """Return a verdict for ``resource_id``; ``forced`` pins the outcome."""

    if forced is not None:
        status = forced
    else:
        status = AVAILABLE if (rng or random).random() < 0.5 else UNAVAILABLE

    if status == UNAVAILABLE:
        return StatusVerdict(
            resource_type=resource_type,
            resource_id=resource_id,
            status=UNAVAILABLE,
            error=UNAVAILABLE_ERROR,
        )
    if status != AVAILABLE:
        raise ValueError(f"unsupported status: {status!r}")
    return StatusVerdict(resource_type=resource_type, resource_id=resource_id, status=AVAILABLE)
