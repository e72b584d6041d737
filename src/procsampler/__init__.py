"""procsampler: per-process CPU and memory sampling for telemetry agents."""

from __future__ import annotations

from typing import TYPE_CHECKING

__version__ = "0.1.0"

if TYPE_CHECKING:
    from procsampler.config import SamplerConfig
    from procsampler.sampler import ProcessSampler


def create_sampler(config: SamplerConfig | None = None) -> ProcessSampler:
    """Build a sampler for the running platform (convenience wrapper).

    Usage::

        import procsampler
        sampler = procsampler.create_sampler()
        states = sampler.get()
    """
    from procsampler.sampler import ProcessSampler

    return ProcessSampler(config)
