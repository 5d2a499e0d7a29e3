"""Synthetic pipeline data generation."""

from .pipeline import PipelineDemo, LatencyProfile, DEFAULT_PROFILES, STAGES

__all__ = [
    'PipelineDemo',
    'LatencyProfile',
    'DEFAULT_PROFILES',
    'STAGES',
]
