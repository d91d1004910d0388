"""Temporal activities for SOA projects."""

from .soa_steps import run_soa_step

__all__ = [
    "run_soa_step",
]
