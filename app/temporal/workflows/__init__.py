"""Temporal workflows for SOA projects."""

from .soa_project import SoaProjectWorkflow

__all__ = [
    "SoaProjectWorkflow",
]
