"""
Test helpers for halachagraph scenario tests.

Modules:
- scenario: Fluent ScenarioBuilder for family timelines
"""
from .scenario import ScenarioBuilder

__all__ = [
    "ScenarioBuilder",
]
