"""Scenario-state container used by the behave steps."""

from __future__ import annotations

from smoker.world.parameters import ParameterResolver
from smoker.world.properties import WorldProperties
from smoker.world.world import SmokeWorld

__all__ = ["ParameterResolver", "SmokeWorld", "WorldProperties"]
