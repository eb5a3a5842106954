"""End-to-end simulator: sandbox remote plus scripted release scenarios."""

from relkit.harness.runner import ScenarioError, run_scenarios
from relkit.harness.sandbox import Sandbox, SandboxPaths
from relkit.harness.scenarios import (
    SCENARIOS,
    AssertionFailure,
    Scenario,
    ScenarioContext,
)

__all__ = [
    "SCENARIOS",
    "AssertionFailure",
    "Sandbox",
    "SandboxPaths",
    "Scenario",
    "ScenarioContext",
    "ScenarioError",
    "run_scenarios",
]
