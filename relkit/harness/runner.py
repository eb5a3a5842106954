"""Run the scripted scenarios against a sandbox."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from relkit.core.config import RelkitConfig
from relkit.core.result import Err, Ok, Result
from relkit.harness.sandbox import Sandbox
from relkit.harness.scenarios import SCENARIOS, Scenario, ScenarioContext
from relkit.output.console import ConsoleProtocol
from relkit.release.machine import ReleaseStateMachine

__all__ = ["ScenarioError", "run_scenarios"]

SETUP_TITLE = "Starting setup"


@dataclass(frozen=True, slots=True)
class ScenarioError:
    """A scenario (or the setup before the first one) failed."""

    title: str
    message: str

    def pretty(self) -> str:
        return f"{self.title}\n  {self.message}"


def _setup(
    sandbox: Sandbox, config: RelkitConfig, console: ConsoleProtocol
) -> Result[ScenarioContext, ScenarioError]:
    console.title(SETUP_TITLE)

    reset = sandbox.reset()
    if isinstance(reset, Err):
        return Err(ScenarioError(SETUP_TITLE, reset.error.pretty()))
    checked_out = sandbox.checkout()
    if isinstance(checked_out, Err):
        return Err(ScenarioError(SETUP_TITLE, checked_out.error.pretty()))

    machine = ReleaseStateMachine(repo=checked_out.value, config=config, console=console)
    tagged = machine.tag_release()
    if isinstance(tagged, Err):
        return Err(ScenarioError(SETUP_TITLE, tagged.error.pretty()))
    switched = machine.repo.switch(config.branches.main)
    if isinstance(switched, Err):
        return Err(ScenarioError(SETUP_TITLE, switched.error.pretty()))

    console.success("Setup complete!")
    return Ok(ScenarioContext(sandbox=sandbox, machine=machine, console=console, config=config))


def run_scenarios(
    *,
    sandbox: Sandbox,
    config: RelkitConfig,
    console: ConsoleProtocol,
    scenarios: Sequence[Scenario] = SCENARIOS,
    keep: bool = False,
) -> Result[int, ScenarioError]:
    """Reset the sandbox and run scenarios in order.

    Args:
        sandbox: Where the shared remote and clones live
        config: Release conventions
        console: Output sink
        scenarios: Scenarios to run; later ones rely on earlier state
        keep: Leave the sandbox on disk afterwards

    Returns:
        Ok(number of scenarios run) or Err(ScenarioError) for the first failure
    """
    try:
        ctx = _setup(sandbox, config, console)
        if isinstance(ctx, Err):
            console.error(ctx.error.pretty())
            return ctx

        for scenario in scenarios:
            console.title(scenario.title)
            result = scenario.run(ctx.value)
            if isinstance(result, Err):
                error = ScenarioError(scenario.title, result.error.pretty())
                console.error(error.pretty())
                return Err(error)
            console.success(f"{scenario.title} passed")

        console.newline()
        console.success("All tests passed! Hooray!")
        return Ok(len(scenarios))
    finally:
        if not keep:
            sandbox.teardown()
