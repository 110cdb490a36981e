"""Sequential step executor for the deployment pipeline."""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from pagesdeploy._format import format_duration
from pagesdeploy._log import get_logger
from pagesdeploy.context import DeployContext
from pagesdeploy.errors import DeployError

logger = get_logger("pipeline")


@dataclass(frozen=True)
class Step:
    name: str
    description: str
    run: Callable[[DeployContext], None]
    # None defers to the run mode: unattended runs never ask.
    auto_confirm: bool | None = None


@dataclass
class StepResult:
    name: str
    success: bool = True
    skipped: bool = False
    skip_reason: str | None = None
    duration_ms: int = 0


@dataclass
class PipelineRun:
    steps: list[Step]
    interactive: bool
    dry_run: bool
    index: int = 0
    results: list[StepResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.steps)

    @property
    def done(self) -> bool:
        return self.index >= len(self.steps)

    def advance(self) -> Step:
        step = self.steps[self.index]
        self.index += 1
        return step


@dataclass
class PipelineResult:
    step_results: list[StepResult] = field(default_factory=list)
    duration_ms: int = 0
    success: bool = True

    @property
    def skipped(self) -> list[str]:
        return [r.name for r in self.step_results if r.skipped]


def _execute_step(ctx: DeployContext, run: PipelineRun, step: Step) -> StepResult:
    """Gate a step through the confirmation engine, then run its body.

    Failures are not caught: they unwind to the resource guardian.
    """
    ctx.current_step = run.index
    auto = step.auto_confirm if step.auto_confirm is not None else not run.interactive
    result = StepResult(name=step.name)
    if not ctx.engine.step_gate(run.index, run.total, step.name, step.description, auto):
        result.skipped = True
        result.skip_reason = "Skipped by operator"
        return result

    start = time.monotonic()
    step.run(ctx)
    result.duration_ms = int((time.monotonic() - start) * 1000)
    return result


def run_pipeline(ctx: DeployContext, steps: Sequence[Step] | None = None) -> PipelineResult:
    """Run every step in order. Any failure propagates to the caller unchanged."""
    if steps is None:
        from pagesdeploy.pipeline.steps import default_steps

        steps = default_steps()

    run = PipelineRun(
        steps=list(steps),
        interactive=ctx.settings.interactive,
        dry_run=ctx.settings.dry_run,
    )
    ctx.total_steps = run.total
    display = ctx.display
    display.header(
        "GitHub Pages Deploy", "Isolation-first deployment - your working tree is never modified"
    )
    if run.interactive:
        display.prompt("Interactive mode enabled")
        display.info("You'll be prompted before each major step")
    else:
        display.info("Non-interactive mode - using defaults")

    start = time.monotonic()
    while not run.done:
        step = run.advance()
        run.results.append(_execute_step(ctx, run, step))

    result = PipelineResult(
        step_results=run.results,
        duration_ms=int((time.monotonic() - start) * 1000),
    )
    display.success(f"Pipeline completed in {format_duration(result.duration_ms / 1000)}")
    return result


def run_guarded(ctx: DeployContext, steps: Sequence[Step] | None = None) -> int:
    """Run the pipeline under the resource guardian and return the process exit status.

    Each fatal error is reported as one line before the guardian's cleanup
    summary. Exceptions that are not :class:`DeployError` still trigger the
    cleanup and then propagate.
    """
    guardian = ctx.guardian
    with guardian:
        try:
            run_pipeline(ctx, steps)
        except DeployError as exc:
            ctx.display.error(str(exc))
            guardian.exit_code = exc.exit_code
        else:
            guardian.exit_code = 0
    return guardian.exit_code if guardian.exit_code is not None else 1
