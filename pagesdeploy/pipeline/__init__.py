"""Pipeline module: the ordered deployment steps and their executor."""

from pagesdeploy.pipeline.executor import (
    PipelineResult,
    Step,
    StepResult,
    run_guarded,
    run_pipeline,
)
from pagesdeploy.pipeline.steps import default_steps

__all__ = [
    "PipelineResult",
    "Step",
    "StepResult",
    "default_steps",
    "run_guarded",
    "run_pipeline",
]
