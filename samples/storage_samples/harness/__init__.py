"""
Integration harness for the file sample: bucket lifecycle, CLI invoker and
the ordered scenario pipeline.
"""

from .errors import (
    BucketSetupError,
    CleanupError,
    HarnessError,
    PipelineError,
    PrerequisiteNotMet,
    ScenarioFailure,
)
from .invoker import CliInvoker, CliResult, run_command
from .lifecycle import BucketLifecycle
from .scenarios import PIPELINE, Scenario, ScenarioRunner, TestContext, object_exists

__all__ = [
    "PIPELINE",
    "BucketLifecycle",
    "BucketSetupError",
    "CleanupError",
    "CliInvoker",
    "CliResult",
    "HarnessError",
    "PipelineError",
    "PrerequisiteNotMet",
    "Scenario",
    "ScenarioFailure",
    "ScenarioRunner",
    "TestContext",
    "object_exists",
    "run_command",
]
