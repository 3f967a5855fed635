"""
Exceptions raised by the integration harness
"""


class HarnessError(Exception):
    """Base class for harness errors."""


class BucketSetupError(HarnessError):
    """The test bucket could not be created; the run cannot continue."""


class CleanupError(HarnessError):
    """A teardown step did not complete."""


class PrerequisiteNotMet(HarnessError):
    """A scenario cannot run because the state it builds on is missing."""


class PipelineError(HarnessError):
    """The scenario pipeline is malformed (unknown or forward requirement)."""


class ScenarioFailure(AssertionError):
    """The sample's output or the bucket state did not match expectations."""
