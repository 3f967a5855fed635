"""
Ordered scenarios that drive the file sample and check its effects.

Scenarios share one bucket and build on each other's objects, so they form
a linear pipeline. Every scenario declares the earlier scenarios whose state
it needs; when one of those did not complete, the scenario is skipped with
PrerequisiteNotMet instead of failing on missing objects.
"""

import logging
import re
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Iterable, Optional
from urllib.parse import quote

import httpx
from botocore.exceptions import ClientError

from ..storage_client import is_not_found, object_uri
from .errors import PipelineError, PrerequisiteNotMet, ScenarioFailure
from .invoker import CliInvoker, CliResult

logger = logging.getLogger(__name__)

LIST_ATTEMPTS = 3
LIST_RETRY_DELAY = 2.0


@dataclass
class TestContext:
    """State shared by every scenario of one run."""

    __test__ = False  # not a pytest test class

    bucket_name: str
    file_path: Path
    download_file_path: Path
    kms_key_name: str = ""
    moved_file_name: str = "test2.txt"
    copied_file_name: str = "test3.txt"
    uri_scheme: str = "gs"
    endpoint_url: Optional[str] = None
    verify_urls: bool = True
    completed: set[str] = field(default_factory=set)
    failed: set[str] = field(default_factory=set)

    @property
    def file_name(self) -> str:
        """Key the sample uploads the local file under."""
        return self.file_path.name

    def uri(self, key: str, bucket: Optional[str] = None) -> str:
        return object_uri(bucket or self.bucket_name, key, self.uri_scheme)

    def public_url(self, key: str) -> str:
        """Anonymous HTTP URL of an object (path-style on custom endpoints)."""
        if self.endpoint_url:
            return f"{self.endpoint_url.rstrip('/')}/{self.bucket_name}/{quote(key)}"
        return f"https://{self.bucket_name}.s3.amazonaws.com/{quote(key)}"


@dataclass(frozen=True)
class Scenario:
    """One sample invocation plus the checks made on it."""

    name: str
    run: Callable[["ScenarioRunner", TestContext], CliResult]
    requires: tuple[str, ...] = ()


def object_exists(s3_client, bucket: str, key: str) -> bool:
    """Ask the storage API directly whether an object exists."""
    try:
        s3_client.head_object(Bucket=bucket, Key=key)
    except ClientError as e:
        if is_not_found(e):
            return False
        raise
    return True


def _failure(result: CliResult, message: str) -> ScenarioFailure:
    return ScenarioFailure(
        f"{message}\ncommand: {result.command}\nexit code: {result.returncode}\n"
        f"output:\n{result.output}"
    )


class ScenarioRunner:
    """Runs pipeline scenarios against one bucket, tracking what completed."""

    def __init__(
        self,
        invoker: CliInvoker,
        s3_client,
        ctx: TestContext,
        pipeline: Optional[Iterable[Scenario]] = None,
        http_get: Callable[..., httpx.Response] = httpx.get,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.invoker = invoker
        self.s3_client = s3_client
        self.ctx = ctx
        self.pipeline = validate_pipeline(PIPELINE if pipeline is None else pipeline)
        self._scenarios = {scenario.name: scenario for scenario in self.pipeline}
        self._http_get = http_get
        self._sleep = sleep

    @property
    def names(self) -> list[str]:
        return [scenario.name for scenario in self.pipeline]

    def run(self, name: str) -> CliResult:
        """
        Run one scenario.

        Raises PrerequisiteNotMet when a required scenario has not completed,
        and ScenarioFailure when the output or bucket state is wrong.
        """
        scenario = self._scenarios.get(name)
        if scenario is None:
            raise PipelineError(f"Unknown scenario: {name}")

        missing = [req for req in scenario.requires if req not in self.ctx.completed]
        if missing:
            raise PrerequisiteNotMet(
                f"{name} needs {', '.join(missing)} to have completed"
            )

        logger.info(f"Running scenario {name}")
        try:
            result = scenario.run(self, self.ctx)
        except PrerequisiteNotMet:
            raise
        except Exception:
            self.ctx.failed.add(name)
            raise

        self.ctx.completed.add(name)
        return result

    def run_all(self) -> dict[str, str]:
        """Run the whole pipeline in order; map each scenario to its outcome."""
        outcomes = {}
        for name in self.names:
            try:
                self.run(name)
                outcomes[name] = "passed"
            except PrerequisiteNotMet as e:
                logger.warning(f"Skipped {name}: {e}")
                outcomes[name] = "skipped"
            except ScenarioFailure as e:
                logger.error(f"Scenario {name} failed: {e}")
                outcomes[name] = "failed"
            except Exception as e:
                logger.exception(f"Scenario {name} raised {type(e).__name__}: {e}")
                outcomes[name] = "failed"
        return outcomes

    # Checks

    def expect_output(self, result: CliResult, pattern: str) -> re.Match:
        """Fail unless the combined output matches a regular expression."""
        match = re.search(pattern, result.output, re.MULTILINE)
        if match is None:
            raise _failure(result, f"Output does not match {pattern!r}")
        return match

    def expect_text(self, result: CliResult, text: str) -> None:
        self.expect_output(result, re.escape(text))

    def expect_no_text(self, result: CliResult, text: str) -> None:
        if text in result.output:
            raise _failure(result, f"Output unexpectedly contains {text!r}")

    def expect_exists(self, result: CliResult, key: str, exists: bool = True) -> None:
        """Cross-check the sample's side effect against the storage API."""
        actual = object_exists(self.s3_client, self.ctx.bucket_name, key)
        if actual != exists:
            state = "missing" if exists else "still present"
            raise _failure(result, f"{self.ctx.uri(key)} is {state}")

    def expect_http_ok(self, result: CliResult, url: str, body: Optional[bytes] = None) -> None:
        """Fetch a URL anonymously and expect a 200, optionally with a known body."""
        if not self.ctx.verify_urls:
            return
        response = self._http_get(url, follow_redirects=True)
        if response.status_code != 200:
            raise _failure(result, f"GET {url} returned {response.status_code}")
        if body is not None and response.content != body:
            raise _failure(result, f"GET {url} returned unexpected content")

    def retry(self, check: Callable[[], CliResult], attempts: int = LIST_ATTEMPTS) -> CliResult:
        """Repeat a check that may observe a listing before it is consistent."""
        for attempt in range(attempts):
            try:
                return check()
            except ScenarioFailure as e:
                if attempt + 1 >= attempts:
                    raise
                logger.warning(f"Check failed (attempt {attempt + 1}/{attempts}): {e}")
                self._sleep(LIST_RETRY_DELAY * (attempt + 1))
        raise PipelineError("retry needs at least one attempt")


def validate_pipeline(scenarios: Iterable[Scenario]) -> tuple[Scenario, ...]:
    """Require unique names and requirements that point to earlier scenarios."""
    seen: set[str] = set()
    ordered = tuple(scenarios)
    for scenario in ordered:
        if scenario.name in seen:
            raise PipelineError(f"Duplicate scenario: {scenario.name}")
        for req in scenario.requires:
            if req not in seen:
                raise PipelineError(
                    f"{scenario.name} requires {req}, which does not run before it"
                )
        seen.add(scenario.name)
    return ordered


# Scenarios


def upload(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run("upload", ctx.bucket_name, str(ctx.file_path))
    runner.expect_text(result, f"{ctx.file_path} uploaded to {ctx.bucket_name}.")
    runner.expect_exists(result, ctx.file_name)
    return result


def upload_with_kms_key(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    if not ctx.kms_key_name:
        raise PrerequisiteNotMet("KMS_KEY_NAME is not set")
    result = runner.invoker.run(
        "upload-with-kms-key", ctx.bucket_name, str(ctx.file_path), ctx.kms_key_name
    )
    runner.expect_text(
        result,
        f"{ctx.file_path} uploaded to {ctx.bucket_name} using {ctx.kms_key_name}.",
    )
    runner.expect_exists(result, ctx.file_name)
    return result


def download(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run(
        "download", ctx.bucket_name, ctx.file_name, str(ctx.download_file_path)
    )
    runner.expect_text(
        result, f"{ctx.uri(ctx.file_name)} downloaded to {ctx.download_file_path}."
    )
    if not ctx.download_file_path.exists():
        raise _failure(result, f"{ctx.download_file_path} was not written")
    if ctx.download_file_path.read_bytes() != ctx.file_path.read_bytes():
        raise _failure(result, f"{ctx.download_file_path} differs from {ctx.file_path}")
    return result


def move(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run("move", ctx.bucket_name, ctx.file_name, ctx.moved_file_name)
    runner.expect_text(
        result, f"{ctx.uri(ctx.file_name)} moved to {ctx.uri(ctx.moved_file_name)}."
    )
    runner.expect_exists(result, ctx.file_name, exists=False)
    runner.expect_exists(result, ctx.moved_file_name)
    return result


def copy(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run(
        "copy", ctx.bucket_name, ctx.moved_file_name, ctx.bucket_name, ctx.copied_file_name
    )
    runner.expect_text(
        result,
        f"{ctx.uri(ctx.moved_file_name)} copied to {ctx.uri(ctx.copied_file_name)}.",
    )
    runner.expect_exists(result, ctx.moved_file_name)
    runner.expect_exists(result, ctx.copied_file_name)
    return result


def list_files(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    def check() -> CliResult:
        result = runner.invoker.run("list", ctx.bucket_name)
        runner.expect_text(result, "Files:")
        runner.expect_text(result, ctx.moved_file_name)
        runner.expect_text(result, ctx.copied_file_name)
        return result

    return runner.retry(check)


def list_files_by_prefix(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run_raw(f'list {ctx.bucket_name} test "/"')
    runner.expect_text(result, "Files:")
    runner.expect_text(result, ctx.moved_file_name)
    runner.expect_text(result, ctx.copied_file_name)

    result = runner.invoker.run("list", ctx.bucket_name, "foo")
    runner.expect_text(result, "Files:")
    runner.expect_no_text(result, ctx.moved_file_name)
    runner.expect_no_text(result, ctx.copied_file_name)
    return result


def make_public(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run("make-public", ctx.bucket_name, ctx.copied_file_name)
    runner.expect_text(result, f"{ctx.uri(ctx.copied_file_name)} is now public.")
    runner.expect_http_ok(result, ctx.public_url(ctx.copied_file_name))
    return result


def generate_signed_url(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run("generate-signed-url", ctx.bucket_name, ctx.copied_file_name)
    match = runner.expect_output(
        result, rf"The signed url for {re.escape(ctx.copied_file_name)} is (\S+)\.$"
    )
    runner.expect_http_ok(result, match.group(1), body=ctx.file_path.read_bytes())
    return result


def get_metadata(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run("get-metadata", ctx.bucket_name, ctx.copied_file_name)
    runner.expect_text(result, f"File: {ctx.copied_file_name}")
    runner.expect_text(result, f"Bucket: {ctx.bucket_name}")
    return result


def delete(runner: ScenarioRunner, ctx: TestContext) -> CliResult:
    result = runner.invoker.run("delete", ctx.bucket_name, ctx.copied_file_name)
    runner.expect_text(result, f"{ctx.uri(ctx.copied_file_name)} deleted.")
    runner.expect_exists(result, ctx.copied_file_name, exists=False)
    return result


PIPELINE: tuple[Scenario, ...] = (
    Scenario("upload", upload),
    Scenario("upload-with-kms-key", upload_with_kms_key),
    Scenario("download", download, requires=("upload",)),
    Scenario("move", move, requires=("upload",)),
    Scenario("copy", copy, requires=("move",)),
    Scenario("list", list_files, requires=("move", "copy")),
    Scenario("list-by-prefix", list_files_by_prefix, requires=("move", "copy")),
    Scenario("make-public", make_public, requires=("copy",)),
    Scenario("generate-signed-url", generate_signed_url, requires=("copy",)),
    Scenario("get-metadata", get_metadata, requires=("copy",)),
    Scenario("delete", delete, requires=("copy",)),
)
