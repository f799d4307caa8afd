import os
import shutil
import uuid
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import List, Optional

import docker
import requests

from judge import config
from judge.constant import (
    BINARY_FILENAME,
    COMPILE_CASE_ID,
    KILLED_EXIT_CODE,
    SOURCE_FILENAME,
    TIMEOUT_EXIT_CODE,
    RuntimeFault,
)
from judge.exception import CompilationError, SandboxError
from judge.models import Challenge, TestCase, TestResult
from judge.normalize import decode_output, normalize_source
from judge.result_factory import (
    exit_code_message,
    make_comparison_result,
    make_compile_failure,
    make_runtime_error,
    make_setup_failure,
    make_system_error,
    make_time_limit_exceeded,
    runtime_error_message,
)
from judge.utils import logger
from runner.base import Runner
from runner.limits import ResourceLimits, resolve_limits
from runner.path_utils import PathTranslator
from runner.sandbox import WORKDIR, Sandbox, SandboxProfile, SandboxResult

COMPILE_COMMAND = [
    "gcc",
    "-Wall",
    "-O2",
    "-std=gnu11",
    "-o",
    BINARY_FILENAME,
    SOURCE_FILENAME,
    "-lm",
]


class ContainerRunner(Runner):
    """
    Compile and run a submission in throwaway docker containers.

    Each call gets its own workspace directory, which is bind-mounted into
    one compile container and one container per test case, then deleted.
    """

    name = "container"

    def __init__(
        self,
        client=None,
        lifecycle=None,
        translator: Optional[PathTranslator] = None,
        image: Optional[str] = None,
        seccomp: Optional[dict] = None,
        compile_timeout: int = config.COMPILE_TIMEOUT,
        compile_memory_limit: int = config.COMPILE_MEMORY_LIMIT,
        time_grace: float = config.TIME_GRACE,
        max_parallel_tests: int = config.MAX_PARALLEL_TESTS,
    ):
        self.client = client
        self.lifecycle = lifecycle
        self.translator = translator or PathTranslator()
        self.image = image or self.translator.cfg["image"]
        self.sandbox = Sandbox(client, self.image, lifecycle=lifecycle)
        self.seccomp = seccomp
        self.compile_timeout = compile_timeout
        self.compile_memory_limit = compile_memory_limit
        self.time_grace = time_grace
        self.max_parallel_tests = max(1, max_parallel_tests)

    def available(self) -> bool:
        if self.client is None:
            return False
        try:
            return bool(self.client.ping())
        except (docker.errors.DockerException,
                requests.exceptions.RequestException) as e:
            logger().warning(f"docker daemon unavailable: {e}")
            return False

    def run_tests(self, code: str, challenge: Challenge) -> List[TestResult]:
        if self.client is None:
            return [make_system_error(COMPILE_CASE_ID, "sandbox unavailable")]
        submission_id = str(uuid.uuid4())
        limits = resolve_limits(challenge.timeLimit, challenge.memoryLimit)
        workspace = self.translator.workspace(submission_id)
        try:
            self._setup(workspace, code)
        except OSError as e:
            logger().error(f"setup failed [id={submission_id}]: {e}")
            self._purge(workspace)
            return [make_setup_failure("could not prepare workspace")]
        try:
            self._compile(submission_id, workspace)
            return self._run_cases(submission_id, workspace, challenge,
                                   limits)
        except CompilationError as e:
            return [make_compile_failure(e.diagnostic)]
        except SandboxError as e:
            return [make_system_error(COMPILE_CASE_ID, str(e))]
        finally:
            self._purge(workspace)

    def _binds(self, workspace: Path, mode: str) -> dict:
        host_path = str(self.translator.to_host(workspace))
        return {host_path: {"bind": WORKDIR, "mode": mode}}

    def _setup(self, workspace: Path, code: str):
        (workspace / "cases").mkdir(parents=True)
        # the sandbox user is not the owner of the workspace
        os.chmod(workspace, 0o777)
        os.chmod(workspace / "cases", 0o755)
        (workspace / SOURCE_FILENAME).write_text(normalize_source(code))

    def _compile(self, submission_id: str, workspace: Path):
        """Build the submission, raising `CompilationError` on failure."""
        profile = SandboxProfile(
            memory_limit=self.compile_memory_limit,
            seccomp=self.seccomp,
        )
        result = self.sandbox.run(
            name=f"compile-{submission_id}",
            command=COMPILE_COMMAND,
            profile=profile,
            binds=self._binds(workspace, "rw"),
            timeout=self.compile_timeout,
        )
        if result.timed_out:
            raise CompilationError(
                f"compilation timed out after {self.compile_timeout}s")
        if result.exit_code != 0:
            raise CompilationError(
                decode_output(result.stdout + result.stderr))

    def _run_cases(self, submission_id, workspace, challenge,
                   limits) -> List[TestResult]:
        cases = list(enumerate(challenge.testCases))

        def run(item):
            index, case = item
            return self._run_case(submission_id, workspace, index, case,
                                  limits)

        if self.max_parallel_tests == 1 or len(cases) <= 1:
            return [run(item) for item in cases]
        with ThreadPoolExecutor(max_workers=self.max_parallel_tests) as pool:
            # map keeps challenge order
            return list(pool.map(run, cases))

    def _run_case(self, submission_id: str, workspace: Path, index: int,
                  case: TestCase, limits: ResourceLimits) -> TestResult:
        input_name = f"cases/{index:02d}.in"
        try:
            (workspace / input_name).write_bytes(case.input.encode("utf-8"))
        except OSError as e:
            logger().error(
                f"prepare input failed [id={submission_id}/{index:02d}]: {e}")
            return make_system_error(case.id, "failed to prepare input")
        command = [
            "sh",
            "-c",
            f"timeout -k 1 {limits.time_limit}s ./{BINARY_FILENAME} < {input_name}",
        ]
        try:
            result = self.sandbox.run(
                name=f"run-{submission_id}-{index:02d}",
                command=command,
                profile=SandboxProfile(memory_limit=limits.memory_limit,
                                       seccomp=self.seccomp),
                binds=self._binds(workspace, "ro"),
                timeout=limits.time_limit + self.time_grace,
            )
        except SandboxError as e:
            return make_system_error(case.id, str(e))
        return classify(case, result, limits)

    def _purge(self, workspace: Path):
        shutil.rmtree(workspace, ignore_errors=True)


def classify(case: TestCase, result: SandboxResult,
             limits: ResourceLimits) -> TestResult:
    """Turn the outcome of one test run into its verdict."""
    stdout = decode_output(result.stdout)
    if result.timed_out or result.exit_code == TIMEOUT_EXIT_CODE:
        return make_time_limit_exceeded(case.id, stdout,
                                        execution_time=result.duration)
    if result.exit_code == KILLED_EXIT_CODE:
        if result.oom_killed:
            return make_runtime_error(
                case.id,
                runtime_error_message(RuntimeFault.MEMORY_LIMIT),
                stdout,
                execution_time=result.duration,
            )
        if result.duration >= limits.time_limit:
            # `timeout -k` had to escalate to SIGKILL
            return make_time_limit_exceeded(case.id, stdout,
                                            execution_time=result.duration)
    if result.exit_code != 0:
        return make_runtime_error(
            case.id,
            exit_code_message(result.exit_code),
            stdout,
            execution_time=result.duration,
        )
    return make_comparison_result(
        case.id,
        stdout,
        case.expectedOutput,
        execution_time=result.duration,
    )
