import resource
import shutil
import signal
import subprocess
import tempfile
import time
from pathlib import Path
from typing import List

from judge import config
from judge.constant import BINARY_FILENAME, COMPILE_CASE_ID, SOURCE_FILENAME
from judge.models import Challenge, TestCase, TestResult
from judge.normalize import decode_output, normalize_source
from judge.result_factory import (
    exit_code_message,
    fault_from_signal,
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

OPEN_FILES_LIMIT = 64


def apply_rlimits(cpu_seconds: int, memory_bytes: int, nofile: int) -> None:
    """Process level caps for the child: CPU time, address space, open files."""
    resource.setrlimit(resource.RLIMIT_CPU, (cpu_seconds, cpu_seconds))
    resource.setrlimit(resource.RLIMIT_AS, (memory_bytes, memory_bytes))
    resource.setrlimit(resource.RLIMIT_NOFILE, (nofile, nofile))


class LocalRunner(Runner):
    """
    Compile and run on the judge host itself.

    There is no isolation beyond rlimits, so this backend is only meant for
    development machines without docker or a judge service.
    """

    name = "local"

    def __init__(
        self,
        compiler: str = "gcc",
        time_grace: float = config.TIME_GRACE,
        compile_timeout: int = config.COMPILE_TIMEOUT,
        clock=time.monotonic,
    ):
        self.compiler = compiler
        self.time_grace = time_grace
        self.compile_timeout = compile_timeout
        self.clock = clock

    def available(self) -> bool:
        return shutil.which(self.compiler) is not None

    def run_tests(self, code: str, challenge: Challenge) -> List[TestResult]:
        limits = resolve_limits(challenge.timeLimit, challenge.memoryLimit)
        try:
            tmp = tempfile.TemporaryDirectory(prefix="c-judge-")
        except OSError as e:
            logger().error(f"create temp dir failed: {e}")
            return [make_setup_failure("could not prepare workspace")]
        with tmp as workdir:
            workdir = Path(workdir)
            try:
                (workdir / SOURCE_FILENAME).write_text(normalize_source(code))
            except OSError as e:
                logger().error(f"write source failed: {e}")
                return [make_setup_failure("could not prepare workspace")]
            compile_failure = self._compile(workdir)
            if compile_failure is not None:
                return [compile_failure]
            return [
                self._run_case(workdir, case, limits)
                for case in challenge.testCases
            ]

    def _compile(self, workdir: Path):
        try:
            proc = subprocess.run(
                [
                    self.compiler, "-Wall", "-O2", "-o", BINARY_FILENAME,
                    SOURCE_FILENAME, "-lm"
                ],
                cwd=workdir,
                capture_output=True,
                timeout=self.compile_timeout,
            )
        except subprocess.TimeoutExpired:
            return make_compile_failure(
                f"compilation timed out after {self.compile_timeout}s")
        except OSError as e:
            logger().error(f"run compiler failed: {e}")
            return make_system_error(COMPILE_CASE_ID, "could not run compiler")
        if proc.returncode != 0:
            return make_compile_failure(decode_output(proc.stdout +
                                                      proc.stderr))
        return None

    def _run_case(self, workdir: Path, case: TestCase,
                  limits: ResourceLimits) -> TestResult:
        started = self.clock()
        try:
            proc = subprocess.run(
                [str(workdir / BINARY_FILENAME)],
                cwd=workdir,
                input=case.input.encode("utf-8"),
                capture_output=True,
                timeout=limits.time_limit + self.time_grace,
                preexec_fn=lambda: apply_rlimits(
                    limits.time_limit + 1,
                    limits.memory_bytes,
                    OPEN_FILES_LIMIT,
                ),
            )
        except subprocess.TimeoutExpired as e:
            # run() already killed the child
            return make_time_limit_exceeded(case.id,
                                            decode_output(e.stdout or b""),
                                            self.clock() - started)
        except OSError as e:
            logger().error(f"run program failed [case={case.id}]: {e}")
            return make_system_error(case.id, "could not run program")
        duration = self.clock() - started
        stdout = decode_output(proc.stdout)
        if proc.returncode < 0:
            signum = -proc.returncode
            if signum in (signal.SIGXCPU, signal.SIGKILL):
                return make_time_limit_exceeded(case.id, stdout, duration)
            fault = fault_from_signal(signum)
            return make_runtime_error(case.id,
                                      runtime_error_message(fault),
                                      stdout,
                                      execution_time=duration)
        if proc.returncode != 0:
            return make_runtime_error(
                case.id,
                exit_code_message(proc.returncode),
                stdout,
                execution_time=duration,
            )
        return make_comparison_result(case.id,
                                      stdout,
                                      case.expectedOutput,
                                      execution_time=duration)
