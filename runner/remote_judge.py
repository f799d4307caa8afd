import base64
import binascii
import time
import uuid
from typing import List, Optional, Tuple, Union

import requests
from pydantic import BaseModel, Field, ValidationError

from judge import config
from judge.constant import JudgeStatus, RuntimeFault
from judge.exception import RemoteJudgeError, ServiceTimeoutError
from judge.models import Challenge, SubmissionRecord, TestCase, TestResult
from judge.normalize import normalize_output
from judge.result_factory import (
    make_comparison_result,
    make_compile_failure,
    make_runtime_error,
    make_service_timeout,
    make_system_error,
    make_time_limit_exceeded,
    runtime_error_message,
)
from judge.utils import logger
from runner.base import Runner
from runner.limits import ResourceLimits, resolve_limits

# fields that come back base64 encoded when `base64_encoded=true`
_ENCODED_FIELDS = ("stdout", "stderr", "compile_output", "message")

_RUNTIME_FAULTS = {
    JudgeStatus.RUNTIME_ERROR_SIGSEGV: RuntimeFault.SEGMENTATION_FAULT,
    JudgeStatus.RUNTIME_ERROR_SIGXFSZ: RuntimeFault.OUTPUT_LIMIT,
    JudgeStatus.RUNTIME_ERROR_SIGFPE: RuntimeFault.FLOATING_POINT,
    JudgeStatus.RUNTIME_ERROR_SIGABRT: RuntimeFault.ABORTED,
    JudgeStatus.RUNTIME_ERROR_NZEC: RuntimeFault.NON_ZERO_EXIT,
    JudgeStatus.RUNTIME_ERROR_OTHER: RuntimeFault.OTHER,
}


class JudgeStatusInfo(BaseModel):
    id: int
    description: str = ""


class JudgeSubmission(BaseModel):
    """Submission state as reported by the remote judge."""
    token: str = ""
    stdout: Optional[str] = None
    stderr: Optional[str] = None
    compile_output: Optional[str] = None
    message: Optional[str] = None
    time: Optional[Union[str, float]] = None
    memory: Optional[int] = None
    status: JudgeStatusInfo = Field(
        default_factory=lambda: JudgeStatusInfo(id=JudgeStatus.IN_QUEUE))

    @property
    def seconds(self) -> float:
        try:
            return float(self.time or 0)
        except ValueError:
            return 0.0

    def text(self, field: str) -> str:
        return (getattr(self, field) or "").strip()


def _decode_fields(payload: dict) -> dict:
    payload = dict(payload)
    for key in _ENCODED_FIELDS:
        value = payload.get(key)
        if not value:
            continue
        try:
            payload[key] = base64.b64decode(value).decode("utf-8", "ignore")
        except (binascii.Error, ValueError) as e:
            logger().warning(f"undecodable {key} from judge service: {e}")
    return payload


class RemoteJudgeRunner(Runner):
    """
    Delegate compilation and execution to a Judge0 compatible service.

    Every test case is a separate remote submission which is polled until it
    reaches a terminal status. A compilation error on any case ends the run.
    """

    name = "remote"

    def __init__(
        self,
        base_url: str = config.JUDGE_API,
        session: Optional[requests.Session] = None,
        store=None,
        auth_token: str = config.JUDGE_AUTH_TOKEN,
        language_id: int = config.C_LANGUAGE_ID,
        poll_interval: float = config.POLL_INTERVAL,
        escalate_after: int = config.POLL_ESCALATE_AFTER,
        escalated_interval: float = config.POLL_ESCALATED_INTERVAL,
        max_attempts: int = config.POLL_MAX_ATTEMPTS,
        request_timeout: float = config.HTTP_TIMEOUT,
        sleep=time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        if auth_token:
            self.session.headers.update({"X-Auth-Token": auth_token})
        self.store = store
        self.language_id = language_id
        self.poll_interval = poll_interval
        self.escalate_after = escalate_after
        self.escalated_interval = escalated_interval
        self.max_attempts = max_attempts
        self.request_timeout = request_timeout
        self.sleep = sleep

    def available(self) -> bool:
        try:
            resp = self.session.get(f"{self.base_url}/about",
                                    timeout=self.request_timeout)
        except requests.RequestException as e:
            logger().warning(f"judge service unavailable: {e}")
            return False
        return resp.status_code == 200

    def run_tests(self, code: str, challenge: Challenge) -> List[TestResult]:
        limits = resolve_limits(challenge.timeLimit, challenge.memoryLimit)
        results = []
        for case in challenge.testCases:
            result, compile_failed = self._judge_case(code, challenge, case,
                                                      limits)
            if compile_failed:
                return [result]
            results.append(result)
        return results

    def _judge_case(self, code, challenge, case,
                    limits) -> Tuple[TestResult, bool]:
        try:
            token = self.submit(code, case.input, limits, challenge.id)
            response = self.wait_for_result(token)
        except ServiceTimeoutError as e:
            logger().warning(
                f"judge service timeout [challenge={challenge.id}, case={case.id}]: {e}"
            )
            return make_service_timeout(case.id, str(e)), False
        except RemoteJudgeError as e:
            logger().error(
                f"judge service error [challenge={challenge.id}, case={case.id}]: {e}"
            )
            return make_system_error(case.id,
                                     "judge service rejected the request"), False
        return map_response(case, response)

    def submit(self, code: str, stdin: str, limits: ResourceLimits,
               challenge_id: str = "") -> str:
        payload = {
            "source_code": code,
            "language_id": self.language_id,
            "stdin": stdin,
            "cpu_time_limit": limits.time_limit,
            "memory_limit": limits.memory_kb,
            "enable_network": False,
            "max_processes_and_or_threads": config.PIDS_LIMIT,
        }
        try:
            resp = self.session.post(
                f"{self.base_url}/submissions",
                params={
                    "base64_encoded": "false",
                    "wait": "false",
                },
                json=payload,
                timeout=self.request_timeout,
            )
        except requests.RequestException as e:
            raise ServiceTimeoutError("judge service unreachable") from e
        if resp.status_code != 201:
            raise RemoteJudgeError(
                f"unexpected status {resp.status_code}: {resp.text[:200]}")
        try:
            token = resp.json().get("token", "")
        except ValueError as e:
            raise RemoteJudgeError("invalid submission response") from e
        if not token:
            raise RemoteJudgeError("empty token in submission response")
        self._persist_create(
            SubmissionRecord(
                id=str(uuid.uuid4()),
                token=token,
                challengeId=challenge_id,
                code=code,
                statusCode=JudgeStatus.IN_QUEUE,
                statusDesc="In Queue",
            ))
        return token

    def fetch_status(self, token: str) -> JudgeSubmission:
        try:
            resp = self.session.get(
                f"{self.base_url}/submissions/{token}",
                params={
                    "base64_encoded": "true",
                    "fields": "*",
                },
                timeout=self.request_timeout,
            )
        except requests.RequestException as e:
            raise ServiceTimeoutError("judge service unreachable") from e
        if resp.status_code != 200:
            raise RemoteJudgeError(f"unexpected status {resp.status_code}")
        try:
            return JudgeSubmission.model_validate(_decode_fields(resp.json()))
        except (TypeError, ValueError, ValidationError) as e:
            raise RemoteJudgeError("invalid status response") from e

    def poll_delay(self, attempt: int) -> float:
        if attempt < self.escalate_after:
            return self.poll_interval
        return self.escalated_interval

    def wait_for_result(self, token: str) -> JudgeSubmission:
        for attempt in range(self.max_attempts):
            response = self.fetch_status(token)
            if JudgeStatus.is_terminal(response.status.id):
                self._persist_update(token, response)
                return response
            if attempt < self.max_attempts - 1:
                self.sleep(self.poll_delay(attempt))
        raise ServiceTimeoutError(
            f"no verdict after {self.max_attempts} polls")

    def _persist_create(self, record: SubmissionRecord):
        if self.store is None:
            return
        try:
            self.store.create(record)
        except Exception as e:
            logger().warning(f"failed to store submission [token={record.token}]: {e}")

    def _persist_update(self, token: str, response: JudgeSubmission):
        if self.store is None:
            return
        try:
            self.store.update_by_token(
                token, {
                    "stdout": response.text("stdout"),
                    "stderr": response.text("stderr"),
                    "compileOutput": response.text("compile_output"),
                    "message": response.text("message"),
                    "statusCode": response.status.id,
                    "statusDesc": response.status.description,
                    "memory": response.memory or 0,
                    "time": response.seconds,
                })
        except Exception as e:
            logger().warning(f"failed to update submission [token={token}]: {e}")


def map_response(case: TestCase,
                 response: JudgeSubmission) -> Tuple[TestResult, bool]:
    """
    Map a terminal judge response onto a TestResult.

    Returns the result and whether it is a compilation failure, in which
    case it stands for the whole submission.
    """
    status = response.status.id
    stdout = response.text("stdout")
    seconds = response.seconds
    memory = response.memory or 0
    if status in (JudgeStatus.ACCEPTED, JudgeStatus.WRONG_ANSWER):
        # the service never saw the expected output; compare locally
        return make_comparison_result(case.id, stdout, case.expectedOutput,
                                      seconds, memory), False
    if status == JudgeStatus.TIME_LIMIT_EXCEEDED:
        return make_time_limit_exceeded(case.id, stdout, seconds), False
    if status == JudgeStatus.COMPILATION_ERROR:
        return make_compile_failure(response.text("compile_output")), True
    if status in _RUNTIME_FAULTS:
        detail = response.text("message") or response.status.description
        message = runtime_error_message(_RUNTIME_FAULTS[status], detail)
        return make_runtime_error(case.id, message, stdout, seconds,
                                  memory), False
    logger().error(f"judge service failure [case={case.id}, status={status}, "
                   f"desc={response.status.description}, "
                   f"stderr={normalize_output(response.text('stderr'))!r}]")
    return make_system_error(case.id,
                             "judge service could not run the program"), False
