import uuid
from typing import Dict, Optional

from . import config
from .constant import SUBMISSION_MESSAGE
from .exception import ChallengeNotFoundError
from .models import Challenge, SubmissionRecord, SubmissionResponse
from .result_factory import redact_result
from .store import SubmissionStore
from .utils import logger

__all__ = ('SubmissionCoordinator', )


class SubmissionCoordinator:
    """
    Entry point for judging one submission.

    Looks the challenge up, hands the code to whichever runner backend was
    selected at startup and folds the per-test results into a response.
    """

    def __init__(
        self,
        challenges: Dict[str, Challenge],
        runner,
        store: Optional[SubmissionStore] = None,
        redact_hidden: bool = config.REDACT_HIDDEN,
    ):
        self.challenges = challenges
        self.runner = runner
        self.store = store
        self.redact_hidden = redact_hidden

    def get_challenge(self, challenge_id: str) -> Challenge:
        challenge = self.challenges.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFoundError(challenge_id)
        return challenge

    def submit(self, code: str, challenge_id: str) -> SubmissionResponse:
        challenge = self.get_challenge(challenge_id)
        logger().info(f'judge submission [challenge={challenge_id}, '
                      f'runner={getattr(self.runner, "name", "?")}]')
        results = self.runner.run_tests(code, challenge)
        success = bool(results) and all(r.passed for r in results)
        if self.redact_hidden:
            hidden = {c.id for c in challenge.testCases if c.hidden}
            results = [
                redact_result(r) if r.testCaseId in hidden else r
                for r in results
            ]
        self._record(code, challenge_id, results, success)
        return SubmissionResponse(
            success=success,
            message=SUBMISSION_MESSAGE,
            testResults=results,
        )

    def _record(self, code, challenge_id, results, success):
        if self.store is None:
            return
        failed = next((r for r in results if not r.passed), None)
        record = SubmissionRecord(
            id=str(uuid.uuid4()),
            challengeId=challenge_id,
            code=code,
            message=failed.error if failed else '',
            statusDesc='Accepted' if success else 'Rejected',
            time=max((r.executionTime for r in results), default=0.0),
            memory=max((r.memory for r in results), default=0),
        )
        try:
            self.store.create(record)
        except Exception as e:
            logger().warning(
                f'failed to persist submission [challenge={challenge_id}]: {e}'
            )
