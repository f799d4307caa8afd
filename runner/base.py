from abc import ABC, abstractmethod
from typing import List

from judge.models import Challenge, TestResult


class Runner(ABC):
    """
    One way of compiling and running a C submission against a challenge.

    `run_tests` must return one result per test case in challenge order, or a
    single "setup"/"compile" result when the submission never got that far.
    Infrastructure failures are reported as failing results, never raised.
    """

    name = "runner"

    @abstractmethod
    def run_tests(self, code: str, challenge: Challenge) -> List[TestResult]:
        ...

    @abstractmethod
    def available(self) -> bool:
        ...
