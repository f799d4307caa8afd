import pytest

from judge.coordinator import SubmissionCoordinator
from judge.exception import ChallengeNotFoundError
from judge.result_factory import make_comparison_result, make_compile_failure
from judge.store import MemorySubmissionStore


class DummyRunner:
    name = 'dummy'

    def __init__(self, results=None):
        self.results = results or []
        self.calls = []

    def run_tests(self, code, challenge):
        self.calls.append((code, challenge.id))
        return list(self.results)

    def available(self):
        return True


def test_unknown_challenge_never_reaches_runner(sum_challenge):
    runner = DummyRunner()
    coordinator = SubmissionCoordinator({'sum': sum_challenge}, runner)

    with pytest.raises(ChallengeNotFoundError):
        coordinator.submit('int main() {}', 'missing')
    assert runner.calls == []


def test_all_passed_is_success(sum_challenge):
    runner = DummyRunner([
        make_comparison_result('small', '3', '3'),
        make_comparison_result('negative', '-2', '-2'),
        make_comparison_result('large', '3000000', '3000000'),
    ])
    coordinator = SubmissionCoordinator({'sum': sum_challenge}, runner)

    response = coordinator.submit('int main() {}', 'sum')

    assert response.success is True
    assert response.message == 'Submission processed'
    assert len(response.testResults) == 3
    assert runner.calls == [('int main() {}', 'sum')]


def test_one_failure_is_not_success(sum_challenge):
    runner = DummyRunner([
        make_comparison_result('small', '3', '3'),
        make_comparison_result('negative', '2', '-2'),
    ])
    coordinator = SubmissionCoordinator({'sum': sum_challenge}, runner)

    response = coordinator.submit('int main() {}', 'sum')

    assert response.success is False
    assert response.message == 'Submission processed'


def test_empty_results_are_not_success(sum_challenge):
    coordinator = SubmissionCoordinator({'sum': sum_challenge},
                                        DummyRunner([]))
    response = coordinator.submit('int main() {}', 'sum')
    assert response.success is False
    assert response.testResults == []


def test_compile_failure_response(sum_challenge):
    runner = DummyRunner([make_compile_failure('error: expected ;')])
    coordinator = SubmissionCoordinator({'sum': sum_challenge}, runner)

    response = coordinator.submit('int main() {', 'sum')

    assert response.success is False
    assert [r.testCaseId for r in response.testResults] == ['compile']


def test_hidden_case_results_are_redacted(sum_challenge):
    runner = DummyRunner([
        make_comparison_result('small', '4', '3'),
        make_comparison_result('large', '42', '3000000'),
    ])
    coordinator = SubmissionCoordinator({'sum': sum_challenge},
                                        runner,
                                        redact_hidden=True)

    small, large = coordinator.submit('int main() {}', 'sum').testResults

    assert small.error == "Expected '3' but got '4'"
    assert small.output == '4'
    assert large.error == 'Wrong answer'
    assert large.output == ''


def test_hidden_case_results_kept_when_redaction_is_off(sum_challenge):
    runner = DummyRunner([make_comparison_result('large', '42', '3000000')])
    coordinator = SubmissionCoordinator({'sum': sum_challenge},
                                        runner,
                                        redact_hidden=False)

    (large, ) = coordinator.submit('int main() {}', 'sum').testResults

    assert large.output == '42'


def test_summary_is_persisted(sum_challenge):
    store = MemorySubmissionStore()
    runner = DummyRunner([make_comparison_result('small', '4', '3', 0.2)])
    coordinator = SubmissionCoordinator({'sum': sum_challenge},
                                        runner,
                                        store=store)

    coordinator.submit('int main() {}', 'sum')

    (record, ) = store.records.values()
    assert record.challengeId == 'sum'
    assert record.statusDesc == 'Rejected'
    assert record.message == "Expected '3' but got '4'"
    assert record.time == 0.2


def test_store_failure_is_not_fatal(sum_challenge):

    class BrokenStore:

        def create(self, record):
            raise RuntimeError('disk full')

    runner = DummyRunner([make_comparison_result('small', '3', '3')])
    coordinator = SubmissionCoordinator({'sum': sum_challenge},
                                        runner,
                                        store=BrokenStore())

    assert coordinator.submit('int main() {}', 'sum').success
