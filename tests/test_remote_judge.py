import base64

import pytest
import requests

from judge.exception import ServiceTimeoutError
from judge.store import MemorySubmissionStore
from runner.limits import ResourceLimits
from runner.remote_judge import RemoteJudgeRunner
from tests.fakes import make_challenge


def b64(text: str) -> str:
    return base64.b64encode(text.encode()).decode()


class DummyResponse:

    def __init__(self, status_code=200, payload=None):
        self.status_code = status_code
        self._payload = payload or {}
        self.text = str(self._payload)

    def json(self):
        return self._payload


class DummySession:
    """Replays one status sequence per submitted token."""

    def __init__(self, statuses_per_case, submit_status=201):
        self.statuses_per_case = list(statuses_per_case)
        self.submit_status = submit_status
        self.headers = {}
        self.posts = []
        self.gets = []
        self._pending = {}

    def post(self, url, params=None, json=None, timeout=None):
        self.posts.append((url, params, json))
        token = f'token-{len(self.posts)}'
        if self.statuses_per_case:
            self._pending[token] = list(self.statuses_per_case.pop(0))
        return DummyResponse(self.submit_status, {'token': token})

    def get(self, url, params=None, timeout=None):
        self.gets.append((url, params))
        if url.endswith('/about'):
            return DummyResponse(200, {'version': '1.13.1'})
        token = url.rsplit('/', 1)[-1]
        statuses = self._pending[token]
        payload = statuses.pop(0) if len(statuses) > 1 else statuses[0]
        return DummyResponse(200, payload)


def status(status_id, description='', **fields):
    payload = {'status': {'id': status_id, 'description': description}}
    for key in ('stdout', 'stderr', 'compile_output', 'message'):
        if key in fields:
            payload[key] = b64(fields.pop(key))
    payload.update(fields)
    return payload


QUEUED = status(1, 'In Queue')
PROCESSING = status(2, 'Processing')


class Sleeper:

    def __init__(self):
        self.calls = []

    def __call__(self, seconds):
        self.calls.append(seconds)


@pytest.fixture
def sleeper():
    return Sleeper()


def make_runner(session, sleeper, **kwargs):
    return RemoteJudgeRunner(
        base_url='http://judge:2358',
        session=session,
        sleep=sleeper,
        **kwargs,
    )


def test_polls_until_terminal(sleeper):
    challenge = make_challenge([{
        'id': 'small',
        'input': '1 2\n',
        'expectedOutput': '3'
    }])
    session = DummySession([[
        QUEUED, QUEUED, PROCESSING, PROCESSING, PROCESSING,
        status(3, 'Accepted', stdout='3\n', time='0.002', memory=812)
    ]])
    runner = make_runner(session, sleeper)

    results = runner.run_tests('int main() {}', challenge)

    assert len(sleeper.calls) == 5
    assert sleeper.calls == [0.5] * 5
    assert len(results) == 1
    assert results[0].passed
    assert results[0].executionTime == pytest.approx(0.002)
    assert results[0].memory == 812


def test_submit_payload(sleeper):
    challenge = make_challenge([{
        'id': 'small',
        'input': '1 2\n',
        'expectedOutput': '3'
    }],
                               time_limit=2,
                               memory_limit=64)
    session = DummySession([[status(3, stdout='3')]])
    runner = make_runner(session, sleeper)

    runner.run_tests('int main() {}', challenge)

    url, params, payload = session.posts[0]
    assert url == 'http://judge:2358/submissions'
    assert params['base64_encoded'] == 'false'
    assert payload['language_id'] == 50
    assert payload['stdin'] == '1 2\n'
    assert payload['cpu_time_limit'] == 2
    assert payload['memory_limit'] == 64 * 1024
    assert payload['enable_network'] is False
    get_url, get_params = session.gets[0]
    assert get_url == 'http://judge:2358/submissions/token-1'
    assert get_params['base64_encoded'] == 'true'


def test_poll_interval_escalates(sleeper):
    runner = make_runner(DummySession([]), sleeper)
    assert [runner.poll_delay(i) for i in (0, 9, 10, 30)
            ] == [0.5, 0.5, 1.0, 1.0]


def test_poll_ceiling_raises_service_timeout(sleeper):
    session = DummySession([[QUEUED]])
    runner = make_runner(session, sleeper, max_attempts=4)
    token = runner.submit('int main() {}', '', ResourceLimits(1, 64))

    with pytest.raises(ServiceTimeoutError):
        runner.wait_for_result(token)
    assert len(session.gets) == 4
    # no sleep after the last poll
    assert len(sleeper.calls) == 3


def test_poll_ceiling_becomes_failing_result(sleeper):
    challenge = make_challenge([{'id': 'a', 'expectedOutput': 'x'}])
    runner = make_runner(DummySession([[PROCESSING]]), sleeper,
                         max_attempts=3)

    results = runner.run_tests('int main() {}', challenge)

    assert results[0].error.startswith('Service timeout: ')
    assert not results[0].passed


def test_compile_error_returns_single_result(sleeper, sum_challenge):
    session = DummySession([[
        status(6,
               'Compilation Error',
               compile_output="main.c:1:1: error: unknown type name 'in'")
    ]] * 3)
    runner = make_runner(session, sleeper)

    results = runner.run_tests('in main() {}', sum_challenge)

    assert len(results) == 1
    assert results[0].testCaseId == 'compile'
    assert results[0].error == (
        "Compilation error: main.c:1:1: error: unknown type name 'in'")
    assert len(session.posts) == 1


@pytest.mark.parametrize(
    'payload, error',
    [
        (status(4, 'Wrong Answer', stdout='4'), "Expected '3' but got '4'"),
        (status(5, 'Time Limit Exceeded'), 'Time limit exceeded'),
        (status(7, 'Runtime Error (SIGSEGV)'),
         'Runtime error: segmentation fault (Runtime Error (SIGSEGV))'),
        (status(9, 'Runtime Error (SIGFPE)', message='Floating point'),
         'Runtime error: floating point exception (Floating point)'),
        (status(11, 'Runtime Error (NZEC)',
                message='Exited with error status 1'),
         'Runtime error: non-zero exit status (Exited with error status 1)'),
        (status(13, 'Internal Error'),
         'System error: judge service could not run the program'),
        (status(14, 'Exec Format Error'),
         'System error: judge service could not run the program'),
    ],
)
def test_status_mapping(sleeper, payload, error):
    challenge = make_challenge([{
        'id': 'a',
        'input': '1 2',
        'expectedOutput': '3'
    }])
    runner = make_runner(DummySession([[payload]]), sleeper)

    result = runner.run_tests('int main() {}', challenge)[0]

    assert not result.passed
    assert result.error == error


def test_runtime_error_keeps_partial_output(sleeper):
    challenge = make_challenge([{'id': 'a', 'expectedOutput': 'x'}])
    runner = make_runner(
        DummySession([[status(10, 'Runtime Error (SIGABRT)', stdout='half\n')]
                      ]), sleeper)

    result = runner.run_tests('int main() {}', challenge)[0]

    assert result.output == 'half'
    assert result.error.startswith('Runtime error: aborted')


def test_rejected_submission_is_system_error(sleeper):
    challenge = make_challenge([{'id': 'a', 'expectedOutput': 'x'}])
    runner = make_runner(DummySession([[QUEUED]], submit_status=422), sleeper)

    result = runner.run_tests('int main() {}', challenge)[0]

    assert result.error == 'System error: judge service rejected the request'


def test_unreachable_service_is_service_timeout(sleeper):
    challenge = make_challenge([{'id': 'a', 'expectedOutput': 'x'}])
    session = DummySession([])

    def refuse(*args, **kwargs):
        raise requests.exceptions.ConnectionError('refused')

    session.post = refuse
    runner = make_runner(session, sleeper)

    result = runner.run_tests('int main() {}', challenge)[0]

    assert result.error == 'Service timeout: judge service unreachable'


def test_store_is_updated_on_terminal_poll(sleeper):
    challenge = make_challenge([{
        'id': 'a',
        'input': '1 2',
        'expectedOutput': '3'
    }],
                               id='sum')
    store = MemorySubmissionStore()
    session = DummySession(
        [[QUEUED, status(3, 'Accepted', stdout='3\n', time='0.01')]])
    runner = make_runner(session, sleeper, store=store)

    runner.run_tests('int main() {}', challenge)

    record = store.get_by_token('token-1')
    assert record.challengeId == 'sum'
    assert record.statusCode == 3
    assert record.statusDesc == 'Accepted'
    assert record.stdout == '3'
    assert record.time == pytest.approx(0.01)


def test_store_failure_does_not_fail_judging(sleeper):

    class BrokenStore:

        def create(self, record):
            raise ConnectionError('redis down')

        def update_by_token(self, token, fields):
            raise ConnectionError('redis down')

    challenge = make_challenge([{'id': 'a', 'expectedOutput': '3'}])
    runner = make_runner(DummySession([[status(3, stdout='3')]]),
                         sleeper,
                         store=BrokenStore())

    assert runner.run_tests('int main() {}', challenge)[0].passed


def test_available_probes_about(sleeper):
    session = DummySession([])
    assert make_runner(session, sleeper).available()
    assert session.gets[0][0] == 'http://judge:2358/about'
