from unittest.mock import patch

import docker
import pytest

from runner import factory
from runner.container import ContainerRunner
from runner.factory import RunnerFactory, create_docker_client, select_runner
from runner.local import LocalRunner
from runner.remote_judge import RemoteJudgeRunner


class DummyRunner:

    def __init__(self, name, ok):
        self.name = name
        self.ok = ok
        self.probed = False

    def available(self):
        self.probed = True
        return self.ok


@pytest.fixture
def fake_backends(monkeypatch):
    backends = {}

    def get_runner(name, store=None):
        return backends[name]

    monkeypatch.setattr(RunnerFactory, 'get_runner', staticmethod(get_runner))
    return backends


def test_auto_prefers_container(fake_backends):
    fake_backends.update({
        'container': DummyRunner('container', True),
        'remote': DummyRunner('remote', True),
        'local': DummyRunner('local', True),
    })
    assert select_runner('auto').name == 'container'
    assert not fake_backends['remote'].probed


def test_auto_falls_through_to_remote(fake_backends):
    fake_backends.update({
        'container': DummyRunner('container', False),
        'remote': DummyRunner('remote', True),
        'local': DummyRunner('local', True),
    })
    assert select_runner('auto').name == 'remote'


def test_auto_uses_local_as_last_resort(fake_backends):
    fake_backends.update({
        'container': DummyRunner('container', False),
        'remote': DummyRunner('remote', False),
        'local': DummyRunner('local', False),
    })
    assert select_runner('auto').name == 'local'


def test_named_backend_is_used_even_if_unavailable(fake_backends, caplog):
    fake_backends['remote'] = DummyRunner('remote', False)
    assert select_runner('remote').name == 'remote'
    assert 'not available' in caplog.text


def test_factory_builds_each_backend(workspace_env):
    with patch('runner.factory.docker.APIClient') as mock_api:
        container = RunnerFactory.get_runner('container')
    assert isinstance(container, ContainerRunner)
    assert container.client is mock_api.return_value
    assert container.lifecycle is not None
    assert isinstance(RunnerFactory.get_runner('remote'), RemoteJudgeRunner)
    assert isinstance(RunnerFactory.get_runner('local'), LocalRunner)
    with pytest.raises(ValueError):
        RunnerFactory.get_runner('quantum')


def test_unreachable_daemon_disables_container_backend(workspace_env):
    with patch('runner.factory.docker.APIClient',
               side_effect=docker.errors.DockerException('no socket')):
        assert create_docker_client('unix://nowhere.sock') is None
        runner = RunnerFactory.get_runner('container')
    assert runner.available() is False


def test_seccomp_override_file(tmp_path, monkeypatch):
    policy = tmp_path / 'policy.json'
    policy.write_text('{"allow": ["ptrace"]}')
    profile = factory.load_seccomp(str(policy))
    assert 'ptrace' in profile['syscalls'][0]['names']
