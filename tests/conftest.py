import pytest

from tests.fakes import make_challenge


@pytest.fixture
def workspace_env(tmp_path, monkeypatch):
    working_dir = tmp_path / 'workspaces'
    monkeypatch.setenv('WORKSPACE_DIR', str(working_dir))
    monkeypatch.delenv('SANDBOX_ROOT', raising=False)
    monkeypatch.delenv('HOST_ROOT', raising=False)
    return working_dir


@pytest.fixture
def sum_challenge():
    return make_challenge([
        {
            'id': 'small',
            'input': '1 2\n',
            'expectedOutput': '3'
        },
        {
            'id': 'negative',
            'input': '-5 3\n',
            'expectedOutput': '-2'
        },
        {
            'id': 'large',
            'input': '1000000 2000000\n',
            'expectedOutput': '3000000',
            'hidden': True
        },
    ])
