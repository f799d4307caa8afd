import json
import os
from pathlib import Path

CHALLENGES_DIR = Path(os.getenv(
    'CHALLENGES_DIR',
    'challenges',
))
# auto | container | remote | local
RUNNER_BACKEND = os.getenv('RUNNER_BACKEND', 'auto')

# ============================================================
# Container backend
# ============================================================
DOCKER_URL = os.getenv('DOCKER_URL', 'unix://var/run/docker.sock')
RUNNER_IMAGE = os.getenv('RUNNER_IMAGE', 'gcc:13')
WORKSPACE_DIR = Path(os.getenv(
    'WORKSPACE_DIR',
    'workspaces',
))
# uid:gid the compiled program runs as inside the sandbox
SANDBOX_USER = os.getenv('SANDBOX_USER', '1450:1450')
SANDBOX_LABEL = os.getenv('SANDBOX_LABEL', 'c-judge.sandbox')
SECCOMP_PROFILE = os.getenv('SECCOMP_PROFILE', '')
COMPILE_TIMEOUT = int(os.getenv('COMPILE_TIMEOUT', '20'))
COMPILE_MEMORY_LIMIT = int(os.getenv('COMPILE_MEMORY_LIMIT', '512'))
CPU_PERIOD = int(os.getenv('CPU_PERIOD', '100000'))
CPU_QUOTA = int(os.getenv('CPU_QUOTA', '50000'))
PIDS_LIMIT = int(os.getenv('PIDS_LIMIT', '64'))
MAX_PARALLEL_TESTS = int(os.getenv('MAX_PARALLEL_TESTS', '1'))

# ============================================================
# Resource limits (seconds / MB)
# ============================================================
DEFAULT_TIME_LIMIT = int(os.getenv('DEFAULT_TIME_LIMIT', '5'))
DEFAULT_MEMORY_LIMIT = int(os.getenv('DEFAULT_MEMORY_LIMIT', '128'))
MAX_TIME_LIMIT = int(os.getenv('MAX_TIME_LIMIT', '15'))
MAX_MEMORY_LIMIT = int(os.getenv('MAX_MEMORY_LIMIT', '512'))
# wall-clock slack on top of the time limit before a sandbox is killed
TIME_GRACE = float(os.getenv('TIME_GRACE', '1.0'))

# ============================================================
# Sandbox cleanup
# ============================================================
CLEANUP_QUEUE_SIZE = int(os.getenv('CLEANUP_QUEUE_SIZE', '100'))
CLEANUP_DELAY = float(os.getenv('CLEANUP_DELAY', '0.5'))
SWEEP_INTERVAL = float(os.getenv('SWEEP_INTERVAL', '300'))
SANDBOX_RETENTION = float(os.getenv('SANDBOX_RETENTION', '1800'))

# ============================================================
# Remote judge service
# ============================================================
JUDGE_API = os.getenv(
    'JUDGE_API',
    'http://172.17.0.1:2358',
)
JUDGE_AUTH_TOKEN = os.getenv('JUDGE_AUTH_TOKEN', '')
C_LANGUAGE_ID = int(os.getenv('C_LANGUAGE_ID', '50'))
POLL_INTERVAL = float(os.getenv('POLL_INTERVAL', '0.5'))
POLL_ESCALATE_AFTER = int(os.getenv('POLL_ESCALATE_AFTER', '10'))
POLL_ESCALATED_INTERVAL = float(os.getenv('POLL_ESCALATED_INTERVAL', '1.0'))
POLL_MAX_ATTEMPTS = int(os.getenv('POLL_MAX_ATTEMPTS', '60'))
HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', '10'))

# ============================================================
# Persistence
# ============================================================
# memory | redis | none
SUBMISSION_STORE = os.getenv('SUBMISSION_STORE', 'memory')
SUBMISSION_TTL = int(os.getenv('SUBMISSION_TTL', str(7 * 24 * 3600)))
REDIS_HOST = os.getenv('REDIS_HOST', 'localhost')
REDIS_PORT = int(os.getenv('REDIS_PORT', '6379'))
REDIS_DB = int(os.getenv('REDIS_DB', '0'))

# drop output and expected/actual diffs of hidden test cases from responses
REDACT_HIDDEN = os.getenv('REDACT_HIDDEN', 'true').lower() == 'true'

_RUNNER_CONFIG_PATH = Path(os.getenv('RUNNER_CONFIG', '.config/runner.json'))


def _load_config(path: Path) -> dict:
    try:
        with path.open() as f:
            return json.load(f)
    except FileNotFoundError:
        return {}
    except json.JSONDecodeError:
        return {}


def get_runner_config(config_path: str | Path | None = None) -> dict:
    path = Path(config_path) if config_path else _RUNNER_CONFIG_PATH
    cfg = _load_config(path) if path else {}
    for key, env in (
        ('working_dir', 'WORKSPACE_DIR'),
        ('sandbox_root', 'SANDBOX_ROOT'),
        ('host_root', 'HOST_ROOT'),
        ('docker_url', 'DOCKER_URL'),
        ('image', 'RUNNER_IMAGE'),
    ):
        value = os.getenv(env)
        if value:
            cfg[key] = value
    cfg.setdefault('working_dir', str(WORKSPACE_DIR))
    cfg.setdefault('docker_url', DOCKER_URL)
    cfg.setdefault('image', RUNNER_IMAGE)
    return cfg
