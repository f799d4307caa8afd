from typing import Optional

import docker

from judge import config
from judge.constant import Backend
from judge.lifecycle import SandboxLifecycleManager
from judge.utils import logger
from runner.base import Runner
from runner.container import ContainerRunner
from runner.local import LocalRunner
from runner.path_utils import PathTranslator
from runner.remote_judge import RemoteJudgeRunner
from runner.seccomp_profile import build_profile, load_profile


def create_docker_client(docker_url: str):
    try:
        return docker.APIClient(base_url=docker_url)
    except docker.errors.DockerException as e:
        logger().warning(f"docker client init failed [url={docker_url}]: {e}")
        return None


def load_seccomp(path: str = config.SECCOMP_PROFILE) -> dict:
    if path:
        return load_profile(path)
    return build_profile()


class RunnerFactory:

    @staticmethod
    def get_runner(runner_name: str, store=None) -> Runner:
        backend = Backend(runner_name)
        if backend == Backend.CONTAINER:
            translator = PathTranslator()
            client = create_docker_client(translator.cfg["docker_url"])
            lifecycle = None
            if client is not None:
                lifecycle = SandboxLifecycleManager(client)
            return ContainerRunner(
                client=client,
                lifecycle=lifecycle,
                translator=translator,
                seccomp=load_seccomp(),
            )
        if backend == Backend.REMOTE:
            return RemoteJudgeRunner(store=store)
        if backend == Backend.LOCAL:
            return LocalRunner()
        raise ValueError(f"Unknown runner: {runner_name}")


def select_runner(backend: str = config.RUNNER_BACKEND,
                  store=None) -> Runner:
    """
    Pick the runner backend once at startup.

    A named backend is used as is. `auto` probes container, then remote,
    then local and keeps the first one that reports itself available.
    """
    if backend != Backend.AUTO.value:
        runner = RunnerFactory.get_runner(backend, store=store)
        if not runner.available():
            logger().warning(f"configured runner is not available: {backend}")
        return runner
    fallback: Optional[Runner] = None
    for candidate in (Backend.CONTAINER, Backend.REMOTE, Backend.LOCAL):
        runner = RunnerFactory.get_runner(candidate.value, store=store)
        if runner.available():
            logger().info(f"use {runner.name} runner")
            return runner
        fallback = runner
    logger().warning("no runner backend is available, fall back to local")
    return fallback
