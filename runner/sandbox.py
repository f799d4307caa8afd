import time
from dataclasses import dataclass, field
from typing import List, Optional

import docker
import requests

from judge import config
from judge.exception import SandboxError
from judge.utils import logger
from runner.seccomp_profile import security_opt
from runner.stream import demultiplex

WORKDIR = "/workspace"


@dataclass
class SandboxResult:
    exit_code: int
    stdout: bytes = b""
    stderr: bytes = b""
    duration: float = 0.0  # sec.
    timed_out: bool = False
    oom_killed: bool = False


@dataclass
class SandboxProfile:
    memory_limit: int  # MB
    cpu_period: int = config.CPU_PERIOD
    cpu_quota: int = config.CPU_QUOTA
    pids_limit: int = config.PIDS_LIMIT
    user: str = config.SANDBOX_USER
    seccomp: Optional[dict] = None
    tmpfs_size: str = "64m"
    cap_drop: List[str] = field(default_factory=lambda: ["ALL"])

    def host_config(self, client, binds: dict) -> dict:
        mem = f"{self.memory_limit}m"
        return client.create_host_config(
            binds=binds,
            network_mode="none",
            mem_limit=mem,
            # same value as mem_limit: no swap
            memswap_limit=mem,
            cpu_period=self.cpu_period,
            cpu_quota=self.cpu_quota,
            pids_limit=self.pids_limit,
            read_only=True,
            cap_drop=self.cap_drop,
            security_opt=security_opt(self.seccomp),
            tmpfs={"/tmp": f"rw,noexec,nosuid,size={self.tmpfs_size}"},
        )


def read_logs(client, container_id: str):
    """
    Fetch the raw multiplexed log stream of an exited container and split it.

    This goes through the private request helpers of `docker.APIClient`
    (`_get`, `_url`, `_raise_for_status`) so both streams come back in one
    request and are split by `demultiplex`. The public
    `client.logs(stdout=..., stderr=...)` would need one call per stream.
    """
    res = client._get(
        client._url("/containers/{0}/logs", container_id),
        params={
            "stdout": 1,
            "stderr": 1,
        },
    )
    client._raise_for_status(res)
    return demultiplex(res.content)


class Sandbox:
    """
    Run one command in a fresh, locked-down container and collect its result.

    Every created container is handed to the lifecycle manager (or removed
    inline when there is none), whether or not the run succeeded.
    """

    def __init__(
        self,
        client,
        image: str,
        lifecycle=None,
        label: str = config.SANDBOX_LABEL,
        clock=time.monotonic,
    ):
        self.client = client
        self.image = image
        self.lifecycle = lifecycle
        self.label = label
        self.clock = clock

    def run(
        self,
        name: str,
        command: List[str],
        profile: SandboxProfile,
        binds: dict,
        timeout: float,
    ) -> SandboxResult:
        try:
            container = self.client.create_container(
                image=self.image,
                command=command,
                name=name,
                working_dir=WORKDIR,
                user=profile.user,
                network_disabled=True,
                labels={self.label: name},
                host_config=profile.host_config(self.client, binds),
            )
        except (docker.errors.DockerException,
                requests.exceptions.RequestException) as e:
            logger().error(f"create container failed [name={name}]: {e}")
            raise SandboxError("could not create sandbox") from e
        container_id = container["Id"]
        if self.lifecycle is not None:
            self.lifecycle.track(container_id)
        try:
            return self._execute(name, container_id, timeout)
        finally:
            self._release(container_id)

    def _execute(self, name, container_id, timeout) -> SandboxResult:
        try:
            self.client.start(container_id)
        except (docker.errors.APIError,
                requests.exceptions.RequestException) as e:
            logger().error(f"start container failed [name={name}]: {e}")
            raise SandboxError("could not start sandbox") from e
        started = self.clock()
        timed_out = False
        exit_code = -1
        try:
            status = self.client.wait(container_id, timeout=timeout)
            exit_code = status.get("StatusCode", -1)
        except (requests.exceptions.ReadTimeout,
                requests.exceptions.ConnectionError):
            timed_out = True
            self._kill(name, container_id)
        except docker.errors.APIError as e:
            logger().error(f"wait container failed [name={name}]: {e}")
            raise SandboxError("could not wait for sandbox") from e
        duration = self.clock() - started
        oom_killed = not timed_out and self._oom_killed(container_id)
        try:
            stdout, stderr = read_logs(self.client, container_id)
        except (docker.errors.APIError,
                requests.exceptions.RequestException) as e:
            logger().error(f"read logs failed [name={name}]: {e}")
            raise SandboxError("failed to read program output") from e
        return SandboxResult(
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
            duration=duration,
            timed_out=timed_out,
            oom_killed=oom_killed,
        )

    def _kill(self, name, container_id):
        logger().info(f"deadline reached, kill container [name={name}]")
        try:
            self.client.kill(container_id)
        except (docker.errors.APIError,
                requests.exceptions.RequestException) as e:
            logger().warning(f"kill container failed [name={name}]: {e}")

    def _oom_killed(self, container_id) -> bool:
        try:
            state = self.client.inspect_container(container_id).get("State", {})
        except (docker.errors.APIError,
                requests.exceptions.RequestException):
            return False
        return bool(state.get("OOMKilled", False))

    def _release(self, container_id):
        if self.lifecycle is not None:
            self.lifecycle.schedule_removal(container_id)
            return
        try:
            self.client.remove_container(container_id, v=True, force=True)
        except (docker.errors.APIError,
                requests.exceptions.RequestException) as e:
            logger().warning(f"remove container failed [id={container_id}]: {e}")
