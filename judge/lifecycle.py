import queue
import threading
import time

import docker

from . import config
from .utils import logger

__all__ = ('SandboxLifecycleManager', )


def _is_already_gone(err: docker.errors.APIError) -> bool:
    if isinstance(err, docker.errors.NotFound):
        return True
    explanation = str(getattr(err, 'explanation', '') or err).lower()
    return ('no such container' in explanation
            or 'already in progress' in explanation)


class SandboxLifecycleManager(threading.Thread):
    """
    Remove finished sandboxes in the background.

    Runners hand over every container they create. Removal happens after a
    short delay from a bounded queue; a periodic sweep force-removes anything
    older than the retention window, which also covers ids dropped from a
    full queue and containers left behind by a previous process.
    """

    def __init__(
        self,
        client,
        queue_size: int = config.CLEANUP_QUEUE_SIZE,
        removal_delay: float = config.CLEANUP_DELAY,
        sweep_interval: float = config.SWEEP_INTERVAL,
        retention: float = config.SANDBOX_RETENTION,
        label: str = config.SANDBOX_LABEL,
        clock=time.time,
        sleep=time.sleep,
    ):
        super().__init__(daemon=True)
        self.client = client
        self.queue = queue.Queue(queue_size)
        self.removal_delay = removal_delay
        self.sweep_interval = sweep_interval
        self.retention = retention
        self.label = label
        self.clock = clock
        self.sleep = sleep
        # container id -> created at
        self.tracked = {}
        self.tracked_lock = threading.Lock()
        self.do_run = True
        self.next_sweep = self.clock() + self.sweep_interval

    def track(self, container_id: str):
        with self.tracked_lock:
            self.tracked.setdefault(container_id, self.clock())

    def untrack(self, container_id: str):
        with self.tracked_lock:
            self.tracked.pop(container_id, None)

    def tracked_count(self) -> int:
        with self.tracked_lock:
            return len(self.tracked)

    def pending(self) -> int:
        return self.queue.qsize()

    def schedule_removal(self, container_id: str) -> bool:
        self.track(container_id)
        try:
            self.queue.put_nowait(container_id)
        except queue.Full:
            logger().warning(
                f'cleanup queue is full, leave container to sweep [id={container_id}]'
            )
            return False
        return True

    def remove(self, container_id: str) -> bool:
        try:
            self.client.remove_container(container_id, v=True, force=True)
        except docker.errors.APIError as e:
            if not _is_already_gone(e):
                logger().warning(
                    f'failed to remove container [id={container_id}]: {e}')
                return False
        self.untrack(container_id)
        return True

    def process_one(self, timeout: float | None = None) -> bool:
        try:
            container_id = self.queue.get(timeout=timeout)
        except queue.Empty:
            return False
        try:
            # let the daemon finish tearing down the exited container
            self.sleep(self.removal_delay)
            self.remove(container_id)
        finally:
            self.queue.task_done()
        return True

    def _labelled_containers(self):
        try:
            return self.client.containers(all=True,
                                          filters={'label': self.label})
        except docker.errors.APIError as e:
            logger().warning(f'failed to list sandbox containers: {e}')
            return []

    def sweep(self) -> int:
        now = self.clock()
        cutoff = now - self.retention
        with self.tracked_lock:
            stale = {
                cid
                for cid, created_at in self.tracked.items()
                if created_at <= cutoff
            }
        for container in self._labelled_containers():
            if container.get('Created', now) <= cutoff:
                stale.add(container['Id'])
        removed = sum(1 for cid in stale if self.remove(cid))
        if stale:
            logger().info(
                f'sweep removed {removed}/{len(stale)} stale container(s)')
        self.next_sweep = now + self.sweep_interval
        return removed

    def run(self):
        self.do_run = True
        logger().debug('start sandbox cleanup loop')
        while self.do_run:
            self.process_one(timeout=1.0)
            if self.clock() >= self.next_sweep:
                self.sweep()
        logger().debug('exit sandbox cleanup loop')

    def stop(self):
        self.do_run = False
