from __future__ import annotations

from pathlib import Path
from judge import config as judge_config


class PathTranslator:
    """
    Translate workspace paths between the judge's view and the docker host's
    view, so bind mounts still resolve when the judge itself runs in a
    container that shares a volume with the host.
    """

    def __init__(self, config_path: str | Path | None = None):
        self.cfg = judge_config.get_runner_config(config_path)
        self.working_dir = Path(self.cfg["working_dir"]).expanduser().resolve()
        self.sandbox_root = (Path(
            self.cfg.get("sandbox_root",
                         self.working_dir.parent)).expanduser().resolve())
        self.host_root = (Path(self.cfg.get(
            "host_root", self.sandbox_root)).expanduser().resolve())

    def to_host(self, path: str | Path) -> Path:
        p = Path(path).expanduser()
        if not p.is_absolute():
            p = (self.sandbox_root / p).resolve()
        try:
            rel = p.relative_to(self.sandbox_root)
            return (self.host_root / rel).resolve()
        except ValueError:
            return p.resolve()

    def workspace(self, submission_id: str) -> Path:
        return self.working_dir / submission_id
