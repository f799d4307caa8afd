"""Utility for manually judging one C source file.

Loads the challenge catalog, picks a runner backend the same way the web
service does (or the one given with ``--backend``) and prints the full
submission response, including every per-test result.

Example::

    python -m tools.manual_runner \
        --challenge hello-world \
        --source solution.c \
        --backend local

Use ``--list`` to print the ids of all loaded challenges.
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from judge import config
from judge.catalog import load_challenges
from judge.coordinator import SubmissionCoordinator
from judge.exception import ChallengeNotFoundError
from runner.factory import select_runner


def parse_args(argv=None) -> argparse.Namespace:
    """Parse CLI arguments."""

    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument(
        "--challenge",
        help="id of the challenge to judge against",
    )
    parser.add_argument(
        "--source",
        type=Path,
        help="path to the C source file",
    )
    parser.add_argument(
        "--backend",
        default=config.RUNNER_BACKEND,
        choices=("auto", "container", "remote", "local"),
        help="runner backend (default: RUNNER_BACKEND or auto)",
    )
    parser.add_argument(
        "--challenges-dir",
        default=config.CHALLENGES_DIR,
        type=Path,
        help="directory holding challenge JSON files",
    )
    parser.add_argument(
        "--show-hidden",
        action="store_true",
        help="do not redact results of hidden test cases",
    )
    parser.add_argument(
        "--list",
        action="store_true",
        help="list challenge ids and exit",
    )
    return parser.parse_args(argv)


def main(argv=None) -> int:
    """CLI entry point."""

    args = parse_args(argv)
    challenges = load_challenges(args.challenges_dir)
    if args.list:
        for challenge in challenges.values():
            print(f"{challenge.id}\t{challenge.title}")
        return 0
    if not args.challenge or args.source is None:
        print("--challenge and --source are required", file=sys.stderr)
        return 2

    coordinator = SubmissionCoordinator(
        challenges,
        select_runner(args.backend),
        redact_hidden=not args.show_hidden,
    )
    try:
        response = coordinator.submit(args.source.read_text(), args.challenge)
    except ChallengeNotFoundError as e:
        print(str(e), file=sys.stderr)
        return 1
    print(json.dumps(response.model_dump(), indent=2, ensure_ascii=False))
    return 0 if response.success else 1


if __name__ == "__main__":
    sys.exit(main())
