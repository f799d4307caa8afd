import json
from pathlib import Path
from typing import Dict

from pydantic import ValidationError

from .models import Challenge
from .utils import logger

SAMPLE_CHALLENGE = {
    'id': 'hello-world',
    'title': 'Hello, World!',
    'difficulty': 'Easy',
    'description': 'Write a C program that prints "Hello, World!" '
    'to standard output.',
    'hints': [
        'Use printf from stdio.h.',
        'Do not forget the newline at the end.',
    ],
    'testCases': [{
        'id': 'test1',
        'input': '',
        'expectedOutput': 'Hello, World!',
        'hidden': False,
    }],
    'initialCode': '#include <stdio.h>\n\nint main() {\n'
    '    // Your code here\n    return 0;\n}\n',
    'solutions': [
        '#include <stdio.h>\n\nint main() {\n'
        '    printf("Hello, World!\\n");\n    return 0;\n}\n',
    ],
    'timeLimit': 1,
    'memoryLimit': 64,
}


def load_challenge(path: Path) -> Challenge:
    data = json.loads(path.read_text(encoding='utf-8'))
    if not isinstance(data, dict):
        raise ValueError('challenge file must hold a JSON object')
    if not data.get('id'):
        data['id'] = path.stem
    return Challenge.model_validate(data)


def load_challenges(directory: Path,
                    create_sample: bool = True) -> Dict[str, Challenge]:
    """
    Load every `*.json` challenge in `directory`.

    Files that cannot be read or validated are logged and skipped. An empty
    catalog is seeded with the hello-world sample and loaded once more.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    challenges = {}
    for path in sorted(directory.glob('*.json')):
        try:
            challenge = load_challenge(path)
        except (OSError, ValueError, ValidationError) as e:
            logger().warning(f'skip invalid challenge [file={path.name}]: {e}')
            continue
        if challenge.id in challenges:
            logger().warning(
                f'duplicated challenge id [id={challenge.id}, file={path.name}]'
            )
            continue
        challenges[challenge.id] = challenge
    if not challenges and create_sample:
        logger().info(f'no challenge found in {directory}, write sample')
        write_sample_challenge(directory)
        return load_challenges(directory, create_sample=False)
    logger().info(f'loaded {len(challenges)} challenge(s)')
    return challenges


def write_sample_challenge(directory: Path) -> Path:
    path = Path(directory) / f'{SAMPLE_CHALLENGE["id"]}.json'
    path.write_text(json.dumps(SAMPLE_CHALLENGE, indent=2), encoding='utf-8')
    return path
