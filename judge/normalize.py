"""
Output normalization shared by every runner backend.

Comparison between a program's output and the expected output is always
done on normalized text, so that line endings, terminal noise emitted
before the first visible character and surrounding whitespace never decide
a verdict.
"""

import re

# leading run of anything that is not a visible ASCII character
_LEADING_NOISE = re.compile(r'[^\x21-\x7e]*')


def _unify_newlines(text: str) -> str:
    return text.replace('\r\n', '\n').replace('\r', '\n')


def normalize_output(text: str) -> str:
    """
    Normalize program or expected output for comparison.

    Converts CRLF and lone CR to LF, drops the leading run of non-printable
    characters up to the first printable one, then trims surrounding
    whitespace. Applying it twice gives the same result as applying it once.
    """
    text = _unify_newlines(text)
    noise = _LEADING_NOISE.match(text).end()
    if noise < len(text):
        text = text[noise:]
    return text.strip()


def normalize_source(code: str) -> str:
    return _unify_newlines(code)


def decode_output(data: bytes) -> str:
    return data.decode('utf-8', 'ignore')


def outputs_match(actual: str, expected: str) -> bool:
    return normalize_output(actual) == normalize_output(expected)


def format_for_display(text: str) -> str:
    return text.replace('\n', '\\n')
