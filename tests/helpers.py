import re

_QUESTION = re.compile(r"How much is (\d+) ([+-]) (\d+)\?")


def solve(question: str) -> str:
    """Answer a challenge question the way a human would."""
    match = _QUESTION.fullmatch(question)
    assert match, f"unexpected question format: {question}"
    left, op, right = int(match.group(1)), match.group(2), int(match.group(3))
    return str(left + right if op == "+" else left - right)
