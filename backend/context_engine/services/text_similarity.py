"""
Fuzzy text equality based on normalized Levenshtein distance.

Used to decide whether a received chat message is "the same" as a recorded
template (e.g. the prefilled message of a tracked WhatsApp link) when the
customer may have edited it slightly before sending.
"""

import re

MATCH_THRESHOLD = 0.8

_WHITESPACE = re.compile(r"\s+")
_NON_WORD = re.compile(r"[^\w\s]")


def normalize_message(text: str) -> str:
    """Lowercase, trim, collapse whitespace and strip punctuation."""
    normalized = _WHITESPACE.sub(" ", text.lower().strip())
    return _NON_WORD.sub("", normalized)


def levenshtein_distance(a: str, b: str) -> int:
    """
    Classic dynamic-programming edit distance (insertions, deletions, substitutions).

    O(len(a) * len(b)) time and space; inputs are bounded-length chat messages.
    """
    m, n = len(a), len(b)
    if m == 0:
        return n
    if n == 0:
        return m

    dp = [[0] * (n + 1) for _ in range(m + 1)]
    for i in range(m + 1):
        dp[i][0] = i
    for j in range(n + 1):
        dp[0][j] = j

    for i in range(1, m + 1):
        for j in range(1, n + 1):
            cost = 0 if a[i - 1] == b[j - 1] else 1
            dp[i][j] = min(
                dp[i - 1][j] + 1,  # deletion
                dp[i][j - 1] + 1,  # insertion
                dp[i - 1][j - 1] + cost,  # substitution
            )

    return dp[m][n]


def similarity(a: str, b: str) -> float:
    """
    Similarity ratio in [0, 1]: (L - distance) / L where L is the longer length.

    Two empty strings are considered identical.
    """
    longest = max(len(a), len(b))
    if longest == 0:
        return 1.0
    return (longest - levenshtein_distance(a, b)) / longest


def is_message_match(received: str, template: str | None, threshold: float = MATCH_THRESHOLD) -> bool:
    """
    Whether a received message matches a recorded template.

    Both strings are normalized first. Matches on exact equality, on the
    received message starting with the template, or on similarity >= threshold.
    A missing template, or one with no text left after normalization, never matches.
    """
    if not template:
        return False

    normalized_received = normalize_message(received)
    normalized_template = normalize_message(template)
    if not normalized_template:
        return False

    if normalized_received == normalized_template:
        return True

    if normalized_received.startswith(normalized_template):
        return True

    return similarity(normalized_received, normalized_template) >= threshold
