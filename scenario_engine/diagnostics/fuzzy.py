"""Fuzzy string matching for name and step suggestions."""

DEFAULT_SUGGESTION_THRESHOLD = 0.3


def levenshtein_distance(a: str, b: str) -> int:
    """Edit distance with unit insert, delete and substitute costs."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    previous = list(range(len(b) + 1))
    for i, char_a in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, char_b in enumerate(b, start=1):
            cost = 0 if char_a == char_b else 1
            current[j] = min(previous[j] + 1, current[j - 1] + 1, previous[j - 1] + cost)
        previous = current
    return previous[-1]


def normalized_similarity(a: str, b: str) -> float:
    """1 - distance / max length, for already normalized strings."""
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    return 1 - levenshtein_distance(a, b) / max(len(a), len(b))


def string_similarity(a: str, b: str) -> float:
    """Case-insensitive similarity in [0, 1]; 0 if either side is blank."""
    return normalized_similarity(a.strip().lower(), b.strip().lower())


def find_closest_strings(
    value: str,
    candidates,
    max_results: int,
    threshold: float = DEFAULT_SUGGESTION_THRESHOLD,
) -> list[str]:
    """Candidates most similar to value, best first.

    Args:
        value: String to match; blank input yields no suggestions.
        candidates: Iterable of candidate strings.
        max_results: Upper bound on the result size (at least 1).
        threshold: Minimum similarity to be suggested.

    Returns:
        Up to max_results candidates scoring at least threshold. Equal
        scores keep candidate order.
    """
    normalized = value.strip().lower()
    if not normalized:
        return []

    scored = []
    for candidate in candidates:
        lowered = candidate.lower()
        longest = max(len(normalized), len(lowered))
        score = 0.0 if longest == 0 else 1 - levenshtein_distance(normalized, lowered) / longest
        if score >= threshold:
            scored.append((score, candidate))

    # sort is stable, so ties keep their original order
    scored.sort(key=lambda item: item[0], reverse=True)
    return [candidate for _, candidate in scored[:max(1, max_results)]]
