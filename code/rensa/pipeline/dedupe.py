"""Collapse chains that are the same cycle under a different name."""

from collections.abc import Iterable, Sequence

from rensa.pipeline.simulate import ChainResult


def minimal_repeating_unit(seq: Sequence[str]) -> list[str]:
    """Shortest prefix that reproduces ``seq`` when repeated.

    ``[A, B, A, B]`` -> ``[A, B]``; a sequence with no proper period is
    returned whole.
    """
    n = len(seq)
    for size in range(1, n // 2 + 1):
        if n % size:
            continue
        if all(seq[i] == seq[i % size] for i in range(size, n)):
            return list(seq[:size])
    return list(seq)


def canonical_key(slugs: Sequence[str]) -> str:
    """Dedup key: the sorted multiset of the minimal repeating unit.

    Sorting makes the key rotation-invariant, but it also merges
    different orderings of the same powers (``[A, A, B, C]`` and
    ``[A, B, A, C]`` collide). Callers keep the first chain seen, so with
    input sorted by throughput the best ordering survives.
    """
    return ",".join(sorted(minimal_repeating_unit(slugs)))


def deduplicate(results: Iterable[ChainResult]) -> list[ChainResult]:
    seen: set[str] = set()
    unique: list[ChainResult] = []
    for result in results:
        key = canonical_key(result.slugs)
        if key not in seen:
            seen.add(key)
            unique.append(result)
    return unique
