"""Ordering and display rotation of finished chain results."""

from collections.abc import Iterable
from dataclasses import replace

from rensa.pipeline.simulate import ChainResult


def rotate_to_best(result: ChainResult) -> ChainResult:
    """Start the cycle at the step with the highest realized damage per activation.

    Only the display order changes; every measured number is kept.
    """
    steps = result.steps
    if len(steps) <= 1:
        return result

    best_idx = 0
    for i, step in enumerate(steps):
        if step.dpa > steps[best_idx].dpa:
            best_idx = i
    if best_idx == 0:
        return result
    return replace(result, steps=steps[best_idx:] + steps[:best_idx])


def sort_by_throughput(results: Iterable[ChainResult]) -> list[ChainResult]:
    return sorted(results, key=lambda r: r.throughput, reverse=True)


def sort_by_effective_throughput(results: Iterable[ChainResult]) -> list[ChainResult]:
    return sorted(results, key=lambda r: r.effective_throughput, reverse=True)
