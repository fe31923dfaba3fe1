"""CLI script to find the best repeating attack chains for a set of powers."""

import argparse
import json
import logging
import sys
from dataclasses import asdict

from rensa.config import get_settings
from rensa.pipeline.constants import MAX_CHAIN_LENGTH
from rensa.pipeline.greedy import greedy_chain
from rensa.pipeline.passes import run_passes
from rensa.pipeline.search import SearchOutcome, SearchParams, SearchProgress
from rensa.pipeline.simulate import ChainResult
from rensa.powers.loader import InvalidPowerError, load_power_file

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Find the highest-throughput repeating attack chain"
    )
    parser.add_argument("powers_file", help="JSON file of power records")
    parser.add_argument(
        "--recharge-bonus",
        type=float,
        help="Global recharge bonus in percent (default: from settings)",
    )
    parser.add_argument(
        "--latency-ms",
        type=int,
        help="Dead time after every activation in ms (default: from settings)",
    )
    parser.add_argument(
        "--targets", type=int, help="Number of targets for the AoE pass"
    )
    parser.add_argument(
        "--max-length", type=int, help="Longest chain to search (1-8)"
    )
    parser.add_argument("--top", type=int, help="Results to keep per pass")
    parser.add_argument(
        "--greedy",
        action="store_true",
        help="Also build a quick greedy chain for comparison",
    )
    parser.add_argument(
        "--json", action="store_true", help="Print results as JSON"
    )
    parser.add_argument(
        "--verbose", action="store_true", help="Log search progress"
    )
    return parser.parse_args(argv)


def format_result(rank: int, result: ChainResult) -> str:
    names = " > ".join(s.power.name for s in result.steps)
    line = (
        f"{rank}. {result.throughput:.2f}/s over {result.cycle_time:.3f}s"
        f" (x{result.avg_multiplier:.3f} avg buff, "
        f"{result.resource_rate:.2f} cost/s): {names}"
    )
    if result.overlay is not None:
        line += (
            f"\n   with {', '.join(result.overlay.power_names)}: "
            f"{result.overlay.throughput:.2f}/s, "
            f"{result.overlay.uptime * 100:.1f}% uptime"
        )
    return line


def format_outcome(outcome: SearchOutcome) -> str:
    header = f"== {outcome.label}"
    if outcome.partial:
        header += " (partial, cancelled)"
    if outcome.skipped_lengths:
        header += f" [skipped lengths: {', '.join(map(str, outcome.skipped_lengths))}]"
    if outcome.is_empty:
        return f"{header}\n   no feasible chain found"
    lines = [header]
    lines.extend(format_result(i, r) for i, r in enumerate(outcome.results, start=1))
    return "\n".join(lines)


def result_to_dict(result: ChainResult) -> dict:
    data = asdict(result)
    data["slugs"] = result.slugs
    data["effective_throughput"] = result.effective_throughput
    return data


def _log_progress(update: SearchProgress) -> None:
    if update.skipped:
        logger.info("%s length %d: %s", update.label, update.length, update.reason)
    else:
        logger.info(
            "%s length %d: %d/%d examined (best %.1f)",
            update.label, update.length, update.examined,
            update.total_combos, update.best_throughput,
        )


def run(
    powers_file: str,
    recharge_bonus: float | None = None,
    latency_ms: int | None = None,
    targets: int | None = None,
    max_length: int | None = None,
    top: int | None = None,
    greedy: bool = False,
    as_json: bool = False,
) -> int:
    settings = get_settings()
    if recharge_bonus is None:
        recharge_bonus = settings.player.recharge_bonus_pct
    if latency_ms is None:
        latency_ms = settings.player.latency_ms
    if targets is None:
        targets = settings.player.num_targets

    if latency_ms < 0:
        logger.error("--latency-ms must be >= 0")
        return 2
    overrides: dict = {"latency": latency_ms / 1000}
    if max_length is not None:
        if not 1 <= max_length <= MAX_CHAIN_LENGTH:
            logger.error("--max-length must be between 1 and %d", MAX_CHAIN_LENGTH)
            return 2
        overrides["max_chain_length"] = max_length
    if top is not None:
        if top < 1:
            logger.error("--top must be >= 1")
            return 2
        overrides["top_n"] = top
    try:
        params = SearchParams.from_settings(settings, **overrides)
    except ValueError as exc:
        logger.error("Invalid search parameters: %s", exc)
        return 2

    try:
        power_set = load_power_file(
            powers_file, recharge_bonus, settings.simulation.tick_seconds,
        )
        outcomes = run_passes(
            power_set.attacks,
            power_set.overlays,
            params,
            num_targets=targets,
            aoe_top_n=top or settings.search.aoe_top_n,
            progress=_log_progress,
        )
    except (InvalidPowerError, OSError) as exc:
        logger.error("Cannot optimize %s: %s", powers_file, exc)
        return 2

    greedy_result = (
        greedy_chain(power_set.attacks, latency=params.latency) if greedy else None
    )

    if as_json:
        payload = {
            label: {
                "partial": o.partial,
                "skipped_lengths": o.skipped_lengths,
                "results": [result_to_dict(r) for r in o.results],
            }
            for label, o in outcomes.items()
        }
        if greedy_result is not None:
            payload["greedy"] = result_to_dict(greedy_result)
        print(json.dumps(payload, indent=2))
    else:
        for outcome in outcomes.values():
            print(format_outcome(outcome))
        if greedy_result is not None:
            print("== Greedy")
            print(format_result(1, greedy_result))
    return 0


def main() -> None:
    args = parse_args()
    settings = get_settings()
    level = logging.DEBUG if args.verbose or settings.debug else settings.log_level
    logging.basicConfig(level=level)
    sys.exit(
        run(
            args.powers_file,
            recharge_bonus=args.recharge_bonus,
            latency_ms=args.latency_ms,
            targets=args.targets,
            max_length=args.max_length,
            top=args.top,
            greedy=args.greedy,
            as_json=args.json,
        )
    )


if __name__ == "__main__":
    main()
