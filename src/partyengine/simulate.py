#!/usr/bin/env python
"""Run simulated matches against the engine with in-memory collaborators.

Every action is submitted several times concurrently (a "burst") to show
that duplicates are rejected and each turn transition happens once.

Usage:
    party-sim                                  # 4 players, 3 rounds, simultaneous
    party-sim --mode sequential --players 3    # one holder at a time
    party-sim --mode sequential --round-per-turn --rounds 6
    party-sim --phases draw:45,reveal:10       # every turn split into timed phases
    party-sim --config match.yaml --seed 42    # settings from a YAML file
    party-sim --games 50 --validate            # stress test with invariant checks
"""

import argparse
import asyncio
import logging
import random
from collections import Counter
from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from partyengine.engine import (
    CollectingValidator,
    InMemoryLockStore,
    InMemoryMatchRepository,
    ManualClock,
    MatchEngine,
)
from partyengine.engine.validator import StateValidator
from partyengine.events import InMemoryEventSink
from partyengine.handlers import TIMEOUT_ACTION, GameRegistry, StubHandler
from partyengine.models import (
    EngineSettings,
    MatchConfig,
    MatchPhase,
    PhaseDefinition,
    TurnMode,
    load_match_config,
)

logger = logging.getLogger(__name__)

# Chance that a turn runs out of time instead of being played
TIMEOUT_RATE = 0.1


def parse_phases(text: Optional[str]) -> list[PhaseDefinition]:
    """Parse "draw:45,reveal" into two phases, the first one timed."""
    phases = []
    for item in (text or "").split(","):
        item = item.strip()
        if not item:
            continue
        name, _, seconds = item.partition(":")
        phases.append(PhaseDefinition(name=name, duration_seconds=int(seconds) if seconds else None))
    return phases


def build_config(args: argparse.Namespace) -> MatchConfig:
    """MatchConfig from --config, or from the individual flags."""
    if args.config:
        return load_match_config(args.config)
    return MatchConfig(
        game_type="stub",
        turn_mode=TurnMode(args.mode),
        total_rounds=args.rounds,
        round_per_turn=args.round_per_turn,
        time_limit_seconds=args.time_limit,
        pause_between_rounds=args.pause,
        track_score_history=True,
        phases=parse_phases(args.phases),
    )


async def run_match(
    match_id: str,
    config: MatchConfig,
    num_players: int,
    seed: int,
    burst: int = 3,
    validator: Optional[StateValidator] = None,
) -> dict:
    """Play one match to the end and summarize it.

    Returns:
        Dict with ranking, rounds played, event counts and outcome counts.
    """
    rng = random.Random(seed)
    clock = ManualClock(start=1_000_000.0)
    sink = InMemoryEventSink()
    registry = GameRegistry()
    sequential = config.turn_mode == TurnMode.SEQUENTIAL
    registry.register(config.game_type, StubHandler(concludes_turn=sequential, seed=seed))

    engine = MatchEngine(
        repository=InMemoryMatchRepository(),
        lock_store=InMemoryLockStore(clock),
        event_sink=sink,
        registry=registry,
        # each concurrent save in a burst can force one more retry
        settings=EngineSettings(commit_attempts=max(5, num_players + 2)),
        clock=clock,
        validator=validator,
    )

    players = [f"p{i}" for i in range(1, num_players + 1)]
    await engine.initialize(match_id, players, config)
    await engine.start_game(match_id)

    outcomes: Counter = Counter()
    max_steps = config.total_rounds * num_players * 4 * max(1, len(config.phases)) + 10

    for _ in range(max_steps):
        state = await engine.get_state(match_id)
        if state.phase == MatchPhase.FINISHED:
            break
        if state.phase == MatchPhase.SCORING:
            await engine.start_next_round(match_id)
            continue

        limit = _time_limit(state)
        if limit and rng.random() < TIMEOUT_RATE:
            clock.advance(limit + 1)
            reporters = rng.sample(sorted(state.players), k=min(burst, len(state.players)))
            seen = {"turn_sequence": state.turn.turn_sequence, "phase_index": state.round_phases.current_index}
            results = await asyncio.gather(*[
                engine.process_action(match_id, reporter, TIMEOUT_ACTION, seen) for reporter in reporters
            ])
            _count(outcomes, results)
            continue

        if sequential:
            actors = [state.turn.turn_order[state.turn.current_turn_index]]
        else:
            actors = sorted(state.turn.pending_players)
            rng.shuffle(actors)

        submissions = [
            engine.process_action(match_id, actor, "answer", {"points": rng.randint(0, 3)})
            for actor in actors
            for _ in range(burst)
        ]
        _count(outcomes, await asyncio.gather(*submissions))
        clock.advance(1)
    else:
        logger.warning("Match %s did not finish within %d steps, finalizing", match_id, max_steps)

    ranking = await engine.finalize(match_id)
    state = await engine.get_state(match_id)
    return {
        "match_id": match_id,
        "seed": seed,
        "ranking": ranking,
        "rounds": state.round.current_round,
        "events": Counter(sink.names()),
        "outcomes": outcomes,
    }


def _time_limit(state) -> Optional[int]:
    """Seconds until the next timer of the running turn fires."""
    limits = [state.turn.time_limit_seconds]
    phases = state.round_phases
    if phases.phases:
        limits.append(phases.phases[phases.current_index].duration_seconds)
    limits = [limit for limit in limits if limit]
    return min(limits) if limits else None


def _count(outcomes: Counter, results) -> None:
    for outcome in results:
        if not outcome.accepted:
            outcomes[outcome.reason.value] += 1
        elif outcome.transition_lost:
            outcomes["transition_lost"] += 1
        else:
            outcomes["accepted"] += 1


def print_match(console: Console, result: dict) -> None:
    table = Table(title=f"Ranking ({result['match_id']}, seed {result['seed']})")
    table.add_column("#", justify="right")
    table.add_column("Player")
    table.add_column("Score", justify="right")
    for entry in result["ranking"]:
        table.add_row(str(entry.position), entry.player_id, str(entry.score))
    console.print(table)

    events = Table(title="Events")
    events.add_column("Event")
    events.add_column("Count", justify="right")
    for name, count in sorted(result["events"].items()):
        events.add_row(name, str(count))
    console.print(events)

    summary = ", ".join(f"{k}={v}" for k, v in sorted(result["outcomes"].items()))
    console.print(Panel(
        f"Rounds played: {result['rounds']}\n"
        f"Submissions: {summary}",
        title="Result",
    ))


def run_stress_test(config: MatchConfig, num_games: int, num_players: int, seed_base: int, burst: int) -> int:
    """Run many matches concurrently with a CollectingValidator and report.

    Returns:
        Process exit code (1 if any match failed or broke an invariant).
    """
    console = Console()
    console.print(f"\n[bold]Running stress test: {num_games} matches...[/bold]")
    console.print(f"Seed base: {seed_base}")
    console.print("-" * 50)

    validator = CollectingValidator()

    async def run_all():
        tasks = [
            run_match(f"match-{i}", config, num_players, seed_base + i, burst, validator)
            for i in range(num_games)
        ]
        return await asyncio.gather(*tasks, return_exceptions=True)

    results = asyncio.run(run_all())

    errors = [r for r in results if isinstance(r, Exception)]
    finished = [r for r in results if not isinstance(r, Exception)]
    rounds = Counter(r["rounds"] for r in finished)
    violations = Counter(v.rule_id for v in validator.get_violations())

    console.print("=" * 60)
    console.print("STRESS TEST REPORT")
    console.print("=" * 60)
    console.print(f"\nMatches run: {num_games}")
    console.print(f"Completed: {len(finished)}")
    console.print(f"Errors: {len(errors)}")
    console.print(f"States checked: {validator.checked}")

    console.print("\nRounds played:")
    for played, count in sorted(rounds.items()):
        console.print(f"  {played}: {count}")

    console.print("\nInvariant Violations:")
    if violations:
        for rule_id, count in sorted(violations.items()):
            console.print(f"  {rule_id}: {count}")
    else:
        console.print("  None")

    if errors:
        console.print(f"\nErrors ({len(errors)}):")
        for error in errors[:10]:
            console.print(f"  {type(error).__name__}: {error}")
    console.print("=" * 60)

    return 1 if errors or violations else 0


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Party match engine simulator",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("--players", type=int, default=4, help="Number of players (default: 4)")
    parser.add_argument("--rounds", type=int, default=3, help="Total rounds (default: 3)")
    parser.add_argument(
        "--mode",
        choices=[mode.value for mode in TurnMode],
        default=TurnMode.SIMULTANEOUS.value,
        help="Turn discipline (default: simultaneous)",
    )
    parser.add_argument(
        "--round-per-turn",
        action="store_true",
        help="Every concluded turn completes a round",
    )
    parser.add_argument(
        "--time-limit",
        type=int,
        default=None,
        help="Turn time limit in seconds; enables simulated timeouts",
    )
    parser.add_argument(
        "--phases",
        type=str,
        default=None,
        help="Comma separated in-turn phases, name[:seconds] each",
    )
    parser.add_argument(
        "--pause",
        action="store_true",
        help="Stop in the scoring phase between rounds",
    )
    parser.add_argument(
        "--burst",
        type=int,
        default=3,
        help="Concurrent copies of every submitted action (default: 3)",
    )
    parser.add_argument("--config", type=str, default=None, help="YAML match config file")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument(
        "--games",
        type=int,
        default=None,
        help="Run N concurrent matches with invariant checks (stress test mode)",
    )
    parser.add_argument("--validate", action="store_true", help="Check invariants on every save")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log engine activity")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(name)s: %(message)s",
    )

    if args.seed is None:
        args.seed = random.randint(1, 1000000)

    if args.players < 1:
        print("Error: --players must be a positive integer")
        return 1
    if args.burst < 1:
        print("Error: --burst must be a positive integer")
        return 1
    if args.games is not None and args.games < 1:
        print("Error: --games must be a positive integer")
        return 1

    config = build_config(args)

    if args.games is not None:
        return run_stress_test(config, args.games, args.players, args.seed, args.burst)

    validator = CollectingValidator() if args.validate else None
    result = asyncio.run(run_match("match-1", config, args.players, args.seed, args.burst, validator))

    console = Console()
    print_match(console, result)
    if validator is not None:
        violations = validator.get_violations()
        console.print(f"Invariant violations: {len(violations)}")
        for v in violations:
            console.print(f"  [red]{v.rule_id}[/red]: {v.message}")
        if violations:
            return 1
    return 0


if __name__ == "__main__":
    exit(main())
