"""
Scripted Play Simulation
========================

Drives the engine with a simulated player on a manual clock and records the
results on a leaderboard. Useful for sanity-checking scoring tunables.

Usage:
    python -m tools.simulate_runs [--mode easy] [--runs 3] [--rounds 30]
                                  [--accuracy 0.85] [--shape-mode]
                                  [--leaderboard scores.json] [--seed 1]
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List, Optional

import numpy as np

from colormatch.core.catalog import Mode
from colormatch.core.clock import ManualClock
from colormatch.core.config_loader import GameConfig, load_config
from colormatch.core.game import ColorMatchGame
from colormatch.core.leaderboard import JsonFileStorage, MemoryStorage, make_leaderboard


def play_session(
    game: ColorMatchGame,
    clock: ManualClock,
    rng: np.random.Generator,
    rounds: int,
    accuracy: float,
    reaction_range: tuple = (0.8, 7.0),
) -> Dict[str, int]:
    """
    Play ``rounds`` rounds of an already started game.

    The player waits a random reaction time (ticking the engine like a UI
    would), then taps the right tile with probability ``accuracy``.

    Returns:
        Dict with score, correct, wrong and timeouts counts.
    """
    tick = game.config.timing.tick_interval
    stats = {"correct": 0, "wrong": 0, "timeouts": 0}
    played = 0

    while played < rounds:
        generation = game.generation
        reaction = float(rng.uniform(*reaction_range))
        waited = 0.0
        while waited < reaction:
            clock.advance(tick)
            waited += tick
            if game.tick():
                stats["timeouts"] += 1
                break
        if game.generation != generation:
            played += 1
            continue

        tiles = game.tiles
        correct_index = game.layout.correct_index
        if rng.random() < accuracy or len(tiles) == 1:
            index = correct_index
        else:
            index = int(rng.choice([i for i in range(len(tiles)) if i != correct_index]))

        result = game.tap(tiles[index].id)
        if result is not None and result.correct:
            stats["correct"] += 1
            played += 1
        elif result is not None:
            stats["wrong"] += 1

    stats["score"] = game.score
    return stats


def run_simulation(
    mode: Mode,
    runs: int,
    rounds: int,
    accuracy: float,
    shape_mode: bool = False,
    leaderboard_path: Optional[str] = None,
    seed: Optional[int] = None,
    config: Optional[GameConfig] = None,
) -> List[Dict[str, int]]:
    """
    Play several sessions and save each to the leaderboard.

    Returns:
        Per-session stats.
    """
    config = config or load_config()
    storage = JsonFileStorage(leaderboard_path) if leaderboard_path else MemoryStorage()
    leaderboard = make_leaderboard(config, storage)
    rng = np.random.default_rng(seed)
    results = []

    for i in range(runs):
        clock = ManualClock()
        game = ColorMatchGame(
            config=config,
            clock=clock,
            rng=None if seed is None else seed + i,
            leaderboard=leaderboard,
        )
        game.start_game(mode, shape_mode, player_name=f"bot-{i + 1}")
        stats = play_session(game, clock, rng, rounds, accuracy)
        game.save_score()
        results.append(stats)

        print(f"Run {i + 1}: score={stats['score']} correct={stats['correct']} "
              f"wrong={stats['wrong']} timeouts={stats['timeouts']}")

    print()
    print(f"Top {config.leaderboard.top_n} ({mode.title}, {leaderboard.policy})")
    print(f"{'#':>3}  {'Name':<16} {'Score':>6}")
    for rank, entry in enumerate(leaderboard.top(mode), start=1):
        print(f"{rank:>3}  {entry.name:<16} {entry.score:>6}")

    return results


def main():
    parser = argparse.ArgumentParser(description="Simulate Color Match runs with a scripted player")
    parser.add_argument("--mode", type=str, default="easy", choices=[m.value for m in Mode],
                        help="Difficulty tier (default: easy)")
    parser.add_argument("--runs", type=int, default=3, help="Number of sessions (default: 3)")
    parser.add_argument("--rounds", type=int, default=30, help="Rounds per session (default: 30)")
    parser.add_argument("--accuracy", type=float, default=0.85, help="Chance of a correct tap (default: 0.85)")
    parser.add_argument("--shape-mode", action="store_true", help="Require color + shape")
    parser.add_argument("--leaderboard", type=str, default=None, help="Leaderboard JSON file (default: in-memory)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--verbose", action="store_true", help="Log engine transitions")

    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    run_simulation(
        mode=Mode.parse(args.mode),
        runs=args.runs,
        rounds=args.rounds,
        accuracy=max(0.0, min(1.0, args.accuracy)),
        shape_mode=args.shape_mode,
        leaderboard_path=args.leaderboard,
        seed=args.seed,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
