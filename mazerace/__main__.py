#!/usr/bin/env python3
"""
Headless maze race.
Bots race to the goal through a shifting maze, learning between races.
"""

import argparse
import logging
import sys

from .app.session import RaceSession
from .domain.maze import GridMaze
from .domain.types import GameConfig
from .utils.maze_serialization import extract_maze_data, load_maze, maze_from_data, save_maze
from .utils.model_store import ModelStore
from .utils.rng import SeededRNG, set_global_seed


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mazerace", description="Headless dynamic maze race")
    parser.add_argument("--maze", type=str, help="Path to saved maze file")
    parser.add_argument("--save-maze", type=str, help="Write the starting maze to this file")
    parser.add_argument("--width", type=int, default=21, help="Width of a generated maze")
    parser.add_argument("--height", type=int, default=21, help="Height of a generated maze")
    parser.add_argument("--bots", type=int, default=2, help="Number of bots (max 4)")
    parser.add_argument("--races", type=int, default=1, help="Number of consecutive races")
    parser.add_argument("--max-time", type=float, default=120.0, help="Seconds per race before it is called off")
    parser.add_argument("--complexity", type=float, default=0.5, help="Maze shift intensity in [0, 1]")
    parser.add_argument("--shift-interval", type=float, default=10.0, help="Seconds between maze shifts")
    parser.add_argument("--profile", choices=["cautious", "balanced", "aggressive"], default="balanced",
                        help="Exploration decay profile")
    parser.add_argument("--no-planning", action="store_true", help="Drive bots by the learned policy only")
    parser.add_argument("--collisions", action="store_true", help="Stun actors that bump into each other")
    parser.add_argument("--models-dir", type=str, default="saved_models", help="Where bot models are stored")
    parser.add_argument("--seed", type=int, help="Random seed")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = GameConfig(
            maze_width=args.width,
            maze_height=args.height,
            bot_count=args.bots,
            maze_complexity=args.complexity,
            maze_shift_interval=args.shift_interval,
            exploration_profile=args.profile,
            planning_enabled=not args.no_planning,
            collision_enabled=args.collisions,
            seed=args.seed,
        )
    except ValueError as e:
        print(f"❌ Invalid configuration: {e}")
        return 2

    set_global_seed(config.seed)
    rng = SeededRNG(config.seed)
    store = ModelStore(args.models_dir)

    print("🏁 Dynamic Maze Race")
    print("=" * 50)

    # Load or generate maze
    if args.maze:
        print(f"📁 Loading maze from: {args.maze}")
        maze_data = load_maze(args.maze)
        if maze_data is None:
            print("❌ Failed to load maze. Exiting.")
            return 1
        maze = maze_from_data(maze_data, rng=rng.spawn())
    else:
        print(f"🎲 Generating new maze: {config.maze_width}x{config.maze_height}")
        maze = GridMaze(config.maze_width, config.maze_height, rng=rng.spawn())
        maze.generate()

    print(f"📐 Grid: {maze.width}x{maze.height}, {maze.wall_count} walls")
    print(f"🎯 Start: {maze.start} → Goal: {maze.goal}")

    if args.save_maze:
        if save_maze(extract_maze_data(maze, name="race start"), args.save_maze):
            print(f"💾 Maze saved to {args.save_maze}")
        else:
            print(f"❌ Could not save maze to {args.save_maze}")

    wins = {}
    try:
        for race in range(1, args.races + 1):
            session = RaceSession(config, maze=maze, model_store=store, include_player=False, rng=rng.spawn())
            try:
                result = session.run(args.max_time * 1000.0)
            finally:
                session.shutdown()

            print(f"\n🏆 Race {race}: winner {result.winner or 'nobody'} "
                  f"after {result.elapsed / 1000.0:.1f}s, {result.shifts} maze shifts")
            for rank, row in enumerate(result.leaderboard, start=1):
                finished = (f"{row['completion_time'] / 1000.0:.1f}s"
                            if row["completion_time"] is not None else "-")
                print(f"   {rank}. {row['actor_id']:<8} time {finished:>7}  "
                      f"distance {row['distance_to_goal']:5.1f}  "
                      f"confidence {row['confidence']:.2f}  mode {row['mode']}")
            if result.winner:
                wins[result.winner] = wins.get(result.winner, 0) + 1

            # Next race starts from a fresh layout
            maze = GridMaze(config.maze_width, config.maze_height, rng=rng.spawn())
            maze.generate()
    except KeyboardInterrupt:
        print("\n⏹️  Race interrupted by user")
        return 1

    if args.races > 1:
        print("\n📊 Wins: " + (", ".join(f"{k} {v}" for k, v in sorted(wins.items())) or "none"))
    return 0


if __name__ == "__main__":
    sys.exit(main())
