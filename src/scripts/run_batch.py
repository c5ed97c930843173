#!/usr/bin/env python3
"""
Batch Random Walk Runner

Samples many walks from one dynamic program in parallel for dataset creation.
Walk i is seeded with base_seed + i, so a batch is reproducible whatever the
number of jobs.
"""

import argparse
import json
import sys
import time
from pathlib import Path

# Add src/ to path
SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from rwalk_sim import (  # noqa: E402
    DynamicProgramPool,
    RandomWalkError,
    save_pool,
    save_program,
    utils,
)
from run_single import build_setup, merge_settings  # noqa: E402


def main():
    parser = argparse.ArgumentParser(
        description="Generate a batch of random walks",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--params", type=str, default=None, help="JSON or TOML parameter file")
    parser.add_argument(
        "--walker",
        choices=["swg", "cwg", "msw", "lcw", "lw"],
        default=None,
        help="Walker to use (default: swg)",
    )
    parser.add_argument(
        "--kernel",
        choices=["srw", "brw", "crw", "bcrw", "nd"],
        default=None,
        help="Kernel generator (default: srw; cwg needs crw or bcrw)",
    )
    parser.add_argument("--width", type=int, default=None, help="Grid width (default: 5)")
    parser.add_argument("--height", type=int, default=None, help="Grid height (default: 5)")
    parser.add_argument("--start", type=int, nargs=2, default=None, metavar=("X", "Y"))
    parser.add_argument("--target", type=int, nargs=2, default=None, metavar=("X", "Y"))
    parser.add_argument("--steps", type=int, default=None, help="Number of time steps (default: 8)")
    parser.add_argument("--boundary", choices=["discard", "reflect"], default=None)
    parser.add_argument("--max-step-size", dest="max_step_size", type=int, default=None)
    parser.add_argument("--jump-probability", dest="jump_probability", type=float, default=None)
    parser.add_argument("--jump-distance", dest="jump_distance", type=int, default=None)
    parser.add_argument(
        "--count",
        type=int,
        required=True,
        help="Number of walks to generate",
    )
    parser.add_argument(
        "--jobs",
        type=int,
        default=None,
        help="Number of worker threads (default: CPU count)",
    )
    parser.add_argument(
        "--name",
        type=str,
        default="batch",
        help="Batch name for output folder (default: 'batch')",
    )
    parser.add_argument(
        "--base-seed",
        type=int,
        default=42,
        help="Base seed (each walk gets base_seed + index) (default: 42)",
    )
    parser.add_argument(
        "--save-field",
        action="store_true",
        help="Also save the dynamic program next to the walks",
    )

    args = parser.parse_args()
    batch_args = {"count", "jobs", "name", "base_seed", "save_field"}
    settings = merge_settings(
        argparse.Namespace(**{k: v for k, v in vars(args).items() if k not in batch_args})
    )

    first_seed = args.base_seed
    last_seed = args.base_seed + args.count - 1

    timestamp = utils.now_str()
    batch_dir = (
        Path("results")
        / "batches"
        / f"{settings['walker']}_T{settings['steps']}_S{first_seed}-{last_seed}_{timestamp}"
    )
    batch_dir.mkdir(parents=True, exist_ok=True)

    manifest = {
        **settings,
        "count": args.count,
        "base_seed": args.base_seed,
        "jobs": args.jobs,
        "timestamp": timestamp,
        "batch_name": args.name,
    }
    manifest_path = batch_dir / "manifest.json"
    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print(f"Batch generation started:")
    print(f"  Walker: {settings['walker']} ({settings['kernel']} kernel)")
    print(f"  Start -> target: {tuple(settings['start'])} -> {tuple(settings['target'])}")
    print(f"  Time steps: {settings['steps']}")
    print(f"  Total walks: {args.count}")
    print(f"  Worker threads: {args.jobs or 'auto'}")
    print(f"  Output directory: {batch_dir}")
    print(f"  Base seed: {args.base_seed}")
    print()

    start_time = time.time()
    walker, dp = build_setup(settings)
    field_time = time.time() - start_time
    print(f"  Dynamic program computed in {field_time:.2f} seconds")

    if args.save_field:
        if isinstance(dp, DynamicProgramPool):
            save_pool(batch_dir / "field.npz", dp)
        else:
            save_program(batch_dir / "field.npz", dp)

    error = None
    walks = []
    try:
        walks = walker.generate_paths(
            dp,
            args.count,
            tuple(settings["target"]),
            int(settings["steps"]),
            args.base_seed,
            workers=args.jobs,
        )
    except RandomWalkError as e:
        error = e
        print(f"  FAILED: {e}")

    elapsed_time = time.time() - start_time

    manifest["results"] = {
        "total": args.count,
        "successful": len(walks),
        "failed": 0 if error is None else args.count - len(walks),
        "elapsed_seconds": elapsed_time,
    }
    if error is not None:
        manifest["error"] = str(error)
    else:
        walks_path = batch_dir / "walks.npz"
        utils.save_walks(walks_path, walks, meta=manifest)
        manifest["walks"] = str(walks_path)

    with open(manifest_path, "w") as f:
        json.dump(manifest, f, indent=2)

    print()
    print("=" * 60)
    print("Batch generation completed!" if error is None else "Batch generation failed!")
    print(f"  Successful: {len(walks)}/{args.count}")
    print(f"  Total time: {elapsed_time:.2f} seconds")
    if walks:
        print(f"  Average time per walk: {(elapsed_time - field_time) / len(walks):.4f} seconds")
    print(f"  Output directory: {batch_dir}")
    print(f"  Manifest: {manifest_path}")
    print("=" * 60)

    return 0 if error is None else 1


if __name__ == "__main__":
    sys.exit(main())
