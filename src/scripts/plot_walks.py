# src/scripts/plot_walks.py
import argparse
import os
import sys
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
from numba import njit

SRC = Path(__file__).resolve().parents[1]
if str(SRC) not in sys.path:
    sys.path.append(str(SRC))

from rwalk_sim import InvalidProgramData, load_pool, load_program, utils  # noqa: E402


@njit(cache=True)
def count_visits(cells, grid, x_min, y_min):
    """
    Adds one to ``grid[y - y_min, x - x_min]`` for every cell in ``cells``.
    Cells outside the grid are ignored.
    """
    H, W = grid.shape
    for i in range(cells.shape[0]):
        px = cells[i, 0] - x_min
        py = cells[i, 1] - y_min
        if 0 <= px < W and 0 <= py < H:
            grid[py, px] += 1.0


def format_title(meta, num_walks=None):
    """Title string with walker, kernel, step count and seed."""
    if not meta:
        return None
    walker = meta.get("walker", "?")
    kernel = meta.get("kernel", "?")
    steps = meta.get("steps", "?")
    seed = meta.get("seed", meta.get("base_seed"))
    parts = [f"Walker={walker}", f"Kernel={kernel}", f"T={steps}"]
    if num_walks is not None:
        parts.append(f"n={num_walks}")
    parts.append(f"seed={seed if seed is not None else '?'}")
    if walker == "lw":
        parts.append(f"p={meta.get('jump_probability')}, L={meta.get('jump_distance')}")
    elif walker == "msw":
        parts.append(f"max={meta.get('max_step_size')}")
    return " | ".join(parts)


def grid_extent(walks, program=None):
    if program is not None:
        return program.bounds.as_tuple()
    cells = np.concatenate([w.cells for w in walks])
    x_min, y_min = cells.min(axis=0)
    x_max, y_max = cells.max(axis=0)
    return int(x_min), int(y_min), int(x_max), int(y_max)


def load_field(path):
    """Program stored at ``path``; for a pool, its first member."""
    try:
        return load_program(path)
    except InvalidProgramData:
        pool = load_pool(path)
        return pool[next(iter(pool))]


def render(walks, title=None, output=None, program=None, cmap="viridis", dpi=200, density=False):
    x_min, y_min, x_max, y_max = grid_extent(walks, program)
    extent = (x_min - 0.5, x_max + 0.5, y_max + 0.5, y_min - 0.5)

    fig, ax = plt.subplots(figsize=(6, 6))
    fig.patch.set_facecolor("white")

    if program is not None:
        # probability of reaching the target from each cell at t = 0
        field = program.slice(0).T
        ax.imshow(np.log10(field + 1e-12), cmap="Greys", extent=extent, interpolation="nearest")
    if density:
        grid = np.zeros((y_max - y_min + 1, x_max - x_min + 1))
        for walk in walks:
            count_visits(walk.cells, grid, x_min, y_min)
        grid[grid == 0] = np.nan
        ax.imshow(grid, cmap=cmap, extent=extent, interpolation="nearest", alpha=0.8)
    else:
        colors = plt.get_cmap(cmap)(np.linspace(0.0, 1.0, max(len(walks), 1)))
        for walk, color in zip(walks, colors):
            ax.plot(walk.cells[:, 0], walk.cells[:, 1], "-", color=color, lw=1.0, alpha=0.8)

    first = walks[0]
    ax.plot(*first.start, "o", color="tab:green", ms=8, label="start")
    ax.plot(*first.end, "*", color="tab:red", ms=12, label="target")
    ax.set_xlim(extent[0], extent[1])
    ax.set_ylim(extent[2], extent[3])
    ax.set_aspect("equal")
    ax.legend(loc="upper right", fontsize=8)

    if title:
        ax.set_title(title, pad=10, fontsize=9)

    if output:
        os.makedirs(os.path.dirname(output) if os.path.dirname(output) else ".", exist_ok=True)
        plt.savefig(output, dpi=dpi, bbox_inches="tight", pad_inches=0.1)
        print(f"Saved figure to {output}")

    return fig


def main():
    parser = argparse.ArgumentParser(description="Plot saved random walks (.npz)")
    parser.add_argument("file", help="Path to a .npz file written by run_single/run_batch")
    parser.add_argument(
        "--field",
        default=None,
        help="Dynamic program .npz to draw underneath the walks",
    )
    parser.add_argument(
        "--out",
        default=None,
        help="Output image path (PNG, auto-generated if not provided)",
    )
    parser.add_argument("--cmap", default="viridis", help="Matplotlib colormap (default: viridis)")
    parser.add_argument("--dpi", type=int, default=200, help="DPI for output file (default: 200)")
    parser.add_argument(
        "--density",
        action="store_true",
        help="Draw visit counts instead of individual walk lines",
    )
    parser.add_argument("--show", action="store_true", help="Show plot interactively")
    args = parser.parse_args()

    if not utils.npz_path(args.file).exists():
        print(f"Error: file not found: {args.file}")
        return 1

    if args.out is None:
        input_path = Path(args.file)
        args.out = str(input_path.parent / f"{input_path.stem}.png")

    batch = utils.load_walks(args.file)
    if not batch.walks:
        print(f"Error: {args.file} contains no walks")
        return 1
    program = load_field(args.field) if args.field else None

    print(f"Plotting {len(batch)} walk(s) from {args.file}")
    fig = render(
        batch.walks,
        title=format_title(batch.meta, len(batch)),
        output=args.out,
        program=program,
        cmap=args.cmap,
        dpi=args.dpi,
        density=args.density,
    )
    if args.show:
        plt.show()
    plt.close(fig)
    return 0


if __name__ == "__main__":
    sys.exit(main())
