"""
main.py - Entry Point
======================
Runs the fluid network simulation on a randomly generated Voronoi network.

Usage:
    python main.py                      # Headless run, prints stats (default)
    python main.py --mode live          # Live visualization
    python main.py --mode benchmark     # Time update() on a larger network
    python main.py --mode gif           # Render an animated GIF
"""

import argparse
import logging

import numpy as np


def build_simulation(sites: int, width: float, height: float, gravity: float, seed: int = None):
    from drip import FluidNetworkSimulation, generate_voronoi_network

    pipes = generate_voronoi_network(num_sites=sites, width=width, height=height, seed=seed)
    return FluidNetworkSimulation(pipes, gravity=gravity)


def run_live(sim, volume: float, timeout: int):
    """Live interactive visualization."""
    from visualizer import DripVisualizer

    print(f"Starting live simulation ({len(sim.pipes)} pipes)...")
    print("Close the window to exit.\n")

    viz = DripVisualizer(sim, start_volume=volume)
    viz.run(timeout=timeout)


def run_headless(sim, volume: float, frames: int = 200):
    """Run the simulation without display, printing stats as it goes."""
    print(f"\nHeadless simulation | {len(sim.pipes)} pipes | {frames} frames")
    print(f"{'─'*60}")

    accepted = sim.add_fluid(volume)
    print(f"  Poured {accepted:.2f} of {volume:.2f} at the highest vertex")

    for f in range(frames):
        metrics = sim.update()
        if f % 20 == 0:
            print(f"  Frame {f:04d} | {metrics['total_ms']:6.2f}ms | "
                  f"fluid={metrics['fluid_total']:.3f} | "
                  f"full={metrics['full_pipes']} | "
                  f"groups={metrics['cached_groups']} | "
                  f"transfers={metrics['transfers']}")

    sim.print_status()
    drift = sim.total_volume() - accepted
    print(f"  Volume drift over {frames} frames: {drift:+.6f}")


def run_benchmark(sim, volume: float, frames: int = 200):
    """Per-step timing, with the network filling up."""
    print(f"\n{'='*60}")
    print(f"  UPDATE BENCHMARK | {len(sim.pipes)} pipes | {frames} frames")
    print(f"{'='*60}")

    sim.add_fluid(volume)
    logs = []
    for _ in range(frames):
        # Keep feeding so the full-pipe routing is exercised
        sim.add_fluid(volume / frames)
        logs.append(sim.update())

    keys = ["total_ms", "transfers", "full_pipes", "cached_groups"]
    print(f"\n{'Metric':<20} {'Mean':>10} {'Min':>10} {'Max':>10}")
    print(f"{'─'*54}")
    for k in keys:
        vals = [m[k] for m in logs]
        print(f"  {k:<18} {np.mean(vals):>10.2f} {np.min(vals):>10.2f} {np.max(vals):>10.2f}")

    total_vals = [m["total_ms"] for m in logs]
    print(f"\n{'─'*54}")
    print(f"  Steps per second: {1000 / max(np.mean(total_vals), 1e-9):.1f}")


def run_gif(sim, volume: float, frames: int, path: str):
    import matplotlib
    matplotlib.use("Agg")
    from visualizer import DripVisualizer

    viz = DripVisualizer(sim, start_volume=volume)
    viz.save_gif(path=path, frames=frames)


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fluid flowing through a Voronoi pipe network")
    parser.add_argument(
        "--mode", choices=["live", "headless", "benchmark", "gif"],
        default="headless",
        help="Run mode (default: headless)"
    )
    parser.add_argument("--sites",   type=int,   default=40,    help="Voronoi sites (default: 40)")
    parser.add_argument("--width",   type=float, default=300.0, help="Network width")
    parser.add_argument("--height",  type=float, default=300.0, help="Network height")
    parser.add_argument("--gravity", type=float, default=0.1,   help="Gravity factor (default: 0.1)")
    parser.add_argument("--volume",  type=float, default=300.0, help="Volume of fluid to pour")
    parser.add_argument("--frames",  type=int,   default=200,   help="Number of frames")
    parser.add_argument("--timeout", type=int,   default=10,    help="Milliseconds between updates")
    parser.add_argument("--seed",    type=int,   default=None,  help="Seed for the generated network")
    parser.add_argument("--output",  default="voronoi_drip.gif", help="GIF path for --mode gif")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Engine log level")
    parser.add_argument("--log-file", default=None, help="Also write the engine log to this file")

    args = parser.parse_args()

    from drip import setup_logging
    setup_logging(level=getattr(logging, args.log_level), log_file=args.log_file)

    sites = args.sites * 5 if args.mode == "benchmark" else args.sites
    sim = build_simulation(sites, args.width, args.height, args.gravity, seed=args.seed)

    if args.mode == "live":
        run_live(sim, volume=args.volume, timeout=args.timeout)
    elif args.mode == "headless":
        run_headless(sim, volume=args.volume, frames=args.frames)
    elif args.mode == "benchmark":
        run_benchmark(sim, volume=args.volume, frames=args.frames)
    elif args.mode == "gif":
        run_gif(sim, volume=args.volume, frames=args.frames, path=args.output)
