"""
visualizer.py - Live Pipe Network Viewer
=========================================
Draws the pipe network once, then redraws the fluid on top of it every
frame while stepping the simulation at a fixed interval.

Fluid extents on screen come straight from each segment:
  start = va + (vb - va) * position / capacity
  end   = va + (vb - va) * (position + volume) / capacity

Uses matplotlib FuncAnimation as the update loop; play() / pause() /
stop() start and stop its timer.
"""

import numpy as np
import matplotlib.pyplot as plt
import matplotlib.animation as animation
from matplotlib.collections import LineCollection

PIPE_COLOUR = "#eeeeee"
FLUID_COLOUR = "#000000"
BACKGROUND_COLOUR = "#ffffff"
TIMEOUT = 10   # ms between updates


def pipe_lines(pipes) -> np.ndarray:
    """(n_pipes, 2, 2) array of pipe end points."""
    return np.array([[[p.va.x, p.va.y], [p.vb.x, p.vb.y]] for p in pipes], dtype=np.float64).reshape(-1, 2, 2)


def fluid_lines(pipes) -> np.ndarray:
    """(n_segments, 2, 2) array of on-screen fluid extents."""
    lines = []
    for pipe in pipes:
        if not pipe.fluids or pipe.capacity <= 0:
            continue
        va = np.array([pipe.va.x, pipe.va.y])
        diff = np.array([pipe.vb.x, pipe.vb.y]) - va
        for segment in pipe.fluids:
            start = segment.position / pipe.capacity
            end = (segment.position + segment.volume) / pipe.capacity
            lines.append([va + diff * start, va + diff * end])
    return np.array(lines, dtype=np.float64).reshape(-1, 2, 2)


class DripVisualizer:
    """
    Real-time viewer of a fluid network simulation.

    Usage (standalone):
        from drip import FluidNetworkSimulation, generate_voronoi_network
        from visualizer import DripVisualizer

        sim = FluidNetworkSimulation(generate_voronoi_network(40), gravity=0.1)
        viz = DripVisualizer(sim, start_volume=300)
        viz.run()  # Opens live window
    """

    def __init__(self, simulation, start_volume: float = 0.0, drip_volume: float = 0.0,
                 pipe_colour: str = PIPE_COLOUR, fluid_colour: str = FLUID_COLOUR):
        """
        Args:
            simulation   : FluidNetworkSimulation instance
            start_volume : Poured at the highest vertex when the animation starts
            drip_volume  : Poured at the highest vertex every frame
            pipe_colour  : Colour of the network, eg '#eee'
            fluid_colour : Colour of the fluid, eg '#000'
        """
        self.sim = simulation
        self.start_volume = start_volume
        self.drip_volume = drip_volume
        self.pipe_colour = pipe_colour
        self.fluid_colour = fluid_colour
        self.anim = None
        self._poured = False

        self._setup_figure()

    def _setup_figure(self):
        """Initialize the figure: static pipes, empty fluid layer."""
        self.fig, self.ax = plt.subplots(figsize=(7, 7))
        self.fig.patch.set_facecolor(BACKGROUND_COLOUR)
        self.ax.set_facecolor(BACKGROUND_COLOUR)
        self.ax.set_xticks([])
        self.ax.set_yticks([])
        self.ax.set_aspect("equal")
        for spine in self.ax.spines.values():
            spine.set_visible(False)

        pipes = pipe_lines(self.sim.pipes)
        self.pipe_layer = LineCollection(pipes, colors=self.pipe_colour, linewidths=2.0)
        self.fluid_layer = LineCollection([], colors=self.fluid_colour, linewidths=2.5)
        self.ax.add_collection(self.pipe_layer)
        self.ax.add_collection(self.fluid_layer)

        xs, ys = pipes[:, :, 0], pipes[:, :, 1]
        self.ax.set_xlim(xs.min() - 5, xs.max() + 5)
        # Screen coordinates: y grows downward, so the highest point sits on top
        self.ax.set_ylim(ys.max() + 5, ys.min() - 5)

        self.title_text = self.ax.set_title(
            "Frame 0 | fluid 0.0", color="#555555", fontsize=9, fontfamily="monospace"
        )
        plt.tight_layout()

    def draw(self):
        self.fluid_layer.set_segments(fluid_lines(self.sim.pipes))

    def update(self, frame_num):
        """Called by FuncAnimation each frame. Steps sim and redraws the fluid."""
        if not self._poured and self.start_volume > 0:
            self.sim.add_fluid(self.start_volume)
            self._poured = True
        if self.drip_volume > 0:
            self.sim.add_fluid(self.drip_volume)

        metrics = self.sim.update()
        self.draw()

        self.title_text.set_text(
            f"Frame {metrics['frame']} | fluid {metrics['fluid_total']:.1f} | "
            f"{metrics['full_pipes']} full | {metrics['cached_groups']} groups"
        )
        return [self.fluid_layer, self.title_text]

    def _animate(self, frames, timeout: int):
        self.anim = animation.FuncAnimation(
            self.fig,
            self.update,
            frames=frames,
            interval=timeout,
            blit=False,
        )
        return self.anim

    def run(self, timeout: int = TIMEOUT, frames: int = None):
        """
        Start the live animation window.

        Args:
            timeout : Milliseconds between updates
            frames  : Total frames to run (None = until the window closes)
        """
        self._animate(frames, timeout)
        plt.show()

    def play(self):
        if self.anim is not None:
            self.anim.event_source.start()

    def pause(self):
        if self.anim is not None:
            self.anim.event_source.stop()

    def stop(self):
        self.pause()
        plt.close(self.fig)

    def save_gif(self, path: str = "voronoi_drip.gif", fps: int = 20, frames: int = 200):
        """Save the animation as a GIF (for reports and demos)."""
        print(f"Rendering {frames} frames to {path}...")
        self._animate(frames, 1000 // fps)
        writer = animation.PillowWriter(fps=fps)
        self.anim.save(path, writer=writer)
        print(f"Saved: {path}")
