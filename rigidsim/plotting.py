"""Visualization for agents.

Provides:
- A render context that answers "is there a figure to draw into?"
- Plot-availability checks for previously drawn artists
- Body coordinate frame drawing
- Trajectory plots, plot-at-time and animation of an agent's history

Plotting reads agent snapshots only and never writes back into simulation
state. Drawn artists are kept in AgentPlotter.plot_data and are reused when
still attached to a live figure.

Example:
    >>> from rigidsim.plotting import AgentPlotter, MatplotlibRenderContext
    >>>
    >>> plotter = AgentPlotter(agent, MatplotlibRenderContext(interactive=True))
    >>> plotter.plot()
    >>> plotter.animate()
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

import matplotlib.pyplot as plt
import numpy as np
from beartype import beartype
from matplotlib._pylab_helpers import Gcf
from matplotlib.figure import Figure
from numpy.typing import NDArray

from rigidsim.agents.agent import Agent

logger = logging.getLogger(__name__)

# =============================================================================
# Plot Style Configuration
# =============================================================================

COLORS = {
    "trajectory": "#2E86AB",  # Steel blue
    "e1": "#D62828",  # Body x
    "e2": "#2A9D8F",  # Body y
    "e3": "#1D3557",  # Body z
}

FRAME_FIELDS = ("e1", "e2", "e3")


@beartype
@dataclass
class PlotConfig:
    """Agent plotting configuration.

    Attributes:
        plot_frame_flag: Draw the body coordinate frame
        plot_frame_scale: Length of the drawn body axes [m]
        plot_frame_colors: One RGB row per body axis
        frame_line_width: Line width of the body axes
        animation_time_discretization: Time between animation frames [s]
        animation_plot_buffer: Margin around the trajectory in animations [m]
    """
    plot_frame_flag: bool = True
    plot_frame_scale: float = 1.0
    plot_frame_colors: NDArray[np.float64] = field(default_factory=lambda: np.eye(3))
    frame_line_width: float = 2.0
    animation_time_discretization: float = 0.1
    animation_plot_buffer: float = 1.0

    def __post_init__(self) -> None:
        if self.plot_frame_colors.shape != (3, 3):
            raise ValueError(
                f"Frame colors must be shape (3, 3), got {self.plot_frame_colors.shape}"
            )
        if not self.animation_time_discretization > 0:
            raise ValueError(
                f"Animation time step must be positive, got {self.animation_time_discretization}"
            )


# =============================================================================
# Render Context
# =============================================================================


class RenderContext(ABC):
    """Where plots go. Passed to plotting code instead of global lookups."""

    @abstractmethod
    def current_figure(self) -> Figure | None:
        """The figure to draw into, or None if no figure is up."""

    @abstractmethod
    def is_open(self, fig: Figure) -> bool:
        """Whether fig can still be drawn into."""

    @abstractmethod
    def axes_3d(self):
        """3D axes to draw into, creating a figure if needed."""

    @abstractmethod
    def pause(self, interval: float) -> None:
        """Let the display catch up between animation frames."""


def _figure_is_managed(fig: Figure) -> bool:
    return any(m.canvas.figure is fig for m in Gcf.get_all_fig_managers())


@beartype
class MatplotlibRenderContext(RenderContext):
    """Render context backed by matplotlib.

    Args:
        figure: Figure to draw into; when omitted, pyplot's current figure
            is used if one exists. A figure created outside pyplot stays
            open for as long as it is bound here.
        interactive: Pause between animation frames so they are displayed
    """

    def __init__(self, figure: Figure | None = None, interactive: bool = False) -> None:
        self._figure = figure
        self._bound_outside_pyplot = figure is not None and not _figure_is_managed(figure)
        self.interactive = interactive

    def current_figure(self) -> Figure | None:
        if self._figure is not None:
            return self._figure if self.is_open(self._figure) else None
        if not plt.get_fignums():
            return None
        return plt.gcf()

    def is_open(self, fig: Figure) -> bool:
        if fig is self._figure and self._bound_outside_pyplot:
            return True
        return _figure_is_managed(fig)

    def axes_3d(self):
        fig = self.current_figure()
        if fig is None:
            fig = plt.figure()
            if self._figure is not None:
                self._figure = fig
                self._bound_outside_pyplot = False
        for ax in fig.axes:
            if ax.name == "3d":
                return ax
        return fig.add_subplot(projection="3d")

    def pause(self, interval: float) -> None:
        if self.interactive:
            plt.pause(interval)


# =============================================================================
# Availability
# =============================================================================


def _artist_is_live(artist, context: RenderContext) -> bool:
    ax = getattr(artist, "axes", None)
    if ax is None:
        return False
    fig = ax.figure
    return fig is not None and ax in fig.axes and context.is_open(fig)


@beartype
def check_if_plot_is_available(
    plot_data: dict,
    fieldname: str | None = None,
    context: RenderContext | None = None,
) -> bool:
    """Check whether previously drawn artists can be updated in place.

    Args:
        plot_data: Artists keyed by name; values are an artist or a list
            of artists
        fieldname: Key to check; defaults to the first key of plot_data
        context: Render context; defaults to pyplot's current figure

    Returns:
        True if a figure is up and every artist under fieldname is still
        attached to an open figure, False otherwise
    """
    if context is None:
        context = MatplotlibRenderContext()
    if not plot_data:
        return False
    if fieldname is None:
        fieldname = next(iter(plot_data))

    handles = plot_data.get(fieldname)
    if handles is None:
        return False
    if not isinstance(handles, (list, tuple)):
        handles = [handles]
    if len(handles) == 0 or context.current_figure() is None:
        return False
    return all(_artist_is_live(h, context) for h in handles)


# =============================================================================
# Coordinate Frames
# =============================================================================


@beartype
def plot_coord_frame_3d(
    ax,
    R: NDArray[np.float64],
    p: NDArray[np.float64],
    scale: float = 1.0,
    colors: NDArray[np.float64] | None = None,
    line_width: float = 2.0,
    data: dict | None = None,
) -> dict:
    """Draw the coordinate frame with rotation R at position p.

    Each column of R is drawn as a line of length scale starting at p.

    Args:
        ax: 3D axes
        R: 3x3 rotation matrix
        p: Frame origin, shape (3,)
        scale: Axis length
        colors: One RGB row per axis; defaults to red, green, blue
        line_width: Line width
        data: Artists from a previous call, updated in place if given

    Returns:
        Dict mapping "e1", "e2", "e3" to a one-element list of Line3D
    """
    if colors is None:
        colors = np.eye(3)

    out = {}
    for i, name in enumerate(FRAME_FIELDS):
        tip = p + scale * R[:, i]
        xs, ys, zs = [p[0], tip[0]], [p[1], tip[1]], [p[2], tip[2]]
        if data is not None:
            (line,) = data[name]
            line.set_data_3d(xs, ys, zs)
        else:
            (line,) = ax.plot(xs, ys, zs, color=colors[i], linewidth=line_width)
        out[name] = [line]
    return out


# =============================================================================
# Agent Plotter
# =============================================================================


@beartype
class AgentPlotter:
    """Draws an agent's trajectory and body frame.

    Attributes:
        agent: Agent to draw (read only)
        context: Render context
        config: Plot configuration
        plot_data: Drawn artists keyed by name
    """

    def __init__(
        self,
        agent: Agent,
        context: RenderContext | None = None,
        config: PlotConfig | None = None,
    ) -> None:
        self.agent = agent
        self.context = context or MatplotlibRenderContext()
        self.config = config or PlotConfig()
        self.plot_data: dict[str, list] = {name: [] for name in ("trajectory", *FRAME_FIELDS)}

    def plot(self, color=COLORS["trajectory"]) -> None:
        """Plot the executed trajectory and the current body frame."""
        history = self.agent.snapshot()
        ax = self.context.axes_3d()

        positions = history.state[:, self.agent.position_indices]
        xs, ys, zs = positions[:, 0], positions[:, 1], positions[:, 2]
        if check_if_plot_is_available(self.plot_data, "trajectory", self.context):
            (line,) = self.plot_data["trajectory"]
            line.set_data_3d(xs, ys, zs)
        else:
            (line,) = ax.plot(xs, ys, zs, color=color)
            self.plot_data["trajectory"] = [line]

        if self.config.plot_frame_flag and history.attitude is not None:
            self._plot_frame(ax, np.array(history.attitude[-1]), np.array(positions[-1]))

    def plot_at_time(self, t: float) -> NDArray[np.float64]:
        """Plot the body frame at time t.

        The attitude between recorded samples is approximated by an Euler
        step on SO(3) from the closest recorded attitude.

        Returns:
            The attitude drawn
        """
        z_t = self.agent.state_at_time(t)
        p_t = z_t[self.agent.position_indices]
        R_t = self.agent.attitude_at_time(t)

        self._plot_frame(self.context.axes_3d(), R_t, p_t)
        return R_t

    def animate(self) -> int:
        """Step through the executed trajectory, one frame per animation time step.

        Returns:
            Number of frames drawn
        """
        history = self.agent.snapshot()
        dt = self.config.animation_time_discretization
        t_vec = np.arange(history.time[0], history.time[-1] + 1e-9, dt)

        positions = history.state[:, self.agent.position_indices]
        buffer = self.config.animation_plot_buffer
        lower = positions.min(axis=0) - buffer
        upper = positions.max(axis=0) + buffer

        ax = self.context.axes_3d()
        for t in t_vec:
            self.plot_at_time(float(t))
            ax.set_xlim(lower[0], upper[0])
            ax.set_ylim(lower[1], upper[1])
            ax.set_zlim(lower[2], upper[2])
            ax.set_box_aspect(np.maximum(upper - lower, 1e-9))
            self.context.pause(dt)

        logger.debug("Animated %d frames", t_vec.size)
        return int(t_vec.size)

    def _plot_frame(self, ax, R: NDArray[np.float64], p: NDArray[np.float64]) -> None:
        available = all(
            check_if_plot_is_available(self.plot_data, name, self.context) for name in FRAME_FIELDS
        )
        data = self.plot_data if available else None
        new_data = plot_coord_frame_3d(
            ax,
            R,
            p,
            scale=self.config.plot_frame_scale,
            colors=self.config.plot_frame_colors,
            line_width=self.config.frame_line_width,
            data=data,
        )
        self.plot_data.update(new_data)
