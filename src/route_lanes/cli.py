"""Command-line interface for route-lanes."""

from __future__ import annotations

import json
from pathlib import Path

import click

from route_lanes import __version__
from route_lanes.layout import compute_lane_layout
from route_lanes.layout.engine import LANE_MODES
from route_lanes.model import LaneLayout
from route_lanes.projection import fit_projection
from route_lanes.render import THEMES, render_svg
from route_lanes.request import LaneRequest, RequestError, load_request


def _load(path: Path) -> LaneRequest:
    try:
        return load_request(path)
    except RequestError as exc:
        raise click.ClickException(str(exc)) from exc


def _layout(
    request: LaneRequest, width: float, height: float, padding: float, lane_mode: str
) -> tuple[LaneLayout, tuple[float, float]]:
    points = [request.stop]
    for seg in request.segments:
        points.extend(seg.points)
    project = fit_projection(points, width, height, padding)
    layout = compute_lane_layout(
        request.stop, request.segments, project, lane_mode=lane_mode
    )
    return layout, project(*request.stop)


@click.group()
@click.version_option(version=__version__)
def cli() -> None:
    """route-lanes: draw overlapping transit routes as side-by-side lanes."""


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, path_type=Path))
@click.option(
    "-o",
    "--output",
    type=click.Path(path_type=Path),
    default=None,
    help="Output SVG file path. Defaults to REQUEST with an .svg suffix.",
)
@click.option(
    "--log",
    "log_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Also write the lane event log and snapshots as JSON.",
)
@click.option("--width", type=float, default=600.0, show_default=True)
@click.option("--height", type=float, default=400.0, show_default=True)
@click.option(
    "--theme",
    type=click.Choice(sorted(THEMES)),
    default="light",
    show_default=True,
)
@click.option(
    "--lane-mode",
    type=click.Choice(LANE_MODES),
    default="edge",
    show_default=True,
    help="'edge' eases lanes between groups; 'chain' draws fixed-offset pieces.",
)
def render(
    request_file: Path,
    output: Path | None,
    log_path: Path | None,
    width: float,
    height: float,
    theme: str,
    lane_mode: str,
) -> None:
    """Render a lane layout request to an SVG sign map."""
    request = _load(request_file)
    style = THEMES[theme]
    layout, stop_xy = _layout(request, width, height, style.padding, lane_mode)
    markers = [
        layout.place_marker(m.route_id, m.lat, m.lon) for m in request.markers
    ]
    svg = render_svg(layout, style, width, height, stop_xy=stop_xy, markers=markers)

    if output is None:
        output = request_file.with_suffix(".svg")
    output.write_text(svg)
    click.echo(f"Rendered {len(layout.ribbons)} lane(s) to {output}")

    if log_path is not None:
        log_path.write_text(
            json.dumps(
                {"eventLog": layout.event_log, "snapshots": layout.snapshots}, indent=2
            )
        )
        click.echo(f"Wrote event log to {log_path}")


@cli.command()
@click.argument("request_file", type=click.Path(exists=True, path_type=Path))
@click.option("--width", type=float, default=600.0, show_default=True)
@click.option("--height", type=float, default=400.0, show_default=True)
def events(request_file: Path, width: float, height: float) -> None:
    """Print the lane event log of a request as JSON.

    Ordering decisions are measured in pixels, so pass the same
    ``--width``/``--height`` as ``render`` to get the log it would write.
    """
    request = _load(request_file)
    padding = THEMES["light"].padding
    layout, _ = _layout(request, width, height, padding, "edge")
    click.echo(json.dumps(layout.event_log, indent=2))


if __name__ == "__main__":
    cli()
