from __future__ import annotations

from typing import Any, Dict, Iterable, List, Optional, Sequence

import typer

_STATUS_COLORS = {
    "safe": typer.colors.GREEN,
    "caution": typer.colors.YELLOW,
    "unsafe": typer.colors.RED,
}
_SPARK_BLOCKS = "▁▂▃▄▅▆▇█"


def echo_heading(text: str) -> None:
    typer.secho(text, bold=True)


def echo_key_values(pairs: Iterable[tuple[str, Any]]) -> None:
    for key, value in pairs:
        typer.echo(f"{key}: {value}")


def echo_status(status: Optional[str]) -> None:
    label = status or "unknown"
    typer.secho(label, fg=_STATUS_COLORS.get(label.lower(), typer.colors.RED), bold=True)


def _fmt(value: Any) -> str:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return f"{value:.1f}"
    return "n/a"


def sparkline(values: Sequence[float]) -> str:
    """Render values as a one-line block chart scaled to their own range."""
    if not values:
        return ""
    low, high = min(values), max(values)
    span = high - low
    if span == 0:
        return _SPARK_BLOCKS[len(_SPARK_BLOCKS) // 2] * len(values)
    top = len(_SPARK_BLOCKS) - 1
    return "".join(_SPARK_BLOCKS[round((value - low) / span * top)] for value in values)


def render_cards(records: List[Dict[str, Any]]) -> None:
    echo_heading("Locations")
    if not records:
        typer.echo("No telemetry received yet.")
        return
    for record in records:
        typer.echo()
        typer.secho(str(record.get("location", "?")).upper(), bold=True, nl=False)
        typer.echo("  ", nl=False)
        echo_status(record.get("safetyStatus"))
        echo_key_values(
            [
                (
                    "ice_cm",
                    f"{_fmt(record.get('avgIceThickness'))} "
                    f"(L {_fmt(record.get('minIceThickness'))} / H {_fmt(record.get('maxIceThickness'))})",
                ),
                (
                    "surface_c",
                    f"{_fmt(record.get('avgSurfaceTemperature'))} "
                    f"(L {_fmt(record.get('minSurfaceTemperature'))} / H {_fmt(record.get('maxSurfaceTemperature'))})",
                ),
                ("snow_cm", _fmt(record.get("maxSnowAccumulation"))),
                ("air_c", _fmt(record.get("avgExternalTemperature"))),
                ("readings", record.get("readingCount")),
            ]
        )


def render_latest(payload: Dict[str, Any]) -> None:
    typer.echo(f"as of {payload.get('timestamp')}")
    render_cards(payload.get("data") or [])


def render_status(payload: Dict[str, Any]) -> None:
    echo_heading("System Status")
    typer.echo("overall: ", nl=False)
    echo_status(payload.get("overallStatus"))
    breakdown = payload.get("breakdown") or {}
    echo_key_values(
        [(key, breakdown.get(key)) for key in ("safe", "caution", "unsafe", "total")]
    )


def render_history(payload: Dict[str, Any]) -> None:
    records = payload.get("data") or []
    echo_heading(f"History: {payload.get('location')} ({payload.get('dataPoints', len(records))} windows)")
    if not records:
        typer.echo("No history available.")
        return
    for record in records:
        typer.echo(
            f"  {record.get('windowEnd')}  ice={_fmt(record.get('avgIceThickness'))}cm  "
            f"surface={_fmt(record.get('avgSurfaceTemperature'))}C  "
            f"air={_fmt(record.get('avgExternalTemperature'))}C  {record.get('safetyStatus')}"
        )


class ChartHandle:
    """A rendered history chart that must be released before it is replaced."""

    def __init__(self, location: str, records: List[Dict[str, Any]]) -> None:
        self.location = location
        self.records = records
        self.released = False

    def draw(self) -> None:
        echo_heading(f"Ice integrity: {self.location}")
        if not self.records:
            typer.echo("No history available.")
            return
        ice = [float(record.get("avgIceThickness", 0.0)) for record in self.records]
        surface = [float(record.get("avgSurfaceTemperature", 0.0)) for record in self.records]
        air = [float(record.get("avgExternalTemperature", 0.0)) for record in self.records]
        typer.echo(f"  avg_thickness {sparkline(ice)}  {_fmt(ice[-1])}cm")
        typer.echo(f"  surface_temp  {sparkline(surface)}  {_fmt(surface[-1])}C")
        typer.echo(f"  ambient_air   {sparkline(air)}  {_fmt(air[-1])}C")

    def release(self) -> None:
        self.released = True


class TerminalRenderer:
    """Draws poller state to the terminal."""

    def render_cards(self, records: List[Dict[str, Any]]) -> None:
        render_cards(records)

    def render_status(self, payload: Dict[str, Any]) -> None:
        render_status(payload)

    def open_chart(self, location: str, records: List[Dict[str, Any]]) -> ChartHandle:
        chart = ChartHandle(location, records)
        chart.draw()
        return chart

    def render_degraded(self, reason: str) -> None:
        typer.secho(
            f"Live data unavailable ({reason}); showing last known readings.",
            fg=typer.colors.YELLOW,
            err=True,
        )

    def render_fallback(self) -> None:
        typer.secho("No telemetry received yet.", fg=typer.colors.YELLOW)
