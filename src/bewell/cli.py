"""CLI for the bewell wellbeing toolkit."""

from __future__ import annotations

import asyncio
from datetime import date

import click

from bewell.config import get_settings
from bewell.logger import setup_logging


def _engine():
    from bewell.engine import ScoringEngine

    engine = ScoringEngine.from_settings(get_settings())
    engine.load()
    return engine


def _print_scores(engine) -> None:
    from bewell.analytics.scoring import interpret_score

    current = engine.current_scores
    if current is None:
        click.echo("No scores yet.")
        return
    tag = " [SAMPLE DATA]" if engine.is_using_sample_data else ""
    click.echo(f"\n{'=' * 60}")
    click.echo(f"  Wellbeing{tag}  (updated {current.last_updated:%Y-%m-%d %H:%M})")
    click.echo(f"{'=' * 60}")
    for label, value in (
        ("Overall", current.overall),
        ("Sleep", current.sleep),
        ("Activity", current.physical_activity),
        ("Social", current.social_interaction),
    ):
        click.echo(f"  {label:<10} {value:5.1f}/100  {interpret_score(value).level.value}")
    click.echo(f"{'=' * 60}")


@click.group()
@click.option("--log-level", default=None, help="Override BEWELL_LOG_LEVEL.")
def main(log_level: str | None) -> None:
    """bewell: phone-sensor wellbeing tracking."""
    setup_logging(log_level or get_settings().log_level)


@main.command()
@click.argument("file", type=click.Path(exists=True))
@click.option("--output", "-o", default=None, help="Write the replay result as JSON.")
@click.option("--verbose", "-v", is_flag=True, help="Show every tick and skipped line.")
@click.option("--score", is_flag=True, help="Feed each day's metrics into the scoring engine.")
def replay(file: str, output: str | None, verbose: bool, score: bool) -> None:
    """Replay a recorded sensor capture through the classifiers."""
    from bewell.replay import replay_file

    result = replay_file(file, output, verbose)

    if score and result.metrics_by_date:
        engine = _engine()

        async def _score() -> None:
            for day, metrics in sorted(result.metrics_by_date.items()):
                updated = await engine.update_scores(metrics, date.fromisoformat(day))
                if updated is None:
                    click.echo(f"  {day}: no data, skipped")

        asyncio.run(_score())
        _print_scores(engine)


@main.command()
@click.option("--sleep", "sleep_hours", default=0.0, type=float, help="Hours slept.")
@click.option("--activity", "activity_minutes", default=0.0, type=float,
              help="Weighted minutes of physical activity.")
@click.option("--social", "social_minutes", default=0.0, type=float,
              help="Minutes of conversation.")
@click.option("--commit", is_flag=True, help="Commit the day into the stored scores.")
def score(sleep_hours: float, activity_minutes: float, social_minutes: float, commit: bool) -> None:
    """Score one day's metrics."""
    from bewell.analytics.aggregator import WellbeingMetrics
    from bewell.analytics.scoring import calculate_daily_scores, interpret_score

    metrics = WellbeingMetrics(
        sleep_hours=sleep_hours,
        physical_activity_minutes=activity_minutes,
        social_interaction_minutes=social_minutes,
    )
    daily = calculate_daily_scores(metrics)
    click.echo(f"{metrics!r}")
    for label, value in (
        ("Sleep", daily.sleep),
        ("Activity", daily.physical_activity),
        ("Social", daily.social_interaction),
        ("Overall", daily.overall),
    ):
        interpretation = interpret_score(value)
        click.echo(f"  {label:<10} {value:5.1f}/100  {interpretation.message}")

    if commit:
        engine = _engine()
        updated = asyncio.run(engine.update_scores(metrics))
        if updated is None:
            click.echo("All metrics are zero; nothing committed.")
        else:
            _print_scores(engine)


@main.command()
@click.option("--days", "-d", default=7, help="Days of history to show.")
def show(days: int) -> None:
    """Show the current wellbeing scores and recent history."""
    engine = _engine()
    _print_scores(engine)

    history = engine.score_history(days)
    if history:
        click.echo(f"\n  {'Date':<12}{'Sleep':>8}{'Activity':>10}{'Social':>8}{'Overall':>9}")
        for d in history:
            click.echo(f"  {d.date:<12}{d.sleep:>8.1f}{d.physical_activity:>10.1f}"
                       f"{d.social_interaction:>8.1f}{d.overall:>9.1f}")


@main.command()
def refresh() -> None:
    """Refresh scores from the score store into the local cache."""
    engine = _engine()
    if not engine.user_id:
        click.echo("No BEWELL_USER_ID set; showing local scores.")
    asyncio.run(engine.refresh())
    _print_scores(engine)


if __name__ == "__main__":
    main()
