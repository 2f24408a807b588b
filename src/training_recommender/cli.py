#!/usr/bin/env python3
"""
Training recommender CLI.

Training-load metrics, model training and next-workout recommendations
from the local workout history database.

Usage:
    training-recommender load USER --days 42
    training-recommender train USER
    training-recommender recommend USER --max-duration 60
    training-recommender quality USER
"""

import argparse
import asyncio
import logging
from dataclasses import dataclass
from datetime import date, timedelta
from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .config import Settings, get_settings
from .db.analytics import SQLiteAnalyticsRepository
from .db.history import SQLiteLoadHistoryStore
from .exceptions import TrainingRecommenderError
from .metrics.fitness import acute_chronic_ratio
from .models.recommendation import RecommendationRequest, UserFeedback, WorkoutType
from .services.feature_extraction import FeatureExtractionService
from .services.model_registry import ModelRegistry
from .services.model_training import ModelTrainer
from .services.prediction import Predictor
from .services.recommendation import RecommendationEngine
from .utils.log_sanitizer import configure_logging

console = Console()


@dataclass
class Services:
    """Engine components wired to the local database."""

    history: SQLiteLoadHistoryStore
    analytics: SQLiteAnalyticsRepository
    registry: ModelRegistry
    engine: RecommendationEngine
    trainer: ModelTrainer

    @classmethod
    def from_settings(cls, settings: Settings) -> "Services":
        history = SQLiteLoadHistoryStore(settings.database_path)
        registry = ModelRegistry(settings.model_dir)
        analytics = SQLiteAnalyticsRepository(settings.database_path)
        features = FeatureExtractionService(history, settings=settings)
        engine = RecommendationEngine(
            feature_service=features,
            predictor=Predictor(registry),
            analytics=analytics,
            settings=settings,
        )
        return cls(
            history=history,
            analytics=analytics,
            registry=registry,
            engine=engine,
            trainer=ModelTrainer(registry, features, settings=settings),
        )


def balance_text(balance: float) -> Text:
    color = "green" if balance > 0 else "yellow" if balance > -10 else "red"
    return Text(f"{balance:+.1f}", style=color)


def cmd_load(args, services: Services) -> None:
    """Show the daily load series."""
    end = args.end or date.today()
    start = end - timedelta(days=args.days)
    states = asyncio.run(services.engine.get_load_series(args.user_id, start, end))

    table = Table(title=f"Training Load ({start} to {end})", box=box.ROUNDED)
    table.add_column("Date", style="cyan")
    table.add_column("Stress", justify="right")
    table.add_column("Chronic", justify="right")
    table.add_column("Acute", justify="right")
    table.add_column("Balance", justify="right")
    table.add_column("A:C", justify="right")

    for state in states:
        table.add_row(
            state.date.isoformat(),
            f"{state.daily_stress:.1f}",
            f"{state.chronic_load:.1f}",
            f"{state.acute_load:.1f}",
            balance_text(state.balance),
            f"{acute_chronic_ratio(state):.2f}",
        )

    console.print(table)


def cmd_train(args, services: Services) -> None:
    """Train candidate models and show their held-out metrics."""
    report = asyncio.run(services.trainer.train_user_models(args.user_id, as_of=args.as_of))

    table = Table(title=f"Models trained on {report.sample_count} samples", box=box.ROUNDED)
    table.add_column("Version", style="cyan")
    table.add_column("MAE", justify="right")
    table.add_column("RMSE", justify="right")
    table.add_column("R²", justify="right")
    table.add_column("")

    for metrics in report.candidates:
        selected = "[bold green]selected[/bold green]" if metrics.model_version == report.selected_version else ""
        table.add_row(
            metrics.model_version,
            f"{metrics.mae:.1f}",
            f"{metrics.rmse:.1f}",
            f"{metrics.r_squared:.3f}",
            selected,
        )

    console.print(table)


def cmd_recommend(args, services: Services) -> None:
    """Show the next-workout recommendation."""
    feedback = None
    if args.energy is not None or args.motivation is not None:
        feedback = UserFeedback(
            perceived_difficulty=args.difficulty,
            energy_level=args.energy or 5,
            motivation=args.motivation or 5,
        )
    request = RecommendationRequest(
        user_id=args.user_id,
        target_date=args.date,
        preferred_workout_type=WorkoutType(args.workout_type) if args.workout_type else None,
        max_duration_minutes=args.max_duration,
        feedback=feedback,
    )
    rec = asyncio.run(services.engine.get_recommendation(request))

    lines = [
        f"[bold]Stress:[/bold] {rec.recommended_stress:.0f} "
        f"({rec.lower_bound:.0f}-{rec.upper_bound:.0f})",
        f"[bold]Workout:[/bold] {rec.workout_type.value}",
        f"[bold]Confidence:[/bold] {rec.confidence:.0%}",
        f"[dim]Model: {rec.model_version}[/dim]",
        "",
        rec.reasoning,
    ]
    for warning in rec.warnings:
        lines.append(f"[yellow]! {warning}[/yellow]")
    console.print(Panel("\n".join(lines), title="Next Workout", box=box.ROUNDED))

    if rec.alternatives:
        alt_table = Table(title="Alternatives", box=box.SIMPLE)
        alt_table.add_column("Workout")
        alt_table.add_column("Stress", justify="right")
        alt_table.add_column("Confidence", justify="right")
        for alt in rec.alternatives:
            alt_table.add_row(alt.workout_type.value, f"{alt.recommended_stress:.0f}", f"{alt.confidence:.0%}")
        console.print(alt_table)


def cmd_quality(args, services: Services) -> None:
    """Show how usable the training history is."""
    report = asyncio.run(
        services.trainer.assess_user_data_quality(args.user_id, as_of=args.as_of, days=args.days)
    )

    table = Table(title="Training Data Quality", box=box.ROUNDED, show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Samples", str(report.total_samples))
    table.add_row("Valid samples", str(report.valid_samples))
    table.add_row("Completeness", f"{report.data_completeness:.0%}")
    table.add_row("Zero stress", str(report.zero_stress))
    table.add_row("Extreme stress", str(report.extreme_stress))
    table.add_row(
        "Sufficient",
        Text("yes", style="green") if report.is_sufficient else Text("no", style="red"),
    )
    console.print(table)

    for suggestion in report.improvement_suggestions():
        console.print(f"  - {suggestion}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Training-load modeling and workout stress recommendations",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  training-recommender load athlete-1 --days 42
  training-recommender train athlete-1
  training-recommender recommend athlete-1 --max-duration 60 --energy 7
  training-recommender quality athlete-1
        """,
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    load_p = subparsers.add_parser("load", help="Show chronic/acute load and balance")
    load_p.add_argument("user_id")
    load_p.add_argument("--days", "-d", type=int, default=42, help="Number of days to show")
    load_p.add_argument("--end", type=date.fromisoformat, help="Last day (YYYY-MM-DD)")

    train_p = subparsers.add_parser("train", help="Train models for a user")
    train_p.add_argument("user_id")
    train_p.add_argument("--as-of", type=date.fromisoformat, help="Last day of history")

    rec_p = subparsers.add_parser("recommend", help="Recommend the next workout")
    rec_p.add_argument("user_id")
    rec_p.add_argument("--date", type=date.fromisoformat, help="Target day (YYYY-MM-DD)")
    rec_p.add_argument("--workout-type", choices=[t.value for t in WorkoutType])
    rec_p.add_argument("--max-duration", type=int, help="Maximum session minutes")
    rec_p.add_argument("--energy", type=int, choices=range(1, 11), help="Energy level 1-10")
    rec_p.add_argument("--motivation", type=int, choices=range(1, 11), help="Motivation 1-10")
    rec_p.add_argument("--difficulty", type=int, default=5, choices=range(1, 11), help="Perceived difficulty 1-10")

    quality_p = subparsers.add_parser("quality", help="Assess training data quality")
    quality_p.add_argument("user_id")
    quality_p.add_argument("--days", "-d", type=int, help="History window in days")
    quality_p.add_argument("--as-of", type=date.fromisoformat, help="Last day of history")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging("DEBUG" if args.verbose else settings.log_level)

    commands = {
        "load": cmd_load,
        "train": cmd_train,
        "recommend": cmd_recommend,
        "quality": cmd_quality,
    }
    command = commands.get(args.command)
    if command is None:
        parser.print_help()
        return 1

    services = Services.from_settings(settings)
    try:
        command(args, services)
    except TrainingRecommenderError as e:
        console.print(f"[red]Error:[/red] {e.message}")
        logging.getLogger(__name__).debug(repr(e))
        return 1
    finally:
        services.history.close()
        services.analytics.close()
        services.registry.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
