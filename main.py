import sys
import os
import argparse
from dataclasses import dataclass
from datetime import date
from typing import Mapping, Optional

import requests
from dotenv import load_dotenv
from rich.console import Console

from recur_labels import format_period, parse_period
from recurdo_errors import ConfigError, RecurdoError
from recurrence_pipeline import PipelineFactory
from task_logging import setup_task_logging
from todoist_client import TODOIST_API, TodoistClient

console = Console(stderr=True)

DEFAULT_CUTOFF_PERIOD = "P4M"


def log_info(message, style=None):
    """Print info message with optional styling"""
    console.print(message, style=style, markup=False, highlight=False)


def log_success(message):
    """Print success message"""
    log_info(message, "green")


def log_warning(message):
    """Print warning message"""
    log_info(message, "yellow")


def log_error(message):
    """Print error message"""
    log_info(message, "bold red")


def _env_bool(env, name):
    return env.get(name, '').strip().lower() in ('true', '1', 'yes')


@dataclass(frozen=True)
class RecurdoConfig:
    api_token: str
    api_url: str = TODOIST_API
    cutoff_period: str = DEFAULT_CUTOFF_PERIOD
    dry_run: bool = False
    verbose: bool = False
    log_file: str = 'task_log.txt'
    max_passes: Optional[int] = None

    def cutoff_date(self, today: Optional[date] = None) -> date:
        """Today plus the cutoff period"""
        # dates, not instants: only calendar arithmetic can add months and years
        return (today or date.today()) + parse_period(self.cutoff_period)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="recurdo",
        description="Clone Todoist subtrees labeled recur_<ISO-8601 period> forward in time",
    )
    parser.add_argument("--api-key", type=str, help="Todoist API token (default: $TODOIST_API_TOKEN or $API_KEY)")
    parser.add_argument("--api-url", type=str, help=f"Todoist REST base URL (default: {TODOIST_API})")
    parser.add_argument("--cutoff-period", type=str,
                        help="ISO 8601 period defining how far in the future labeled tasks must be "
                             f"to not be processed (default: {DEFAULT_CUTOFF_PERIOD})")
    parser.add_argument("--dry-run", action="store_true", help="Preview one pass without modifying any tasks")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose output")
    parser.add_argument("--log-file", type=str, help="Task log file (default: task_log.txt)")
    parser.add_argument("--max-passes", type=int, help="Stop with an error after this many passes")
    return parser


def load_config(args, env: Mapping[str, str] = os.environ) -> RecurdoConfig:
    """
    Load configuration with hierarchy: CLI flags → env vars → defaults
    """
    api_token = args.api_key or env.get('TODOIST_API_TOKEN') or env.get('API_KEY')
    if not api_token or not api_token.strip():
        raise ConfigError("TODOIST_API_TOKEN environment variable is not set (or pass --api-key)")

    cutoff_period = args.cutoff_period or env.get('RECURDO_CUTOFF_PERIOD') or DEFAULT_CUTOFF_PERIOD
    try:
        parse_period(cutoff_period)
    except ValueError as e:
        raise ConfigError(f"Invalid cutoff period {cutoff_period!r}: {e}") from e

    max_passes = args.max_passes
    if max_passes is None and env.get('RECURDO_MAX_PASSES'):
        try:
            max_passes = int(env['RECURDO_MAX_PASSES'])
        except ValueError as e:
            raise ConfigError(f"Invalid RECURDO_MAX_PASSES: {env['RECURDO_MAX_PASSES']!r}") from e
    if max_passes is not None and max_passes < 1:
        raise ConfigError("max passes must be at least 1")

    return RecurdoConfig(
        api_token=api_token.strip(),
        api_url=args.api_url or env.get('TODOIST_API') or TODOIST_API,
        cutoff_period=cutoff_period,
        dry_run=args.dry_run or _env_bool(env, 'RECURDO_DRY_RUN'),
        verbose=args.verbose or _env_bool(env, 'RECURDO_VERBOSE'),
        log_file=args.log_file or env.get('RECURDO_LOG_FILE') or 'task_log.txt',
        max_passes=max_passes,
    )


class RunSummary:
    def __init__(self, stats, dry_run=False, planned=None):
        self.passes = stats.get('passes', 0)
        self.candidates_processed = stats.get('candidates_processed', 0)
        self.tasks_created = stats.get('tasks_created', 0)
        self.labels_stripped = stats.get('labels_stripped', 0)
        self.dry_run = dry_run
        self.planned = planned or []

    def print_summary(self):
        """Print a clean summary of the processing results"""
        if self.dry_run:
            log_info("🔍 DRY RUN - Would create:", "cyan")
            for depth, new_task in self.planned:
                indent = "   " * (depth + 1)
                due = new_task.due_date.isoformat() if new_task.due_date else "no due date"
                log_info(f"{indent}• {new_task.content} @ {due}")
            log_info(f"{self.candidates_processed} labeled tasks due before cutoff, no changes made", "yellow")
            return

        if self.candidates_processed == 0:
            return
        log_success(
            f"✅ {self.candidates_processed} recurring tasks processed in {self.passes} passes: "
            f"{self.tasks_created} tasks created, {self.labels_stripped} labels removed"
        )


def main(argv=None):
    load_dotenv()
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
    except ConfigError as e:
        log_error(f"❌ {e}")
        return e.exit_code

    task_logger = setup_task_logging(config.log_file, config.verbose)
    cutoff = config.cutoff_date()
    mode = " [DRY_RUN]" if config.dry_run else ""
    task_logger.info(f"=== SESSION START{mode} === cutoff period {format_period(parse_period(config.cutoff_period))}")
    log_info(f"Updating all tasks due before {cutoff}")
    if config.dry_run:
        log_warning("🧪 DRY RUN MODE - No changes will be made to your tasks")

    client = TodoistClient(config.api_token, api_url=config.api_url, logger=task_logger)
    pipeline = PipelineFactory.create_from_config(client, config, logger=task_logger)

    try:
        pipeline.run()
    except RecurdoError as e:
        log_error(f"❌ {e}")
        task_logger.error(f"Fatal: {e}")
        return e.exit_code
    except requests.exceptions.RequestException as e:
        log_error(f"❌ Todoist API error: {e}")
        task_logger.error(f"API Error: {e}")
        return 1

    planned = [item for result in pipeline.results for item in result.planned_tasks]
    RunSummary(pipeline.stats, dry_run=config.dry_run, planned=planned).print_summary()
    task_logger.info(f"=== SESSION END === {pipeline.stats}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
