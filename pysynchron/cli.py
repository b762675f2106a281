"""CLI interface for pysynchron."""

import logging
import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional

import click

from .cli_progress import SyncProgressDisplay, run_sync_with_progress
from .config import get_config_path, load_options, merge_options, save_options
from .exceptions import SynchronConfigError
from .output import OutputFormatter
from .sync.comparator import SyncPreview
from .sync.engine import SyncEngine
from .sync.executor import TaskListExecutor
from .sync.filter import FileFilter
from .sync.ignore_cache import GitIgnoreRuleCache
from .sync.modes import CompareMethod, ConflictResolution, SyncMode
from .sync.options import SyncOptions
from .sync.result import SyncResult
from .sync.tasks import (
    TaskListResult,
    create_sample_config,
    describe_task_list,
    load_task_list,
    save_task_list,
    summarize_task_list_result,
    validate_task_list,
)
from .sync.watcher import FileChangedEvent, FileWatcher
from .utils import format_size

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def _enum_callback(enum_cls: Any) -> Callable[[Any, Any, Optional[str]], Any]:
    """Build a click callback that parses an option into ``enum_cls``."""

    def callback(ctx: Any, param: Any, value: Optional[str]) -> Any:
        if value is None:
            return None
        try:
            return enum_cls.parse(value)
        except ValueError as e:
            raise click.BadParameter(str(e)) from e

    return callback


def sync_options(func: Callable) -> Callable:
    """Attach the options shared by sync, preview, watch and config save."""
    decorators = [
        click.argument("source", type=click.Path(file_okay=False), required=False),
        click.argument("target", type=click.Path(file_okay=False), required=False),
        click.option(
            "--mode",
            "-m",
            callback=_enum_callback(SyncMode),
            help="Sync mode: diff, sync, move, mirror (default: diff)",
        ),
        click.option(
            "--filter",
            "-f",
            "include",
            multiple=True,
            help="Include pattern (e.g. *.txt, **/*.py); repeatable",
        ),
        click.option(
            "--exclude", "-e", multiple=True, help="Exclude pattern; repeatable"
        ),
        click.option(
            "--compare",
            callback=_enum_callback(CompareMethod),
            help="Comparison: size-only, timestamp-only, timestamp-and-size, hash",
        ),
        click.option(
            "--conflict",
            callback=_enum_callback(ConflictResolution),
            help="Conflict resolution: overwrite, newer, skip, rename, ask",
        ),
        click.option("--dry-run", is_flag=True, help="Preview changes without executing"),
        click.option("--verify", is_flag=True, help="Verify copied files by hash"),
        click.option("--no-subdirs", is_flag=True, help="Do not include subdirectories"),
        click.option(
            "--no-preserve-timestamps", is_flag=True, help="Do not copy timestamps"
        ),
        click.option(
            "--no-preserve-attributes", is_flag=True, help="Do not copy permissions"
        ),
        click.option("--buffer", type=int, default=None, help="Copy buffer size in bytes"),
        click.option("--retries", type=int, default=None, help="Retries per failed copy"),
        click.option(
            "--retry-delay", type=int, default=None, help="Delay between retries (ms)"
        ),
        click.option(
            "--debounce", type=int, default=None, help="Watch debounce interval (ms)"
        ),
        click.option("--no-gitignore", is_flag=True, help="Ignore .gitignore files"),
        click.option(
            "--gitignore-file",
            type=click.Path(dir_okay=False),
            default=None,
            help="External ignore file to apply",
        ),
        click.option(
            "--gitignore-override",
            is_flag=True,
            help="Use only --gitignore-file, skipping auto-detection",
        ),
    ]
    for decorator in reversed(decorators):
        func = decorator(func)
    return func


def _build_options(ctx: Any, **params: Any) -> SyncOptions:
    """Merge command-line values over the loaded options file."""
    base = load_options(ctx.obj.get("config_path"))

    gitignore = base.gitignore
    if params["no_gitignore"]:
        gitignore = replace(gitignore, enabled=False)
    if params["gitignore_file"]:
        gitignore = replace(
            gitignore,
            external_path=params["gitignore_file"],
            override_auto_detect=params["gitignore_override"]
            or gitignore.override_auto_detect,
        )

    return merge_options(
        base,
        source_path=params["source"],
        target_path=params["target"],
        mode=params["mode"],
        compare_method=params["compare"],
        conflict_resolution=params["conflict"],
        include_patterns=tuple(params["include"]),
        exclude_patterns=tuple(params["exclude"]),
        dry_run=params["dry_run"] or None,
        verify_hash=params["verify"] or None,
        include_subdirectories=False if params["no_subdirs"] else None,
        preserve_timestamps=False if params["no_preserve_timestamps"] else None,
        preserve_attributes=False if params["no_preserve_attributes"] else None,
        buffer_size=params["buffer"],
        max_retries=params["retries"],
        retry_delay_ms=params["retry_delay"],
        watch_debounce_ms=params["debounce"],
        gitignore=gitignore,
    )


def _require_valid(ctx: Any, options: SyncOptions) -> None:
    out: OutputFormatter = ctx.obj["out"]
    errors = options.validate()
    if errors:
        for error in errors:
            out.error(error)
        ctx.exit(1)


def _result_to_dict(result: SyncResult) -> dict:
    return {
        "success": result.success,
        "copied": result.files_copied,
        "moved": result.files_moved,
        "deleted": result.files_deleted,
        "skipped": result.files_skipped,
        "failed": result.files_failed,
        "bytes_transferred": result.bytes_transferred,
        "duration": round(result.duration, 3),
        "errors": result.errors,
    }


def _display_result(out: OutputFormatter, result: SyncResult, dry_run: bool) -> None:
    if out.json_output:
        out.output_json(_result_to_dict(result))
        return

    if result.success:
        out.success("Dry run complete!" if dry_run else "Sync complete!")
    for error in result.errors:
        out.error(error)

    if result.total_files_processed == 0 and result.files_failed == 0:
        out.info("No changes needed - everything is in sync!")
        return

    items = [
        ("Copied", str(result.files_copied)),
        ("Moved", str(result.files_moved)),
        ("Deleted", str(result.files_deleted)),
        ("Skipped", str(result.files_skipped)),
        ("Failed", str(result.files_failed)),
        ("Transferred", format_size(result.bytes_transferred)),
        ("Duration", f"{result.duration:.2f}s ({result.speed_mbps:.2f} MB/s)"),
    ]
    out.print_summary("Dry Run Summary" if dry_run else "Sync Summary", items)


def _display_preview(out: OutputFormatter, preview: SyncPreview) -> None:
    decisions = preview.to_copy + preview.to_move + preview.to_delete
    rows = [
        {
            "action": d.action.value,
            "path": d.destination,
            "size": "" if d.entry.is_dir else format_size(d.entry.size),
            "reason": d.reason,
        }
        for d in decisions
    ]

    if out.json_output:
        out.output_json(
            {
                "actions": rows,
                "skipped": len(preview.to_skip),
                "total_bytes": preview.total_bytes,
            }
        )
        return

    if not rows:
        out.info("No changes needed - everything is in sync!")
        return

    out.output_table(
        rows,
        ["action", "path", "size", "reason"],
        {"action": "Action", "path": "Path", "size": "Size", "reason": "Reason"},
    )
    out.print_summary(
        "Preview",
        [
            ("Pending", f"{preview.total_files} ({preview.summary()})"),
            ("Data", format_size(preview.total_bytes)),
        ],
    )


@click.group()
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.option("--json", is_flag=True, help="Output in JSON format")
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose/debug logging output",
)
@click.option(
    "--log-level",
    "-l",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Log level (default: warning)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="Also write logs to this file",
)
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Options file (default: ~/.config/pysynchron/synchron.json)",
)
@click.version_option()
@click.pass_context
def main(
    ctx: Any,
    quiet: bool,
    json: bool,
    verbose: bool,
    log_level: Optional[str],
    log_file: Optional[str],
    config_path: Optional[str],
) -> None:
    """PySynchron - one-way directory synchronization with gitignore support."""
    # Store settings in context for subcommands to access
    ctx.ensure_object(dict)
    ctx.obj["out"] = OutputFormatter(json_output=json, quiet=quiet)
    ctx.obj["verbose"] = verbose
    ctx.obj["config_path"] = config_path

    if verbose:
        level = logging.DEBUG
    elif log_level:
        level = getattr(logging, log_level.upper())
    else:
        # Set default logging level to WARNING to suppress debug/info messages
        level = logging.WARNING

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    package_logger = logging.getLogger("pysynchron")
    package_logger.setLevel(level)

    if log_file:
        handler = logging.FileHandler(log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        package_logger.addHandler(handler)


@main.command()
@sync_options
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def sync(ctx: Any, no_progress: bool, **params: Any) -> None:
    """Synchronize SOURCE into TARGET.

    SOURCE and TARGET may be omitted when the options file provides them.

    Sync Modes:
      - diff (d): Copy new and changed files
      - sync (s): Copy new and changed files
      - move (mv): Move new and changed files into the target
      - mirror (m): Copy changes and delete target-only entries

    Examples:
        pysynchron sync ./src /backup/src
        pysynchron sync ./photos /mnt/photos -m mirror --dry-run
        pysynchron sync ./project /backup -e "*.tmp" --compare hash
    """
    out: OutputFormatter = ctx.obj["out"]
    options = _build_options(ctx, **params)
    _require_valid(ctx, options)

    if not out.quiet and not out.json_output:
        out.info(f"Syncing: {options.source_path} -> {options.target_path}")
        out.info(f"Mode: {options.mode.value}")
        if options.dry_run:
            out.info("Dry run: No changes will be made")
        out.print("")

    cancel_event = threading.Event()
    try:
        with GitIgnoreRuleCache() as cache:
            engine = SyncEngine(rule_cache=cache)
            result = run_sync_with_progress(
                engine,
                options,
                show_progress=not (no_progress or out.quiet or out.json_output),
                cancel_event=cancel_event,
            )
    except KeyboardInterrupt:
        cancel_event.set()
        out.warning("\nSync cancelled by user")
        ctx.exit(130)  # Standard exit code for SIGINT

    _display_result(out, result, options.dry_run)
    if not result.success:
        ctx.exit(1)


@main.command()
@sync_options
@click.pass_context
def preview(ctx: Any, **params: Any) -> None:
    """Show what a sync of SOURCE into TARGET would do, without changing anything."""
    out: OutputFormatter = ctx.obj["out"]
    options = _build_options(ctx, **params).with_dry_run()
    _require_valid(ctx, options)

    with GitIgnoreRuleCache() as cache:
        result = SyncEngine(rule_cache=cache).preview(options)
    _display_preview(out, result)


@main.command()
@sync_options
@click.pass_context
def watch(ctx: Any, **params: Any) -> None:
    """Sync SOURCE into TARGET, then keep syncing as files change.

    Press Ctrl+C to stop watching.
    """
    out: OutputFormatter = ctx.obj["out"]
    options = _build_options(ctx, **params)
    options = replace(options, watch_mode=True)
    _require_valid(ctx, options)

    def on_change(event: FileChangedEvent) -> None:
        out.progress_message(f"{event.change_type.value}: {event.path}")

    def on_sync_complete(result: SyncResult) -> None:
        if result.success:
            out.success(result.summary())
        else:
            for error in result.errors:
                out.error(error)

    with GitIgnoreRuleCache() as cache:
        engine = SyncEngine(rule_cache=cache)
        out.info(f"Initial sync: {options.source_path} -> {options.target_path}")
        _display_result(out, engine.sync(options), options.dry_run)

        with FileFilter.from_options(options, cache) as file_filter:
            watcher = FileWatcher(
                engine,
                options,
                file_filter=file_filter,
                on_change=on_change,
                on_sync_complete=on_sync_complete,
            )
            watcher.start()
            out.info("Watch mode active. Press Ctrl+C to quit.")
            try:
                while watcher.is_running:
                    time.sleep(1)
            except KeyboardInterrupt:
                out.info("\nStopping watcher...")
            finally:
                watcher.stop()


# =============================================================================
# Task lists
# =============================================================================


@main.group()
def tasks() -> None:
    """Run and manage task lists (JSON files describing several syncs)."""


def _load_task_list_or_exit(ctx: Any, config_file: str):
    out: OutputFormatter = ctx.obj["out"]
    try:
        return load_task_list(config_file)
    except SynchronConfigError as e:
        out.error(str(e))
        ctx.exit(1)


def _display_task_list_result(out: OutputFormatter, result: TaskListResult) -> None:
    if out.json_output:
        out.output_json(
            {
                "success": result.success,
                "completed": result.tasks_completed,
                "failed": result.tasks_failed,
                "skipped": result.tasks_skipped,
                "bytes_transferred": result.total_bytes_transferred,
                "duration": round(result.total_duration, 3),
                "tasks": [
                    {
                        "name": task.task_name,
                        "success": task.success,
                        "skipped": task.skipped,
                        "error": task.error_message,
                    }
                    for task in result.task_results
                ],
                "errors": result.errors,
            }
        )
        return

    for task in result.task_results:
        if task.skipped:
            out.warning(f"{task} ({task.error_message})")
        elif task.success:
            out.success(str(task))
        else:
            out.error(str(task))

    out.print_summary(
        "Task List Summary",
        [
            ("Result", summarize_task_list_result(result)),
            ("Duration", f"{result.total_duration:.2f}s"),
        ],
    )


@tasks.command("run")
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.option("--dry-run", is_flag=True, help="Run every task as a dry run")
@click.option(
    "--parallel",
    type=int,
    default=None,
    help="Override the number of tasks run at the same time",
)
@click.option("--no-progress", is_flag=True, help="Disable progress bars")
@click.pass_context
def tasks_run(
    ctx: Any,
    config_file: str,
    dry_run: bool,
    parallel: Optional[int],
    no_progress: bool,
) -> None:
    """Run every enabled task in CONFIG_FILE."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_task_list_or_exit(ctx, config_file)

    if parallel is not None:
        config.max_parallel_tasks = parallel
    if dry_run:
        for task in config.tasks:
            task.options = task.options.with_dry_run()

    validation = validate_task_list(config)
    for warning in validation.warnings:
        out.warning(warning)
    if not validation.is_valid:
        for error in validation.errors:
            out.error(error)
        ctx.exit(1)

    out.info(f"Running {config}")
    cancel_event = threading.Event()
    show_progress = not (no_progress or dry_run or out.quiet or out.json_output)
    try:
        with GitIgnoreRuleCache() as cache:
            executor = TaskListExecutor(rule_cache=cache)
            if show_progress:
                with SyncProgressDisplay() as display:
                    result = executor.execute_all(
                        config, display.handle_task_event, cancel_event
                    )
            else:
                result = executor.execute_all(config, cancel_event=cancel_event)
    except KeyboardInterrupt:
        cancel_event.set()
        out.warning("\nTask list cancelled by user")
        ctx.exit(130)

    _display_task_list_result(out, result)
    if not result.success:
        ctx.exit(1)


@tasks.command("list")
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.pass_context
def tasks_list(ctx: Any, config_file: str) -> None:
    """List the tasks in CONFIG_FILE."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_task_list_or_exit(ctx, config_file)

    if out.json_output:
        out.output_json(config.to_dict())
        return
    for line in describe_task_list(config):
        out.print(line)


@tasks.command("validate")
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.pass_context
def tasks_validate(ctx: Any, config_file: str) -> None:
    """Check CONFIG_FILE for errors and warnings."""
    out: OutputFormatter = ctx.obj["out"]
    config = _load_task_list_or_exit(ctx, config_file)
    validation = validate_task_list(config)

    if out.json_output:
        out.output_json(
            {
                "valid": validation.is_valid,
                "errors": validation.errors,
                "warnings": validation.warnings,
            }
        )
    else:
        for error in validation.errors:
            out.error(error)
        for warning in validation.warnings:
            out.warning(warning)
        if validation.is_valid:
            out.success(f"Task list is valid: {validation}")

    if not validation.is_valid:
        ctx.exit(1)


@tasks.command("init")
@click.argument("config_file", type=click.Path(dir_okay=False))
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def tasks_init(ctx: Any, config_file: str, force: bool) -> None:
    """Write a sample task list to CONFIG_FILE."""
    out: OutputFormatter = ctx.obj["out"]
    path = Path(config_file)
    if path.exists() and not force:
        out.error(f"File already exists: {path} (use --force to overwrite)")
        ctx.exit(1)

    save_task_list(create_sample_config(), path)
    out.success(f"Sample task list written to {path}")


# =============================================================================
# Options file
# =============================================================================


@main.group("config")
def config_group() -> None:
    """Show or save the default sync options."""


@config_group.command("show")
@click.pass_context
def config_show(ctx: Any) -> None:
    """Print the options loaded from the options file."""
    out: OutputFormatter = ctx.obj["out"]
    config_path = get_config_path(ctx.obj.get("config_path"))
    options = load_options(config_path)

    if out.json_output:
        out.output_json(options.to_dict())
        return
    rows = [{"field": key, "value": value} for key, value in options.to_dict().items()]
    out.output_table(rows, ["field", "value"], {"field": "Field", "value": "Value"})
    out.info(f"Options file: {config_path}")


@config_group.command("save")
@sync_options
@click.pass_context
def config_save(ctx: Any, **params: Any) -> None:
    """Save the given options (merged over the current file) as defaults."""
    out: OutputFormatter = ctx.obj["out"]
    options = _build_options(ctx, **params)
    try:
        path = save_options(options, ctx.obj.get("config_path"))
    except OSError as e:
        out.error(f"Cannot save options: {e}")
        ctx.exit(1)
    out.success(f"Options saved to {path}")


if __name__ == "__main__":
    main()
