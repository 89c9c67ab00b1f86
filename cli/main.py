"""
Main CLI interface for jobsweep

Provides command-line interface for job queue maintenance using typer.
"""

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table
from rich import box

# Local imports
sys.path.append(str(Path(__file__).parent.parent))
from jobsweep.storage import JobStorage
from jobsweep.config import Config
from jobsweep.queue import JobQueueGroup, QueueNotFoundError, QueueBackendError
from jobsweep.cache import create_watermark_store
from jobsweep.maintenance import JobQueueMaintenance, SweepResult
from jobsweep.utils import format_timestamp, truncate_string, validate_queue_name

ACTIONS = ('delete', 'repush-abandoned')

# Initialize typer app
app = typer.Typer(
    name="jobsweep",
    help="Administrative tasks on a job queue",
    add_completion=False
)

# Initialize console for rich output
console = Console()

# Global storage and config (initialized on first use)
_storage: Optional[JobStorage] = None
_config: Optional[Config] = None


def get_storage() -> JobStorage:
    """Get or initialize storage instance"""
    global _storage
    if _storage is None:
        _storage = JobStorage()
    return _storage


def get_config() -> Config:
    """Get or initialize config instance"""
    global _config
    if _config is None:
        storage = get_storage()
        config_data = storage.get_config()
        config_data.pop('storage_dir', None)
        _config = Config(str(storage.storage_dir), config_data)
    return _config


def print_error(message: str):
    """Print error message"""
    console.print(f"[red]Error:[/red] {escape(message)}")


def print_success(message: str):
    """Print success message"""
    console.print(f"[green]Success:[/green] {escape(message)}")


def print_warning(message: str):
    """Print warning message"""
    console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


def get_maintenance(job_type: str, domain: Optional[str]) -> JobQueueMaintenance:
    """Resolve the queue for a job type, exiting if it has no backend"""
    storage = get_storage()
    config = get_config()

    if not validate_queue_name(job_type):
        print_error(f"Invalid job type '{job_type}'")
        raise typer.Exit(1)

    try:
        queue = JobQueueGroup(storage, config, domain).get(job_type)
    except QueueNotFoundError as e:
        print_error(str(e))
        raise typer.Exit(1)

    return JobQueueMaintenance(queue, create_watermark_store(config, storage))


@app.callback()
def main_options(
    storage_dir: Optional[str] = typer.Option(None, "--storage-dir", help="Data storage directory (default ~/.jobsweep)")
):
    """Administrative tasks on a job queue"""
    global _storage, _config
    _storage = JobStorage(storage_dir)
    _config = None

    log_level = get_config().get('log_level', 'INFO')
    logging.basicConfig(level=getattr(logging, log_level, logging.INFO))


@app.command()
def manage(
    job_type: str = typer.Option(..., "--type", help="Job type"),
    action: str = typer.Option(..., "--action", help='Queue operation ("delete", "repush-abandoned")'),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", help="Pushes between durability waits (default from config)"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Queue domain (default from config)"),
    confirm: bool = typer.Option(False, "--yes", help="Skip confirmation prompt")
):
    """Perform administrative tasks on a job queue.

    Examples:
        jobsweep manage --type refreshLinks --action repush-abandoned
        jobsweep manage --type refreshLinks --action delete --yes
    """
    if action not in ACTIONS:
        print_error(f"Invalid action '{action}'.")
        raise typer.Exit(1)

    if batch_size is None:
        batch_size = get_config().get('batch_size', 100)
    if batch_size < 1:
        print_error("Batch size must be at least 1")
        raise typer.Exit(1)

    maintenance = get_maintenance(job_type, domain)

    try:
        if action == 'delete':
            delete_queue(maintenance, confirm)
        else:
            repush_abandoned(maintenance, batch_size)
    except (QueueBackendError, OSError) as e:
        print_error(f"Failed to {action} '{job_type}': {e}")
        raise typer.Exit(1)


def delete_queue(maintenance: JobQueueMaintenance, confirm: bool):
    """Delete every job of the queue after confirmation"""
    queue = maintenance.queue

    if not confirm:
        if not typer.confirm(f"Permanently delete all jobs of queue '{queue.type}' ({queue.domain})?"):
            print_warning("Operation cancelled")
            return

    console.print(f"Deleting all jobs of queue '{queue.type}'...")
    result = maintenance.delete()
    console.print(f"Queue had {result.size_before} job(s); done; current size is {result.size_after} job(s).")


def repush_abandoned(maintenance: JobQueueMaintenance, batch_size: int):
    """Re-push abandoned jobs, printing progress as batches complete"""

    def report(event: str, result: SweepResult):
        if event == "start":
            console.print(
                f"Last re-push time: {format_timestamp(result.last_repush_time)}; "
                f"current time: {format_timestamp(result.started_at)}"
            )
        else:
            console.print(escape(f"  {result.pushed} job(s) re-pushed so far [{result.skipped} skipped]"))

    result = maintenance.repush_abandoned(batch_size, progress=report)
    console.print(escape(f"Re-pushed {result.pushed} job(s) [{result.skipped} skipped]."))


@app.command()
def status(
    job_type: str = typer.Option(..., "--type", help="Job type"),
    domain: Optional[str] = typer.Option(None, "--domain", help="Queue domain (default from config)")
):
    """Show queue size, abandoned jobs and the last re-push time"""
    maintenance = get_maintenance(job_type, domain)
    queue = maintenance.queue

    try:
        size = queue.get_size()
        abandoned = sum(1 for _ in queue.get_all_abandoned_jobs())
        last_repush_time = maintenance.read_watermark()
    except (QueueBackendError, OSError) as e:
        print_error(f"Failed to read status of '{job_type}': {e}")
        raise typer.Exit(1)

    table = Table(title="Queue Status", box=box.ROUNDED)
    table.add_column("Queue", style="cyan")
    table.add_column("Domain", style="white")
    table.add_column("Ready", style="green")
    table.add_column("Abandoned", style="yellow")
    table.add_column("Last re-push", style="blue")

    table.add_row(
        truncate_string(queue.type, 30),
        truncate_string(queue.domain, 20),
        str(size),
        str(abandoned),
        format_timestamp(last_repush_time)
    )

    console.print(table)


# Configuration commands
config_app = typer.Typer(name="config", help="Configuration management")
app.add_typer(config_app)


@config_app.command("show")
def config_show():
    """Show current configuration"""
    config = get_config()
    config_data = config.get_all()

    table = Table(title="Configuration", box=box.ROUNDED)
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="white")
    table.add_column("Description", style="dim")

    descriptions = {
        'domain': 'Default queue domain',
        'batch_size': 'Re-pushes between durability waits',
        'claim_ttl': 'Seconds before a claimed job counts as abandoned',
        'storage_dir': 'Data storage directory',
        'log_level': 'Logging verbosity level',
        'queue_backends': 'Queue backend per job type',
        'watermark_store': 'Where the last re-push time is kept'
    }

    for key, value in config_data.items():
        desc = descriptions.get(key, 'Custom setting')
        if isinstance(value, dict):
            value = json.dumps(value)
        table.add_row(key, escape(str(value)), desc)

    console.print(table)


@config_app.command("set")
def config_set(
    key: str = typer.Argument(..., help="Configuration key"),
    value: str = typer.Argument(..., help="Configuration value")
):
    """Set configuration value"""
    config = get_config()
    storage = get_storage()

    # Try to convert value to appropriate type
    converted_value = value
    try:
        if value.startswith('{'):
            converted_value = json.loads(value)
        elif value.isdigit() or (value.startswith('-') and value[1:].isdigit()):
            converted_value = int(value)
        elif '.' in value:
            converted_value = float(value)
        elif value.lower() in ('true', 'false'):
            converted_value = value.lower() == 'true'
    except ValueError:
        pass

    if config.set(key, converted_value):
        storage.update_config({key: converted_value})
        print_success(f"Set {key} = {converted_value}")
    else:
        validation_info = config.get_validation_info()
        if key in validation_info:
            print_error(f"Invalid value for '{key}'. Expected: {validation_info[key]}")
        else:
            print_error(f"Failed to set configuration '{key}'")
        raise typer.Exit(1)


@config_app.command("reset")
def config_reset(
    confirm: bool = typer.Option(False, "--yes", help="Skip confirmation prompt")
):
    """Reset configuration to defaults"""
    if not confirm:
        if not typer.confirm("Reset all configuration to defaults?"):
            print_warning("Operation cancelled")
            return

    config = get_config()
    storage = get_storage()

    config.reset_to_defaults()
    storage.replace_config(config.get_all())

    print_success("Configuration reset to defaults")


def main():
    """Main entry point"""
    app()


if __name__ == "__main__":
    main()
