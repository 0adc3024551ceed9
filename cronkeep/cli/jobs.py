"""cronkeep jobs command - Inspect and retire job records."""

import typer
from rich.table import Table

from cronkeep.cli.common import console, err_console, fail_storage, format_time, open_store
from cronkeep.cli.exit_codes import ExitCode
from cronkeep.errors import StorageError

app = typer.Typer(help="Inspect persisted job records.")


@app.command("list")
def list_jobs(
    all_records: bool = typer.Option(
        False,
        "--all",
        "-a",
        help="Include retired (soft-deleted) records.",
    ),
) -> None:
    """List job records and their next run times.

    Example:
        cronkeep jobs list
        cronkeep jobs list --all
    """
    store = open_store()
    try:
        records = store.list_jobs(include_deleted=all_records)
    except StorageError as e:
        fail_storage(e)

    table = Table(title="Job Records")
    table.add_column("ID", style="cyan")
    table.add_column("Type", style="magenta")
    table.add_column("Created")
    table.add_column("Next Run", style="green")
    table.add_column("Status", style="bold")

    for record in records:
        if record.is_deleted:
            status = f"[yellow]retired {format_time(record.deleted_at)}[/yellow]"
        elif record.next_run_at is None:
            status = "[dim]finished[/dim]"
        else:
            status = "[green]scheduled[/green]"

        table.add_row(
            str(record.id),
            record.type,
            format_time(record.created_at),
            format_time(record.next_run_at, empty="never"),
            status,
        )

    console.print(table)


@app.command("show")
def show_job(
    job_type: str = typer.Argument(..., help="Job type to show."),
) -> None:
    """Show the active record of a job type with run counts.

    Example:
        cronkeep jobs show cleanup
    """
    store = open_store()
    try:
        record = store.find_active_job(job_type)
        if record is None:
            err_console.print(f"[red]No active job record for type: {job_type}[/red]")
            raise typer.Exit(code=ExitCode.NOT_FOUND)
        stats = store.run_stats(record.id)
    except StorageError as e:
        fail_storage(e)

    console.print(f"[bold]{record.type}[/bold] (record {record.id})")
    console.print(f"  Created:   {format_time(record.created_at)}")
    console.print(f"  Next run:  {format_time(record.next_run_at, empty='never')}")
    console.print(f"  Succeeded: [green]{stats['succeeded']}[/green]")
    console.print(f"  Failed:    [red]{stats['failed']}[/red]")


@app.command("retire")
def retire_job(
    job_type: str = typer.Argument(..., help="Job type whose record to retire."),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Skip confirmation prompt.",
    ),
) -> None:
    """Soft-delete the active record of a job type.

    The job's schedule starts over from its first-run time the next time
    the scheduler starts. Run history is kept.

    Example:
        cronkeep jobs retire cleanup
    """
    if not force:
        confirm = typer.confirm(f"Retire the job record for '{job_type}'?")
        if not confirm:
            raise typer.Abort()

    store = open_store()
    try:
        record = store.retire_job(job_type)
    except StorageError as e:
        fail_storage(e)

    if record is None:
        err_console.print(f"[red]No active job record for type: {job_type}[/red]")
        raise typer.Exit(code=ExitCode.NOT_FOUND)

    console.print(f"[green]✓[/green] Retired job record {record.id} for '{job_type}'")
