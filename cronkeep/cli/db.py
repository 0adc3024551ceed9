"""cronkeep db command - Database setup."""

import typer

from cronkeep.cli.common import console, fail_storage, open_store
from cronkeep.config import get_config
from cronkeep.errors import StorageError

app = typer.Typer(help="Manage the cronkeep database.")


@app.command("init")
def init_db() -> None:
    """Create the job and run tables if they do not exist.

    Example:
        cronkeep db init
    """
    store = open_store()
    try:
        store.create_schema()
    except StorageError as e:
        fail_storage(e)

    console.print(f"[green]✓[/green] Database ready: {get_config().database_url}")
