"""envelopes CLI entry point."""

from __future__ import annotations

from pathlib import Path

import click

from envelopes.__version__ import __version__
from envelopes.cli.period import cycle, trip


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(version=__version__, prog_name="envelopes")
@click.option(
    "--db",
    "db_path",
    type=click.Path(path_type=Path),
    help="Path to the envelopes SQLite database.",
)
@click.option("--owner", "owner_id", default=None, help="Owner whose data is managed.")
@click.pass_context
def main(ctx: click.Context, db_path: Path | None, owner_id: str | None) -> None:
    """Track spending against cycle and trip budgets."""
    ctx.obj = {
        "db_path": db_path,
        "owner_id": owner_id,
    }


main.add_command(cycle)
main.add_command(trip)


if __name__ == "__main__":
    main()
