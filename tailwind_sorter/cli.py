"""
tailwind-sorter command line tool.

    $ tailwind-sorter p-4 flex mt-2
    mt-2 flex p-4
"""

import json
import shlex
import sys

import click

from tailwind_sorter.client import TailwindSorterClient
from tailwind_sorter.config import SorterConfig
from tailwind_sorter.exceptions import TailwindSorterError
from tailwind_sorter.logger import configure_logging


@click.command()
@click.argument("classes", nargs=-1)
@click.option("--project", "show_project", is_flag=True, help="Print the detected Tailwind project")
@click.option("--debug", is_flag=True, help="Log every protocol message to stderr")
@click.option("--server", default=None, help="Command that launches the language server")
def cli(classes, show_project, debug, server):
    """Sort Tailwind CSS CLASSES into the recommended order."""
    configure_logging("DEBUG" if debug else None)

    overrides = {"debug": debug} if debug else {}
    if server:
        overrides["server_command"] = shlex.split(server)

    if not classes and not show_project:
        classes = tuple(click.get_text_stream("stdin").read().split())
        if not classes:
            raise click.UsageError("No classes given")

    client = None
    try:
        client = TailwindSorterClient(SorterConfig.from_env(**overrides))
        if show_project:
            project = client.get_project()
            if project is None:
                click.echo("No project found")
            else:
                click.echo(json.dumps(project, indent=2))
        if classes:
            click.echo(client.sort_classes(" ".join(classes)))
    except TailwindSorterError as e:
        click.secho(f"Error: {e}", fg="red", bold=True, err=True)
        sys.exit(1)
    finally:
        # A one-shot run leaves no staging directory behind.
        if client is not None:
            client.cleanup()


if __name__ == "__main__":
    cli()
