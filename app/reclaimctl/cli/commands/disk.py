"""Disk usage command.

Provides the `reclaimctl disk` command for showing root filesystem usage.
"""

import json
from typing import Annotated

import typer

from reclaimctl.cli.display import create_disk_table
from reclaimctl.cli.types import OutputFormat, get_disk_probe, require_config
from reclaimctl.core.errors import MeasurementError
from reclaimctl.utils.formatting import console, print_error


def disk(
    output_format: Annotated[
        OutputFormat,
        typer.Option(
            "--format",
            "-f",
            help="Output format.",
            case_sensitive=False,
        ),
    ] = OutputFormat.TABLE,
) -> None:
    """Show disk usage of the root filesystem."""
    config = require_config()

    try:
        info = get_disk_probe(config).measure()
    except MeasurementError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(info.to_dict()))
        return

    console.print(create_disk_table(info))
