"""Command safety check.

Provides the `reclaimctl check` command to test a command line against
the safety rules and the whitelist without running it.
"""

from typing import Annotated

import typer
from rich.markup import escape
from rich.table import Table

from reclaimctl.cli.types import get_validator, require_config
from reclaimctl.core.safety import DEFAULT_RULES, RuleKind
from reclaimctl.utils.formatting import console


def _print_rules() -> None:
    table = Table(
        title="Safety Rules",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Rule", no_wrap=True)
    table.add_column("Kind", justify="center")
    table.add_column("Description")

    for rule in DEFAULT_RULES:
        kind = "[error]deny[/error]" if rule.kind is RuleKind.DENY else "[success]allow[/success]"
        table.add_row(rule.rule_id, kind, rule.description)

    console.print(table)


def check(
    command: Annotated[
        str | None,
        typer.Argument(help="Command line to validate."),
    ] = None,
    list_rules: Annotated[
        bool,
        typer.Option("--rules", help="List the safety rules and exit."),
    ] = False,
) -> None:
    """Check whether a command would be allowed to run.

    Examples:
        reclaimctl check "rm -rf ~/Library/Caches/com.example"
        reclaimctl check --rules
    """
    if list_rules:
        _print_rules()
        return

    if command is None:
        console.print("Provide a command to check, or use --rules.")
        raise typer.Exit(code=2)

    config = require_config()
    result = get_validator(config).validate(command, config.whitelist)

    if result.is_valid:
        console.print(f"[success]ALLOWED[/success] [muted]({result.rule})[/muted]")
        return

    reason = escape(result.reason or "")
    console.print(f"[error]REJECTED[/error] {reason} [muted]({result.rule})[/muted]")
    raise typer.Exit(code=1)
