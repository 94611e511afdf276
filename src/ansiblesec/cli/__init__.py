"""CLI entry point — Click group with global options."""

from __future__ import annotations

import logging

import click

from ansiblesec import __version__


@click.group()
@click.version_option(version=__version__, prog_name="ansiblesec")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """ansiblesec — secret detection and policy enforcement for Ansible playbooks."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _register_commands() -> None:
    from ansiblesec.cli.cache import cache  # noqa: F811
    from ansiblesec.cli.lint import lint  # noqa: F811
    from ansiblesec.cli.rules import rules  # noqa: F811
    from ansiblesec.cli.scan import scan  # noqa: F811

    main.add_command(scan)
    main.add_command(lint)
    main.add_command(rules)
    main.add_command(cache)


_register_commands()
