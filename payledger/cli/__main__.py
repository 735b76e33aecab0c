"""Pay Ledger CLI - workers, daily records and two-party accounts."""

import click

from payledger import __version__

from .workers_commands import workers as workers_group
from .days_commands import days as days_group
from .advances_commands import advances as advances_group
from .accounts_commands import accounts as accounts_group
from .settings_commands import settings as settings_group


@click.group()
@click.version_option(version=__version__, prog_name="pay-ledger")
def cli():
    """Pay Ledger - payroll records and personal account ledgers.

    The ledger is stored as one JSON snapshot in the data directory.

    Configuration is loaded from (in order):

    \b
    1. PAY_LEDGER_CONFIG_PATH environment variable
    2. ~/.config/pay-ledger/ (XDG default)

    Run 'pay-ledger settings show' to see effective paths.
    """
    pass


cli.add_command(workers_group)
cli.add_command(days_group)
cli.add_command(advances_group)
cli.add_command(accounts_group)
cli.add_command(settings_group)


def main():
    cli()


if __name__ == "__main__":
    main()
