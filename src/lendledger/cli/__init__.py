import click

from lendledger.version import __version__


@click.group()
@click.version_option(version=__version__)
def cli() -> None: ...


from . import database, ledger  # noqa: F401, E402
