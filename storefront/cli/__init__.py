import click

from storefront.cli.create_tables import create_tables
from storefront.cli.link_inventory import link_inventory


@click.group()
def cli():
    """Storefront order service operator commands"""


cli.add_command(create_tables)
cli.add_command(link_inventory)
