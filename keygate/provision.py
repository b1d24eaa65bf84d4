"""
Command-line tool for managing long-lived keys.

Keys are provisioned out-of-band, and are read from the same Redis instance as
the service (see :mod:`keygate.config`).

.. code-block:: bash

   $ REDIS_HOST=localhost keygate-provision somekey otherkey
   Provisioned somekey
   Provisioned otherkey
   $ keygate-provision --generate 1
   Provisioned 5e1b9d3c0f0a4cc0b8f4f4a7e1b2c3d4
   $ keygate-provision --show somekey
   somekey: active, province=-, cities=-
   $ keygate-provision --ban somekey
   Banned somekey

"""

import uuid
from typing import Optional, Tuple

import click

from .exceptions import StoreUnavailable
from .services.credentials import get_credential_store


@click.command()
@click.argument('keys', nargs=-1)
@click.option('--generate', type=int, default=0,
              help='Number of random keys to generate and provision.')
@click.option('--show', 'show', default=None,
              help='Print the record for a key.')
@click.option('--ban', 'ban', default=None, help='Ban a key.')
def provision(keys: Tuple[str, ...], generate: int = 0,
              show: Optional[str] = None, ban: Optional[str] = None) -> None:
    """Provision, inspect, or ban long-lived keys."""
    store = get_credential_store()
    try:
        if show is not None:
            record = store.get(show)
            if record is None:
                raise click.ClickException(f'No such key: {show}')
            click.echo(f'{record.key_id}: {record.status.value},'
                       f' province={record.province or "-"},'
                       f' cities={",".join(record.cities) or "-"}')
            return

        if ban is not None:
            if not store.exists(ban):
                raise click.ClickException(f'No such key: {ban}')
            store.ban(ban)
            click.echo(f'Banned {ban}')
            return

        keys = keys + tuple(uuid.uuid4().hex for _ in range(generate))
        if not keys:
            raise click.UsageError('Pass one or more keys, or --generate')
        for key_id in keys:
            if store.provision(key_id):
                click.echo(f'Provisioned {key_id}')
            else:
                click.echo(f'{key_id} already exists', err=True)
    except StoreUnavailable as e:
        raise click.ClickException(f'Could not reach credential store: {e}')


if __name__ == '__main__':
    provision()
