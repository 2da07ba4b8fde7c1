"""
Command Line Interface for pdeploy.
"""
import os
from typing import Tuple

import click
from dotenv import find_dotenv, load_dotenv

from .. import __version__
from ..MANAGERS.deployer import Deployer
from ..PARSERS.config_parser import ConfigParser, parse_cli_args
from ..UTILS import console
from ..errors import ConfigError, DeployError

USERNAME_ENV = "PORTAINER_USERNAME"
PASSWORD_ENV = "PORTAINER_PASSWORD"


def prompt_credentials() -> Tuple[str, str]:
    """
    Returns Portainer credentials from the environment, prompting for missing ones.
    """
    username = os.environ.get(USERNAME_ENV) or click.prompt("Enter username")
    password = os.environ.get(PASSWORD_ENV) or click.prompt("Enter password", hide_input=True)
    return username, password


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument('args', nargs=-1)
@click.version_option(__version__, prog_name="pdeploy")
@click.pass_context
def cli(ctx, args):
    """
    Build the current directory on a Portainer endpoint and (re)deploy it.

    Arguments are key=value pairs. config=<path> names the JSON or YAML
    configuration file and is required; any other key overrides the
    configuration entry of the same name, e.g. imageVersion=1.2.0.

    Credentials are read from PORTAINER_USERNAME and PORTAINER_PASSWORD
    (also from a .env file) or prompted for.
    """
    load_dotenv(find_dotenv(usecwd=True))

    try:
        options = parse_cli_args(args)
        config_path = options.pop("config", None)
        if not config_path:
            raise ConfigError("Missing required argument config=<path>")

        console.info(f"Reading config file at {config_path}")
        config = ConfigParser().parse(config_path, overrides=options)

        Deployer(config, credentials=prompt_credentials).run()
    except DeployError as e:
        console.error(str(e))
        ctx.exit(1)


def main():
    """
    Main entry point for the CLI.
    """
    cli()


if __name__ == '__main__':
    main()
