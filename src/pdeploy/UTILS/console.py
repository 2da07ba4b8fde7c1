"""
Colored progress messages for the terminal.
"""
import click


def info(message: str) -> None:
    click.secho(message, fg="white")


def success(message: str) -> None:
    click.secho(message, fg="green")


def warn(message: str) -> None:
    click.secho(message, fg="yellow")


def error(message: str) -> None:
    """
    Prints a failure message on stderr with a red background.
    """
    click.secho(message, bg="red", err=True)
