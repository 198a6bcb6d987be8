import click
from flask.cli import with_appcontext

from .security import issue_access_token


@click.command("issue-token")
@click.argument("subject")
@with_appcontext
def issue_token_command(subject: str) -> None:
    """Print a bearer token for SUBJECT (local development only)."""
    click.echo(issue_access_token(subject))
