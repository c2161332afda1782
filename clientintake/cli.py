"""Operator commands, available through ``flask --app clientintake.app``."""

import json

import click
from flask.cli import with_appcontext

from clientintake.models import db
from clientintake.payload import IntakePayload
from clientintake.store import SubmissionStore

SAMPLE_SUBMISSION = {
    "businessName": "Test Business",
    "industry": "Technology",
    "contactName": "Test User",
    "contactEmail": "test@example.com",
    "contactPhone": "555-123-4567",
    "preferredContact": "email",
    "websitePurpose": "informational",
    "targetAudience": "general",
    "expectedPages": "5",
    "budgetRange": "1000-3000",
    "timeline": "flexible",
    "domainStatus": "need-to-purchase",
    "preferredDomain": "testbusiness.com",
    "hostingPreference": "recommend",
    "maintenanceNeeds": "updates-only",
    "newsletterConsent": False,
}


@click.command("init-db")
@with_appcontext
def init_db_command():
    """Create the database tables."""
    db.create_all()
    click.echo("Initialized the database.")


@click.command("list-clients")
@click.option("--limit", default=10, show_default=True, help="Number of clients to show.")
@with_appcontext
def list_clients_command(limit):
    """List the most recent clients."""
    clients = SubmissionStore(db.session).list_clients(limit=limit)
    if not clients:
        click.echo("No clients found.")
        return
    for client in clients:
        click.echo(
            f"{client.id}  {client.created_at:%Y-%m-%d %H:%M}  "
            f"{client.business_name}  <{client.contact_email}>"
        )


@click.command("show-client")
@click.argument("client_id")
@with_appcontext
def show_client_command(client_id):
    """Show a client and every submission stored for it."""
    store = SubmissionStore(db.session)
    client = store.get_client(client_id)
    if client is None:
        raise click.ClickException(f"No client with id {client_id}")
    click.echo(json.dumps(client.to_dict(), indent=2))
    for submission in store.submissions_for(client_id):
        click.echo(f"\nSubmission {submission.id} at {submission.submitted_at.isoformat()}")
        click.echo(json.dumps(json.loads(submission.form_data), indent=2))


@click.command("seed-test-data")
@with_appcontext
def seed_test_data_command():
    """Insert a sample client with one submission."""
    payload = IntakePayload.from_dict(SAMPLE_SUBMISSION).pruned()
    client_id = SubmissionStore(db.session).record_submission(payload)
    click.echo(f"Inserted test client {client_id}")


def register_commands(app) -> None:
    for command in (
        init_db_command,
        list_clients_command,
        show_client_command,
        seed_test_data_command,
    ):
        app.cli.add_command(command)


__all__ = [
    "SAMPLE_SUBMISSION",
    "register_commands",
]
