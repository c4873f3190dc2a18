"""CLI tools for funeral core administration."""

import json

import click

from funeral_core.core.errors import DomainError
from funeral_core.db.base import Base
from funeral_core.db.enums import PolicyType
from funeral_core.db.session import SessionLocal, engine
from funeral_core.services import policy_service, template_service


@click.group()
def cli():
    """Funeral core CLI tools."""
    pass


@cli.command()
def create_tables():
    """
    Create all tables on the configured database.

    Intended for local development and fresh sqlite files; existing tables
    are left untouched.
    """
    import funeral_core.db.models  # noqa: F401  (registers the mappers)

    Base.metadata.create_all(engine)
    click.echo(f"✓ Created {len(Base.metadata.tables)} tables")


@cli.command()
@click.option("--funeral-home-id", required=True, help="Funeral home to provision")
@click.option("--actor", default="cli", help="Actor recorded on the created versions")
def provision_policies(funeral_home_id: str, actor: str):
    """
    Create default versions of every policy the funeral home is missing.

    Example:
        funeral-core provision-policies --funeral-home-id fh_123
    """
    db = SessionLocal()
    try:
        created = policy_service.provision_default_policies(db, funeral_home_id, actor)
        db.commit()
    except DomainError as e:
        db.rollback()
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()

    if not created:
        click.echo(f"✓ All policies already provisioned for {funeral_home_id}")
        return
    for policy_type in created:
        click.echo(f"✓ Provisioned {policy_type.value} policy for {funeral_home_id}")


@cli.command()
@click.option("--funeral-home-id", required=True, help="Funeral home")
@click.option(
    "--policy-type",
    required=True,
    type=click.Choice([p.value for p in PolicyType]),
    help="Policy to show",
)
@click.option("--history", is_flag=True, help="Show every version, newest first")
def show_policy(funeral_home_id: str, policy_type: str, history: bool):
    """Print the current policy (or its full history) as JSON."""
    db = SessionLocal()
    try:
        kind = PolicyType(policy_type)
        if history:
            records = policy_service.get_policy_history(db, kind, funeral_home_id)
        else:
            records = [policy_service.resolve_policy(db, kind, funeral_home_id)]
        for record in records:
            click.echo(f"v{record.version} current={record.is_current} by {record.updated_by}")
            click.echo(json.dumps(policy_service.policy_payload(record), indent=2, default=str))
    except DomainError as e:
        click.echo(f"❌ Error: {e.message}")
        raise SystemExit(1)
    finally:
        db.close()


@cli.command()
@click.option("--funeral-home-id", default=None, help="Limit to one funeral home")
def pending_templates(funeral_home_id: str | None):
    """List memorial templates still awaiting approval."""
    db = SessionLocal()
    try:
        templates = template_service.list_pending_templates(db, funeral_home_id)
        if not templates:
            click.echo("✓ No templates pending approval")
            return
        for template in templates:
            owner = template.funeral_home_id or "system"
            click.echo(f"  {template.business_key}  {template.name}  ({template.category}, {owner})")
    finally:
        db.close()


if __name__ == "__main__":
    cli()
