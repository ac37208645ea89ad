"""Administration commands: schema creation, reference data and CSV import."""
import click
from sqlmodel import Session, select

from . import config
from .auth import hash_password
from .crud import ensure_admin, get_service_by_name, save
from .database import engine, init_db
from .models import Service, Unit
from .services.location_import import import_locations, parse_bytes

DEFAULT_UNITS = [
    ("Metros Quadrados", "m²"),
    ("Metros Lineares", "m linear"),
]

DEFAULT_SERVICES = [
    ("Varrição Manual", "m linear"),
    ("Roçada", "m²"),
    ("Limpeza de Vidro", "m²"),
]


@click.group()
def cli():
    """CRB field-service tools."""
    pass


@cli.command("init-db")
def init_db_command():
    """Create missing tables."""
    init_db()
    click.echo("✓ Database ready")


@cli.command()
def seed():
    """
    Create the admin account (ADMIN_EMAIL / ADMIN_PASSWORD) plus the default
    units and services. Safe to run more than once.
    """
    init_db()
    with Session(engine) as session:
        if config.ADMIN_EMAIL and config.ADMIN_PASSWORD:
            ensure_admin(session, config.ADMIN_EMAIL, hash_password(config.ADMIN_PASSWORD))
            click.echo(f"✓ Admin: {config.ADMIN_EMAIL}")
        else:
            click.echo("→ ADMIN_EMAIL/ADMIN_PASSWORD not set, admin skipped")

        units = {}
        for name, symbol in DEFAULT_UNITS:
            unit = session.exec(select(Unit).where(Unit.symbol == symbol)).first()
            units[symbol] = unit or save(session, Unit(name=name, symbol=symbol))

        created = 0
        for name, symbol in DEFAULT_SERVICES:
            if get_service_by_name(session, name):
                continue
            save(session, Service(name=name, unit_id=units[symbol].id))
            created += 1
        click.echo(f"✓ Units: {len(units)}, new services: {created}")


@cli.command("import-locations")
@click.argument("csv_file", type=click.Path(exists=True, dir_okay=False))
@click.confirmation_option(prompt="This replaces ALL locations. Continue?")
def import_locations_command(csv_file: str):
    """Replace every location with the contents of CSV_FILE."""
    init_db()
    with open(csv_file, "rb") as fh:
        rows = parse_bytes(fh.read())
    with Session(engine) as session:
        report = import_locations(session, rows)
    click.echo(f"✓ Groups: {report.groups_created}, members: {report.members_created}")
    for warning in report.warnings:
        click.echo(f"  ! {warning}")


if __name__ == "__main__":
    cli()
