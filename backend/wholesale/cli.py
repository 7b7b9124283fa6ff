# Overview: Flask CLI command groups for bootstrap, inspection, and demo data.

# backend/wholesale/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap/repair:
# - python -m flask system init
#   Create all tables and the default administrator (idempotent).
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
#
# Users:
# - python -m flask users list
# - python -m flask users create --username salesrep3 --password "Password123!" --role sales_representative
#
# Catalog:
# - python -m flask catalog seed-demo
#   Demo sales reps, dispensaries, templates, batches and three orders.
# - python -m flask catalog rollups
#   Print stock and average potency per template.

from datetime import timedelta

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Dispensary, ProductBatch, ProductTemplate, User, WholesaleOrder
from .models.auth import ROLES, ROLE_ADMINISTRATOR, ROLE_SALES_REPRESENTATIVE
from .services.auth_service import PasswordValidationError, create_user
from .services.catalog_store import SqlCatalogStore
from .services.order_errors import OrderError
from .services.order_service import OrderLineItem, place_order
from .services.rollup_service import rollups_by_template
from .time_utils import utcnow

DEFAULT_PASSWORD = "Password123!"


@click.group("system")
def system_group():
    """System bootstrap and repair commands."""


@system_group.command("init")
@with_appcontext
def init_system():
    """
    Create tables and the default administrator.

    Default credentials: admin / Password123! (change in production).
    """
    click.echo("START Initializing wholesale system...")
    db.create_all()
    click.echo("PASS Tables ready")

    if db.session.query(User).filter_by(username="admin").first():
        click.echo("WARN  User 'admin' already exists, skipping...")
    else:
        create_user("admin", DEFAULT_PASSWORD, role=ROLE_ADMINISTRATOR, email="admin@wholesale.local")
        click.echo("PASS Created user: admin with role 'administrator'")

    click.echo("\nDefault Credentials (CHANGE IN PRODUCTION!):")
    click.echo(f"   admin -> {DEFAULT_PASSWORD}")


@system_group.command("reset-db")
@click.option("--yes", is_flag=True, help="Confirm dropping all tables")
@with_appcontext
def reset_db(yes):
    """DEV/TEST only: drop and recreate all tables."""
    if not yes:
        click.echo("FAIL Refusing to reset without --yes")
        raise SystemExit(1)
    db.drop_all()
    db.create_all()
    click.echo("PASS Database reset")


@click.group("users")
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command("list")
@with_appcontext
def list_users():
    users = db.session.query(User).order_by(User.id.asc()).all()
    if not users:
        click.echo("No users found.")
        return
    click.echo(f"{'ID':<5} {'Username':<20} {'Role':<24} {'Active'}")
    for user in users:
        click.echo(f"{user.id:<5} {user.username:<20} {user.role:<24} {'Yes' if user.is_active else 'No'}")


@users_group.command("create")
@click.option("--username", prompt=True, help="Username")
@click.option("--email", default=None, help="Email address")
@click.option("--password", prompt=True, hide_input=True, confirmation_prompt=True, help="Password")
@click.option("--role", type=click.Choice(list(ROLES)), default=ROLE_SALES_REPRESENTATIVE, show_default=True)
@with_appcontext
def create_user_cli(username, email, password, role):
    try:
        user = create_user(username, password, role=role, email=email)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {e}")
        raise SystemExit(1)
    except ValueError as e:
        click.echo(f"FAIL {e}")
        raise SystemExit(1)
    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")


@click.group("catalog")
def catalog_group():
    """Catalog demo data and inspection commands."""


DEMO_DISPENSARIES = [
    {
        "id": "disp001", "name": "Green Leaf Wellness", "license_number": "D12345",
        "contact_person": "Sarah Miller", "contact_email": "sarah@glwellness.com",
        "contact_phone": "555-1001", "address": "123 Main St, Denver, CO",
    },
    {
        "id": "disp002", "name": "The Higher Ground", "license_number": "D67890",
        "contact_person": "Mike Chen", "contact_email": "mike@higherground.com",
        "contact_phone": "555-2002", "address": "456 Oak Ave, Boulder, CO",
    },
]

# (template id, name, strain, category, unit, supplier, active,
#  batch id, METRC id, thc, cbd, price cents, stock)
DEMO_CATALOG = [
    ("prod001", "Green Crack Flower", "Sativa", "Flower", "Grams", "CannaGrow Farms", True,
     "batch001", "PKG00012345A", 22.5, 0.5, 800, 5000),
    ("prod002", "OG Kush Pre-Rolls (1g)", "Indica", "Pre-Rolls", "Each", "RollRight Inc.", True,
     "batch002", "PKG00012345B", 18.0, 1.0, 400, 1000),
    ("prod003", "CBD Gummies (10mg)", "CBD", "Edibles", "Each", "SweetRelief Edibles", True,
     "batch003", "PKG00012345C", 0.2, 10.0, 150, 2000),
    ("prod004", "Full Spectrum Vape Cartridge (0.5g)", "Hybrid", "Vapes", "Each", "VapePure Extracts", True,
     "batch004", "PKG00012345D", 75.0, 5.0, 1500, 300),
    ("prod005", "Blue Dream Concentrate (1g)", "Sativa", "Concentrates", "Grams", "CannaGrow Farms", False,
     "batch005", "PKG00012345E", 85.2, 0.8, 2500, 250),
]

# (order id, days ago, dispensary, associate, lines, method, terms, status, manifest, notes)
DEMO_ORDERS = [
    ("order001", 5, "disp001", "salesrep1", [("prod001", "batch001", 500), ("prod002", "batch002", 100)],
     "ACH", "Net 30", "Paid", "MM1002345", "Early delivery requested."),
    ("order002", 2, "disp002", "salesrep2", [("prod003", "batch003", 500)],
     "Credit Card", "Due on Receipt", "Pending", "MM1002346", None),
    ("order003", 0, "disp001", "salesrep1", [("prod004", "batch004", 50)],
     "Check", "Net 15", "Pending", "MM1002347", "Standard order."),
]


def _ensure_user(username: str, role: str) -> User:
    user = db.session.query(User).filter_by(username=username).first()
    if user:
        return user
    user = create_user(username, DEFAULT_PASSWORD, role=role)
    click.echo(f"PASS Created user: {username} with role '{role}'")
    return user


@catalog_group.command("seed-demo")
@with_appcontext
def seed_demo():
    """Load demo users, dispensaries, templates, batches and orders (idempotent)."""
    db.create_all()
    users = {
        "admin": _ensure_user("admin", ROLE_ADMINISTRATOR),
        "salesrep1": _ensure_user("salesrep1", ROLE_SALES_REPRESENTATIVE),
        "salesrep2": _ensure_user("salesrep2", ROLE_SALES_REPRESENTATIVE),
    }

    for row in DEMO_DISPENSARIES:
        if db.session.get(Dispensary, row["id"]) is None:
            db.session.add(Dispensary(**row))
    for (tid, name, strain, category, unit, supplier, active,
         bid, metrc, thc, cbd, price, stock) in DEMO_CATALOG:
        if db.session.get(ProductTemplate, tid) is None:
            db.session.add(ProductTemplate(
                id=tid, name=name, strain_type=strain, product_category=category,
                unit_of_measure=unit, supplier=supplier, is_active=active,
            ))
        if db.session.get(ProductBatch, bid) is None:
            db.session.add(ProductBatch(
                id=bid, template_id=tid, metrc_package_id=metrc,
                thc_percentage=thc, cbd_percentage=cbd,
                wholesale_price_cents=price, current_stock_quantity=stock,
                is_active=active,
            ))
    db.session.commit()
    click.echo(f"PASS Catalog: {len(DEMO_CATALOG)} templates, {len(DEMO_DISPENSARIES)} dispensaries")

    now = utcnow()
    for (order_id, days_ago, disp_id, username, lines, method, terms,
         status, manifest, notes) in DEMO_ORDERS:
        if db.session.get(WholesaleOrder, order_id) is not None:
            continue
        try:
            place_order(
                line_items=[OrderLineItem(t, b, q) for t, b, q in lines],
                dispensary_id=disp_id,
                sales_associate_id=users[username].id,
                payment_method=method,
                payment_terms=terms,
                payment_status=status,
                ordered_at=now - timedelta(days=days_ago),
                notes=notes,
                metrc_manifest_id=manifest,
                order_id_factory=lambda oid=order_id: oid,
            )
        except OrderError as e:
            click.echo(f"FAIL Order {order_id}: {e}")
            continue
        click.echo(f"PASS Placed order {order_id}")


@catalog_group.command("rollups")
@click.option("--active-only", is_flag=True, help="Only active templates")
@with_appcontext
def show_rollups(active_only):
    """Print total stock and average potency per template."""
    query = db.session.query(ProductTemplate)
    if active_only:
        query = query.filter(ProductTemplate.is_active.is_(True))
    templates = query.order_by(ProductTemplate.name.asc()).all()
    if not templates:
        click.echo("No product templates found.")
        return

    batches = SqlCatalogStore().list_batches()
    rollups = rollups_by_template([t.id for t in templates], batches)

    def fmt(value):
        return "N/A" if value is None else f"{value:.2f}%"

    click.echo(f"{'Template':<40} {'Stock':>8} {'Avg THC':>9} {'Avg CBD':>9} {'Batches':>8}")
    for t in templates:
        r = rollups[t.id]
        click.echo(
            f"{t.name[:40]:<40} {r.total_stock:>8} {fmt(r.avg_thc):>9} "
            f"{fmt(r.avg_cbd):>9} {r.active_batch_count:>8}"
        )


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(catalog_group)
