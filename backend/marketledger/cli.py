# Overview: Flask CLI command groups for bootstrap, billing runs and inspection.

# backend/marketledger/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# System bootstrap:
# - python -m flask system init
#   Idempotent bootstrap: creates tables, roles, permissions, settings defaults
#   and the admin user admin@marketledger.local / Password123!.
# - python -m flask system seed-settings
#   Insert default rows for any missing admin setting.
#
# Users:
# - python -m flask users create --email ops@example.com --password "Password123!" --role admin
# - python -m flask users create-seller --email shop@example.com --password "Password123!"
#   Seller account plus subscription (free period from new_seller_free_months).
#
# Billing:
# - python -m flask billing process-due
#   Run the subscription deduction sweep (schedule this daily).
# - python -m flask billing verify-wallets
#   Compare every seller balance against its ledger sum.
#
# Permissions:
# - python -m flask perms list [--role seller]
# - python -m flask perms grant support_agent MANAGE_DEPOSITS
# - python -m flask perms revoke support_agent MANAGE_DEPOSITS

import click
from flask.cli import with_appcontext

from .extensions import db
from .models import Role, Permission, RolePermission, SellerWallet, User
from .services.auth_service import create_user, create_default_roles, PasswordValidationError
from .services import permission_service, settings_service, subscription_service, ledger_service


@click.group('system')
def system_group():
    """System bootstrap commands."""


@system_group.command('init')
@click.option('--admin-email', default='admin@marketledger.local', show_default=True)
@click.option('--admin-password', default='Password123!', show_default=True)
@with_appcontext
def init_system(admin_email, admin_password):
    """
    Initialize the platform.

    Creates:
    - All tables (no-op when they exist)
    - Roles: admin, seller, customer, support_agent
    - Permissions and their default role assignments
    - Default admin settings rows
    - A super-admin user

    SECURITY: Change the admin password immediately in production!
    """
    click.echo("START Initializing marketplace ledger...")

    db.create_all()

    click.echo("\nLIST Creating roles...")
    create_default_roles()
    roles = db.session.query(Role).all()
    click.echo(f"PASS Roles: {', '.join(r.name for r in roles)}")

    click.echo("\nSECURITY Initializing permissions...")
    perm_count = permission_service.initialize_permissions()
    assignment_count = permission_service.assign_default_role_permissions()
    click.echo(f"PASS Created {perm_count} permissions, {assignment_count} role assignments")

    seeded = settings_service.ensure_defaults_seeded()
    click.echo(f"PASS Seeded {seeded} settings")

    existing = db.session.query(User).filter_by(email=admin_email.lower()).first()
    if existing:
        click.echo(f"WARN  User '{admin_email}' already exists, skipping...")
    else:
        try:
            create_user(admin_email, admin_password, full_name="Platform Admin", role_name="admin", is_super_admin=True)
            click.echo(f"PASS Created admin: {admin_email}")
        except (PasswordValidationError, ValueError) as e:
            click.echo(f"FAIL Failed to create admin: {str(e)}")

    click.echo("\n" + "="*60)
    click.echo("DONE System Initialized")
    click.echo("="*60 + "\n")


@system_group.command('seed-settings')
@with_appcontext
def seed_settings():
    """Insert default rows for missing admin settings."""
    created = settings_service.ensure_defaults_seeded()
    click.echo(f"PASS Seeded {created} settings")


# =============================================================================
# USER MANAGEMENT COMMANDS
# =============================================================================

@click.group('users')
def users_group():
    """User bootstrap commands."""


@users_group.command('create')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Display name')
@click.option('--role', type=click.Choice(['admin', 'seller', 'customer', 'support_agent']), prompt=True, help='Role')
@with_appcontext
def create_user_cli(email, password, full_name, role):
    """
    Create a user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter, lowercase letter, digit and special character
    """
    try:
        user = create_user(email, password, full_name=full_name, role_name=role)
        if role == "seller":
            subscription_service.ensure_subscription(user.id)
        click.echo(f"PASS Created user {user.email} (ID: {user.id}) with role '{role}'")
    except (PasswordValidationError, ValueError) as e:
        click.echo(f"FAIL {str(e)}")


@users_group.command('create-seller')
@click.option('--email', prompt=True, help='Email address')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--full-name', default=None, help='Shop or owner name')
@with_appcontext
def create_seller_cli(email, password, full_name):
    """Create a seller with a subscription (free period applied)."""
    try:
        user = create_user(email, password, full_name=full_name, role_name="seller")
    except (PasswordValidationError, ValueError) as e:
        click.echo(f"FAIL {str(e)}")
        return
    sub = subscription_service.ensure_subscription(user.id)
    click.echo(f"PASS Created seller {user.email} (ID: {user.id})")
    click.echo(f"     Plan: {sub.plan_type}, free until: {sub.free_period_end or '-'}")


# =============================================================================
# BILLING COMMANDS
# =============================================================================

@click.group('billing')
def billing_group():
    """Subscription billing runs and ledger checks."""


@billing_group.command('process-due')
@with_appcontext
def process_due_cli():
    """Deduct every active subscription whose next deduction is due."""
    results = subscription_service.process_due_subscriptions()
    click.echo(
        f"Processed {results['processed']}: "
        f"{results['successful']} successful, {results['failed']} failed"
    )
    for detail in results["details"]:
        status = "PASS" if detail["success"] else "FAIL"
        click.echo(f"  {status} seller {detail['seller_id']}: {detail['message']}")


@billing_group.command('verify-wallets')
@with_appcontext
def verify_wallets_cli():
    """Compare each seller wallet balance with the sum of its ledger entries."""
    seller_ids = [sid for (sid,) in db.session.query(SellerWallet.seller_id).order_by(SellerWallet.seller_id).all()]
    mismatches = 0
    for seller_id in seller_ids:
        result = ledger_service.verify_wallet(seller_id)
        if not result["consistent"]:
            mismatches += 1
            click.echo(
                f"FAIL seller {seller_id}: balance {result['balance']} != ledger {result['ledger_sum']}"
            )
    click.echo(f"Checked {len(seller_ids)} wallets, {mismatches} mismatches")


# =============================================================================
# PERMISSION COMMANDS
# =============================================================================

@click.group('perms')
def perms_group():
    """Permission inspection and repair."""


@perms_group.command('list')
@click.option('--role', help='Filter by role name')
@with_appcontext
def list_permissions_cli(role):
    """List all permissions, or those granted to one role."""
    query = db.session.query(Permission)
    if role:
        role_obj = db.session.query(Role).filter_by(name=role).first()
        if not role_obj:
            click.echo(f"FAIL Role '{role}' not found")
            return
        query = query.join(RolePermission, RolePermission.permission_id == Permission.id).filter(
            RolePermission.role_id == role_obj.id
        )
    perms = query.order_by(Permission.category, Permission.code).all()

    click.echo(f"\n{'Code':<30} {'Name':<35} {'Category'}")
    click.echo("-"*80)
    for perm in perms:
        click.echo(f"{perm.code:<30} {perm.name:<35} {perm.category}")
    click.echo(f"\n Total: {len(perms)} permissions\n")


@perms_group.command('grant')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def grant_permission_cli(role_name, permission_code):
    try:
        permission_service.grant_permission_to_role(role_name, permission_code)
        click.echo(f"PASS Granted {permission_code} to {role_name}")
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")


@perms_group.command('revoke')
@click.argument('role_name')
@click.argument('permission_code')
@with_appcontext
def revoke_permission_cli(role_name, permission_code):
    try:
        if permission_service.revoke_permission_from_role(role_name, permission_code):
            click.echo(f"PASS Revoked {permission_code} from {role_name}")
        else:
            click.echo(f"WARN  {role_name} did not have {permission_code}")
    except ValueError as e:
        click.echo(f"FAIL {str(e)}")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(billing_group)
    app.cli.add_command(perms_group)
