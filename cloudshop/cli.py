"""Flask CLI commands for admin operations."""
import functools
import click
from flask import current_app


def register_cli(app):
    @app.cli.command("init-db")
    def init_db():
        """Create all tables."""
        from cloudshop.extensions import db

        db.create_all()
        click.echo("Database initialized.")

    @app.cli.command("seed-demo")
    def seed_demo():
        """Seed demo products with variants (idempotent)."""
        from cloudshop.extensions import db
        from cloudshop.models.product import Product
        from cloudshop.services import variant_service

        # Only seed if no products exist yet
        if Product.query.first():
            click.echo("Products already exist, skipping demo seed.")
            return

        temperature = {
            "name": "Nhiệt độ",
            "values": [
                {"label": "Nóng", "value": "hot", "price": 0},
                {"label": "Đá", "value": "ice", "price": 0},
            ],
        }
        demo_products = [
            ("Cà phê đen", 25000, [
                temperature,
                {"name": "Size", "values": [
                    {"label": "Size S", "value": "s", "price": 0},
                    {"label": "Size M", "value": "m", "price": 5000},
                    {"label": "Size L", "value": "l", "price": 10000},
                ]},
            ]),
            ("Cà phê sữa", 29000, [
                temperature,
                {"name": "Size", "values": [
                    {"label": "Size S", "value": "s", "price": 0},
                    {"label": "Size M", "value": "m", "price": 5000},
                    {"label": "Size L", "value": "l", "price": 8000},
                ]},
            ]),
            ("Trà sữa trân châu", 35000, []),
            ("Bánh mì thịt", 30000, []),
        ]
        products = []
        for name, price, options in demo_products:
            product = Product(name=name, price=price, options=options)
            db.session.add(product)
            products.append(product)
        db.session.commit()

        for product in products:
            variant_service.sync_product_options_to_variants(product.id, actor="cli")
        click.echo(f"Seeded {len(products)} demo products.")

    @app.cli.command("create-product")
    @click.option("--name", required=True)
    @click.option("--price", required=True, type=int, help="Price in VND")
    @click.option("--description", default="")
    def create_product(name, price, description):
        """Create a product directly (for testing)."""
        from cloudshop.extensions import db
        from cloudshop.models.audit_log import AuditLog
        from cloudshop.models.product import Product

        product = Product(name=name, price=price, description=description)
        db.session.add(product)
        db.session.flush()
        db.session.add(
            AuditLog(actor="cli", action="CREATE_PRODUCT", product_id=product.id)
        )
        db.session.commit()
        click.echo(f"Created: {product.id} {name} VND {price:,}")

    @app.cli.command("list-templates")
    @click.option("--category", default=None, help="size, color, topping, temperature")
    def list_templates(category):
        """List predefined variant templates."""
        catalog = current_app.extensions["variant_templates"]
        try:
            templates = (
                catalog.get_templates_by_category(category)
                if category
                else catalog.all()
            )
        except ValueError as e:
            raise click.BadParameter(str(e), param_hint="--category")

        for template in templates:
            click.echo(f"{template['id']}: {template['name']} [{template['category']}]")
            for value in template["default_values"]:
                click.echo(
                    f"    {value['label']} ({value['value']}) "
                    f"{value['price_adjustment']:+,} stock {value['stock_quantity']}"
                )

    @app.cli.command("variant-wizard")
    @click.argument("product_id")
    @click.option(
        "--remote", is_flag=True, help="Create variants through the HTTP API at APP_URL."
    )
    def variant_wizard(product_id, remote):
        """Create a variant group for a product, step by step."""
        from cloudshop.services import variant_client, variant_service
        from cloudshop.services.variant_wizard import VariantWizard

        product = variant_service.get_product(product_id)
        if not product and not remote:
            raise click.ClickException(f"Product {product_id} not found.")

        catalog = current_app.extensions["variant_templates"]
        wizard = VariantWizard(catalog, product_id, product.name if product else "")
        wizard.open()

        _run_wizard(wizard, catalog)
        if not wizard.is_open:
            click.echo("Cancelled.")
            return

        if remote:
            create = variant_client.create_variant
        else:
            create = functools.partial(variant_service.create_variant_record, actor="cli")
        result = wizard.submit(create)
        if not result.success:
            raise click.ClickException(
                f"{result.message} ({result.created}/{result.total} created)"
            )
        click.echo(result.message)

    @app.cli.command("sync-variants")
    @click.argument("product_id")
    @click.option(
        "--direction",
        type=click.Choice(["options-to-variants", "variants-to-options"]),
        default="variants-to-options",
    )
    def sync_variants(product_id, direction):
        """Sync product_variants rows and products.options."""
        from cloudshop.services import variant_service
        from cloudshop.services.variant_service import VariantError

        try:
            message = variant_service.sync_product(product_id, direction, actor="cli")
        except VariantError as e:
            raise click.ClickException(e.message)
        click.echo(message)

    @app.cli.command("stats")
    def stats():
        """Show variant statistics."""
        from cloudshop.services.variant_service import get_variant_stats

        s = get_variant_stats()
        click.echo(f"Products with variants: {s['products']}")
        click.echo(f"  active variants: {s['active']}")
        click.echo(f"  inactive variants: {s['inactive']}")


# ---------------------------------------------------------------------------
# Interactive wizard
# ---------------------------------------------------------------------------

def _run_wizard(wizard, catalog):
    """Walk steps 1-4; returns with the wizard closed if the user cancels."""
    from cloudshop.services.variant_wizard import WIZARD_STEPS

    def header():
        step = WIZARD_STEPS[wizard.current_step - 1]
        click.echo(f"\n[{step['id']}/{len(WIZARD_STEPS)}] {step['title']}: {step['description']}")

    def proceed():
        errors = wizard.step_errors()
        if errors:
            raise click.ClickException("; ".join(errors))
        wizard.next_step()

    # Step 1
    header()
    templates = catalog.all()
    for i, template in enumerate(templates, 1):
        click.echo(f"  {i}. {template['icon']} {template['name']}: {template['description']}")
    click.echo("  0. Custom template")
    choice = click.prompt("Template", type=click.IntRange(0, len(templates)))
    if choice == 0:
        wizard.use_custom_template()
    else:
        wizard.select_template(templates[choice - 1]["id"])
    proceed()

    # Step 2
    header()
    wizard.set_variant_name(
        click.prompt("Variant group name", default=wizard.variant_name or None)
    )
    if wizard.custom_mode:
        index = 0
        while True:
            label = click.prompt(
                f"Value {index + 1} label (blank to finish)",
                default="",
                show_default=False,
            )
            if not label.strip():
                break
            if index >= len(wizard.custom_values):
                wizard.add_value()
            wizard.update_value(index, "label", label.strip())
            index += 1
    elif click.confirm("Edit value labels?", default=False):
        for i, row in enumerate(list(wizard.custom_values)):
            label = click.prompt(f"Value {i + 1} label", default=row["label"])
            if label != row["label"]:
                wizard.update_value(i, "label", label)
    proceed()

    # Step 3
    header()
    if click.confirm("Edit price and stock per value?", default=wizard.custom_mode):
        for i, row in enumerate(list(wizard.custom_values)):
            wizard.set_price_adjustment(
                i,
                click.prompt(
                    f"{row['label']} price adjustment",
                    type=int,
                    default=row["price_adjustment"],
                ),
            )
            wizard.set_stock_quantity(
                i,
                click.prompt(
                    f"{row['label']} stock", type=int, default=row["stock_quantity"]
                ),
            )
    strategy = click.prompt(
        "Bulk pricing",
        type=click.Choice(["none", "flat", "percentage", "reset"]),
        default="none",
    )
    if strategy == "reset":
        wizard.apply_bulk_pricing("flat", 0)
    elif strategy == "flat":
        wizard.apply_bulk_pricing("flat", click.prompt("Increment per value", type=int))
    elif strategy == "percentage":
        wizard.apply_bulk_pricing("percentage", click.prompt("Percent", type=float))
    proceed()

    # Step 4
    header()
    click.echo(f"Group: {wizard.variant_name.strip()}")
    for record in wizard.build_records():
        click.echo(
            f"  {record['variant_value']}: {record['price_adjustment']:+,} "
            f"stock {record['stock_quantity']}"
        )
    if not click.confirm(f"Create {len(wizard.custom_values)} variants?", default=True):
        wizard.close()
