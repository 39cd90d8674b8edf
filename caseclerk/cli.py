import click

from .models import db
from .seed_data import DEMO_EMAIL, DEMO_PASSWORD, seed_demo_data


def register_commands(app):
    @app.cli.command('init-db')
    def init_db():
        """Create database tables and the demo account."""
        click.echo("Creating database tables...")
        db.create_all()
        if seed_demo_data():
            click.echo(f"Demo user created with email '{DEMO_EMAIL}' and password '{DEMO_PASSWORD}'")
        else:
            click.echo("Demo user already exists")
        click.echo("Database initialization complete!")

    @app.cli.command('reset-db')
    @click.confirmation_option(prompt='This drops every table. Continue?')
    def reset_db():
        """Drop and recreate all tables, then reseed."""
        click.echo("Dropping all tables...")
        db.drop_all()
        click.echo("Creating all tables...")
        db.create_all()
        seed_demo_data()
        click.echo("\nDatabase has been reset successfully!")
        click.echo(f"Demo user: {DEMO_EMAIL} / {DEMO_PASSWORD}")

    @app.cli.command('seed-db')
    def seed_db():
        """Load the demo account and sample records."""
        if seed_demo_data():
            click.echo("Demo data loaded.")
        else:
            click.echo("Demo data already present.")
