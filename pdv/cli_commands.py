"""
Flask CLI commands.

Commands:
- flask init-db: Create the database tables
- flask create-user: Create an operator profile (admin or vendedor)
"""

import click

from pdv.database import create_all
from pdv.exceptions import PdvError
from pdv.models import UserRole


def init_cli_commands(app):
    """Register CLI commands with Flask app."""

    @app.cli.command('init-db')
    def init_db_command():
        """Create every table that does not exist yet."""
        create_all()
        click.echo(click.style('✅ Tabelas criadas.', fg='green'))

    @app.cli.command('create-user')
    @click.option('--email', prompt=True, help='Email do usuário')
    @click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Senha')
    @click.option('--full-name', default='', help='Nome completo')
    @click.option('--role', type=click.Choice([r.value for r in UserRole]), default=UserRole.VENDEDOR.value,
                  show_default=True, help='Perfil de acesso')
    def create_user(email, password, full_name, role):
        """Create an operator profile."""
        auth_service = app.extensions['pdv'].auth_service
        try:
            user = auth_service.sign_up(email, password, full_name, role)
        except PdvError as e:
            click.echo(click.style(f'❌ {e.message}', fg='red'))
            raise SystemExit(1)

        click.echo(click.style('\n✅ Usuário criado com sucesso!', fg='green', bold=True))
        click.echo(f'   Email: {user.email}')
        click.echo(f'   Perfil: {user.role}')
        click.echo(f'   ID: {user.id}')
