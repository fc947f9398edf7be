#!/usr/bin/env python3
"""
KeyLocker - Encrypted API key manager CLI
"""
import logging
import sys
from typing import NoReturn, Optional

import click
from tabulate import tabulate

from . import get_security_features, get_version
from .config import VAULT_PATH_ENV, Settings
from .crypto import ARGON2ID, CIPHER_CBC, DEFAULT_CIPHER, PBKDF2_SHA256, SUPPORTED_KDFS, KdfParams
from .exceptions import ValidationError, VaultError
from .generator import DEFAULT_LENGTH
from .manager import KeyManager
from .storage import DEFAULT_VAULT, FileStore

logger = logging.getLogger(__name__)

USAGE = {
    'encrypt': "encrypt <key-name> <api-key> [master-password]",
    'decrypt': "decrypt <key-name> <master-password>",
    'generate-password': "generate-password [length]",
    'validate': "validate <key-name>",
}


def configure_logging(verbose: bool) -> None:
    """Log to stderr at DEBUG with --verbose, else at KEYLOCKER_LOG_LEVEL"""
    if verbose:
        level = logging.DEBUG
    else:
        level = getattr(logging, Settings.from_env().log_level, logging.WARNING)
        if not isinstance(level, int):
            level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def fail(error: Exception, command: Optional[str] = None) -> NoReturn:
    """Report an error and exit with status 1"""
    click.echo(f"❌ Error: {error}", err=True)
    if isinstance(error, ValidationError) and command in USAGE:
        click.echo(f"Usage: keylocker {USAGE[command]}", err=True)
    sys.exit(1)


@click.group()
@click.version_option(version=get_version(), prog_name="KeyLocker")
@click.option('--vault', envvar=VAULT_PATH_ENV, default=DEFAULT_VAULT, show_default=True,
              type=click.Path(dir_okay=False), help='Encrypted keys file')
@click.option('--verbose', '-v', is_flag=True, help='Show debug logging')
@click.pass_context
def cli(ctx, vault, verbose):
    """KeyLocker - Encrypt and manage API keys

    Keys are encrypted with a key derived from your master password and
    stored in a single JSON file. The master password is never stored.
    """
    configure_logging(verbose)
    ctx.obj = FileStore(vault)
    logger.debug("Using vault %s", ctx.obj.location)


@cli.command()
@click.argument('name', required=False)
@click.argument('secret', required=False)
@click.argument('password', required=False)
@click.option('--kdf', type=click.Choice(SUPPORTED_KDFS), default=PBKDF2_SHA256,
              show_default=True, help='Key derivation function')
@click.option('--legacy-cbc', is_flag=True,
              help='Write the unauthenticated AES-256-CBC format read by older tools')
@click.pass_obj
def encrypt(store, name, secret, password, kdf, legacy_cbc):
    """Encrypt an API key with a master password

    If no master password is given, one is generated and shown once.

    Example:
        keylocker encrypt openrouter "sk-or-v1-abc123..." mypassword
    """
    params = KdfParams.argon2id() if kdf == ARGON2ID else KdfParams()
    cipher = CIPHER_CBC if legacy_cbc else DEFAULT_CIPHER

    try:
        if not name or not secret:
            raise ValidationError("Key name and API key are required")

        result = KeyManager(store, kdf=params, cipher=cipher).encrypt(name, secret, password)
    except (VaultError, OSError) as e:
        fail(e, 'encrypt')

    if result.generated_password:
        click.echo(f"🎲 Generated master password: "
                   f"{click.style(result.generated_password, fg='green', bold=True)}")
        click.echo("⚠️  IMPORTANT: Save this password securely - "
                   "you will need it to decrypt the key!")

    click.echo(f"✅ Encrypted key '{name}' saved successfully")


@cli.command()
@click.argument('name', required=False)
@click.argument('password', required=False)
@click.pass_obj
def decrypt(store, name, password):
    """Decrypt an API key with the master password

    Example:
        keylocker decrypt openrouter mypassword
    """
    try:
        if not name or not password:
            raise ValidationError("Key name and master password are required")

        secret = KeyManager(store).decrypt(name, password)
    except (VaultError, OSError) as e:
        fail(e, 'decrypt')

    click.echo(f"Decrypted key for '{name}': {secret}")


@cli.command('generate-password')
@click.argument('length', required=False)
def generate_password_command(length):
    """Generate a secure random master password

    Example:
        keylocker generate-password 32
    """
    try:
        if length is None:
            size = DEFAULT_LENGTH
        else:
            try:
                size = int(length)
            except ValueError:
                raise ValidationError(f"Length must be a whole number, got '{length}'") from None

        password = KeyManager.generate_password(size)
    except (VaultError, OSError) as e:
        fail(e, 'generate-password')

    click.echo(f"Generated password: {click.style(password, fg='green', bold=True)}")


@cli.command('list')
@click.pass_obj
def list_keys(store):
    """List all stored encrypted keys"""
    try:
        entries = KeyManager(store).list_keys()
    except (VaultError, OSError) as e:
        fail(e)

    if not entries:
        click.echo("No encrypted keys found")
        return

    table = [
        [entry.name, entry.created, entry.updated, entry.cipher, entry.kdf.algorithm]
        for entry in entries
    ]
    click.echo("Stored encrypted keys:")
    click.echo(tabulate(table, headers=['Name', 'Created', 'Updated', 'Cipher', 'KDF'],
                        tablefmt='simple_grid'))
    click.echo(f"\n📊 Total: {len(entries)} key(s)")


@cli.command()
@click.argument('name', required=False)
@click.pass_obj
def validate(store, name):
    """Validate encrypted key format

    Only the structure of the stored data is checked, not the password.
    """
    try:
        if not name:
            raise ValidationError("Key name is required")

        is_valid = KeyManager(store).validate(name)
    except (VaultError, OSError) as e:
        fail(e, 'validate')

    click.echo(f"Key '{name}' format is {'valid' if is_valid else 'invalid'}")


@cli.command()
def version():
    """Show KeyLocker version and info"""
    click.echo("\n🔐 KeyLocker API Key Manager")
    click.echo(f"Version: {get_version()}")
    click.echo("License: MIT")
    click.echo("\nSecurity features:")
    for feature in get_security_features():
        click.echo(f"  • {feature.replace('_', ' ')}")
    click.echo("\nAPI keys are encrypted locally with a key derived from your master password.")
    click.echo("The master password itself is never stored!")


def main() -> None:
    cli()
