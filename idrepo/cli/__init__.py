"""
Command Line Interface for the identity repository.
"""

import json
import secrets
from pathlib import Path
from typing import Optional

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from ..config import EngineConfig, get_settings
from ..db.base import get_session_local, init_database
from ..identity.addressing import ShardAddresser
from ..identity.errors import IdRepoError
from ..identity.hashing import Sha256Hasher
from ..identity.schemas import IdentityRequest, IdentityResponse
from ..identity.services import build_identity_service
from ..identity.stores import SqlSaltStore
from ..logging_config import configure_logging

app = typer.Typer(help="Identity Repository - canonical identity records and reconciliation")
console = Console()


@app.callback()
def main() -> None:
    """Configure logging before any command runs."""
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)


def _fail(error: IdRepoError) -> None:
    typer.echo(json.dumps(error.to_dict()))
    raise typer.Exit(code=1)


def _load_request(path: Path) -> IdentityRequest:
    try:
        return IdentityRequest.model_validate_json(path.read_text(encoding="utf-8"))
    except OSError as e:
        console.print(f"❌ Cannot read {path}: {escape(str(e))}")
        raise typer.Exit(code=1)
    except ValidationError as e:
        console.print(f"❌ Invalid request: {escape(str(e))}")
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db():
    """Create all tables in the configured database."""
    init_database()
    console.print("✅ Database initialized")


@app.command("provision-salts")
def provision_salts(
    count: Optional[int] = typer.Option(None, help="Number of shards to provision (default: shard modulus)"),
    overwrite: bool = typer.Option(False, help="Replace salts of shards that already have one"),
):
    """Generate random hash and encryption salts for shards 0..count-1."""
    settings = get_settings()
    count = count if count is not None else settings.shard_modulus

    db = get_session_local()()
    try:
        store = SqlSaltStore(db)
        created = 0
        for shard in range(count):
            if not overwrite and store.exists(shard):
                continue
            store.provision(shard, secrets.token_hex(16), secrets.token_hex(16))
            created += 1
        db.commit()
    finally:
        db.close()

    console.print(f"✅ Provisioned salts for {created} shard(s)")


@app.command()
def address(identifier: str = typer.Argument(..., help="Plaintext identifier")):
    """Show the shard and hashed identifier of an identifier."""
    config = EngineConfig.from_settings(get_settings())
    db = get_session_local()()
    try:
        addresser = ShardAddresser(SqlSaltStore(db), Sha256Hasher(), config.shard_modulus)
        result = addresser.address(identifier)
    except IdRepoError as e:
        _fail(e)
    finally:
        db.close()

    typer.echo(f"shard: {result.shard}")
    typer.echo(f"hashed_identifier: {result.hashed_identifier}")


@app.command()
def add(
    identifier: str = typer.Argument(..., help="Plaintext identifier"),
    request_file: Path = typer.Argument(..., help="JSON request file"),
    actor: Optional[str] = typer.Option(None, help="Actor id recorded on the change"),
    draft: bool = typer.Option(False, help="Skip artifact history snapshots"),
):
    """Create a record from a JSON request."""
    request = _load_request(request_file)
    db = get_session_local()()
    try:
        service = build_identity_service(db, get_settings())
        record = service.add_identity(identifier, request, actor_id=actor, is_draft=draft)
        typer.echo(IdentityResponse.from_record(record).model_dump_json())
    except IdRepoError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def update(
    identifier: str = typer.Argument(..., help="Plaintext identifier"),
    request_file: Path = typer.Argument(..., help="JSON request file"),
    actor: Optional[str] = typer.Option(None, help="Actor id recorded on the change"),
):
    """Reconcile a JSON request into an existing record."""
    request = _load_request(request_file)
    db = get_session_local()()
    try:
        service = build_identity_service(db, get_settings())
        record = service.update_identity(identifier, request, actor_id=actor)
        typer.echo(IdentityResponse.from_record(record).model_dump_json())
    except IdRepoError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def show(identifier: str = typer.Argument(..., help="Plaintext identifier")):
    """Print the canonical record of an identifier as JSON."""
    db = get_session_local()()
    try:
        service = build_identity_service(db, get_settings())
        record = service.retrieve_identity(identifier)
        typer.echo(IdentityResponse.from_record(record).model_dump_json(indent=2))
    except IdRepoError as e:
        _fail(e)
    finally:
        db.close()


@app.command()
def history(identifier: str = typer.Argument(..., help="Plaintext identifier")):
    """List the history snapshots of a record."""
    db = get_session_local()()
    try:
        service = build_identity_service(db, get_settings())
        entries = service.get_history(identifier)
    except IdRepoError as e:
        _fail(e)
    finally:
        db.close()

    table = Table(title="Identity History", show_header=True, header_style="bold magenta")
    table.add_column("Effective", style="cyan", no_wrap=True)
    table.add_column("Status", style="green")
    table.add_column("Payload hash", no_wrap=True)
    table.add_column("By")

    for entry in entries:
        table.add_row(
            entry.effective_at.isoformat(),
            entry.status_code,
            entry.payload_hash[:16],
            entry.created_by,
        )

    console.print(table)
    console.print(f"{len(entries)} snapshot(s)")


if __name__ == "__main__":
    app()
