"""
Franchise POS CLI.

Command-line interface for common operations: schema setup, seeding,
saga inspection and outbox delivery.
"""

import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent))

import typer
from rich.console import Console
from rich.table import Table

app = typer.Typer(
    name="franchise-pos",
    help="Franchise POS management CLI",
    add_completion=False,
)
console = Console()


# =============================================================================
# Database Commands
# =============================================================================

@app.command()
def init_db():
    """Create all database tables."""
    from rest_api.models import Base
    from shared.infrastructure.db import engine

    console.print("[blue]Creating tables[/blue]")
    Base.metadata.create_all(bind=engine)
    console.print("[green]✓ Tables created/verified[/green]")


@app.command()
def seed(
    force: bool = typer.Option(False, "--force", "-f", help="Allow seeding in production"),
):
    """Seed the demo franchise, staff, tables and menu."""
    from rest_api.seed import seed as run_seed
    from shared.config.settings import settings
    from shared.infrastructure.db import SessionLocal

    if settings.environment == "production" and not force:
        console.print("[red]Cannot seed production without --force[/red]")
        raise typer.Exit(1)

    with SessionLocal() as db:
        run_seed(db)
    console.print("[green]✓ Seed complete[/green]")


# =============================================================================
# Saga Commands
# =============================================================================

@app.command()
def sagas(
    status: str = typer.Option(None, help="Filter by status (e.g. FAILED)"),
    limit: int = typer.Option(20, help="Maximum rows"),
):
    """List recent sagas."""
    from rest_api.services.domain import list_sagas
    from shared.config.constants import SagaStatus
    from shared.infrastructure.db import SessionLocal

    status_filter = SagaStatus(status.upper()) if status else None
    with SessionLocal() as db:
        rows = list_sagas(db, status=status_filter, limit=limit)

        table = Table(title="Sagas")
        table.add_column("ID", style="cyan")
        table.add_column("Kind")
        table.add_column("Status", style="green")
        table.add_column("Aggregate")
        table.add_column("Failed step", style="red")
        table.add_column("Steps")
        table.add_column("Started", style="yellow")

        for saga in rows:
            table.add_row(
                saga.id,
                saga.kind.value,
                saga.status.value,
                saga.aggregate_id,
                saga.failed_step or "-",
                ", ".join(f"{s.name}:{s.status.value}" for s in saga.steps) or "-",
                saga.created_at.strftime("%Y-%m-%d %H:%M:%S"),
            )
    console.print(table)


@app.command()
def resume_saga(
    saga_id: str = typer.Argument(..., help="Saga to resume"),
    as_email: str = typer.Option(..., "--as", help="Email of the staff member resuming"),
):
    """Resume a FAILED payment saga on behalf of a staff member."""
    from sqlalchemy import select

    from rest_api.models import AuthPrincipal
    from rest_api.services.domain import IdentityResolver, PaymentFinalizer
    from shared.infrastructure.db import SessionLocal
    from shared.utils.exceptions import AppException

    with SessionLocal() as db:
        principal = db.scalar(select(AuthPrincipal).where(AuthPrincipal.email == as_email.lower()))
        if principal is None:
            console.print(f"[red]✗ No account for {as_email}[/red]")
            raise typer.Exit(1)
        try:
            ctx = IdentityResolver(db).resolve(principal.id, refresh=True)
            payment, saga = PaymentFinalizer(db).resume(saga_id, ctx)
        except AppException as e:
            console.print(f"[red]✗ {e.detail}[/red]")
            raise typer.Exit(1)
        console.print(f"[green]✓ Saga {saga.id} {saga.status.value}, payment {payment.id}[/green]")


# =============================================================================
# Outbox Commands
# =============================================================================

@app.command()
def publish_outbox():
    """Publish one batch of pending change events to Redis."""
    import asyncio

    from rest_api.services.events import process_pending_events_once
    from shared.infrastructure.events import close_redis_pool

    async def _publish():
        try:
            return await process_pending_events_once()
        finally:
            await close_redis_pool()

    published = asyncio.run(_publish())
    console.print(f"[green]✓ Published {published} events[/green]")


# =============================================================================
# Health Commands
# =============================================================================

@app.command()
def health(
    url: str = typer.Option("http://localhost:8000", help="REST API base URL"),
):
    """Check REST API and Redis health."""
    import asyncio
    import time

    import httpx

    async def _health():
        table = Table(title="Service Health")
        table.add_column("Service", style="cyan")
        table.add_column("Status", style="green")
        table.add_column("Response Time", style="yellow")

        async with httpx.AsyncClient(timeout=5.0) as client:
            try:
                start = time.time()
                response = await client.get(f"{url}/api/health")
                elapsed = (time.time() - start) * 1000
                if response.status_code == 200:
                    table.add_row("REST API", "✓ Healthy", f"{elapsed:.0f}ms")
                else:
                    table.add_row("REST API", f"✗ Status {response.status_code}", f"{elapsed:.0f}ms")
            except httpx.HTTPError as e:
                table.add_row("REST API", f"✗ {type(e).__name__}", "-")

        from shared.infrastructure.events import close_redis_pool, get_redis_pool

        try:
            start = time.time()
            redis = await get_redis_pool()
            await redis.ping()
            elapsed = (time.time() - start) * 1000
            table.add_row("Redis", "✓ Healthy", f"{elapsed:.0f}ms")
        except Exception as e:
            table.add_row("Redis", f"✗ {type(e).__name__}", "-")
        finally:
            await close_redis_pool()

        console.print(table)

    asyncio.run(_health())


@app.command()
def version():
    """Show version information."""
    table = Table(title="Franchise POS Version")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("API", "0.1.0")
    table.add_row("Python", sys.version.split()[0])

    console.print(table)


if __name__ == "__main__":
    app()
