"""Main CLI entry point for the pool controller."""

import json
from pathlib import Path

import typer
import yaml
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pool_controller.config import ControllerSettings
from pool_controller.exceptions import KubernetesError, PoolControllerError
from pool_controller.logging_config import get_logger, setup_logging

app = typer.Typer(
    name="pool-ctl",
    help="Roll out pool configurations across cluster nodes within a disruption budget",
    add_completion=False,
)

console = Console()
logger = get_logger(__name__)


@app.callback()
def main_callback(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging"),
    log_file: str | None = typer.Option(None, "--log-file", help="Path to log file"),
    config_path: str | None = typer.Option(
        None, "--config", "-c", help="Path to controller settings YAML"
    ),
):
    """Global options for all commands."""
    log_path = Path(log_file) if log_file else None
    setup_logging(verbose=verbose, log_file=log_path)
    logger.debug("Logging initialized")

    settings = ControllerSettings()
    if config_path:
        try:
            settings = ControllerSettings.load(config_path)
        except PoolControllerError as e:
            console.print(f"[red]Configuration Error:[/red] {e.message}")
            if e.details:
                console.print(f"\n{e.details}")
            raise typer.Exit(code=1)
    ctx.obj = settings


@app.command()
def version() -> None:
    """Show version information."""
    from pool_controller import __version__

    typer.echo(f"pool-ctl version {__version__}")


def _load_snapshot(snapshot: Path):
    from pool_controller.store import SnapshotStore

    if not snapshot.exists():
        console.print(f"[red]Error:[/red] Snapshot not found: {snapshot}")
        raise typer.Exit(code=1)
    try:
        return SnapshotStore.load(snapshot)
    except (yaml.YAMLError, ValidationError, KeyError, TypeError) as e:
        console.print(f"[red]Invalid snapshot:[/red] {e}")
        raise typer.Exit(code=1)


def _select_pools(store, pool_name: str | None) -> list:
    pools = store.list_pools()
    if pool_name is None:
        return pools
    selected = [p for p in pools if p.name == pool_name]
    if not selected:
        console.print(f"[red]Error:[/red] Pool '{pool_name}' not found in snapshot")
        raise typer.Exit(code=1)
    return selected


def _print_plans(controller, pools: list) -> bool:
    """Print a rollout plan table. Returns False if any pool could not be planned."""
    table = Table(title="Rollout Plan")
    table.add_column("Pool", style="cyan")
    table.add_column("Target", style="magenta")
    table.add_column("Members", justify="right")
    table.add_column("Budget", justify="right")
    table.add_column("Unavailable", justify="right", style="yellow")
    table.add_column("Failing", justify="right", style="red")
    table.add_column("Candidates", style="green")

    ok = True
    for pool in sorted(pools, key=lambda p: p.name):
        if not pool.configuration:
            table.add_row(pool.name, "[yellow]unconfigured[/yellow]", "", "", "", "", "")
            continue
        if pool.node_selector is None or pool.node_selector.is_empty():
            table.add_row(pool.name, pool.configuration, "", "", "", "", "[red]selector rejected[/red]")
            continue

        try:
            plan = controller.plan_pool(pool)
        except PoolControllerError as e:
            console.print(f"[red]Pool {pool.name}:[/red] {e.message}")
            if e.details:
                console.print(f"  {e.details}")
            ok = False
            continue

        if pool.paused or pool.is_deleting:
            candidates = "[yellow]paused[/yellow]" if pool.paused else "[yellow]deleting[/yellow]"
        else:
            candidates = ", ".join(n.name for n in plan.candidates) or "-"
        table.add_row(
            pool.name,
            pool.configuration,
            str(len(plan.members)),
            str(plan.budget),
            str(len(plan.unavailable)),
            str(len(plan.failing)),
            candidates,
        )

    console.print(table)
    return ok


@app.command()
def plan(
    ctx: typer.Context,
    snapshot: Path = typer.Argument(..., help="YAML file with pools, nodes and configurations"),
    pool_name: str | None = typer.Option(None, "--pool", "-p", help="Only plan this pool"),
) -> None:
    """
    Show which nodes each pool would start updating.

    Reads a snapshot of pools, nodes and configurations and prints, per pool,
    its members, disruption budget, unavailable and failing nodes, and the
    candidates the next reconciliation would signal.
    """
    from pool_controller.controller import PoolController

    store = _load_snapshot(snapshot)
    pools = _select_pools(store, pool_name)

    controller = PoolController(store, store, ctx.obj)
    try:
        ok = _print_plans(controller, pools)
    finally:
        controller.stop()

    if not ok:
        raise typer.Exit(code=1)


@app.command()
def simulate(
    ctx: typer.Context,
    snapshot: Path = typer.Argument(..., help="YAML file with pools, nodes and configurations"),
    pool_name: str | None = typer.Option(None, "--pool", "-p", help="Only reconcile this pool"),
) -> None:
    """
    Run one reconciliation pass per pool against a snapshot.

    Nothing is sent to a cluster. The node patches, events and status updates
    the pass would produce are printed.
    """
    from pool_controller.controller import PoolController

    store = _load_snapshot(snapshot)
    pools = _select_pools(store, pool_name)

    controller = PoolController(store, store, ctx.obj, sleep=lambda _: None)
    failed = False
    try:
        for pool in sorted(pools, key=lambda p: p.name):
            try:
                controller.sync_pool(pool.name)
            except PoolControllerError as e:
                console.print(f"[red]Pool {pool.name}:[/red] {e.message}")
                if e.details:
                    console.print(f"  {e.details}")
                failed = True
    finally:
        controller.stop()

    if store.patches:
        table = Table(title="Node Patches")
        table.add_column("Node", style="cyan")
        table.add_column("Patch")
        for node_patch in store.patches:
            table.add_row(node_patch.node, json.dumps(node_patch.patch, sort_keys=True))
        console.print(table)
    else:
        console.print("[green]No node changes needed[/green]")

    for event in store.events:
        console.print(f"[yellow]{event.type}[/yellow] {event.pool}: {event.reason}: {event.message}")

    for name, status in store.status_updates:
        console.print(
            f"[bold]{name}:[/bold] {status.updated_machine_count}/{status.machine_count} updated, "
            f"{status.unavailable_machine_count} unavailable, "
            f"{status.degraded_machine_count} degraded"
        )

    if failed:
        raise typer.Exit(code=1)


@app.command()
def sync(
    ctx: typer.Context,
    pool_name: str = typer.Argument(..., help="Name of the pool to reconcile"),
    kubeconfig: str | None = typer.Option(None, "--kubeconfig", help="Path to kubeconfig"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Only print the rollout plan"),
) -> None:
    """
    Reconcile one pool against the live cluster.

    Lists pools, nodes and configurations from the cluster, then runs a single
    reconciliation pass for the pool.
    """
    from pool_controller.client import KubernetesClient
    from pool_controller.controller import PoolController
    from pool_controller.store import SnapshotStore

    settings = ctx.obj
    try:
        kube = KubernetesClient.from_kubeconfig(kubeconfig, settings.event_namespace)
        store = SnapshotStore(
            pools=kube.list_pools(),
            nodes=kube.list_nodes(),
            configurations=kube.list_configurations(),
        )
    except KubernetesError as e:
        console.print(f"[red]Kubernetes Error:[/red] {e.message}")
        if e.details:
            console.print(f"\n{e.details}")
        raise typer.Exit(code=1)

    pools = _select_pools(store, pool_name)
    controller = PoolController(store, kube, settings)
    try:
        if dry_run:
            if not _print_plans(controller, pools):
                raise typer.Exit(code=1)
            return
        controller.sync_pool(pool_name)
        console.print(f"[green]✓[/green] Reconciled pool '{pool_name}'")
    except PoolControllerError as e:
        logger.error(f"Failed to sync pool {pool_name}: {e.message}")
        console.print(f"[red]Error:[/red] {e.message}")
        if e.details:
            console.print(f"\n{e.details}")
        raise typer.Exit(code=1)
    finally:
        controller.stop()


if __name__ == "__main__":
    app()
