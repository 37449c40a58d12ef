"""CLI entry point for ledgermatch."""

import logging
import sys
from pathlib import Path

import click
import yaml
from pydantic import TypeAdapter

from .adapters.llm import create_llm_adapter
from .adapters.notify import create_notifier
from .adapters.store import YamlStore
from .adapters.vat import ViesAdapter
from .config import Settings, load_settings
from .dispatcher import Dispatcher
from .domain.models import Document, StageResult
from .engine import ReconciliationEngine
from .errors import LedgermatchError
from .sweep import OrphanSweep, run_sweeper

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_engine(settings: Settings) -> ReconciliationEngine:
    """Create a ReconciliationEngine with configured adapters."""
    llm = create_llm_adapter(settings.llm)
    vat = ViesAdapter(settings.vat.base_url, timeout=settings.vat.timeout) if settings.vat.enabled else None
    return ReconciliationEngine(
        store=YamlStore(settings.store.path),
        extraction=llm,
        reasoning=llm,
        vat_registry=vat,
        notifier=create_notifier(settings.notify),
        config=settings.matching,
    )


def echo_result(result: StageResult) -> None:
    if result.success:
        click.echo(f"document: {result.document_id}")
        if result.skipped:
            click.echo(f"skipped: {result.skipped}")
        if result.partner_id:
            click.echo(f"partner: {result.partner_id} ({result.confidence})")
        if result.connected:
            click.echo(f"connected: {', '.join(result.connected)}")
        click.echo(f"suggestions: {result.suggestions}")
    else:
        click.echo(f"Errors: {result.errors}", err=True)
        sys.exit(1)


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.option("-c", "--config", type=click.Path(exists=True), help="Config file path")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, config: str | None) -> None:
    """Ledgermatch - match documents to partners and bank transactions."""
    setup_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = Path(config) if config else None


@cli.command()
@click.option("--once", is_flag=True, help="Run a single scan and exit")
@click.pass_context
def sweep(ctx: click.Context, once: bool) -> None:
    """Recover documents stuck between stages."""
    settings = load_settings(ctx.obj["config_path"])
    engine = create_engine(settings)

    with Dispatcher(engine, max_workers=settings.workers.max_concurrency) as dispatcher:
        orphan_sweep = OrphanSweep(engine.store, dispatcher, settings.sweep)
        if once:
            result = orphan_sweep.run_once()
            click.echo(
                f"Recovered: {len(result.partner)} partner, {len(result.transaction)} transaction, "
                f"{len(result.errors)} errors"
            )
            if result.errors:
                sys.exit(1)
            return
        run_sweeper(orphan_sweep)


@cli.command("match-partner")
@click.argument("document_id")
@click.pass_context
def match_partner(ctx: click.Context, document_id: str) -> None:
    """Run the partner stage for one document."""
    settings = load_settings(ctx.obj["config_path"])
    engine = create_engine(settings)
    echo_result(engine.partners.match(document_id))


@cli.command("match-transactions")
@click.argument("document_id")
@click.pass_context
def match_transactions(ctx: click.Context, document_id: str) -> None:
    """Run the transaction stage for one document."""
    settings = load_settings(ctx.obj["config_path"])
    engine = create_engine(settings)
    echo_result(engine.transactions.match(document_id))


@cli.command()
@click.argument("transaction_id")
@click.argument("document_id")
@click.pass_context
def reject(ctx: click.Context, transaction_id: str, document_id: str) -> None:
    """Disconnect a document from a transaction for good."""
    settings = load_settings(ctx.obj["config_path"])
    engine = create_engine(settings)
    try:
        engine.reject_document_for_transaction(transaction_id, document_id)
    except LedgermatchError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)
    click.echo(f"Rejected {document_id} for {transaction_id}")


@cli.command()
@click.argument("document_id")
@click.pass_context
def show(ctx: click.Context, document_id: str) -> None:
    """Print a document's matching state."""
    settings = load_settings(ctx.obj["config_path"])
    store = YamlStore(settings.store.path)
    document = store.get_document(document_id)
    if document is None:
        click.echo(f"Error: document not found: {document_id}", err=True)
        sys.exit(1)

    data = TypeAdapter(Document).dump_python(document, mode="json")
    data["fields"].pop("text", None)
    click.echo(yaml.safe_dump(data, default_flow_style=False, allow_unicode=True, sort_keys=False))


if __name__ == "__main__":
    cli()
