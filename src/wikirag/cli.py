"""CLI entry point for wikirag."""

import logging
from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .config import DEFAULT_CONFIG, load_config
from .errors import ConfigError

console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
    )


@click.group()
@click.option("--config", "-c", "config_path", default=None, help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Show debug logging")
@click.pass_context
def cli(ctx, config_path, verbose):
    """wikirag - crawl a wiki, embed it, and answer questions from it."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    _setup_logging(verbose)


def _get_service(ctx):
    from .service import AssistantService

    try:
        config = load_config(ctx.obj.get("config_path"))
    except ConfigError as e:
        raise click.ClickException(str(e)) from e
    return AssistantService(config)


@cli.command()
@click.option("--path", default=None, help="Custom data directory")
def init(path):
    """Create the data directory and a starter config.yaml."""
    data_dir = Path(path).expanduser().resolve() if path else Path("~/.wikirag").expanduser()
    console.print(f"[bold green]Initializing wikirag at {data_dir}[/]")

    (data_dir / "vector_db").mkdir(parents=True, exist_ok=True)

    config_file = data_dir / "config.yaml"
    if not config_file.exists():
        cfg = dict(DEFAULT_CONFIG)
        cfg["data_dir"] = str(data_dir)
        header = (
            "# Storage backend: chromadb (on disk, falls back to memory) or memory\n"
            "# Ollama settings can also come from WIKIRAG_OLLAMA_URL / WIKIRAG_MODEL\n\n"
        )
        config_file.write_text(header + yaml.dump(cfg, default_flow_style=False, sort_keys=False))
        console.print(f"  Created config: {config_file}")

    console.print("[bold green]✓ wikirag initialized![/]")
    console.print("  Run: wikirag crawl")


@cli.command()
@click.option("--seed", "seeds", multiple=True, help="Seed page path or URL (repeatable)")
@click.pass_context
def crawl(ctx, seeds):
    """Crawl the wiki and embed every page found."""
    service = _get_service(ctx)
    console.print(f"[blue]Crawling {service.crawler.base_url}...[/]")

    with console.status("Crawling..."):
        result = service.update_content(list(seeds) or None)

    if not result.ok:
        console.print(f"[red]✗ {result.error}[/]")
        return

    s = result.value
    console.print(f"[green]✓ Crawl complete: {s['pages_scraped']} page(s), {s['errors_encountered']} error(s)[/]")
    console.print(f"  Stored chunks: {service.store.count()} ({service.store.mode} store)")


@cli.command()
@click.argument("query")
@click.option("--n", "-n", default=5, help="Number of results")
@click.pass_context
def search(ctx, query, n):
    """Semantic search over the embedded wiki."""
    service = _get_service(ctx)
    console.print(f"[blue]Searching for: '{query}'[/]\n")

    result = service.search_similar(query, limit=n)
    if not result.ok:
        console.print(f"[red]{result.error}[/]")
        return
    if not result.value:
        console.print("[yellow]No results found. Have you run 'wikirag crawl'?[/]")
        return

    table = Table(title="Search Results")
    table.add_column("#", style="dim", width=3)
    table.add_column("Title", style="cyan")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Preview", max_width=60)

    for i, r in enumerate(result.value, 1):
        preview = r.chunk.content[:80].replace("\n", " ")
        table.add_row(str(i), r.chunk.source_title, f"{r.score:.3f}", preview)

    console.print(table)


@cli.command()
@click.argument("question")
@click.option("--n", "-n", default=None, type=int, help="Number of context chunks to retrieve")
@click.option("--model", "-m", default=None, help="Ollama model to answer with")
@click.pass_context
def ask(ctx, question, n, model):
    """Ask a question and get an answer grounded in the wiki."""
    from rich.markdown import Markdown
    from rich.panel import Panel

    service = _get_service(ctx)
    console.print("[blue]Searching wiki for context...[/]\n")

    result = service.ask(question, model=model, n_chunks=n)
    if not result.ok:
        console.print(f"[red]{result.error}[/]")
        return

    answer = result.value
    style = "yellow" if answer["fallback"] else "green"
    console.print(Panel(Markdown(answer["answer"]), title="Answer", border_style=style))

    if answer["sources"]:
        console.print("\n[bold]Sources:[/]")
        for source in answer["sources"]:
            console.print(f"  • {source}")


@cli.command()
@click.pass_context
def status(ctx):
    """Show crawl and store statistics."""
    service = _get_service(ctx)
    s = service.get_status().value

    console.print("\n[bold]wikirag status[/]")
    console.print(f"  Store mode: {s['store_mode']}")
    console.print(f"  Stored chunks: {s['stored_chunks']}")
    console.print(f"  Cached chunks: {s['cached_chunks']}")
    console.print(f"  Last update: {s['last_update'] or 'never (this session)'}")


if __name__ == "__main__":
    cli()
