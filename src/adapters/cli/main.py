"""
adapters.cli.main - CLI adapter for the recipe RAG service.

Mirrors src/adapters/rest/ but for terminal use. Uses the same
ServiceFactory and services as the REST API so indexing, retrieval and
generation behave identically.

Commands
--------
  serve      Start the HTTP API
  index      Index the corpus once (no-op when the dataset tag is present)
  resume     Embed the rows missing after an interrupted index run
  purge      Delete every document carrying the dataset tag
  status     Show how many documents carry the dataset tag
  ask        One-shot structured recipe query
  chat       Interactive free-text chat over the corpus

Usage
-----
  python src/adapters/cli/main.py index
  python src/adapters/cli/main.py ask "high protein dinner" --calories 500
  python src/adapters/cli/main.py chat
"""

from __future__ import annotations

import asyncio
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

# ── Ensure src/ is on the path ──
_SRC = Path(__file__).resolve().parent.parent.parent
sys.path.insert(0, str(_SRC))

import typer
from rich import box
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from application.context import RequestContext
from application.dto import QueryRequest
from application.services.constraints import lock_sliders, map_constraints
from domain.exceptions import ConfigurationError, DomainError
from domain.models import Recipe
from factory import ServiceFactory
from infrastructure.config import Settings, configure_logging

__version__ = "1.0.0"

logger = logging.getLogger(__name__)

console = Console()
app = typer.Typer(
    help="Recipe RAG CLI",
    add_completion=False,
    no_args_is_help=True,
)


# ---------------------------------------------------------------------------
# Shared helpers
# ---------------------------------------------------------------------------

def startup_hint(exc: BaseException) -> Optional[str]:
    """Turn a provider failure into an operator-facing hint, if recognizable."""
    message = str(exc).lower()
    if "fetch failed" in message or "connection" in message:
        return (
            "Fetch Failed: This often means an API key is invalid, your network is down, "
            "or a provider (LLM / embeddings / vector store) is unavailable."
        )
    if "401" in message:
        return (
            "Authentication Error (401): Check your API keys in the .env file. "
            "One of them is likely incorrect or has expired."
        )
    if "429" in message:
        return (
            "Rate Limit Error (429): You are sending too many requests to an API too quickly. "
            "Please wait and try again."
        )
    if "500" in message:
        return (
            "Server Error (500): The provider is having issues on their end. "
            "Please try again later."
        )
    return None


def _build_factory() -> ServiceFactory:
    """Create a ServiceFactory from the environment; invalid config is fatal."""
    config = Settings.from_env()
    config.validate()
    configure_logging(config.log_level)
    return ServiceFactory(config)


def _run(work: Callable[[ServiceFactory], Awaitable[None]]) -> None:
    """Build the factory and run one async command, reporting fatal errors."""
    try:
        factory = _build_factory()
    except ConfigurationError as exc:
        console.print(Panel(str(exc), title="Configuration error", border_style="red"))
        raise typer.Exit(code=1)

    try:
        asyncio.run(work(factory))
    except typer.Exit:
        raise
    except Exception as exc:
        logger.debug("Command failed", exc_info=True)
        hint = startup_hint(exc)
        body = f"[bold red]{type(exc).__name__}:[/bold red] {exc}"
        if hint:
            body += f"\n\n[yellow]{hint}[/yellow]"
        console.print(Panel(body, title="A fatal error occurred", border_style="red"))
        raise typer.Exit(code=1)


async def _ensure_ready(factory: ServiceFactory) -> None:
    with console.status(
        "[bold cyan]Checking corpus index (first run embeds the whole dataset)…",
        spinner="dots",
    ):
        report = await factory.initialize()
    if report.skipped:
        console.print(f"  [green]Dataset '{report.dataset_tag}' already indexed.[/green]")
    else:
        console.print(
            f"  [green]Indexed {report.embedded} documents in {report.batches} batches.[/green]"
        )


def _recipe_panel(recipe: Recipe) -> Panel:
    m = recipe.macros
    lines = [
        f"_{recipe.summary}_" if recipe.summary else "",
        f"**Time:** {recipe.time:g} min · **Difficulty:** {recipe.difficulty} · "
        f"**Servings:** {recipe.servings}",
        f"**Macros:** {m.calories:g} kcal · {m.protein:g}g protein · "
        f"{m.carbs:g}g carbs · {m.fats:g}g fats",
        "",
        "### Ingredients",
        *[f"- {i}" for i in recipe.ingredients],
        "",
        "### Steps",
        *[f"{n}. {s}" for n, s in enumerate(recipe.steps, start=1)],
    ]
    if recipe.explanation:
        lines += ["", f"**Why this fits:** {recipe.explanation}"]
    return Panel(Markdown("\n".join(lines)), title=recipe.title, border_style="green")


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"recipe-rag v{__version__}")
        raise typer.Exit()


# ---------------------------------------------------------------------------
# Commands: Corpus
# ---------------------------------------------------------------------------

@app.command()
def index() -> None:
    """Index the corpus once. Does nothing when the dataset tag is already present."""
    async def _work(factory: ServiceFactory) -> None:
        await _ensure_ready(factory)

    _run(_work)


@app.command()
def resume() -> None:
    """Embed only the rows missing after an interrupted index run."""
    async def _work(factory: ServiceFactory) -> None:
        loader = factory.create_corpus_loader()
        with console.status("[bold cyan]Resuming embedding…", spinner="dots"):
            report = await loader.resume()
        if report.skipped:
            console.print("[green]All documents are already embedded![/green]")
            return
        final = await loader.count()
        console.print(Panel(
            f"Resumed from document [bold]{report.start_offset + 1}[/bold]\n"
            f"Embedded [bold]{report.embedded}[/bold] documents in {report.batches} batches\n"
            f"Final count in index: [bold]{final}[/bold]",
            title=f"Dataset '{report.dataset_tag}'",
            border_style="green",
        ))

    _run(_work)


@app.command()
def purge(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete every document carrying the configured dataset tag."""
    async def _work(factory: ServiceFactory) -> None:
        tag = factory.config.dataset_tag
        if not yes and not Confirm.ask(f"Delete every document tagged [bold]{tag}[/bold]?"):
            console.print("[dim]Aborted.[/dim]")
            raise typer.Exit()
        deleted = await factory.create_corpus_loader().purge()
        console.print(f"[green]Successfully deleted {deleted} documents tagged '{tag}'.[/green]")
        console.print("Run [bold]index[/bold] to load the corpus again.")

    _run(_work)


@app.command()
def status() -> None:
    """Show the number of documents carrying the configured dataset tag."""
    async def _work(factory: ServiceFactory) -> None:
        cfg = factory.config
        count = await factory.create_corpus_loader().count()

        t = Table(box=box.SIMPLE, show_header=False, padding=(0, 2))
        t.add_column("Field", style="bold")
        t.add_column("Value")
        t.add_row("Dataset tag", cfg.dataset_tag)
        t.add_row("Documents", str(count))
        t.add_row("Vector store", cfg.vector_store)
        t.add_row("Embeddings", f"{cfg.embedding_provider} ({cfg.embedding_model})")
        t.add_row("LLM", f"{cfg.llm_provider} ({cfg.active_llm_model})")
        console.print(Panel(t, title="Corpus status", border_style="blue"))

    _run(_work)


# ---------------------------------------------------------------------------
# Commands: Queries
# ---------------------------------------------------------------------------

@app.command()
def ask(
    question: str = typer.Argument(..., help="Your recipe request."),
    calories: Optional[float] = typer.Option(None, help="Lock calories near this value."),
    protein: Optional[float] = typer.Option(None, help="Lock protein (g) near this value."),
    carbs: Optional[float] = typer.Option(None, help="Lock carbs (g) near this value."),
    fats: Optional[float] = typer.Option(None, help="Lock fats (g) near this value."),
    max_time: Optional[float] = typer.Option(None, "--max-time", help="Max cooking time in minutes."),
    diet: List[str] = typer.Option([], "--diet", help="vegan, glutenfree, keto, halal, dairyfree"),
    allergen: List[str] = typer.Option([], "--allergen", help="Allergen to avoid (repeatable)."),
    dislike: List[str] = typer.Option([], "--dislike", help="Disliked ingredient (repeatable)."),
) -> None:
    """Ask a one-shot recipe question and get a structured recipe back."""
    constraints = map_constraints(
        lock_sliders(calories=calories, protein=protein, carbs=carbs, fats=fats, time=max_time),
        dietary_chips=diet,
        allergens=allergen,
        dislikes=dislike,
    )
    if max_time is None:
        # No --max-time means no time ceiling, not the slider default.
        constraints = replace(constraints, max_time=None)

    async def _work(factory: ServiceFactory) -> None:
        await _ensure_ready(factory)
        service = factory.create_query_service()
        ctx = RequestContext.with_timeout(factory.config.query_timeout_seconds)

        with console.status("[bold cyan]Thinking…", spinner="dots"):
            result = await service.query(
                ctx, QueryRequest(question=question, constraints=constraints),
            )

        if not result.success:
            console.print(Panel(f"[bold red]{result.error}[/bold red]", border_style="red"))
            raise typer.Exit(code=1)
        console.print(_recipe_panel(result.recipe))

    _run(_work)


@app.command()
def chat() -> None:
    """Chat with the recipe corpus in free text. Type 'exit' to quit."""
    async def _work(factory: ServiceFactory) -> None:
        await _ensure_ready(factory)
        session = factory.create_chat_session()

        console.print(Panel(
            "[bold]Chat with your Recipe CSV![/bold]\n"
            "Type [bold]exit[/bold] to quit.",
            border_style="cyan",
        ))

        while True:
            try:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")
            except (KeyboardInterrupt, EOFError):
                console.print("\n[dim]Goodbye![/dim]")
                break

            if user_input.strip().lower() == "exit":
                break
            if not user_input.strip():
                continue

            try:
                with console.status("[bold cyan]…Bot is thinking…", spinner="dots"):
                    answer = await session.ask(user_input)
            except DomainError as exc:
                logger.debug("Chat query failed", exc_info=True)
                console.print(f"[bold red]An error occurred during query:[/bold red] {exc}")
                console.print("Please try another question.")
                continue

            console.print()
            console.print(Panel(Markdown(answer.text), title="Bot", border_style="green"))
            console.print(f"[dim](Query took {answer.elapsed_seconds:.2f}s)[/dim]")

    _run(_work)


# ---------------------------------------------------------------------------
# Commands: Server
# ---------------------------------------------------------------------------

@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Bind address (default: HOST or 0.0.0.0)."),
    port: Optional[int] = typer.Option(None, help="Port (default: PORT or 3001)."),
) -> None:
    """Start the HTTP API. The corpus loads in the background after startup."""
    import uvicorn

    try:
        config = _build_factory().config
    except ConfigurationError as exc:
        console.print(Panel(str(exc), title="Configuration error", border_style="red"))
        raise typer.Exit(code=1)

    uvicorn.run(
        "adapters.rest.app:app",
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )


# ---------------------------------------------------------------------------
# Global version option
# ---------------------------------------------------------------------------

@app.callback()
def _callback(
    version: bool = typer.Option(
        False, "--version", "-v",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Recipe RAG CLI"""


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    app()
