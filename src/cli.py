"""CLI interface for aioverview."""

import json
import logging
from pathlib import Path
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.markup import escape

from aioverview.config import AIOverviewConfig, load_config, merge_cli_overrides
from aioverview.content.store import ArticleStore
from aioverview.errors import AIOverviewError, ConfigError, NoApiKeyError
from aioverview.generation.generator import ArticleGenerator
from aioverview.generation.models import META_SCHEMA_TYPES, META_STRUCTURED_DATA, ProviderId
from aioverview.schema.deriver import SchemaDeriver, render_json_ld, validate

app = typer.Typer(
    name="aioverview",
    help="Generate AI-overview optimized articles and their JSON-LD structured data.",
)

console = Console()
err_console = Console(stderr=True)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        from aioverview import __version__

        console.print(f"aioverview {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging."),
    ] = False,
) -> None:
    """AI Overview Optimizer - structured articles for search AI overviews."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


ConfigOption = Annotated[
    Optional[Path],
    typer.Option("--config", "-c", help="Path to a .aioverview.toml file."),
]
StoreOption = Annotated[
    Optional[str],
    typer.Option("--store-dir", help="Directory holding the article store."),
]


def _load_config(config_path: Optional[Path], **overrides: object) -> AIOverviewConfig:
    try:
        return merge_cli_overrides(load_config(config_path), **overrides)
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc


def _open_store(config: AIOverviewConfig) -> ArticleStore:
    return ArticleStore(Path(config.store.directory), home_url=config.site.home_url)


@app.command()
def generate(
    topic: Annotated[str, typer.Argument(help="Topic to write about.")],
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", "-p", help="Model provider (gemini, openai)."),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="API key for this call only.", envvar="AIO_API_KEY"),
    ] = None,
    content_type: Annotated[
        Optional[str],
        typer.Option("--type", "-t", help="Content type (faq, howto, comparison, listicle)."),
    ] = None,
    status: Annotated[
        Optional[str],
        typer.Option("--status", help="Post status (draft, publish)."),
    ] = None,
    category: Annotated[
        Optional[str],
        typer.Option("--category", help="Category id or name."),
    ] = None,
    author: Annotated[
        Optional[str],
        typer.Option("--author", help="Author display name."),
    ] = None,
    schema: Annotated[
        Optional[list[str]],
        typer.Option("--schema", "-s", help="Schema kinds to record (repeatable)."),
    ] = None,
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
) -> None:
    """Generate an article about TOPIC and store it."""
    topic = topic.strip()
    if not topic:
        err_console.print("[red]Error:[/red] Topic is required")
        raise typer.Exit(1)

    config = _load_config(
        config_path,
        content_type=content_type,
        post_status=status,
        category=category,
        author_name=author,
        schema_types=schema,
        store_dir=store_dir,
    )

    try:
        settings = config.to_generator_settings()
        store = _open_store(config)
        generator = ArticleGenerator(settings, store, config.to_provider_client())
        with console.status(f"Generating article about {topic!r}..."):
            article_id = generator.generate(topic, provider=provider, api_key=api_key)
    except NoApiKeyError as exc:
        err_console.print(
            f"[red]Error:[/red] {escape(str(exc))}. "
            "Pass --api-key or set the key in your config."
        )
        raise typer.Exit(1) from exc
    except AIOverviewError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    article = store.get_document(article_id)
    console.print(f"[green]Created article[/green] {article_id}")
    if article is not None:
        console.print(f"  Title:  {escape(article.title)}")
        console.print(f"  Status: {article.status.value}")
        if article.status.value == "publish":
            console.print(f"  URL:    {store.permalink(article)}")


@app.command(name="test-connection")
def test_connection(
    provider: Annotated[
        Optional[str],
        typer.Option("--provider", "-p", help="Model provider (gemini, openai)."),
    ] = None,
    api_key: Annotated[
        Optional[str],
        typer.Option("--api-key", help="API key to test.", envvar="AIO_API_KEY"),
    ] = None,
    config_path: ConfigOption = None,
) -> None:
    """Check that an API key is accepted by its provider."""
    config = _load_config(config_path)
    try:
        settings = config.to_generator_settings()
        client = config.to_provider_client()
        name = provider or settings.provider.value
        key = api_key or ""
        if not key:
            key = settings.stored_key(ProviderId(name))
    except (ConfigError, ValueError) as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    if not key:
        err_console.print("[red]Error:[/red] API key and provider are required")
        raise typer.Exit(1)

    try:
        ok = client.test_connection(name, key)
    except ConfigError as exc:
        err_console.print(f"[red]Error:[/red] {escape(str(exc))}")
        raise typer.Exit(1) from exc

    if ok:
        console.print("[green]API connection successful[/green]")
    else:
        err_console.print("[red]API connection failed - please check your key[/red]")
        raise typer.Exit(1)


@app.command()
def show(
    article_id: Annotated[str, typer.Argument(help="Id of a stored article.")],
    body: Annotated[
        bool,
        typer.Option("--body", help="Also print the HTML body."),
    ] = False,
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
) -> None:
    """Show a stored article and its generation metadata."""
    config = _load_config(config_path, store_dir=store_dir)
    store = _open_store(config)
    article = store.get_document(article_id)
    if article is None:
        err_console.print(f"[red]Error:[/red] Unknown article: {article_id}")
        raise typer.Exit(1)

    console.print(f"[bold]{escape(article.title)}[/bold]")
    console.print(f"  Id:        {article.id}")
    console.print(f"  Status:    {article.status.value}")
    console.print(f"  URL:       {store.permalink(article)}")
    category = store.resolve_category(article.category_id)
    if category is not None:
        console.print(f"  Category:  {escape(category.name)}")
    console.print(f"  Published: {article.published_at:%Y-%m-%d %H:%M}")
    for key, value in sorted(article.metadata.items()):
        if key == META_STRUCTURED_DATA:
            value = "yes"
        elif isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        console.print(f"  {key}: {escape(str(value))}")
    if body:
        console.print()
        typer.echo(article.html_body)


@app.command(name="schema")
def schema_cmd(
    article_id: Annotated[str, typer.Argument(help="Id of a stored article.")],
    kind: Annotated[
        Optional[list[str]],
        typer.Option("--kind", "-k", help="Schema kinds to derive (defaults to stored kinds)."),
    ] = None,
    raw_json: Annotated[
        bool,
        typer.Option("--json", help="Print bare JSON instead of a script block."),
    ] = False,
    config_path: ConfigOption = None,
    store_dir: StoreOption = None,
) -> None:
    """Print the JSON-LD structured data for a stored article."""
    config = _load_config(config_path, store_dir=store_dir)
    store = _open_store(config)
    article = store.get_document(article_id)
    if article is None:
        err_console.print(f"[red]Error:[/red] Unknown article: {article_id}")
        raise typer.Exit(1)

    kinds = kind or article.metadata.get(META_SCHEMA_TYPES) or []
    if not kinds:
        err_console.print("No schema kinds recorded for this article.")
        raise typer.Exit(0)

    deriver = SchemaDeriver(config.to_site_settings(), store)
    result = deriver.derive_schema(article, kinds)
    objects = result if isinstance(result, list) else [result]
    for obj in objects:
        if not validate(obj):
            err_console.print(f"[yellow]Warning:[/yellow] invalid schema object {obj.get('@type')!r}")

    if raw_json:
        typer.echo(json.dumps(result, indent=2, ensure_ascii=False))
    else:
        typer.echo(render_json_ld(result), nl=False)


if __name__ == "__main__":
    app()
