"""
SQLBridge CLI

Command-line interface for asking questions of a PostgreSQL database.

Usage:
    sqlbridge chat                               # Interactive REPL mode
    sqlbridge ask "List all clubs"               # Single question
    sqlbridge validate "SELECT * FROM club"      # Run the safety gate only
    sqlbridge schema build                       # Re-introspect and cache the schema
    sqlbridge schema show --table Club           # Inspect the cached schema

REPL commands:
    dryrun on|off          Show SQL without executing it
    limit N                Cap rows (any other value restores the default)
    format table|csv|json  Output format
    explain [sql]          Explain the given SQL, or the last query
    rerun                  Execute the last query again
    exit | quit            Leave
"""

import asyncio
import logging
import sys
from dataclasses import dataclass

import click
from pydantic import ValidationError
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.table import Table

from sqlbridge import __version__
from sqlbridge.config import ConfigurationError, Settings, get_settings
from sqlbridge.connectors import ConnectorError, create_connector
from sqlbridge.executor import OUTPUT_FORMATS, QueryExecutor, format_sql
from sqlbridge.llm import LLMProviderFactory
from sqlbridge.schema import (
    FileCacheStore,
    JoinPathFinder,
    SchemaBuilder,
    SchemaHints,
    SchemaRegistry,
    SchemaRetriever,
)
from sqlbridge.translation import PromptBuilder, SQLTranslator, TargetedTranslationStrategy
from sqlbridge.utils.redact import redact_connection_string
from sqlbridge.validation import UnsafeSQLError, is_safe_select

console = Console()
logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"exit", "quit"}


def configure_cli_logging(verbose: bool = False) -> None:
    """Keep library chatter out of the terminal unless asked for."""
    level = logging.DEBUG if verbose else logging.WARNING
    for logger_name in ("sqlbridge", "httpx", "httpcore", "asyncpg", "asyncio"):
        logging.getLogger(logger_name).setLevel(level)


def load_settings(verbose: bool = False) -> Settings:
    """Load settings or exit with a readable configuration error."""
    try:
        settings = get_settings()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{e}")
        sys.exit(1)
    configure_cli_logging(verbose)
    return settings


# ============================================================================
# Application wiring
# ============================================================================


class SQLBridgeApp:
    """
    Wires connector, schema components, LLM provider and executor.

    The LLM provider is only created when ``with_llm`` is set, so schema
    commands work without translation credentials being exercised.
    """

    def __init__(self, settings: Settings, with_llm: bool = True):
        database_url = settings.require_database_url()
        logger.info(f"Target database: {redact_connection_string(database_url)}")

        self.settings = settings
        self.connector = create_connector(
            database_url=database_url,
            pool_size=settings.database.pool_size,
            timeout=settings.database.command_timeout,
        )
        self.registry = SchemaRegistry(
            FileCacheStore(settings.schema_cache.cache_dir),
            key=settings.schema_cache.cache_key,
        )
        self.builder = SchemaBuilder(
            self.connector,
            SchemaHints.load(settings.schema_cache.hints_path),
            default_schema=settings.schema_cache.default_schema,
        )
        self.executor = QueryExecutor(
            self.connector,
            max_rows=settings.safety.max_rows,
            timeout=settings.safety.timeout,
        )

        self.provider = None
        self.translator = None
        if with_llm:
            self._init_translation(settings)

    def _init_translation(self, settings: Settings) -> None:
        retrieval = settings.retrieval
        self.provider = LLMProviderFactory.create_default_provider(settings.llm)
        strategy = TargetedTranslationStrategy(
            provider=self.provider,
            registry=self.registry,
            retriever=SchemaRetriever(self.registry),
            join_path_finder=JoinPathFinder(
                self.registry, bidirectional=retrieval.bidirectional_joins
            ),
            prompt_builder=PromptBuilder(
                max_tokens=retrieval.max_tokens,
                max_tables=retrieval.max_tables,
                max_columns_per_table=retrieval.max_columns_per_table,
                max_rows=settings.safety.max_rows,
                name_lookup_tables=retrieval.name_lookup_tables,
                name_columns=retrieval.name_columns,
            ),
            build_schema=self.builder.build,
            max_tables=retrieval.max_tables,
            max_columns_per_table=retrieval.max_columns_per_table,
            name_lookup_tables=retrieval.name_lookup_tables,
            name_columns=retrieval.name_columns,
        )
        self.translator = SQLTranslator(strategy, self.provider)

    async def close(self) -> None:
        await self.connector.close()
        if self.provider is not None:
            await self.provider.aclose()


# ============================================================================
# Output helpers
# ============================================================================


def print_sql(sql: str, title: str = "SQL") -> None:
    console.print(Panel(format_sql(sql), title=title, border_style="cyan", highlight=True))


def print_result(executor: QueryExecutor, result, fmt: str) -> None:
    rendered = executor.render(result, fmt)
    if isinstance(rendered, Table):
        console.print(rendered)
    else:
        # Raw text so CSV/JSON can be piped or copied as-is.
        console.print(rendered, markup=False, highlight=False, soft_wrap=True)
    console.print(f"[dim]{result.row_count} rows in {result.execution_time_ms:.0f}ms[/dim]")


# ============================================================================
# Interactive session
# ============================================================================


@dataclass
class SessionState:
    """Mutable REPL settings; reset per process."""

    dry_run: bool = False
    limit: int | None = None
    output_format: str = "table"
    last_sql: str | None = None


class ChatSession:
    """
    Handles one REPL line at a time.

    ``handle`` returns False when the user asks to leave.
    """

    def __init__(self, app: SQLBridgeApp, state: SessionState | None = None):
        self.app = app
        self.state = state or SessionState()

    async def handle(self, line: str) -> bool:
        text = line.strip()
        if not text:
            return True

        command, _, argument = text.partition(" ")
        command = command.lower()
        argument = argument.strip()

        if command in EXIT_COMMANDS:
            return False
        if command == "dryrun":
            self._set_dry_run(argument)
        elif command == "limit":
            self._set_limit(argument)
        elif command == "format":
            self._set_format(argument)
        elif command == "rerun":
            await self._rerun()
        elif command == "explain":
            await self._explain(argument or self.state.last_sql)
        else:
            await self.ask(text)
        return True

    async def ask(self, question: str) -> bool:
        """Translate, check and run a question; False when any step fails."""
        logger.info("Question received", extra={"question": question})
        with console.status("[cyan]Translating...[/cyan]", spinner="dots"):
            sql = await self.app.translator.translate(question)

        if sql is None:
            console.print("[yellow]Could not translate question to SQL.[/yellow]")
            return False

        verdict = is_safe_select(sql)
        if not verdict.accepted:
            console.print(f"[red]Blocked unsafe SQL: {verdict.reason}[/red]")
            return False

        self.state.last_sql = sql
        return await self._run(sql)

    async def _run(self, sql: str) -> bool:
        if self.state.dry_run:
            print_sql(sql, title="SQL (dryrun)")
            return True

        print_sql(sql)
        try:
            with console.status("[cyan]Running query...[/cyan]", spinner="dots"):
                result = await self.app.executor.execute(sql, limit=self.state.limit)
        except UnsafeSQLError as e:
            console.print(f"[red]Blocked unsafe SQL: {e.reason}[/red]")
            return False
        except ConnectorError as e:
            console.print(f"[red]Query failed: {e}[/red]")
            return False
        print_result(self.app.executor, result, self.state.output_format)
        return True

    async def _rerun(self) -> bool:
        sql = self.state.last_sql
        if not sql:
            console.print("[yellow]No previous query to rerun.[/yellow]")
            return False
        verdict = is_safe_select(sql)
        if not verdict.accepted:
            console.print(f"[red]Blocked unsafe SQL: {verdict.reason}[/red]")
            return False
        return await self._run(sql)

    async def _explain(self, sql: str | None) -> None:
        if not sql or not sql.strip():
            console.print("[yellow]Nothing to explain.[/yellow]")
            return
        with console.status("[cyan]Explaining...[/cyan]", spinner="dots"):
            explanation = await self.app.translator.explain(sql)
        if explanation is None:
            console.print("[yellow]Could not get an explanation.[/yellow]")
            return
        console.print(Panel(Markdown(explanation), title="[bold green]Explanation[/bold green]"))

    def _set_dry_run(self, argument: str) -> None:
        value = argument.lower()
        if value == "on":
            self.state.dry_run = True
        elif value == "off":
            self.state.dry_run = False
        console.print(f"dryrun = {'on' if self.state.dry_run else 'off'}")

    def _set_limit(self, argument: str) -> None:
        try:
            value = int(argument)
        except ValueError:
            value = 0
        self.state.limit = value if value > 0 else None
        console.print(f"limit = {self.state.limit if self.state.limit else 'default'}")

    def _set_format(self, argument: str) -> None:
        if argument:
            value = argument.lower()
            self.state.output_format = value if value in OUTPUT_FORMATS else "table"
        console.print(f"format = {self.state.output_format}")


# ============================================================================
# Commands
# ============================================================================


@click.group()
@click.version_option(version=__version__, prog_name="SQLBridge")
@click.option("-v", "--verbose", is_flag=True, help="Show log output.")
@click.pass_context
def cli(ctx: click.Context, verbose: bool):
    """SQLBridge - Ask questions of your PostgreSQL database in plain English."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_cli_logging(verbose)


def _create_app(ctx: click.Context, with_llm: bool = True) -> SQLBridgeApp:
    settings = load_settings(ctx.obj.get("verbose", False))
    try:
        return SQLBridgeApp(settings, with_llm=with_llm)
    except (ConfigurationError, ValueError) as e:
        console.print(f"[red]Configuration error: {e}[/red]")
        sys.exit(1)


@cli.command()
@click.pass_context
def chat(ctx: click.Context):
    """Interactive REPL mode."""
    app = _create_app(ctx)
    session = ChatSession(app)

    console.print(
        Panel.fit(
            "[bold green]SQLBridge Interactive Mode[/bold green]\n"
            "Ask questions in natural language. Type 'exit' or 'quit' to leave.\n"
            "Commands: dryrun on|off, limit N, format table|csv|json, explain [sql], rerun",
            border_style="green",
        )
    )

    async def run_chat():
        try:
            while True:
                try:
                    line = console.input("[bold cyan]You:[/bold cyan] ")
                except EOFError:
                    break
                try:
                    if not await session.handle(line):
                        break
                except KeyboardInterrupt:
                    console.print("\n[yellow]Interrupted. Type 'exit' to quit.[/yellow]")
                except Exception as e:
                    logger.exception("Question failed")
                    console.print(f"\n[red]Error: {e}[/red]")
        finally:
            await app.close()
        console.print("[yellow]Goodbye![/yellow]")

    asyncio.run(run_chat())


@cli.command()
@click.argument("question")
@click.option("--dry-run", is_flag=True, help="Print the SQL without executing it.")
@click.option("--limit", type=int, default=None, help="Row limit (capped by SQL_MAX_ROWS).")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(OUTPUT_FORMATS),
    default="table",
    show_default=True,
    help="Output format.",
)
@click.pass_context
def ask(ctx: click.Context, question: str, dry_run: bool, limit: int | None, output_format: str):
    """Translate and run a single question."""
    app = _create_app(ctx)
    session = ChatSession(
        app, SessionState(dry_run=dry_run, limit=limit, output_format=output_format)
    )

    async def run_query() -> bool:
        try:
            return await session.ask(question)
        except ConnectorError as e:
            console.print(f"[red]Error: {e}[/red]")
            return False
        finally:
            await app.close()

    if not asyncio.run(run_query()):
        sys.exit(1)


@cli.command()
@click.argument("sql")
def validate(sql: str):
    """Check SQL against the safety gate without running it."""
    verdict = is_safe_select(sql)
    if verdict.accepted:
        console.print("[green]✓ Safe SELECT[/green]")
        return
    console.print(f"[red]Blocked unsafe SQL: {verdict.reason}[/red]")
    sys.exit(1)


@cli.group()
def schema():
    """Manage the cached schema."""
    pass


@schema.command("build")
@click.pass_context
def schema_build(ctx: click.Context):
    """Introspect the database and refresh the schema cache."""
    app = _create_app(ctx, with_llm=False)

    async def run_build():
        try:
            with console.status("[cyan]Introspecting database...[/cyan]", spinner="dots"):
                return await app.registry.rebuild(app.builder.build)
        finally:
            await app.close()

    try:
        built = asyncio.run(run_build())
    except ConnectorError as e:
        console.print(f"[red]Schema build failed: {e}[/red]")
        sys.exit(1)

    fk_count = sum(len(t.foreign_keys) for t in built.tables)
    console.print(
        f"[green]✓ Cached {len(built.tables)} tables and {fk_count} foreign keys[/green]"
    )


@schema.command("show")
@click.option("--table", "table_name", default=None, help="Show columns of one table.")
@click.pass_context
def schema_show(ctx: click.Context, table_name: str | None):
    """Show cached tables, or the columns of one table."""
    app = _create_app(ctx, with_llm=False)

    async def run_load():
        try:
            return await app.registry.load_or_build(app.builder.build)
        finally:
            await app.close()

    try:
        snapshot = asyncio.run(run_load())
    except ConnectorError as e:
        console.print(f"[red]Schema load failed: {e}[/red]")
        sys.exit(1)

    if table_name is None:
        table = Table(title=snapshot.database_name or "Schema", show_header=True, header_style="bold cyan")
        table.add_column("Table", style="cyan")
        table.add_column("Columns", justify="right")
        table.add_column("Foreign keys", justify="right")
        table.add_column("Summary")
        for t in snapshot.tables:
            table.add_row(t.full_name, str(len(t.columns)), str(len(t.foreign_keys)), t.summary or "")
        console.print(table)
        if snapshot.synonyms:
            synonyms = ", ".join(f"{k} → {v}" for k, v in snapshot.synonyms.items())
            console.print(f"[dim]Synonyms: {synonyms}[/dim]")
        return

    found = snapshot.get_table(table_name)
    if found is None:
        console.print(f"[red]Table not found: {table_name}[/red]")
        sys.exit(1)

    table = Table(title=found.full_name, show_header=True, header_style="bold cyan")
    table.add_column("Column", style="cyan")
    table.add_column("Type")
    table.add_column("Key")
    table.add_column("Summary")
    for column in found.columns:
        key = "PK" if column.is_primary_key else ""
        if column.is_foreign_key:
            key = f"{key} FK".strip()
        table.add_row(column.name, column.data_type, key, column.summary or "")
    console.print(table)
    for fk in found.foreign_keys:
        console.print(
            f"[dim]{fk.name}: ({', '.join(fk.from_columns)}) → "
            f"{fk.to_full_name}({', '.join(fk.to_columns)})[/dim]"
        )


def main():
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
