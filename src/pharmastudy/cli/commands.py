"""CLI commands for PharmaStudy.

Server:
- serve: Run the REST API with uvicorn
- init-db: Create the database tables

Account (remote API when configured, local store otherwise):
- register, login, logout, whoami, status, users, reset

Content:
- chapters, add-chapter, delete-chapter, add-topic, add-item, search, seed

Study:
- quiz: Interactive multiple-choice session
- lookup: PubChem compound lookup
"""

from pathlib import Path
from typing import NoReturn

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from pharmastudy.client import ClientError, StudyClient
from pharmastudy.client.compound_lookup import (
    CompoundLookup,
    compound_to_properties,
    structure_image_url,
)
from pharmastudy.core.quiz import score_answers
from pharmastudy.web.schemas import ChapterCreate, ItemCreate, PropertyIn, TopicCreate

app = typer.Typer(
    name="pharmastudy",
    help="Pharmacology study aid: chapters, study items, flashcards and quizzes.",
    no_args_is_help=True,
)

console = Console()

ITEM_TYPES = ("molecule", "enzyme", "medication")


def _client() -> StudyClient:
    return StudyClient()


def _fail(message: str) -> NoReturn:
    console.print(f"[red]✗ {message}[/red]")
    raise typer.Exit(code=1)


def _validation_message(error: ValidationError) -> str:
    """First validation problem as "field: message"."""
    first = error.errors()[0]
    field = ".".join(str(part) for part in first["loc"])
    return f"{field}: {first['msg']}" if field else first["msg"]


def _parse_property(raw: str) -> PropertyIn:
    """Parse 'Key=Value' into a property."""
    key, sep, value = raw.partition("=")
    if not sep or not key.strip():
        raise typer.BadParameter(f"Expected KEY=VALUE, got '{raw}'")
    try:
        return PropertyIn(key=key.strip(), value=value.strip())
    except ValidationError as e:
        raise typer.BadParameter(_validation_message(e)) from e


# =============================================================================
# SERVER COMMANDS
# =============================================================================


@app.command()
def serve(
    host: str = typer.Option("127.0.0.1", "--host", help="Bind address"),
    port: int = typer.Option(8000, "--port", "-p", help="Port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on code changes"),
) -> None:
    """Run the REST API."""
    import uvicorn

    console.print(f"[green]Starting PharmaStudy API on http://{host}:{port}[/green]")
    uvicorn.run("pharmastudy.web.api:app", host=host, port=port, reload=reload)


@app.command(name="init-db")
def init_db_command(
    database_url: str | None = typer.Option(
        None, "--database-url", help="SQLAlchemy URL (default: from config)"
    ),
) -> None:
    """Create the database tables."""
    from pharmastudy.db.database import init_db

    engine = init_db(database_url)
    console.print(f"[green]✓ Database ready[/green] [dim]{engine.url}[/dim]")


# =============================================================================
# ACCOUNT COMMANDS
# =============================================================================


@app.command()
def status() -> None:
    """Show API configuration, session and local store state."""
    info = _client().status()

    table = Table(show_header=False)
    table.add_column("Key", style="dim")
    table.add_column("Value")
    table.add_row("API", info.api_url or "[yellow]not configured (local only)[/yellow]")
    table.add_row("Logged in", "yes" if info.logged_in else "no")
    if info.user_email:
        table.add_row("User", info.user_email)
    if info.local_token:
        table.add_row("Session", "local account")
    table.add_row("Local users", str(info.local_users))
    table.add_row("Local chapters", str(info.local_chapters))
    table.add_row("Store", info.store_path)
    console.print(table)


@app.command()
def register(
    name: str = typer.Option(..., "--name", "-n", prompt=True, help="Display name"),
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Email"),
    password: str = typer.Option(
        ..., "--password", prompt=True, hide_input=True, confirmation_prompt=True
    ),
) -> None:
    """Create an account and log in."""
    try:
        auth = _client().register(name, email, password)
    except ClientError as e:
        _fail(str(e))
    console.print(f"[green]✓ Registered {auth.user.email}[/green]")


@app.command()
def login(
    email: str = typer.Option(..., "--email", "-e", prompt=True, help="Email"),
    password: str = typer.Option(..., "--password", prompt=True, hide_input=True),
) -> None:
    """Log in and keep the session token."""
    try:
        auth = _client().login(email, password)
    except ClientError as e:
        _fail(str(e))
    console.print(f"[green]✓ Logged in as {auth.user.name}[/green] [dim]{auth.user.email}[/dim]")


@app.command()
def logout() -> None:
    """Forget the session token."""
    _client().logout()
    console.print("[green]✓ Logged out[/green]")


@app.command()
def whoami() -> None:
    """Show the logged-in user."""
    try:
        me = _client().me()
    except ClientError as e:
        _fail(str(e))
    console.print(f"{me.user.name} [dim]<{me.user.email}>[/dim]")
    console.print(f"  [dim]id:[/dim] {me.user.id}")


@app.command()
def users(
    delete: str | None = typer.Option(None, "--delete", help="Delete the local user with this id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """List accounts stored on this device, or delete one."""
    client = _client()

    if delete is not None:
        if not yes and not typer.confirm(f"Delete local user {delete} and all their chapters?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(code=0)
        try:
            result = client.delete_local_user(delete)
        except ClientError as e:
            _fail(str(e))
        console.print(f"[green]✓ {result.message}[/green]")
        return

    local_users = client.list_local_users()
    if not local_users:
        console.print("[yellow]No local users[/yellow]")
        return

    table = Table(show_header=True, header_style="bold")
    table.add_column("Id", style="dim")
    table.add_column("Name")
    table.add_column("Email")
    table.add_column("Created", style="dim")
    for user in local_users:
        table.add_row(user.id, user.name, user.email, user.created_at.strftime("%Y-%m-%d"))
    console.print(table)


@app.command()
def reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete ALL local data: accounts, chapters, flashcards, quiz results and the session."""
    if not yes and not typer.confirm(
        "This deletes every local account and all local study data. Continue?"
    ):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=0)

    _client().clear_local_data()
    console.print("[green]✓ Local data cleared[/green]")


# =============================================================================
# CONTENT COMMANDS
# =============================================================================


@app.command()
def chapters() -> None:
    """Show the chapter tree."""
    try:
        tree = _client().list_chapters()
    except ClientError as e:
        _fail(str(e))

    if not tree:
        console.print("[yellow]No chapters yet. Try 'pharmastudy seed'.[/yellow]")
        return

    for chapter in tree:
        console.print(f"[bold]{chapter.order}. {chapter.name}[/bold] [dim]{chapter.id}[/dim]")
        for topic in chapter.topics:
            console.print(f"   {chapter.order}.{topic.order} {topic.name} [dim]{topic.id}[/dim]")
            for item in topic.items:
                card = " [cyan]⚑[/cyan]" if item.flashcard else ""
                console.print(f"      • {item.name} [dim]({item.type})[/dim]{card}")


@app.command(name="add-chapter")
def add_chapter(
    name: str = typer.Argument(..., help="Chapter name"),
    description: str = typer.Option("", "--description", "-d"),
    color: str | None = typer.Option(None, "--color", "-c", help="Display color, e.g. #4f46e5"),
) -> None:
    """Create a chapter at the end of the list."""
    try:
        chapter = _client().create_chapter(
            ChapterCreate(name=name, description=description, color=color)
        )
    except ValidationError as e:
        _fail(_validation_message(e))
    except ClientError as e:
        _fail(str(e))
    console.print(f"[green]✓ Chapter {chapter.order}: {chapter.name}[/green] [dim]{chapter.id}[/dim]")


@app.command(name="delete-chapter")
def delete_chapter(
    chapter_id: str = typer.Argument(..., help="Chapter id"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation"),
) -> None:
    """Delete a chapter with all its topics, items and flashcards."""
    if not yes and not typer.confirm(f"Delete chapter {chapter_id} and everything in it?"):
        console.print("[yellow]Cancelled[/yellow]")
        raise typer.Exit(code=0)

    try:
        result = _client().delete_chapter(chapter_id)
    except ClientError as e:
        _fail(str(e))
    console.print(f"[green]✓ {result.message}[/green]")


@app.command(name="add-topic")
def add_topic(
    chapter_id: str = typer.Argument(..., help="Chapter id"),
    name: str = typer.Argument(..., help="Topic name"),
    description: str = typer.Option("", "--description", "-d"),
) -> None:
    """Create a topic at the end of a chapter."""
    try:
        topic = _client().create_topic(chapter_id, TopicCreate(name=name, description=description))
    except ValidationError as e:
        _fail(_validation_message(e))
    except ClientError as e:
        _fail(str(e))
    console.print(f"[green]✓ Topic {topic.order}: {topic.name}[/green] [dim]{topic.id}[/dim]")


@app.command(name="add-item")
def add_item(
    topic_id: str = typer.Argument(..., help="Topic id"),
    name: str = typer.Argument(..., help="Item name"),
    item_type: str = typer.Option("molecule", "--type", "-t", help="molecule, enzyme or medication"),
    scientific_name: str | None = typer.Option(None, "--scientific-name", "-s"),
    description: str = typer.Option("", "--description", "-d"),
    properties: list[str] | None = typer.Option(
        None, "--property", "-p", help="KEY=VALUE (repeatable)"
    ),
    front: str | None = typer.Option(None, "--front", help="Flashcard question"),
    back: str | None = typer.Option(None, "--back", help="Flashcard answer"),
    image: Path | None = typer.Option(None, "--image", help="Image file to attach"),
    pubchem: bool = typer.Option(False, "--pubchem", help="Fill properties from PubChem"),
) -> None:
    """Add a study item to a topic."""
    item_type = item_type.lower()
    if item_type not in ITEM_TYPES:
        _fail(f"Type must be one of: {', '.join(ITEM_TYPES)}")

    props = [_parse_property(raw) for raw in properties or []]
    client = _client()

    image_url = None
    if pubchem:
        lookup = CompoundLookup()
        try:
            result = lookup.search(name)
        finally:
            lookup.close()
        if result.success:
            props.extend(compound_to_properties(result.compound))
            image_url = structure_image_url(result.compound.cid)
            description = description or result.compound.description
            scientific_name = scientific_name or result.compound.iupac_name
        else:
            console.print(f"[yellow]⚠ PubChem: {result.error}[/yellow]")

    try:
        if image is not None:
            if not image.is_file():
                _fail(f"Image not found: {image}")
            image_url = client.upload_image(image.name, image.read_bytes()).image_url

        item = client.create_item(
            topic_id,
            ItemCreate(
                name=name,
                scientific_name=scientific_name,
                type=item_type,
                description=description,
                image_url=image_url,
                properties=props,
                flashcard_front=front,
                flashcard_back=back,
            ),
        )
    except ValidationError as e:
        _fail(_validation_message(e))
    except ClientError as e:
        _fail(str(e))

    console.print(f"[green]✓ Item {item.name}[/green] [dim]{item.id}[/dim]")
    console.print(f"  [dim]properties:[/dim] {len(item.properties)}")
    if item.flashcard:
        console.print("  [dim]flashcard:[/dim]  yes")


@app.command()
def search(
    query: str = typer.Argument(..., help="Text to search for"),
    item_type: str | None = typer.Option(None, "--type", "-t", help="Only items of this type"),
) -> None:
    """Search items, chapters and topics."""
    try:
        result = _client().search(query, item_type)
    except ClientError as e:
        _fail(str(e))

    if not (result.items or result.chapters or result.topics):
        console.print(f"[yellow]No results for '{query}'[/yellow]")
        return

    if result.chapters:
        console.print("[bold]Chapters[/bold]")
        for chapter in result.chapters:
            console.print(f"  {chapter.name} [dim]{chapter.id}[/dim]")
    if result.topics:
        console.print("[bold]Topics[/bold]")
        for topic in result.topics:
            console.print(f"  {topic.name} [dim]in {topic.chapter_name}[/dim]")
    if result.items:
        table = Table(show_header=True, header_style="bold", title="Items")
        table.add_column("Name")
        table.add_column("Type")
        table.add_column("Scientific name", style="dim")
        for item in result.items:
            table.add_row(item.name, item.type, item.scientific_name or "")
        console.print(table)


@app.command()
def seed() -> None:
    """Write the introductory chapters to the local store (only if empty)."""
    created = _client().seed_sample_chapters()
    if not created:
        console.print("[yellow]Local chapters already exist, nothing seeded[/yellow]")
        return
    console.print(f"[green]✓ Seeded {len(created)} chapters[/green]")


# =============================================================================
# STUDY COMMANDS
# =============================================================================


def _ask_option(question) -> int | None:
    """Ask a multiple-choice question; empty input skips it."""
    n_options = len(question.options)
    for idx, option in enumerate(question.options, start=1):
        console.print(f"  {idx}. {option}")

    while True:
        raw = typer.prompt(f"Answer (1-{n_options}, empty to skip)", default="", show_default=False)
        if not raw.strip():
            return None
        try:
            choice = int(raw.strip())
        except ValueError:
            console.print("[yellow]⚠ Enter a number[/yellow]")
            continue
        if 1 <= choice <= n_options:
            return choice - 1
        console.print(f"[yellow]⚠ Must be 1-{n_options}[/yellow]")


@app.command()
def quiz(
    chapter_id: str | None = typer.Option(None, "--chapter", help="Only this chapter"),
    topic_id: str | None = typer.Option(None, "--topic", help="Only this topic"),
) -> None:
    """Run an interactive quiz built from your items and flashcards."""
    client = _client()
    try:
        questions = client.generate_quiz(chapter_id=chapter_id, topic_id=topic_id)
    except ClientError as e:
        _fail(str(e))

    if not questions:
        console.print(
            "[yellow]No questions available. Add flashcards or formula/mass properties first.[/yellow]"
        )
        raise typer.Exit(code=0)

    answers: list[int | None] = []
    for number, question in enumerate(questions, start=1):
        console.print(f"\n[bold]Q{number}/{len(questions)}. {question.question}[/bold]")
        answer = _ask_option(question)
        answers.append(answer)
        if answer == question.correct_answer:
            console.print("[green]✓ Correct[/green]")
        else:
            console.print(f"[red]✗ {question.explanation}[/red]")

    score = score_answers(questions, answers)
    client.record_quiz_result(score.total, score.correct, chapter_id, topic_id)
    console.print(f"\n[bold]Score: {score.correct}/{score.total} ({score.percentage}%)[/bold]")


@app.command()
def lookup(name: str = typer.Argument(..., help="Compound name, e.g. aspirin")) -> None:
    """Look up a compound on PubChem."""
    client = CompoundLookup()
    try:
        result = client.search(name)
    finally:
        client.close()

    if not result.success:
        _fail(result.error or "Lookup failed")

    compound = result.compound
    table = Table(show_header=False, title=f"{compound.name} (CID {compound.cid})")
    table.add_column("Key", style="dim")
    table.add_column("Value")
    for prop in compound_to_properties(compound):
        table.add_row(prop.key, prop.value)
    table.add_row("Structure", structure_image_url(compound.cid))
    console.print(table)
    if compound.description:
        console.print(compound.description)
