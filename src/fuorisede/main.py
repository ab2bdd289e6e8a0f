"""
Chef Fuori-Sede - CLI Entry Point.

Usage:
    fuorisede suggest "pasta, uova"    Generate recipes from ingredients
    fuorisede fridge photo.jpg         List ingredients seen in a fridge photo
    fuorisede serve                    Start the web API
    fuorisede health                   Check configuration
    fuorisede --help                   Show help
"""

import asyncio
import mimetypes
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.live import Live
from rich.panel import Panel
from rich.spinner import Spinner

app = typer.Typer(
    name="fuorisede",
    help="Chef Fuori-Sede - ricette con quello che hai in frigo.",
    add_completion=False,
)
console = Console()


def _setup(log_prompts: bool) -> None:
    from fuorisede.config import settings
    from fuorisede.llm.prompt_logger import enable_prompt_logging
    from fuorisede.logging_config import configure_logging

    configure_logging(settings.log_level)
    if log_prompts or settings.fuorisede_log_prompts:
        enable_prompt_logging(True)
        console.print("[dim]📝 Prompt logging enabled. Check prompt_logs/ after the run.[/dim]")


def _render_recipe(recipe, index: int) -> Panel:
    ingredients = "\n".join(f"• {ingredient.display()}" for ingredient in recipe.ingredients)
    steps = "\n".join(f"{n}. {step}" for n, step in enumerate(recipe.instructions, start=1))
    body = (
        f"[italic]{recipe.description}[/italic]\n\n"
        f"⏱ {recipe.prep_time_minutes} min   📊 {recipe.difficulty}   💶 {recipe.cost_level}\n\n"
        f"[bold]Ingredienti[/bold]\n{ingredients}\n\n"
        f"[bold]Istruzioni[/bold]\n{steps}\n\n"
        f"[dim]{recipe.image_url[:80]}[/dim]"
    )
    return Panel(body, title=f"{index}. {recipe.title}", border_style="green")


@app.command()
def suggest(
    ingredients: str = typer.Argument(..., help="Ingredienti a disposizione, separati da virgola"),
    count: int = typer.Option(3, "--count", "-n", min=1, max=5, help="Numero di ricette"),
    servings: int = typer.Option(1, "--servings", "-s", min=1, max=20, help="Porzioni"),
    preference: str = typer.Option("fast", "--preference", "-p", help="fast, economical o balanced"),
    diet: Optional[list[str]] = typer.Option(None, "--diet", "-d", help="Preferenza alimentare (ripetibile)"),
    no_pantry: bool = typer.Option(False, "--no-pantry", help="Non usare la dispensa salvata"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all prompts to prompt_logs/"),
) -> None:
    """Generate recipes from the given ingredients (plus the saved pantry)."""
    from fuorisede.config import settings
    from fuorisede.controller import RecipeSessionController
    from fuorisede.errors import InputValidationError
    from fuorisede.generation import GenerationClient
    from fuorisede.models import MealPreference, RecipeRequest
    from fuorisede.storage import JsonFileStore

    _setup(log_prompts)

    try:
        meal_preference = MealPreference(preference)
    except ValueError:
        console.print(f"[red]Preferenza non valida: {preference}[/red]")
        raise typer.Exit(2)

    controller = RecipeSessionController(GenerationClient(), JsonFileStore(settings.storage_path))
    request = RecipeRequest(
        ingredients=ingredients,
        recipe_count=count,
        servings=servings,
        meal_preference=meal_preference,
        dietary_preferences=diet or [],
        use_pantry=not no_pantry,
    )

    try:
        with Live(Spinner("dots", text="Sto cucinando..."), console=console, transient=True):
            asyncio.run(controller.request_batch(request))
    except InputValidationError as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(2)

    state = controller.state
    if state.error:
        console.print(f"[red]{state.error}[/red]")
        raise typer.Exit(1)

    console.print(f"[dim]Ingredienti usati: {state.combined_ingredients}[/dim]\n")
    for index, recipe in enumerate(state.recipes, start=1):
        console.print(_render_recipe(recipe, index))


@app.command()
def fridge(
    photo: Path = typer.Argument(..., exists=True, dir_okay=False, readable=True, help="Foto del frigo"),
    log_prompts: bool = typer.Option(False, "--log-prompts", "-l", help="Log all prompts to prompt_logs/"),
) -> None:
    """List the ingredients recognized in a fridge photo."""
    from fuorisede.errors import GenerationError
    from fuorisede.generation import GenerationClient

    _setup(log_prompts)

    mime_type = mimetypes.guess_type(photo.name)[0] or "image/jpeg"
    try:
        with Live(Spinner("dots", text="Analisi..."), console=console, transient=True):
            detected = asyncio.run(GenerationClient().analyze_image(photo.read_bytes(), mime_type))
    except GenerationError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if not detected:
        console.print("[yellow]Nessun ingrediente riconosciuto nell'immagine.[/yellow]")
        raise typer.Exit(1)
    console.print(detected)


@app.command()
def serve(
    port: int = typer.Option(8000, "--port", "-p", help="Port to run on"),
    reload: bool = typer.Option(False, "--reload", "-r", help="Enable auto-reload for development"),
) -> None:
    """Start the web API server."""
    import uvicorn

    from fuorisede.config import settings
    from fuorisede.logging_config import configure_logging

    configure_logging(settings.log_level)

    console.print("\n[bold green]Chef Fuori-Sede API[/bold green]")
    console.print(f"Starting server on http://localhost:{port}")
    console.print("[dim]Press Ctrl+C to stop[/dim]\n")

    uvicorn.run("fuorisede.web.app:app", host="127.0.0.1", port=port, reload=reload)


@app.command()
def health() -> None:
    """Check configuration."""
    from fuorisede.config import get_settings

    console.print("\n[bold]Chef Fuori-Sede Health Check[/bold]\n")

    try:
        settings = get_settings()
    except Exception as e:
        console.print(f"\n[red]❌ Configuration error: {e}[/red]")
        console.print("[dim]Make sure you have a .env file with OPENAI_API_KEY.[/dim]")
        raise typer.Exit(1)

    console.print("✅ Configuration loaded")
    console.print(f"   Environment: {settings.fuorisede_env}")
    console.print(f"   Log level: {settings.log_level}")
    console.print(f"   Models: text={settings.text_model} vision={settings.vision_model} image={settings.image_model}")

    if settings.openai_api_key.startswith("sk-"):
        console.print("✅ OpenAI API key configured")
    else:
        console.print("⚠️  OpenAI API key may be invalid")

    console.print(f"ℹ️  Storage: {settings.storage_path}")
    console.print("\n[green]All checks passed![/green]")


@app.command()
def version() -> None:
    """Show version information."""
    from fuorisede import __version__

    console.print(f"Chef Fuori-Sede version {__version__}")


if __name__ == "__main__":
    app()
