"""CLI entry point for Postdraft."""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import click
import httpx
from pydantic import ValidationError

from postdraft.config.loader import default_config_path, load_config as load_config_file
from postdraft.models.config import Config
from postdraft.models.slides import read_slide_import
from postdraft.services.exceptions import CompletionError, ConfigFileError, MalformedSlidesData
from postdraft.utils.logging import LOG_LEVELS, bind_post, configure_logging, get_logger


logger = get_logger(__name__)


def load_config(config_path: Optional[Path]) -> Config:
    """
    Load configuration, turning failures into CLI errors.

    Args:
        config_path: Explicit config file, or None for ~/.config/postdraft/config.yaml

    Returns:
        Validated Config instance

    Raises:
        click.ClickException: If config is missing, unreadable or fails validation
    """
    path = config_path or default_config_path()
    try:
        config = load_config_file(path)
        logger.info("config_loaded", path=str(path))
        return config
    except FileNotFoundError as e:
        logger.error("config_not_found", path=str(path))
        raise click.ClickException(str(e))
    except ConfigFileError as e:
        logger.error("config_file_invalid", path=e.path, error=e.message)
        raise click.ClickException(str(e))
    except ValidationError as e:
        logger.error("config_validation_error", error=str(e))
        raise click.ClickException(f"Configuration validation failed:\n{e}")


@click.group()
@click.version_option(version="0.1.0", prog_name="postdraft")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: ~/.config/postdraft/config.yaml)",
)
@click.option(
    "--log-level",
    type=click.Choice(LOG_LEVELS, case_sensitive=False),
    default=None,
    help="Log level (default: $POSTDRAFT_LOG_LEVEL or INFO)",
)
@click.option(
    "--log-file",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Log file (default: ~/.cache/postdraft/logs/postdraft.log)",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], log_level: Optional[str], log_file: Optional[Path]):
    """Postdraft: edit blog posts with streamed AI completions (type ++ to generate)."""
    configure_logging(log_file=log_file, level=log_level)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path


@cli.command()
@click.argument("post_id")
@click.pass_context
def edit(ctx: click.Context, post_id: str):
    """
    Open a post in the editor.

    Examples:
        postdraft edit 42
        postdraft --config ./dev.yaml edit 42
    """
    from postdraft.services.generation_client import GenerationClient
    from postdraft.services.post_actions import HttpPostActions
    from postdraft.tui.app import PostdraftApp

    bind_post(post_id)
    logger.info("edit_command_started", post_id=post_id)
    config = load_config(ctx.obj["config_path"])

    actions = HttpPostActions(config.persistence)
    try:
        post = asyncio.run(actions.get_post(post_id))
    except (httpx.HTTPError, ValidationError) as e:
        logger.error("post_load_failed", post_id=post_id, error=str(e))
        raise click.ClickException(f"Could not load post {post_id}: {e}")

    client = GenerationClient(config.generation)
    app = PostdraftApp(
        post=post,
        client=client,
        actions=actions,
        config=config.editor,
        debounce_seconds=config.persistence.debounce_seconds,
    )
    app.run()

    logger.info("edit_command_completed", post_id=post_id)


@cli.command()
@click.argument("prompt")
@click.pass_context
def generate(ctx: click.Context, prompt: str):
    """
    Stream a completion for PROMPT to stdout.

    Useful for checking the generation endpoint configuration.
    """
    from postdraft.services.generation_client import GenerationClient

    config = load_config(ctx.obj["config_path"])
    client = GenerationClient(config.generation)

    async def stream() -> None:
        async for chunk in client.stream_completion(prompt):
            click.echo(chunk, nl=False)
        click.echo()

    try:
        asyncio.run(stream())
    except CompletionError as e:
        logger.error("generate_command_failed", kind=e.kind, error=e.message)
        click.echo(f"Error ({e.kind}): {e.message}", err=True)
        sys.exit(1)


@cli.command("import")
@click.argument("post_id")
@click.argument("import_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_context
def import_command(ctx: click.Context, post_id: str, import_file: Path):
    """
    Replace a post's body and slides with a slides export.

    IMPORT_FILE is JSON of the form {"slides": [...], "content": "..."}.
    "<" and "{" are escaped before the post is saved.

    Examples:
        postdraft import 42 deck.json
    """
    from postdraft.editor.post import PostEditor
    from postdraft.services.generation_client import GenerationClient
    from postdraft.services.persistence import SaveState
    from postdraft.services.post_actions import HttpPostActions

    bind_post(post_id)
    config = load_config(ctx.obj["config_path"])

    try:
        data = read_slide_import(import_file)
    except MalformedSlidesData as e:
        logger.error("slide_import_invalid", path=str(import_file), error=e.message)
        raise click.ClickException(e.message)

    actions = HttpPostActions(config.persistence)

    def report(message: str, severity: str = "information") -> None:
        click.echo(message, err=severity == "error")

    async def run() -> SaveState:
        post = await actions.get_post(post_id)
        editor = PostEditor(
            post,
            GenerationClient(config.generation),
            actions,
            config=config.editor,
            notify=report,
        )
        editor.import_slides(data.slides, data.content)
        try:
            await editor.save_now()
        finally:
            editor.scheduler.close()
        return editor.scheduler.state

    try:
        state = asyncio.run(run())
    except (httpx.HTTPError, ValidationError) as e:
        logger.error("post_load_failed", post_id=post_id, error=str(e))
        raise click.ClickException(f"Could not load post {post_id}: {e}")

    if state == SaveState.FAILED:
        raise click.ClickException(f"Could not save post {post_id}")
    click.echo(f"Imported {len(data.slides)} slides into post {post_id}")


def main():
    """Main entry point for setuptools console script."""
    cli()


if __name__ == "__main__":
    main()
