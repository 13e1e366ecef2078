"""Typer CLI application for inspecting and writing to a world."""

import asyncio
import json
import logging
from typing import Annotated, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from owot_client.client import WorldClient
from owot_client.config import ClientConfig
from owot_client.core.color import parse_color
from owot_client.core.constants import CHUNK_HEIGHT, CHUNK_WIDTH
from owot_client.core.coords import to_chunk
from owot_client.create.edits import TextEdit
from owot_client.render.terminal import TerminalRenderer

logger = logging.getLogger("owot_client.cli")

WorldOption = Annotated[str, typer.Option("--world", "-w", help="World name (empty for the front page)")]
TokenOption = Annotated[Optional[str], typer.Option("--token", envvar="OWOT_TOKEN", help="Login token cookie")]


def configure_logging(verbose: bool) -> None:
    """Send library logs through Rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
    )


def _parse_optional_color(value: str | None) -> int | None:
    if value is None:
        return None
    try:
        return parse_color(value)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc


def create_app() -> typer.Typer:
    """Create and configure the CLI application."""
    app = typer.Typer(
        name="owot-client",
        help="Read and write cells in an Our World of Text world.",
        no_args_is_help=True,
        rich_markup_mode="rich",
    )
    console = Console()
    state = {"debug_messages": False}

    def make_client(world: str, token: str | None) -> WorldClient:
        client = WorldClient(world, token, config=ClientConfig.from_env())
        if state["debug_messages"]:
            client.events.on("message", lambda msg: logger.debug("rx %s", json.dumps(msg)))
            client.events.on("outgoing_message", lambda msg: logger.debug("tx %s", json.dumps(msg)))
        return client

    @app.callback()
    def main(
        verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Show debug logging")] = False,
        debug_messages: Annotated[bool, typer.Option("--debug-messages", help="Log every protocol message")] = False,
    ) -> None:
        configure_logging(verbose or debug_messages)
        state["debug_messages"] = debug_messages

    @app.command()
    def view(
        x: Annotated[int, typer.Argument(help="Left world column")] = 0,
        y: Annotated[int, typer.Argument(help="Top world row")] = 0,
        width: Annotated[int, typer.Option("--width", help="Columns to show")] = 64,
        height: Annotated[int, typer.Option("--height", help="Rows to show")] = 24,
        world: WorldOption = "",
        token: TokenOption = None,
    ) -> None:
        """Fetch a rectangle of the world and draw it in the terminal."""
        if width < 1 or height < 1:
            raise typer.BadParameter("width and height must be positive")

        async def run() -> list[list]:
            async with make_client(world, token) as client:
                min_cx, min_cy, _, _ = to_chunk(x, y)
                max_cx, max_cy, _, _ = to_chunk(x + width - 1, y + height - 1)
                await client.load_region(min_cx, min_cy, max_cx, max_cy)
                return [
                    [await client.get_cell(col, row) for col in range(x, x + width)]
                    for row in range(y, y + height)
                ]

        rows = asyncio.run(run())
        print(TerminalRenderer().render(rows))

    @app.command()
    def cell(
        x: Annotated[int, typer.Argument(help="World column")],
        y: Annotated[int, typer.Argument(help="World row")],
        world: WorldOption = "",
        token: TokenOption = None,
        json_output: Annotated[bool, typer.Option("--json", "-j", help="Output as JSON")] = False,
    ) -> None:
        """Show one cell as the server has it."""
        async def run():
            async with make_client(world, token) as client:
                return await client.get_cell(x, y)

        found = asyncio.run(run())
        cx, cy, lx, ly = to_chunk(x, y)

        if found is None:
            console.print(f"[yellow]Chunk ({cx}, {cy}) is empty[/]")
            raise typer.Exit(1)

        data = {
            "x": found.x,
            "y": found.y,
            "chunk": [cx, cy],
            "offset": [lx, ly],
            "char": found.char,
            "fg": None if found.fg is None else f"#{found.fg:06x}",
            "bg": None if found.bg is None else f"#{found.bg:06x}",
            "bold": found.bold,
            "italic": found.italic,
            "underline": found.underline,
            "strikethrough": found.strikethrough,
            "link": repr(found.link) if found.link else None,
        }
        if json_output:
            print(json.dumps(data, indent=2, ensure_ascii=False))
            return

        console.print(f"[bold cyan]Cell ({x}, {y})[/] in chunk ({cx}, {cy}) at ({lx}, {ly})")
        console.print(f"  [bold]char:[/] {escape(repr(found.char))}")
        for key in ("fg", "bg", "bold", "italic", "underline", "strikethrough", "link"):
            console.print(f"  [bold]{key}:[/] {escape(str(data[key]))}")

    @app.command()
    def write(
        text: Annotated[str, typer.Argument(help="Text to write (\\n starts a new line)")],
        x: Annotated[int, typer.Option("--x", help="World column")] = 0,
        y: Annotated[int, typer.Option("--y", help="World row")] = 0,
        fg: Annotated[Optional[str], typer.Option("--fg", help="Foreground color")] = None,
        bg: Annotated[Optional[str], typer.Option("--bg", help="Background color")] = None,
        bold: Annotated[bool, typer.Option("--bold", help="Bold text")] = False,
        italic: Annotated[bool, typer.Option("--italic", help="Italic text")] = False,
        underline: Annotated[bool, typer.Option("--underline", help="Underlined text")] = False,
        link: Annotated[Optional[str], typer.Option("--link", help="URL to attach to every cell")] = None,
        max_width: Annotated[Optional[int], typer.Option("--max-width", help="Wrap at this many columns")] = None,
        world: WorldOption = "",
        token: TokenOption = None,
    ) -> None:
        """Write text into the world and wait until the server has it all."""
        edit = TextEdit(x, y, text.replace("\\n", "\n"))
        if (color := _parse_optional_color(fg)) is not None:
            edit.with_fg(color)
        if (color := _parse_optional_color(bg)) is not None:
            edit.with_bg(color)
        edit.bolded(bold).italicized(italic).underlined(underline)
        if link:
            edit.with_link(link)
        if max_width:
            edit.with_max_width(max_width)

        async def run() -> tuple[int, int]:
            async with make_client(world, token) as client:
                client.stage([edit])
                staged = client.pending_count
                client.collapse_overlaps()
                await client.remove_duplicates()
                sent = client.pending_count
                if await client.submit():
                    await client.wait_for_drain()
                return staged, sent

        staged, sent = asyncio.run(run())
        if sent:
            console.print(f"[green]Wrote {sent} of {staged} cells[/] ({staged - sent} already in place)")
        else:
            console.print(f"[dim]All {staged} cells already in place[/]")

    @app.command()
    def chunk(
        chunk_x: Annotated[int, typer.Argument(help="Chunk column")],
        chunk_y: Annotated[int, typer.Argument(help="Chunk row")],
        world: WorldOption = "",
        token: TokenOption = None,
    ) -> None:
        """Draw a single chunk."""
        async def run():
            async with make_client(world, token) as client:
                return await client.get_chunk(chunk_x, chunk_y)

        found = asyncio.run(run())
        if found.is_empty:
            console.print(f"[yellow]Chunk ({chunk_x}, {chunk_y}) is empty[/]")
            return
        rows = [
            [found.cell(lx, ly) for lx in range(CHUNK_WIDTH)]
            for ly in range(CHUNK_HEIGHT)
        ]
        console.print(f"[bold cyan]Chunk ({chunk_x}, {chunk_y})[/] writability={found.writability}")
        print(TerminalRenderer().render(rows))

    return app
