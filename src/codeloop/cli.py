"""Command-line entry point: interactive REPL and one-shot print mode."""

import argparse
import asyncio
import json
import os
import sys
import uuid
from contextlib import AsyncExitStack
from pathlib import Path
from typing import Optional

from prompt_toolkit import PromptSession
from prompt_toolkit.auto_suggest import AutoSuggestFromHistory
from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.history import FileHistory
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.keys import Keys
from rich.console import Console
from rich.panel import Panel
from rich.text import Text

from . import __version__
from .agent import READONLY_NOTE, SYSTEM_PROMPT, AgentLoop
from .config import Config
from .display import bash_preview, result_size, spinner_label, tool_arg_summary, tool_header
from .errors import CodeloopError, ConfigurationError
from .logger import LOG_DIR_NAME, get_logger, init_logging, log_exception
from .models import Model, resolve_model
from .planning import Planner, format_plan_display
from .spinner import Spinner
from .streaming_client import StreamingClient
from .tool_calls import ToolCall
from .tools import default_registry

_log = get_logger("cli")

SLASH_COMMANDS = {
    "/help": "Show available commands",
    "/clear": "Clear conversation and start fresh",
    "/exit": "Exit codeloop",
    "/quit": "Exit codeloop",
}


class SlashCommandCompleter(Completer):
    """Completes slash commands when the line starts with "/"."""

    def get_completions(self, document, complete_event):
        text = document.text_before_cursor.lstrip()
        if not text.startswith("/") or " " in text:
            return
        for command, meta in SLASH_COMMANDS.items():
            if command.startswith(text):
                yield Completion(command, start_position=-len(text), display_meta=meta)


def create_prompt_session(history_file: Path) -> PromptSession:
    """Prompt with history, slash completion and Escape+Enter / Ctrl+J for newlines."""
    bindings = KeyBindings()

    @bindings.add(Keys.Escape, Keys.Enter)
    def _(event):
        event.current_buffer.insert_text("\n")

    @bindings.add("c-j")
    def _(event):
        event.current_buffer.insert_text("\n")

    history_file.parent.mkdir(parents=True, exist_ok=True)
    return PromptSession(
        history=FileHistory(str(history_file)),
        auto_suggest=AutoSuggestFromHistory(),
        completer=SlashCommandCompleter(),
        complete_while_typing=True,
        key_bindings=bindings,
        multiline=False,
    )


class TerminalUI:
    """Wires AgentLoop callbacks to the terminal."""

    def __init__(self, console: Console):
        self.console = console
        self.spinner: Optional[Spinner] = None

    def start_spinner(self, label: Optional[str] = None) -> None:
        self.stop_spinner()
        self.spinner = Spinner(label).start()

    def stop_spinner(self) -> None:
        if self.spinner is not None:
            self.spinner.stop()
            self.spinner = None

    def on_request(self) -> None:
        self.start_spinner()

    def on_text(self, text: str) -> None:
        self.stop_spinner()
        sys.stdout.write(text)
        sys.stdout.flush()

    def on_tool_start(self, call: ToolCall) -> None:
        self.stop_spinner()
        try:
            args = json.loads(call.arguments or "{}")
        except json.JSONDecodeError:
            args = {}
        if not isinstance(args, dict):
            args = {}
        summary = tool_arg_summary(call.name, args)
        self.console.print()
        self.console.print(tool_header(call.name), Text(summary), end=" ")
        self.start_spinner(spinner_label(call.name, args))

    def on_tool_result(self, call: ToolCall, result: str, diff: Optional[str]) -> None:
        self.stop_spinner()
        self.console.print()
        if diff is not None:
            self.console.print(Text.from_ansi(diff.rstrip()))
        elif call.name == "bash":
            self.console.print(bash_preview(result))
        else:
            self.console.print(result_size(result))

    def on_plan(self, plan: str) -> None:
        self.stop_spinner()
        self.console.print(Text.from_ansi(format_plan_display(plan)))


async def resolve_session_model(config: Config, args: argparse.Namespace) -> Model:
    """Command-line options win over the configured default model."""
    configured = config.default_model()
    provider = args.provider or (configured.provider if configured else config.provider)
    model_id = args.model or (configured.id if configured else config.model) or None
    url = args.url or (configured.provider_url if configured else config.api_url) or None
    return await resolve_model(
        provider,
        model_id,
        url,
        max_tokens=config.max_tokens,
        context_window=config.context_window,
    )


def make_client(model: Model, config: Config) -> StreamingClient:
    return StreamingClient(
        base_url=model.base_url,
        model=model.id,
        api_key=config.api_key,
        max_tokens=model.max_tokens,
        connect_timeout=config.connect_timeout,
        read_timeout=config.read_timeout,
    )


def show_banner(console: Console, model: Model, readonly: bool) -> None:
    lines = [
        f"[bold cyan]codeloop[/bold cyan] [dim]{__version__}[/dim]",
        f"Model: [cyan]{model.id}[/cyan] [dim]({model.base_url})[/dim]",
    ]
    if readonly:
        lines.append("[yellow]Mode: read-only (no write/bash tools)[/yellow]")
    console.print(Panel.fit("\n".join(lines), border_style="cyan"))
    console.print("[dim]Type a message to start. Use /exit to quit, /clear to reset.[/dim]")
    console.print()


def show_help(console: Console) -> None:
    body = "\n".join(f"  [cyan]{cmd:<7}[/cyan] {desc}" for cmd, desc in SLASH_COMMANDS.items())
    console.print(Panel(body, title="Commands", border_style="cyan"))


async def run_turn(agent: AgentLoop, ui: TerminalUI, user_input: str) -> Optional[str]:
    """One turn with error reporting. Returns None when the turn failed."""
    try:
        result = await agent.run_turn(user_input)
    except CodeloopError as e:
        log_exception(_log, "turn failed", e)
        ui.console.print(f"\n[red]Error: {e}[/red]\n")
        return None
    finally:
        ui.stop_spinner()
    sys.stdout.write("\n")
    sys.stdout.flush()
    return result


async def run_print_mode(agent: AgentLoop, ui: TerminalUI, prompt: str) -> int:
    result = await run_turn(agent, ui, prompt)
    return 0 if result is not None else 1


async def run_interactive(agent: AgentLoop, ui: TerminalUI, workspace: Path) -> int:
    console = ui.console
    prompt_session = create_prompt_session(workspace / LOG_DIR_NAME / ".history")

    while True:
        try:
            user_input = (await prompt_session.prompt_async("codeloop> ")).strip()
        except KeyboardInterrupt:
            continue
        except EOFError:
            break

        if not user_input:
            continue

        if user_input.startswith("/"):
            cmd = user_input.split(maxsplit=1)[0].lower()
            if cmd in ("/exit", "/quit"):
                console.print("[dim]Goodbye![/dim]")
                break
            if cmd == "/clear":
                agent.reset()
                console.print("[dim]Conversation cleared.[/dim]\n")
                continue
            if cmd == "/help":
                show_help(console)
                continue
            console.print(f"[yellow]Unknown command: {cmd}[/yellow]")
            continue

        console.print()
        task = asyncio.ensure_future(run_turn(agent, ui, user_input))
        try:
            await task
        except (KeyboardInterrupt, asyncio.CancelledError):
            # Ctrl-C cancels the main task; undo that so the REPL keeps running.
            task.cancel()
            current = asyncio.current_task()
            if current is not None:
                current.uncancel()
            ui.stop_spinner()
            console.print("\n[yellow]Interrupted[/yellow]")
        console.print()
    return 0


async def run_session(config: Config, args: argparse.Namespace) -> int:
    console = Console()
    workspace = config.workspace_path
    model = await resolve_session_model(config, args)
    _log.info("using model %s at %s (provider %s)", model.id, model.base_url, model.provider)

    readonly = args.readonly or config.readonly
    registry = default_registry(readonly=readonly)
    ui = TerminalUI(console)
    system_prompt = SYSTEM_PROMPT + (READONLY_NOTE if readonly else "")

    planning_client: Optional[StreamingClient] = None
    reasoning = config.reasoning_model() if config.planning and not args.no_planning and not args.print else None
    if reasoning is not None:
        planning_client = StreamingClient(
            base_url=reasoning.base_url,
            model=reasoning.id,
            api_key=config.api_key,
            read_timeout=60.0,
        )

    async with AsyncExitStack() as stack:
        client = await stack.enter_async_context(make_client(model, config))
        planner = None
        if planning_client is not None:
            await stack.enter_async_context(planning_client)
            planner = Planner(planning_client, on_plan=ui.on_plan)
        agent = AgentLoop(
            client,
            registry,
            cwd=str(workspace),
            system_prompt=system_prompt,
            on_text=ui.on_text,
            on_request=ui.on_request,
            on_tool_start=ui.on_tool_start,
            on_tool_result=ui.on_tool_result,
            planner=planner,
        )
        if args.print:
            return await run_print_mode(agent, ui, args.print)
        show_banner(console, model, readonly)
        return await run_interactive(agent, ui, workspace)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="codeloop",
        description="A terminal coding agent for OpenAI-compatible local models",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Interactive session with the first model loaded in LM Studio
  codeloop

  # Use Ollama with a specific model
  codeloop -P ollama -m qwen2.5-coder:14b

  # One-shot, read-only
  codeloop -r -p "Summarize what src/ does"
        """,
    )
    parser.add_argument("-m", "--model", help="Model name/ID (overrides config)")
    parser.add_argument("-P", "--provider", help="LLM provider (lm-studio, ollama)")
    parser.add_argument("-u", "--url", help="API endpoint URL")
    parser.add_argument("-r", "--readonly", action="store_true", help="Read-only mode (no write/bash tools)")
    parser.add_argument("-p", "--print", metavar="PROMPT", help="One-shot mode: print response and exit")
    parser.add_argument("--no-planning", action="store_true", help="Disable automatic planning step")
    parser.add_argument("-C", "--cwd", default=".", help="Workspace directory (default: current directory)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    workspace = Path(args.cwd).expanduser().resolve()
    if not workspace.is_dir():
        print(f"Error: {workspace} is not a directory", file=sys.stderr)
        return 1
    os.chdir(workspace)

    init_logging(str(workspace), session_id=uuid.uuid4().hex[:8])
    try:
        config = Config.from_env(workspace=workspace)
        config.workspace_path = workspace
        if not config.is_configured and not (args.model or args.provider or args.url):
            _log.info("no models configured, falling back to %s discovery", config.provider)
        config.validate()
        return asyncio.run(run_session(config, args))
    except ConfigurationError as e:
        print(f"\n  \033[31mError: {e}\033[0m\n", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    sys.exit(main())
