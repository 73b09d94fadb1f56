"""Command line entry point."""

import argparse
import asyncio
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

import httpx
import yaml

from screenvision.application.services import AutoAnalyzer, TemplateCatalog
from screenvision.application.use_cases import AnalysisOrchestrator
from screenvision.config import (
    Config,
    ConfigError,
    ConfigValidationError,
    LoggingConfig,
    load_config,
    validate_client_config,
)
from screenvision.domain.entities import PromptTemplate, SubjectMode
from screenvision.domain.exceptions import (
    GatewayError,
    TemplateNotEditableError,
    TemplateNotFoundError,
)
from screenvision.domain.templates import SCREEN_WATCH_TEMPLATE_ID
from screenvision.infrastructure.capture import FileFrameSource
from screenvision.infrastructure.gemini import (
    DirectBackend,
    GeminiGateway,
    create_backend,
    create_http_client,
)
from screenvision.infrastructure.persistence import (
    DatabaseManager,
    SQLitePromptTemplateRepository,
)
from screenvision.infrastructure.proxy import ProxyServer

# Default logging for early startup
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
# httpx logs full request URLs, which carry the API key in direct mode
logging.getLogger("httpx").setLevel(logging.WARNING)
logger = logging.getLogger(__name__)

Command = Callable[[argparse.Namespace, Config], Awaitable[int]]


def configure_logging(config: LoggingConfig | None) -> None:
    """Apply the logging section of the config.

    Args:
        config: Logging configuration. If None, keeps the startup defaults.
    """
    if config is None:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    if root_logger.handlers:
        formatter = logging.Formatter(config.format)
        for handler in root_logger.handlers:
            handler.setFormatter(formatter)

    for logger_name, logger_level in (config.loggers or {}).items():
        logging.getLogger(logger_name).setLevel(
            getattr(logging, logger_level.upper(), logging.INFO)
        )
        logger.debug("Set logger '%s' to level %s", logger_name, logger_level.upper())


async def open_catalog(
    config: Config, active_id: str | None = None
) -> tuple[DatabaseManager, TemplateCatalog]:
    """Open the template database and wrap it in a catalog."""
    db_manager = DatabaseManager(config.storage.database_path)
    await db_manager.create_tables()
    repository = SQLitePromptTemplateRepository(db_manager.get_session)
    catalog = TemplateCatalog(
        repository, active_id or config.session.default_template
    )
    return db_manager, catalog


def build_orchestrator(
    args: argparse.Namespace,
    config: Config,
    client: httpx.AsyncClient,
    template: PromptTemplate,
) -> AnalysisOrchestrator:
    validate_client_config(config)
    gateway = GeminiGateway(create_backend(config, client), config.retry)
    return AnalysisOrchestrator(
        gateway,
        template=template,
        subject=SubjectMode.parse(args.subject or config.session.default_subject),
        config=config.session,
    )


async def read_frame(path: str) -> str:
    frame = await FileFrameSource(path).capture()
    if frame is None:
        raise FileNotFoundError(f"Image not found: {path}")
    return frame


def print_answer(answer: str | None) -> None:
    print(answer if answer is not None else "(no answer)")


async def cmd_analyze(args: argparse.Namespace, config: Config) -> int:
    """Analyze a single image file."""
    frame = await read_frame(args.image)
    db_manager, catalog = await open_catalog(config, args.template)
    client = create_http_client(config.gemini.timeout_seconds)
    try:
        template = await catalog.set_active(catalog.active_id)
        orchestrator = build_orchestrator(args, config, client, template)
        print_answer(await orchestrator.analyze_frame(frame))
    finally:
        await client.aclose()
        await db_manager.close()
    return 0


async def cmd_chat(args: argparse.Namespace, config: Config) -> int:
    """Interactive chat on stdin.

    Lines starting with "/" are commands: /analyze PATH, /clear, /quit.
    """
    db_manager, catalog = await open_catalog(config, args.template)
    client = create_http_client(config.gemini.timeout_seconds)
    try:
        template = await catalog.set_active(catalog.active_id)
        orchestrator = build_orchestrator(args, config, client, template)
        print("Type a message, /analyze PATH, /clear or /quit.")
        while True:
            try:
                line = await asyncio.to_thread(input, "> ")
            except EOFError:
                break
            line = line.strip()
            if not line:
                continue
            if line == "/quit":
                break
            if line == "/clear":
                orchestrator.clear_conversation()
                print("Conversation cleared.")
                continue

            try:
                if line.startswith("/analyze"):
                    path = line.removeprefix("/analyze").strip()
                    if not path:
                        print("Usage: /analyze PATH")
                        continue
                    answer = await orchestrator.analyze_frame(await read_frame(path))
                else:
                    answer = await orchestrator.send_chat_message(line)
            except (GatewayError, FileNotFoundError) as e:
                print(f"Error: {e}")
                continue
            print_answer(answer)
    finally:
        await client.aclose()
        await db_manager.close()
    return 0


async def wait_for_shutdown() -> None:
    """Block until SIGINT or SIGTERM."""
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Received shutdown signal...")
        stop_event.set()

    loop.add_signal_handler(signal.SIGINT, shutdown_handler)
    loop.add_signal_handler(signal.SIGTERM, shutdown_handler)
    try:
        await stop_event.wait()
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        loop.remove_signal_handler(signal.SIGTERM)


async def cmd_watch(args: argparse.Namespace, config: Config) -> int:
    """Re-analyze an image file whenever its content changes."""
    db_manager, catalog = await open_catalog(config, args.template)
    client = create_http_client(config.gemini.timeout_seconds)
    try:
        template = await catalog.set_active(
            args.template or SCREEN_WATCH_TEMPLATE_ID
        )
        orchestrator = build_orchestrator(args, config, client, template)
        analyzer = AutoAnalyzer(
            orchestrator,
            FileFrameSource(args.image),
            config.capture,
            on_answer=print_answer,
        )

        analyzer_task = asyncio.create_task(analyzer.start())
        await wait_for_shutdown()

        logger.info("Shutting down...")
        await analyzer.stop()
        await asyncio.gather(analyzer_task, return_exceptions=True)
    finally:
        await client.aclose()
        await db_manager.close()
    logger.info("Shutdown complete")
    return 0


def build_direct_backend(config: Config, client: httpx.AsyncClient) -> DirectBackend:
    if not config.gemini.api_key:
        raise ConfigValidationError("'gemini.api_key' is required for this command")
    return DirectBackend(
        client,
        api_key=config.gemini.api_key,
        model=config.gemini.model,
        api_base=config.gemini.api_base,
    )


async def cmd_serve(args: argparse.Namespace, config: Config) -> int:
    """Run the proxy server."""
    db_manager, catalog = await open_catalog(config, args.template)
    client = create_http_client(config.gemini.timeout_seconds)
    try:
        template = await catalog.set_active(catalog.active_id)
        gateway = GeminiGateway(build_direct_backend(config, client), config.retry)
        server = ProxyServer(
            gateway,
            host=args.host or config.server.host,
            port=args.port if args.port is not None else config.server.port,
            template=template,
            session=config.session,
        )
        await server.start()
        try:
            await wait_for_shutdown()
        finally:
            await server.stop()
    finally:
        await client.aclose()
        await db_manager.close()
    return 0


async def cmd_models(args: argparse.Namespace, config: Config) -> int:
    """List models that support generateContent."""
    client = create_http_client(config.gemini.timeout_seconds)
    try:
        backend = build_direct_backend(config, client)
        try:
            models = await backend.list_models()
        except httpx.RequestError as e:
            print(f"Error: could not reach the provider: {e}", file=sys.stderr)
            return 1
    finally:
        await client.aclose()

    for model in models:
        if args.all or model.supports_generate_content:
            limit = model.input_token_limit or "?"
            print(f"{model.short_name}\t{limit}")
    return 0


async def cmd_templates(args: argparse.Namespace, config: Config) -> int:
    """Manage prompt templates."""
    db_manager, catalog = await open_catalog(config, args.template)
    try:
        if args.templates_command == "list":
            active_id = (await catalog.active()).id
            for template in await catalog.list_templates():
                marker = "*" if template.id == active_id else " "
                kind = "built-in" if template.builtin else "custom"
                print(
                    f"{marker} {template.id}\t{template.icon} {template.name}"
                    f"\t({kind})"
                )
        elif args.templates_command == "show":
            template = await catalog.get(args.id)
            print(f"{template.icon} {template.name} [{template.id}]")
            if template.description:
                print(template.description)
            print("\n--- analyze ---")
            print(template.analyze_template)
            print("\n--- chat ---")
            print(template.chat_template)
        elif args.templates_command == "add":
            template = await catalog.create(
                name=args.name,
                analyze_template=Path(args.analyze_file).read_text(encoding="utf-8"),
                chat_template=Path(args.chat_file).read_text(encoding="utf-8"),
                description=args.description,
                icon=args.icon,
            )
            print(template.id)
        elif args.templates_command == "remove":
            await catalog.delete(args.id)
            print(f"Removed {args.id}")
    finally:
        await db_manager.close()
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenvision",
        description="Screen analysis and study chat on top of Gemini",
    )
    parser.add_argument(
        "--config", default="config.yaml", help="Config file (default: config.yaml)"
    )
    parser.add_argument(
        "--subject",
        choices=[mode.value for mode in SubjectMode],
        help="Subject mode (default: session.default_subject)",
    )
    parser.add_argument("--template", help="Prompt template ID")

    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_parser = subparsers.add_parser("analyze", help="Analyze an image file")
    analyze_parser.add_argument("image", help="Image file (PNG/JPEG)")
    analyze_parser.set_defaults(handler=cmd_analyze)

    chat_parser = subparsers.add_parser("chat", help="Interactive chat")
    chat_parser.set_defaults(handler=cmd_chat)

    watch_parser = subparsers.add_parser(
        "watch", help="Analyze an image file whenever it changes"
    )
    watch_parser.add_argument("image", help="Image file kept up to date externally")
    watch_parser.set_defaults(handler=cmd_watch)

    serve_parser = subparsers.add_parser("serve", help="Run the proxy server")
    serve_parser.add_argument("--host", help="Bind address (default: server.host)")
    serve_parser.add_argument(
        "--port", type=int, help="Port (default: server.port)"
    )
    serve_parser.set_defaults(handler=cmd_serve)

    models_parser = subparsers.add_parser("models", help="List available models")
    models_parser.add_argument(
        "--all", action="store_true", help="Include models without generateContent"
    )
    models_parser.set_defaults(handler=cmd_models)

    templates_parser = subparsers.add_parser("templates", help="Manage templates")
    templates_sub = templates_parser.add_subparsers(
        dest="templates_command", required=True
    )
    templates_sub.add_parser("list", help="List templates")
    show_parser = templates_sub.add_parser("show", help="Show a template")
    show_parser.add_argument("id")
    add_parser = templates_sub.add_parser("add", help="Add a custom template")
    add_parser.add_argument("--name", required=True)
    add_parser.add_argument("--analyze-file", required=True)
    add_parser.add_argument("--chat-file", required=True)
    add_parser.add_argument("--description", default="")
    add_parser.add_argument("--icon", default="")
    remove_parser = templates_sub.add_parser("remove", help="Remove a custom template")
    remove_parser.add_argument("id")
    templates_parser.set_defaults(handler=cmd_templates)

    return parser


def main(argv: list[str] | None = None) -> int:
    """Parse arguments, load the config and run the chosen command.

    Returns:
        Process exit code.
    """
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
    except FileNotFoundError as e:
        logger.error("%s", e)
        return 1
    except (ConfigError, yaml.YAMLError) as e:
        logger.error("Failed to load config: %s", e)
        return 1

    configure_logging(config.logging)

    handler: Command = args.handler
    try:
        return asyncio.run(handler(args, config))
    except GatewayError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except ConfigError as e:
        logger.error("Invalid configuration: %s", e)
        return 1
    except (
        TemplateNotFoundError,
        TemplateNotEditableError,
        FileNotFoundError,
        ValueError,
    ) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    """Console script entry point."""
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        logger.info("Shutting down...")


if __name__ == "__main__":
    run()
