"""
Command-line interface for Coder.
"""

import argparse
import asyncio
import logging
import sys

import structlog

from .config import Settings, get_config_file, get_settings, save_settings


def configure_logging(level: str = "WARNING") -> None:
    """Route structlog through stdlib logging at `level`."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stderr,
        level=getattr(logging, level.upper(), logging.WARNING),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(colors=True),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


logger = structlog.get_logger()


def main(argv: list[str] | None = None) -> None:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="coder",
        description="Coder - an AI coding assistant in your terminal",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    chat_parser = subparsers.add_parser("chat", help="Start an interactive chat (default)")
    chat_parser.add_argument("--model", help="Model to use for this session")
    chat_parser.add_argument("--yes", "-y", action="store_true", help="Approve every tool call without asking")
    chat_parser.add_argument("--prompt", "-p", help="Run a single prompt and exit")

    config_parser = subparsers.add_parser("config", help="Show configuration")
    config_parser.add_argument("--check", action="store_true", help="Check configuration validity")

    subparsers.add_parser("init", help="Write a default config file")

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging("DEBUG" if settings.debug else settings.log_level)

    if args.command in (None, "chat"):
        sys.exit(run_chat(
            settings,
            model=getattr(args, "model", None),
            approve_all=getattr(args, "yes", False),
            prompt=getattr(args, "prompt", None),
        ))
    elif args.command == "config":
        sys.exit(show_config(settings, args.check))
    elif args.command == "init":
        init_config(settings)
    else:
        parser.print_help()


def run_chat(
    settings: Settings,
    model: str | None = None,
    approve_all: bool = False,
    prompt: str | None = None,
) -> int:
    """Start the chat REPL, or run one prompt when `prompt` is given."""
    from .chat import ChatSession

    if model:
        settings.set_value("provider.model", model)

    chat = ChatSession(settings, approve_all=approve_all)
    try:
        if prompt is not None:
            return asyncio.run(chat.run_once(prompt))
        asyncio.run(chat.run())
    except KeyboardInterrupt:
        return 130
    return 0


def show_config(settings: Settings, check: bool) -> int:
    """Show current configuration. Returns a process exit code."""

    def mask(value: str) -> str:
        if not value:
            return "(not set)"
        return value[:4] + "..." + value[-4:] if len(value) > 10 else "****"

    provider = settings.provider

    print(f"\n=== {settings.app_name} Configuration ===\n")
    print(f"Config file: {get_config_file()}")

    print("\nProvider:")
    print(f"  Provider: {provider.provider}")
    print(f"  Endpoint: {provider.endpoint or '(default)'}")
    print(f"  Model: {provider.model}")
    print(f"  Lite Model: {provider.lite_model or '(same as model)'}")
    print(f"  API Key: {mask(settings.resolve_api_key())}")
    print(f"  Max Tokens: {provider.max_tokens}")

    print("\nUI:")
    print(f"  Color: {settings.ui.color_enabled}")
    print(f"  Spinner: {settings.ui.show_spinner}")

    print("\nPermissions (auto-approve):")
    approved = [name for name, ok in settings.permissions.auto_approve.items() if ok]
    print(f"  {', '.join(approved) or '(none)'}")

    print("\nCompaction:")
    print(f"  Automatic: {settings.compaction.auto_compact}")
    print(f"  Max Context Tokens: {settings.compaction.max_context_tokens}")
    print(f"  Threshold: {settings.compaction.compaction_threshold}")

    print("\nLogs:")
    print(f"  API Logging: {settings.api_logging}")
    print(f"  Directory: {settings.logs_dir}")

    if not check:
        return 0

    print("\n=== Configuration Check ===\n")
    errors = []
    warnings = []

    if not settings.resolve_api_key():
        if provider.provider == "openai" and provider.endpoint and "api.openai.com" not in provider.endpoint:
            warnings.append("No API key set (fine for local OpenAI-compatible servers)")
        else:
            errors.append(f"An API key is required for the {provider.provider} provider")

    if not provider.model:
        errors.append("provider.model is required")

    if not 0 < settings.compaction.compaction_threshold <= 1:
        errors.append("compaction.compaction_threshold must be between 0 and 1")

    if not get_config_file().exists():
        warnings.append("No config file found - run `coder init` to create one")

    if errors:
        print("❌ Errors:")
        for e in errors:
            print(f"   - {e}")

    if warnings:
        print("⚠️  Warnings:")
        for w in warnings:
            print(f"   - {w}")

    if not errors and not warnings:
        print("✅ Configuration looks good!")
    elif not errors:
        print("\n✅ Configuration is valid (with warnings)")
    else:
        print("\n❌ Configuration has errors - fix them before starting")
        return 1
    return 0


def init_config(settings: Settings) -> None:
    """Write the default configuration file if there is none."""
    config_file = get_config_file()

    if config_file.exists():
        print(f"ℹ️  {config_file} already exists")
    else:
        save_settings(settings, config_file)
        print(f"✅ Created {config_file}")

    settings.logs_dir.mkdir(parents=True, exist_ok=True)

    print("\n=== Next Steps ===")
    print(f"1. Edit {config_file} and set provider.model and provider.endpoint")
    print("2. Export your API key (OPENAI_API_KEY, ANTHROPIC_API_KEY or OPENROUTER_API_KEY)")
    print("3. Run: coder config --check")
    print("4. Run: coder")


if __name__ == "__main__":
    main()
