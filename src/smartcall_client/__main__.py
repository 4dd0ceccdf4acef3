"""Entry point for the SmartCall client.

This module provides the command line front end. It handles:
- Configuration loading
- Logging setup with secret sanitization
- Gateway and credential store instantiation
- Sign-in, ticket listing and creation
- The interactive terminal chat
"""

import argparse
import asyncio
import getpass
import sys
from collections.abc import Callable
from pathlib import Path

import structlog

from smartcall_client._version import __version__

log = structlog.get_logger()


def setup_logging(debug: bool = False, log_format: str = "console") -> None:
    """Configure structured logging with secret sanitization.

    Args:
        debug: Enable debug logging if True
        log_format: Output format ("json" or "console")
    """
    from smartcall_client.utils.logging import LogFormat, LogLevel, configure_logging

    level = LogLevel.DEBUG if debug else LogLevel.WARNING
    configure_logging(level=level, log_format=LogFormat(log_format.lower()))


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments.

    Returns:
        Parsed argument namespace
    """
    parser = argparse.ArgumentParser(
        prog="smartcall-client",
        description="SmartCall helpdesk client - open tickets and chat with support",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config/config.yaml"),
        help="Path to configuration file (default: config/config.yaml)",
    )
    parser.add_argument(
        "-d",
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--format",
        choices=["json", "console"],
        default="console",
        help="Log output format (default: console)",
    )

    commands = parser.add_subparsers(dest="command", required=True)

    login = commands.add_parser("login", help="Sign in and store the session token")
    login.add_argument("email")

    register = commands.add_parser("register", help="Create an account")
    register.add_argument("email")
    register.add_argument("--name", default="", help="Full name")

    commands.add_parser("logout", help="Sign out and forget the stored token")
    commands.add_parser("tickets", help="List your tickets")

    new = commands.add_parser("new", help="Open a ticket describing your problem")
    new.add_argument("description", nargs="+")

    chat = commands.add_parser("chat", help="Chat inside a ticket")
    chat.add_argument("ticket_id", type=int)

    return parser.parse_args(argv)


def unauthorized_handler(command: str) -> Callable[[], None]:
    """Build the 401 callback. A rejected login is reported by the login command itself."""

    def notify() -> None:
        if command == "login":
            return
        print("Sessão expirada. Faça login novamente: smartcall-client login <email>", file=sys.stderr)

    return notify


async def run_command(args: argparse.Namespace) -> int:
    """Run one CLI command.

    Returns:
        Exit code (0 for success, non-zero for error)
    """
    from smartcall_client.adapters.api.smartcall import SmartCallClient
    from smartcall_client.adapters.storage.file import FileCredentialStore
    from smartcall_client.config.loader import load_config_or_defaults
    from smartcall_client.console import (
        TerminalChat,
        render_notice,
        render_ticket_line,
        write_stdout,
    )
    from smartcall_client.core.auth import AuthService
    from smartcall_client.core.session import ChatSession
    from smartcall_client.core.tickets import TicketService
    from smartcall_client.utils.async_helpers import (
        AuthenticationError,
        ClientError,
        InputValidationError,
    )
    from smartcall_client.utils.logging import bind_context, configure_logging, unbind_context

    try:
        config = load_config_or_defaults(args.config)
    except FileNotFoundError as e:
        log.error("configuration_file_not_found", path=str(args.config), error=str(e))
        return 1
    except ValueError as e:
        log.error("configuration_invalid", error=str(e))
        return 1

    if not args.debug:
        configure_logging(
            level=config.logging.level,
            log_format=config.logging.format,
            file_path=config.logging.file.path.expanduser() if config.logging.file.enabled else None,
            file_enabled=config.logging.file.enabled,
        )

    store = FileCredentialStore(config.storage.credentials_path)
    async with SmartCallClient(
        config.api,
        store,
        retry=config.retry,
        on_unauthorized=unauthorized_handler(args.command),
    ) as api:
        auth = AuthService(api, store)
        tickets = TicketService(api, config.tickets)

        try:
            if args.command == "login":
                password = getpass.getpass("Senha: ")
                try:
                    session = await auth.login(args.email, password)
                except AuthenticationError:
                    print("E-mail ou senha inválidos.", file=sys.stderr)
                    return 1
                print(f"Conectado como {session.user.email}")
                return 0

            if args.command == "register":
                password = getpass.getpass("Senha: ")
                confirm = getpass.getpass("Confirme a senha: ")
                profile = await auth.register(args.email, password, confirm, args.name)
                print(f"Conta criada para {profile.email}. Faça login para continuar.")
                return 0

            if args.command == "logout":
                await auth.logout()
                print("Sessão encerrada.")
                return 0

            if not auth.is_authenticated():
                print("Faça login primeiro: smartcall-client login <email>", file=sys.stderr)
                return 1

            if args.command == "tickets":
                for ticket in await tickets.list_mine():
                    print(render_ticket_line(ticket))
                return 0

            if args.command == "new":
                ticket = await tickets.create(" ".join(args.description))
                print(f"Chamado #{ticket.id} aberto. Converse com: smartcall-client chat {ticket.id}")
                return 0

            if args.command == "chat":
                bind_context(ticket_id=args.ticket_id)
                chat = ChatSession(
                    api,
                    args.ticket_id,
                    config.polling,
                    notify=lambda notice: write_stdout(render_notice(notice)),
                )
                try:
                    await TerminalChat(chat).run()
                finally:
                    unbind_context("ticket_id")
                return 0

        except InputValidationError as e:
            print(str(e), file=sys.stderr)
            return 2
        except AuthenticationError:
            return 1
        except ClientError as e:
            log.error("command_failed", command=args.command, error=str(e))
            print(f"Erro: {getattr(e, 'detail', '') or e}", file=sys.stderr)
            return 1

    log.error("unknown_command", command=args.command)
    return 1


def main() -> int:
    """Main entry point."""
    args = parse_args()

    setup_logging(debug=args.debug, log_format=args.format)

    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        log.info("shutting_down_gracefully")
        return 0


if __name__ == "__main__":
    sys.exit(main())
