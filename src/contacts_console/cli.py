"""Console entry point: login loop in front of the role menus."""
import logging
import sys
from typing import Optional

from sqlalchemy.orm import sessionmaker

from contacts_core.config import Settings, get_settings
from contacts_core.database import init_db, make_session_factory
from contacts_core.exceptions import AuthenticationError, UnknownRoleError
from contacts_core.session import SessionController

from .console import Console
from .menus import run_session

logger = logging.getLogger("contacts-console")

EXIT_WORDS = ("0", "exit")


def configure_logging(settings: Settings) -> None:
    """Send log records to the configured file, or stderr when none is set."""
    handler_kwargs = {"filename": settings.log_file} if settings.log_file else {"stream": sys.stderr}
    logging.basicConfig(
        level=settings.log_level.upper(),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        **handler_kwargs,
    )


def login_loop(session_factory: sessionmaker, console: Console) -> None:
    """
    Prompt for credentials until the operator exits.

    Each successful login runs that user's menu; logging out returns here.
    """
    while True:
        console.write()
        console.write("=== Contact Manager Login ===")
        username = console.prompt_line("Username (0 or exit to quit)")
        if username.lower() in EXIT_WORDS:
            console.info("Goodbye.")
            return
        password = console.prompt_secret("Password")

        try:
            session = SessionController.login(session_factory, username, password)
        except (AuthenticationError, UnknownRoleError) as e:
            console.error(e.message)
            continue

        run_session(session, console)


def main(console: Optional[Console] = None, session_factory: Optional[sessionmaker] = None) -> int:
    """
    Run the contact manager.

    Args:
        console: Console to use (standard input/output when omitted)
        session_factory: Store to use (built from settings when omitted)

    Returns:
        Process exit code
    """
    settings = get_settings()
    configure_logging(settings)
    console = console or Console()

    if session_factory is None:
        session_factory = make_session_factory(settings.database_url)
        init_db(session_factory, settings)
    logger.info(f"Contact manager started against {settings.database_url}")

    try:
        login_loop(session_factory, console)
    except (EOFError, KeyboardInterrupt):
        console.write()
        console.info("Goodbye.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
