# src/taiga_cli/cli/main.py

"""
CLI entrypoint.

Initializes logging, builds AppState, runs one command, and maps every
failure to a one-line message on stderr with exit code 1.
"""

from __future__ import annotations

import logging
import sys

from ..cli.bootstrap import create_initial_state, shutdown
from ..cli.commands import registry
from ..config import get_settings
from ..errors import TaigaError, friendly_error_message
from ..logging_setup import setup_logging

logger = logging.getLogger(__name__)


def main(argv: list[str] | None = None, *, settings=None, state=None) -> int:
    settings = settings or get_settings()

    setup_logging(
        log_dir=getattr(settings, "log_dir", None),
        console_level=getattr(settings, "log_level", "WARNING"),
    )

    parser = registry.build_parser(prog=str(getattr(settings, "app_name", "taiga")))
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse has already printed usage or help.
        return 0 if e.code in (0, None) else 1

    try:
        state = state or create_initial_state(settings=settings)
        if not args.command:
            # Bare `taiga`: cached project names, no network.
            output = "\n".join(p.name for p in state.sessions.require().projects)
        else:
            output = registry.handle(state, args)
    except TaigaError as e:
        logger.debug("Command failed: %s", e, exc_info=True)
        print(f"Error: {friendly_error_message(e)}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("Interrupted.", file=sys.stderr)
        return 1
    except OSError as e:
        logger.debug("Local I/O failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except Exception as e:
        logger.exception("Unexpected failure")
        print(f"Error: internal failure ({e.__class__.__name__}: {e}).", file=sys.stderr)
        return 1
    finally:
        if state is not None:
            shutdown(state)

    if output:
        print(output)
    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
