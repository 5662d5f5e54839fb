"""Command-line interface for mag."""

import argparse
import sys
from typing import List, Optional

from colorama import init as colorama_init

from .core.application import create_application
from .llm.providers import available_providers
from .utils.logging import logger
from . import __version__

EPILOG = """
Examples:
  mag                                      # Interactive session
  mag "plan a hello world python script"   # One exchange, then exit
  mag --provider ollama                    # Use a local model
  mag --policy-summary                     # Show the policy for this directory

Type /help inside a session for the slash commands.
The project policy is ./.mag/policy.json, created on first run.
"""


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="mag",
        description="Plan work as todos with an LLM, then run them as policy-checked file writes and shell commands.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=EPILOG,
    )
    parser.add_argument('task_prompt', nargs='*',
                        help="Prompt to send once; without one, mag starts an interactive session")
    parser.add_argument('--provider',
                        help=f"Provider to use instead of the configured one "
                             f"({', '.join(available_providers())}, claude, chatgpt)")
    parser.add_argument('--config-dir', help="Directory holding config.yaml")
    parser.add_argument('--policy-summary', action='store_true', help="Print the active policy and exit")
    parser.add_argument('--debug', action='store_true', help="Show debug log records")
    parser.add_argument('--version', action='version', version=f'mag {__version__}')
    return parser


def main(args: Optional[List[str]] = None) -> None:
    """Entry point of the ``mag`` console script."""
    colorama_init(autoreset=True)
    options = create_parser().parse_args(args)

    try:
        app = create_application(config_dir=options.config_dir, debug=options.debug,
                                 provider=options.provider)
    except SystemExit:
        # Invalid configuration was already reported
        raise
    except Exception as e:
        logger.error(f"Failed to initialize mag: {e}")
        sys.exit(1)

    if options.policy_summary:
        logger.system(app.coordinator.policy.get_summary())
    elif options.task_prompt:
        sys.exit(0 if app.run_single_task(" ".join(options.task_prompt)) else 1)
    else:
        app.run_interactive_mode()
        logger.system("mag session ended.")


if __name__ == "__main__":
    main()
