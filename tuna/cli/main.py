#!/usr/bin/env python3
"""
tuna CLI - compare LLM responses across providers

Commands:
    tuna config show                 Show configuration source, providers and aliases
    tuna config validate             Validate the configuration file
    tuna config resolve <model>      Show which provider serves a model
    tuna plan <assistant>            Create an execution plan
    tuna exec <plan-id>              Execute a plan
    tuna rate <file> good|bad|none   Rate a response
    tuna view <plan-id>              Summarize responses and ratings of a plan
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from tuna import __version__
from tuna.errors import ConfigError, PlanError

from . import config as config_cmd
from . import exec as exec_cmd
from . import plan as plan_cmd
from . import rate as rate_cmd
from . import view as view_cmd

EXIT_OK = 0
EXIT_TASK_FAILURES = 1
EXIT_USAGE = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tuna',
        description='tuna - send the same queries to many LLM providers and compare the answers',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  tuna config show
  tuna config resolve sonnet
  tuna plan my-assistant --models sonnet,gpt-4o
  tuna exec 3f2c... --parallel 4
  tuna exec 3f2c... --dry-run
  tuna rate my-assistant/Output/3f2c.../1a2b3c4d/query_001_response.md good
  tuna view 3f2c...
"""
    )
    parser.add_argument('--version', action='version', version=f'tuna {__version__}')
    parser.add_argument(
        '--base-dir',
        type=Path,
        default=Path.cwd(),
        help='Directory containing assistant directories (default: current directory)'
    )
    parser.add_argument(
        '--log-level',
        default='WARNING',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Library log level on stderr (default: WARNING)'
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')
    subparsers.required = True

    config_cmd.setup_parser(subparsers)
    plan_cmd.setup_parser(subparsers)
    exec_cmd.setup_parser(subparsers)
    rate_cmd.setup_parser(subparsers)
    view_cmd.setup_parser(subparsers)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format='%(levelname)s %(name)s: %(message)s',
    )

    try:
        return args.func(args)
    except (ConfigError, PlanError) as e:
        print(f"❌ {e}", file=sys.stderr)
        return EXIT_USAGE


if __name__ == '__main__':
    sys.exit(main())
