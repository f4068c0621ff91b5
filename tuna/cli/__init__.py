"""
Command line interface.

Each command module exposes setup_parser(subparsers) and cmd_* handlers
that take the parsed args and return an exit code.
"""
