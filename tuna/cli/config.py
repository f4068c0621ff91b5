"""
tuna config commands - inspect provider configuration.
"""

import json
import sys

from tuna.config import (
    build_registry,
    deprecation_warning,
    find_config_file,
    load_config,
    load_config_file,
)
from tuna.errors import NoConfigError
from tuna.config.loader import CONFIG_FILENAME


def setup_parser(subparsers):
    """Setup config command parser."""
    config_parser = subparsers.add_parser(
        'config',
        help='Inspect tuna configuration'
    )
    config_subparsers = config_parser.add_subparsers(
        dest='config_command',
        help='Config command'
    )
    config_subparsers.required = True

    # tuna config show
    show_parser = config_subparsers.add_parser(
        'show',
        help='Display current configuration'
    )
    show_parser.add_argument(
        '--json',
        action='store_true',
        help='Output as JSON'
    )
    show_parser.add_argument(
        '--reveal-keys',
        action='store_true',
        help='Show API token values (default: masked)'
    )
    show_parser.set_defaults(func=cmd_config_show)

    # tuna config validate
    validate_parser = config_subparsers.add_parser(
        'validate',
        help='Validate the configuration file'
    )
    validate_parser.set_defaults(func=cmd_config_validate)

    # tuna config resolve <model>
    resolve_parser = config_subparsers.add_parser(
        'resolve',
        help='Show which provider will be used for a model'
    )
    resolve_parser.add_argument(
        'model',
        help='Model name or alias (e.g., sonnet, gpt-4o)'
    )
    resolve_parser.set_defaults(func=cmd_config_resolve)


def cmd_config_show(args) -> int:
    """Show configuration source, providers and aliases."""
    result = load_config(start_dir=args.base_dir)
    config = result.config

    if args.json:
        data = config.model_dump()
        if not args.reveal_keys:
            for provider in data['providers']:
                if provider.get('api_token'):
                    provider['api_token'] = _mask_key(provider['api_token'])
        data['source'] = result.source
        print(json.dumps(data, indent=2, default=str))
        return 0

    print(f"\n📋 Configuration source: {result.source}")
    if result.deprecated:
        print("   Status: using deprecated environment variables")
    print()

    print(f"Default provider: {config.default_provider or '(first provider)'}\n")

    print("Providers:")
    for provider in config.providers:
        if provider.api_token:
            token = provider.api_token if args.reveal_keys else _mask_key(provider.api_token)
        else:
            token = f"${provider.api_token_env}"
        print(f"  {provider.name}:")
        print(f"    Base URL:    {provider.base_url}")
        print(f"    API Token:   {token}")
        if provider.rate_limit:
            print(f"    Rate Limit:  {provider.rate_limit}")
        if provider.models:
            print(f"    Models:      {', '.join(provider.models)}")
        print()

    if config.aliases:
        print("Aliases:")
        for alias in sorted(config.aliases):
            print(f"  {alias} -> {config.aliases[alias]}")
        print()

    return 0


def cmd_config_validate(args) -> int:
    """Validate the configuration file, including credentials and rate limits."""
    config_path = find_config_file(args.base_dir)
    if config_path is None:
        raise NoConfigError(
            f"no configuration file found\n\n"
            f"Create {CONFIG_FILENAME} in your project or ~/.config/tuna.yaml"
        )

    registry = build_registry(load_config_file(config_path))
    print(f"✅ Configuration is valid: {config_path}")
    print(f"   {len(registry.providers())} provider(s), default: {registry.default_provider}")
    return 0


def cmd_config_resolve(args) -> int:
    """Resolve a model name to its full name and provider."""
    result = load_config(start_dir=args.base_dir)
    if result.deprecated:
        print(deprecation_warning(), file=sys.stderr)

    registry = build_registry(result.config)

    full_name, provider = registry.resolve_model(args.model)
    if args.model != full_name:
        print(f"{args.model} -> {full_name} -> {provider}")
    else:
        print(f"{full_name} -> {provider}")

    if not registry.is_mapped(full_name):
        print("  (using default provider)")
    return 0


def _mask_key(value: str) -> str:
    """Mask an API token for display."""
    if not value:
        return "(not set)"
    if len(value) <= 8:
        return "****"
    return value[:4] + "..." + value[-4:]
