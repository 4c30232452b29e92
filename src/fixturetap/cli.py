"""
FixtureTap CLI

Command-line interface for the fixture server and its offline tools.

Commands:
    serve          - Start the fixture server
    fingerprint    - Print the fingerprint of a request
    build-mapping  - Generate a mapping file from a fixture manifest
    check          - Resolve every mapped fixture and report failures

Examples:
    # Start the server for a service defined in myapp/fixtures.py
    fixturetap serve fixtures/server.yaml --service myapp.fixtures:SERVICE

    # Fingerprint a request
    fixturetap fingerprint --service myapp.fixtures:SERVICE --type GetUserRequest --json '{"id": 42}'

    # Regenerate mapping.json from sample requests
    fixturetap build-mapping fixtures/manifest.yaml --service myapp.fixtures:SERVICE -o fixtures/mapping.json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List, Optional

from .common import configure_logging
from .config import ServerConfig
from .registry import RegistryError, ResponseRegistry, decode_json, fingerprint, canonical_json
from .server import FixtureServer, ServiceDefinition, load_service
from .tools import MappingBuilder, check_fixtures, load_manifest


def _load_service_or_exit(spec: str) -> ServiceDefinition:
    try:
        return load_service(spec)
    except (ImportError, AttributeError, ValueError) as e:
        print(f"❌ Failed to load service {spec}: {e}")
        sys.exit(1)


def _load_config_or_exit(args) -> ServerConfig:
    try:
        config = ServerConfig.from_yaml(args.config).with_env()
        overrides = {}
        if getattr(args, 'host', None) is not None:
            overrides['host'] = args.host
        if getattr(args, 'port', None) is not None:
            overrides['port'] = args.port
        if getattr(args, 'log_level', None):
            overrides['log_level'] = args.log_level
        if getattr(args, 'no_admin', False):
            overrides['admin_enabled'] = False
        if getattr(args, 'strict', False):
            overrides['strict_types'] = True
        if overrides:
            config = ServerConfig.from_dict({**config.to_dict(), **overrides})
        return config
    except (OSError, ValueError, TypeError) as e:
        print(f"❌ Failed to load config {args.config}: {e}")
        sys.exit(1)


def cmd_serve(args):
    """
    Start the fixture server.

    Args:
        args: Parsed command-line arguments
    """
    print(f"🎭 FixtureTap Server")

    config = _load_config_or_exit(args)
    configure_logging(config.log_level)
    service = _load_service_or_exit(args.service)

    print(f"   Mapping file: {config.mapping_file}")
    print(f"   Response dir: {config.response_dir}")

    # A broken mapping file is fatal: the server does not start
    try:
        registry = ResponseRegistry.load(
            config.mapping_file,
            config.response_dir,
            service.response_types,
            strict=config.strict_types,
            cache_shards=config.cache_shards
        )
    except RegistryError as e:
        print(f"❌ {e}")
        sys.exit(1)

    server = FixtureServer(registry, service.endpoints, config=config)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Fixture server stopped")


def cmd_fingerprint(args):
    """
    Print the fingerprint of a request.

    Args:
        args: Parsed command-line arguments
    """
    service = _load_service_or_exit(args.service)
    request_type = service.request_types.get(args.type)
    if request_type is None:
        known = ', '.join(sorted(service.request_types)) or 'none'
        print(f"❌ Unknown request type {args.type} (known: {known})")
        sys.exit(1)

    try:
        data = Path(args.file).read_text(encoding='utf-8') if args.file else args.json
        request = decode_json(request_type, data)
    except (OSError, ValueError) as e:
        print(f"❌ Invalid {args.type}: {e}")
        sys.exit(1)

    if args.show_canonical:
        print(canonical_json(request))
    print(fingerprint(request))


def cmd_build_mapping(args):
    """
    Generate a mapping file from a fixture manifest.

    Args:
        args: Parsed command-line arguments
    """
    print(f"🔧 FixtureTap Mapping Builder")
    print(f"   Manifest: {args.manifest}")

    configure_logging(args.log_level)
    service = _load_service_or_exit(args.service)

    try:
        fixtures = load_manifest(args.manifest)
        builder = MappingBuilder(service.request_types)
        mapping = builder.build(fixtures)
    except (OSError, ValueError) as e:
        print(f"❌ {e}")
        sys.exit(1)

    output = builder.write(mapping, args.output)
    print(f"✅ Wrote {len(mapping)} entries to {output}")


def cmd_check(args):
    """
    Resolve every mapped fixture and report failures.

    Args:
        args: Parsed command-line arguments
    """
    print(f"✓ FixtureTap Fixture Check")

    config = _load_config_or_exit(args)
    configure_logging(config.log_level)
    service = _load_service_or_exit(args.service)

    try:
        registry = ResponseRegistry.load(
            config.mapping_file,
            config.response_dir,
            service.response_types,
            strict=True
        )
    except RegistryError as e:
        print(f"❌ {e}")
        sys.exit(1)

    result = check_fixtures(registry)
    print(f"   Fixtures checked: {result.checked}")
    print()

    if result.ok:
        print("✅ All fixtures resolved!")
        return

    print("❌ Failures:")
    for failure in result.failures:
        print(f"   • {failure['artifact']}: {failure['message']}")

    if args.output:
        with open(args.output, 'w', encoding='utf-8') as f:
            json.dump(result.to_dict(), f, indent=2)
        print(f"\n   Report saved to {args.output}")
    sys.exit(1)


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog='fixturetap',
        description="FixtureTap - Canned responses for recorded requests",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start the fixture server
  %(prog)s serve server.yaml --service myapp.fixtures:SERVICE

  # Check that every mapped fixture decodes
  %(prog)s check server.yaml --service myapp.fixtures:SERVICE
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- SERVE command ---
    serve_parser = subparsers.add_parser('serve', help='Start the fixture server')
    serve_parser.add_argument('config', help='Server YAML config file')
    serve_parser.add_argument('--service', required=True, help='ServiceDefinition as module:attribute')
    serve_parser.add_argument('--host', help='Host to bind (overrides config)')
    serve_parser.add_argument('-p', '--port', type=int, help='Port to bind (overrides config)')
    serve_parser.add_argument('--log-level', choices=['debug', 'info', 'warning', 'error'],
                              help='Log level (overrides config)')
    serve_parser.add_argument('--no-admin', action='store_true', help='Disable admin API')
    serve_parser.add_argument('--strict', action='store_true',
                              help='Fail at startup if the mapping refers to unregistered types')

    # --- FINGERPRINT command ---
    fp_parser = subparsers.add_parser('fingerprint', help='Print the fingerprint of a request')
    fp_parser.add_argument('--service', required=True, help='ServiceDefinition as module:attribute')
    fp_parser.add_argument('--type', required=True, help='Request type name')
    source = fp_parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--json', help='Request as JSON text')
    source.add_argument('--file', help='Request JSON file')
    fp_parser.add_argument('--show-canonical', action='store_true', help='Also print the canonical JSON')

    # --- BUILD-MAPPING command ---
    build_parser = subparsers.add_parser('build-mapping', help='Generate a mapping file from a manifest')
    build_parser.add_argument('manifest', help='Fixture manifest (YAML or JSON)')
    build_parser.add_argument('--service', required=True, help='ServiceDefinition as module:attribute')
    build_parser.add_argument('-o', '--output', default='mapping.json', help='Output mapping file (default: mapping.json)')
    build_parser.add_argument('--log-level', default='warning', choices=['debug', 'info', 'warning', 'error'],
                              help='Log level (default: warning)')

    # --- CHECK command ---
    check_parser = subparsers.add_parser('check', help='Resolve every mapped fixture')
    check_parser.add_argument('config', help='Server YAML config file')
    check_parser.add_argument('--service', required=True, help='ServiceDefinition as module:attribute')
    check_parser.add_argument('-o', '--output', help='Save failure report to JSON file')

    # Parse arguments
    args = parser.parse_args(argv)

    # Dispatch to command handler
    if args.command == 'serve':
        cmd_serve(args)
    elif args.command == 'fingerprint':
        cmd_fingerprint(args)
    elif args.command == 'build-mapping':
        cmd_build_mapping(args)
    elif args.command == 'check':
        cmd_check(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
