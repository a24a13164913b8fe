"""
spectap CLI

Command-line interface for the spec-driven mock server, the recording
proxy and the replay server.

Commands:
    start          - Start a mock server from an OpenAPI spec
    record         - Proxy a real API and record its traffic
    replay         - Serve a recorded session
    generate-spec  - Infer a spec from recorded traffic (not implemented)

Examples:
    # Mock an API from its spec, reloading on change
    spectap start --spec openapi.yaml --watch

    # Record traffic from a real API
    spectap record --target https://api.example.com --output recordings/

    # Replay it, looping through responses
    spectap replay recordings/recording.json --loop
"""

import argparse
import logging
import sys
from typing import List, Optional

from .common.config import load_config
from .common.errors import ConfigError, SpecLoadError
from .capture.proxy import RecordingProxy, RecordOptions
from .capture.recording import parse_status_list
from .mock.server import MockServer
from .replay.replayer import ReplayServer


def setup_logging(level: str = 'info'):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
    )


def cmd_start(args):
    """
    Start the mock server.

    Args:
        args: Parsed command-line arguments
    """
    overrides = {
        'spec': args.spec,
        'port': args.port,
        'host': args.host,
        'watch': args.watch,
        'stateful': args.stateful,
        'data': {'seed': args.seed},
    }

    try:
        config = load_config(args.config, overrides)
        setup_logging(config.logging.level)
        server = MockServer(config)
    except (ConfigError, SpecLoadError, FileNotFoundError) as e:
        print(f"❌ Failed to start mock server: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Mock server stopped")


def cmd_record(args):
    """
    Start the recording proxy.

    Args:
        args: Parsed command-line arguments
    """
    setup_logging()
    options = RecordOptions(
        target=args.target,
        output=args.output,
        host=args.host,
        port=args.port,
        include=args.include,
        status_filter=parse_status_list(args.status_filter),
    )

    try:
        proxy = RecordingProxy(options)
    except (ConfigError, OSError) as e:
        print(f"❌ Failed to start recorder: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        proxy.start()
    except KeyboardInterrupt:
        print(f"\n\n👋 Recorder stopped ({len(proxy.session)} entries saved to {proxy.output_path})")


def cmd_replay(args):
    """
    Start the replay server.

    Args:
        args: Parsed command-line arguments
    """
    setup_logging()
    try:
        server = ReplayServer.from_file(
            args.recording,
            loop=args.loop,
            latency=args.latency,
            host=args.host,
            port=args.port,
        )
    except (FileNotFoundError, ValueError) as e:
        print(f"❌ Failed to load recording: {e}", file=sys.stderr)
        sys.exit(1)

    try:
        server.start()
    except KeyboardInterrupt:
        print("\n\n👋 Replay server stopped")


def cmd_generate_spec(args):
    print("Generate-spec mode is not implemented yet.", file=sys.stderr)
    sys.exit(1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='spectap',
        description="spectap - Mock servers from OpenAPI specs, plus traffic record & replay",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start a stateful mock server
  %(prog)s start --spec openapi.yaml --port 3001

  # Stateless, reproducible data
  %(prog)s start --spec openapi.yaml --stateless --seed 42

  # Record only successful /api calls
  %(prog)s record --target https://api.example.com --include /api/ --status-filter 200,201

  # Replay with recorded latency
  %(prog)s replay recordings/recording.json --latency
        """
    )

    subparsers = parser.add_subparsers(dest='command', help='Command to run')

    # --- START command ---
    start_parser = subparsers.add_parser('start', help='Start mock server from an OpenAPI spec')
    start_parser.add_argument('-s', '--spec', help='OpenAPI spec file (YAML or JSON)')
    start_parser.add_argument('-p', '--port', type=int, help='Port to bind (default: 3001)')
    start_parser.add_argument('--host', help='Host to bind (default: 0.0.0.0)')
    start_parser.add_argument('-c', '--config', help='Config file (default: spectap.config.yaml if present)')
    start_parser.add_argument('--watch', dest='watch', action='store_true', help='Reload routes when the spec changes')
    start_parser.add_argument('--no-watch', dest='watch', action='store_false', help='Disable spec watching')
    start_parser.add_argument('--stateful', dest='stateful', action='store_true', help='Keep created resources (default)')
    start_parser.add_argument('--stateless', dest='stateful', action='store_false', help='Generate every response fresh')
    start_parser.add_argument('--seed', type=int, help='Seed for reproducible generated data')
    start_parser.set_defaults(watch=None, stateful=None)

    # --- RECORD command ---
    record_parser = subparsers.add_parser('record', help='Proxy an API and record its traffic')
    record_parser.add_argument('-t', '--target', required=True, help='Upstream base URL')
    record_parser.add_argument('-o', '--output', default='recordings',
                               help='Session file (.json) or directory (default: recordings)')
    record_parser.add_argument('-p', '--port', type=int, default=3002, help='Port to bind (default: 3002)')
    record_parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    record_parser.add_argument('--include', help='Record only matching paths (substring, or /regex/)')
    record_parser.add_argument('--status-filter', help='Record only these statuses (e.g. 200,201)')

    # --- REPLAY command ---
    replay_parser = subparsers.add_parser('replay', help='Serve a recorded session')
    replay_parser.add_argument('recording', help='Recording session file')
    replay_parser.add_argument('-p', '--port', type=int, default=3003, help='Port to bind (default: 3003)')
    replay_parser.add_argument('--host', default='127.0.0.1', help='Host to bind (default: 127.0.0.1)')
    replay_parser.add_argument('--loop', action='store_true', help='Loop back to the first response after the last')
    replay_parser.add_argument('--latency', action='store_true', help='Replay recorded latency')

    # --- GENERATE-SPEC command ---
    subparsers.add_parser('generate-spec', help='Generate a spec from recorded traffic (not implemented)')

    return parser


def main(argv: Optional[List[str]] = None):
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Dispatch to command handler
    if args.command == 'start':
        cmd_start(args)
    elif args.command == 'record':
        cmd_record(args)
    elif args.command == 'replay':
        cmd_replay(args)
    elif args.command == 'generate-spec':
        cmd_generate_spec(args)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == '__main__':
    main()
