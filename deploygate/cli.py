#!/usr/bin/env python3
"""
deploygate Command Line Interface

Usage:
    deploygate check <file>
    deploygate thresholds
    deploygate serve [--host HOST] [--port PORT]
"""

import argparse
import json
import sys

EXIT_CODES = {"ALLOWED": 0, "WARNING": 1, "BLOCKED": 2}


def read_source(path: str) -> str:
    """Load Solidity source from file."""
    with open(path, 'r', encoding='utf-8') as f:
        return f.read()


def cmd_check(args, controller=None) -> int:
    """Run a security check against the configured scanner. No deployment."""
    from .errors import DeployGateError
    from .responses import check_response, error_response

    if controller is None:
        from .main import build_controller
        controller = build_controller()

    try:
        result = controller.check_only(read_source(args.file))
    except DeployGateError as e:
        _, body = error_response(e)
        print(json.dumps(body, indent=2))
        return 3

    _, body = check_response(result, controller.policy)
    print(json.dumps(body, indent=2))

    status = result.status.value
    if status == "ALLOWED":
        print("\n✓ ALLOWED", file=sys.stderr)
    else:
        print(f"\n✗ {status}: {result.message}", file=sys.stderr)
        for reason in result.verdict.reasons:
            print(f"  - {reason}", file=sys.stderr)
    return EXIT_CODES[status]


def cmd_thresholds(args) -> int:
    """Print the fixed threshold policy."""
    from .config import DEFAULT_POLICY
    print(json.dumps(DEFAULT_POLICY.to_wire(), indent=2))
    return 0


def cmd_serve(args) -> int:
    """Run the HTTP service."""
    import uvicorn
    uvicorn.run("deploygate.main:main_app", factory=True, host=args.host, port=args.port)
    return 0


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Security-gated contract deployment",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  deploygate check contracts/Token.sol     Check a contract without deploying
  deploygate thresholds                    Show the blocking thresholds
  deploygate serve --port 8080             Run the HTTP service
        """
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    check_parser = subparsers.add_parser("check", help="Check a contract without deploying")
    check_parser.add_argument("file", help="Solidity source file")

    subparsers.add_parser("thresholds", help="Show the threshold policy")

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP service")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8000)

    args = parser.parse_args(argv)

    if args.command == "check":
        return cmd_check(args)
    elif args.command == "thresholds":
        return cmd_thresholds(args)
    elif args.command == "serve":
        return cmd_serve(args)
    parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
