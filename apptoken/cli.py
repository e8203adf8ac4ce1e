"""
apptoken Command Line Interface.

Provides commands for generating application keys, issuing tokens, and
verifying or inspecting tokens.
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from apptoken import config
from apptoken.builder import TokenBuilder
from apptoken.codec import decode_record
from apptoken.exceptions import KeyFormatError, TokenError, TokenVerificationError
from apptoken.keys import TokenPrivateKey, generate_keypair
from apptoken.token import TokenKind
from apptoken.verifier import TokenVerifier

def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format='%(levelname)s: %(message)s'
    )


def cmd_init(args: argparse.Namespace) -> int:
    """Generate a new Ed25519 key pair for an application."""
    keypair = generate_keypair()
    private_key = keypair.private_key.encode()
    public_key = keypair.public_key.encode()

    if args.env:
        print(f"export {config.ENV_PRIVATE_KEY}='{private_key}'")
        print(f"export {config.ENV_PUBLIC_KEY}='{public_key}'")
    else:
        print("NEW APPLICATION KEY PAIR GENERATED\n")
        print("--- PRIVATE KEY (Keep Secret / Set as Env Var) ---")
        print(private_key)
        print("\n--- PUBLIC KEY (Share with verifiers) ---")
        print(public_key)

    return 0


def cmd_issue(args: argparse.Namespace) -> int:
    """Issue a signed token."""
    private_key = config.get_credential(config.ENV_PRIVATE_KEY, args.key)
    app_id = config.get_credential(config.ENV_APP_ID, args.app_id)

    if not private_key:
        print(f"Error: Missing private key. Set {config.ENV_PRIVATE_KEY} or use --key", file=sys.stderr)
        return 1

    if not app_id:
        print(f"Error: Missing application ID. Set {config.ENV_APP_ID} or use --app-id", file=sys.stderr)
        return 1

    kind = TokenKind.from_wire(args.kind)
    if kind is TokenKind.USER and not args.user_id:
        print("Error: User tokens require --user-id", file=sys.stderr)
        return 1
    if kind is not TokenKind.USER and args.user_id:
        print("Error: --user-id is only valid for user tokens", file=sys.stderr)
        return 1

    try:
        builder = TokenBuilder(app_id, TokenPrivateKey.from_encoded(private_key), ttl_seconds=args.ttl)
        token = builder.build(kind, args.user_id)
    except (TokenError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.header:
        print(f"Authorization: Bearer {token.render()}")
    else:
        print(token.render())
    return 0


def cmd_verify(args: argparse.Namespace) -> int:
    """Verify a token's signature, application and expiration."""
    public_key = config.get_credential(config.ENV_PUBLIC_KEY, args.key)
    if not public_key:
        print(f"Error: Missing public key. Set {config.ENV_PUBLIC_KEY} or use --key", file=sys.stderr)
        return 1

    try:
        verifier = TokenVerifier(public_key, app_id=args.app_id)
    except KeyFormatError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    try:
        token = verifier.verify_or_raise(args.token)
    except TokenVerificationError as e:
        if args.json:
            print(json.dumps({"valid": False, "reason": e.reason}))
        else:
            print(f"INVALID ({e.reason})")
        return 1

    if args.json:
        result = {
            "valid": True,
            "kind": token.kind.wire,
            "app": token.app_id,
            "exp": token.expiration_epoch,
            "uid": token.user_id,
        }
        print(json.dumps(result, indent=2))
    else:
        print("VALID")
        print(f"   Kind:       {token.kind.name}")
        print(f"   App:        {token.app_id}")
        if token.user_id is not None:
            print(f"   User:       {token.user_id}")
        print(f"   Expires:    {token.expiration.isoformat()}")
    return 0


def cmd_inspect(args: argparse.Namespace) -> int:
    """Decode a token's header and payload without verifying anything."""
    segments = args.token.split(".")
    if len(segments) != 3:
        print(f"Error: expected 3 segments, got {len(segments)}", file=sys.stderr)
        return 1

    try:
        header = decode_record(segments[0])
        payload = decode_record(segments[1])
    except TokenError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(json.dumps({"header": header, "payload": payload}, indent=2))
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='apptoken',
        description='Issue and verify Ed25519-signed application tokens'
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable verbose output')

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    # init command
    p_init = subparsers.add_parser('init', help='Generate a new application key pair')
    p_init.add_argument('--env', action='store_true', help='Output as environment variables')

    # issue command
    p_issue = subparsers.add_parser('issue', help='Issue a signed token')
    p_issue.add_argument('kind', choices=[k.wire for k in TokenKind], help='Token kind')
    p_issue.add_argument('--user-id', help='User ID (user tokens only)')
    p_issue.add_argument('--app-id', help='Application ID')
    p_issue.add_argument('--key', help='Private key (Base64)')
    p_issue.add_argument('--ttl', type=int, help='Token lifetime in seconds')
    p_issue.add_argument('--header', action='store_true', help='Output as an Authorization header')

    # verify command
    p_verify = subparsers.add_parser('verify', help='Verify a token')
    p_verify.add_argument('token', help='The token to verify')
    p_verify.add_argument('--key', help='Public key (Base64)')
    p_verify.add_argument('--app-id', help='Reject tokens issued for any other application')
    p_verify.add_argument('--json', action='store_true', help='Output as JSON')

    # inspect command
    p_inspect = subparsers.add_parser('inspect', help='Decode a token without verifying it')
    p_inspect.add_argument('token', help='The token to decode')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(args.verbose)

    if args.command == 'init':
        return cmd_init(args)
    elif args.command == 'issue':
        return cmd_issue(args)
    elif args.command == 'verify':
        return cmd_verify(args)
    elif args.command == 'inspect':
        return cmd_inspect(args)
    else:
        parser.print_help()
        return 0


if __name__ == '__main__':
    sys.exit(main())
