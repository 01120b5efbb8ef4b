"""onelogin-aws: get temporary AWS credentials through OneLogin SAML with MFA.

Authenticates to OneLogin (including MFA), obtains the SAML assertion for the
configured AWS app, assumes the role it grants via STS and prints the
temporary credentials to stdout. Nothing is written to disk.
"""

import argparse
import logging
import sys
from dataclasses import replace

import structlog

from . import __version__
from .config import get_app_config, get_provider_config, load_config, validate_duration
from .credentials import CredentialExchanger
from .errors import ConfigError, CredentialFlowError
from .flow import get_credentials
from .terminal import ConsoleTerminal


def configure_logging(debug=False):
    """Send structured logs to stderr, keeping stdout for credentials."""
    level = logging.DEBUG if debug else logging.WARNING
    logging.basicConfig(stream=sys.stderr, level=level, format="%(message)s")
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.dev.ConsoleRenderer(),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )


def _build_parser():
    parser = argparse.ArgumentParser(
        prog="onelogin-aws",
        description="Get temporary AWS credentials through OneLogin SAML with MFA support.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  onelogin-aws dev                       Print credentials for app 'dev' as JSON
  onelogin-aws dev --output env          Print shell export lines
  eval "$(onelogin-aws dev -o env)"      Load credentials into the current shell
  onelogin-aws dev --duration 28800      Ask for an 8 hour session
""",
    )
    parser.add_argument("app", help="Name of an [app <name>] section in the config file")
    parser.add_argument("--config", help="Path to config file (default: ~/.onelogin-aws)")
    parser.add_argument("--username", help="OneLogin username (overrides config)")
    parser.add_argument("--duration", type=int, help="Session duration in seconds (default: app config, SAML or 3600)")
    parser.add_argument("--role-arn", help="Role to assume when the assertion grants several")
    parser.add_argument("--region", help="AWS region used for the STS call")
    parser.add_argument("-o", "--output", choices=("json", "env"), default="json",
                        help="Credential output format (default: json, credential_process style)")
    parser.add_argument("--debug", action="store_true", help="Print verbose debug logs")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def _resolve(args):
    """Load provider and app configuration, applying command-line overrides."""
    cfg = load_config(args.config)
    app = get_app_config(cfg, args.app)
    provider = get_provider_config(cfg, app.provider)

    if args.username:
        provider = replace(provider, username=args.username)
    if args.duration is not None:
        validate_duration(args.duration)
    return provider, app


def main(argv=None):
    args = _build_parser().parse_args(argv)
    configure_logging(args.debug)
    terminal = ConsoleTerminal()

    try:
        provider, app = _resolve(args)
        credentials = get_credentials(
            provider,
            app,
            terminal,
            duration=args.duration,
            role_arn=args.role_arn,
            exchanger=CredentialExchanger(region=args.region),
        )
    except ConfigError as exc:
        terminal.echo(f"Configuration error: {exc}", style="red")
        return 1
    except CredentialFlowError as exc:
        terminal.echo(f"Failed to get credentials: {exc}", style="red")
        return 1

    if args.output == "env":
        print(credentials.to_env())
    else:
        print(credentials.to_credential_process())

    expiry = credentials.expiration.strftime("%Y-%m-%d %H:%M:%S %Z")
    terminal.echo(f"Credentials expire at {expiry}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
