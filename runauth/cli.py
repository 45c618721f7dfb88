#!/usr/bin/env python3

import sys
import logging

from runauth.cli_parser import init_cli_parser
from runauth.config import load_sending_config, listen_port
from runauth.errors import ConfigError
from runauth import receiving, sending

log = logging.getLogger(__name__)


def main(argv=None):
    parser = init_cli_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG,
                            format="%(asctime)s %(levelname)s -- %(message)s")
    elif args.quiet:
        logging.basicConfig(level=logging.CRITICAL, format="%(message)s")
    else:
        logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")

    handle_command(args.command, args)


def handle_command(command, args):
    if command == "receiving":
        run_receiving(args)

    elif command == "sending":
        run_sending(args)


def resolve_port(args):
    try:
        return listen_port(args.port)
    except ConfigError as e:
        log.critical(e)
        sys.exit(1)


def run_receiving(args):
    app = receiving.create_app()
    port = resolve_port(args)
    log.info(f"Receiving service listening on {args.host}:{port}")
    app.run(host=args.host, port=port, threaded=True)


def run_sending(args):
    try:
        config = load_sending_config(args.config, use_id_token=args.use_id_token)
    except ConfigError as e:
        log.critical(e)
        sys.exit(1)

    app = sending.create_app(config)
    port = resolve_port(args)
    log.info(f"Sending service listening on {args.host}:{port}, calling {config.receiving_service_url}"
             f" (identity token: {'on' if config.use_id_token else 'off'},"
             f" timeout: {config.timeout}s)")
    app.run(host=args.host, port=port, threaded=True)


if __name__ == "__main__":
    main()
