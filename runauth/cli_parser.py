#!/usr/bin/env python3

import argparse

from runauth.version import description, version


def init_cli_parser():
    parser = argparse.ArgumentParser(prog="runauth", description=description)
    parser.add_argument("--version", action="version", version=version)
    subparser = parser.add_subparsers(dest="command", help="commands")

    receiving_parser = subparser.add_parser("receiving",
                                            help="Serve the receiving service greeting")

    sending_parser = subparser.add_parser("sending",
                                          help="Serve the sending service, calling RECEIVING_SERVICE_URL")
    sending_parser.add_argument("--config", "-c", type=str, metavar="FILE", default=None,
                                help="YAML config file, environment variables take precedence")
    sending_parser.add_argument("--no-id-token", dest="use_id_token", action="store_false",
                                default=None,
                                help="Call the receiving service without an identity token")

    add_server_flags([receiving_parser, sending_parser])
    add_verbose_quiet_flags([receiving_parser, sending_parser])

    return parser


def add_server_flags(parsers):
    for parser in parsers:
        parser.add_argument("--host", type=str, help="Listen address, default is 0.0.0.0",
                            default="0.0.0.0")
        parser.add_argument("--port", "-p", type=int,
                            help="Listen port, default is $PORT or 8080", default=None)


def add_verbose_quiet_flags(parsers):
    for parser in parsers:
        parser.add_argument("--verbose", "-v", help="Set verbose mode (debug)",
                            action="store_true",
                            default=False)
        parser.add_argument("--quiet", "-q", help="Set quiet mode (only critical output)",
                            action="store_true",
                            default=False)
