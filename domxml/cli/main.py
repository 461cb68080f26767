# SPDX-License-Identifier: LGPL-3.0-or-later
# -*- coding: utf-8 -*-
# domxml/cli/main.py
"""
`domxml` command: report the daemon version, list its domains, then print the
sample descriptor as domain XML.

stdout carries the report (tab separated); everything else goes to stderr.
"""
from __future__ import annotations

import argparse
import logging
import sys
import traceback
from contextlib import ExitStack
from typing import Iterable, Optional, Sequence, TextIO

from rich.console import Console

from ..connection.session import DomainSummary, HypervisorSession, connect
from ..core.exceptions import DomXmlError, Fatal, format_exception_for_cli
from ..core.logger import Log, c
from ..libvirt.codec import encode
from ..libvirt.sample import sample_descriptor
from .settings import Settings

SEPARATOR = "-" * 56

_EPILOG = """\
environment:
  DOMXML_URI               libvirt URI (default qemu+tcp://10.30.0.1/system)
  DOMXML_CONNECT_TIMEOUT   dial timeout in seconds (default 2)
  DOMXML_VERBOSE           0..3
  DOMXML_LOG_FILE          also write logs to this file
  DOMXML_JSON_LOGS         1 for NDJSON logs on stderr
"""


def build_parser() -> argparse.ArgumentParser:
    return argparse.ArgumentParser(
        prog="domxml",
        description=c("domxml: libvirt domain listing + sample domain XML", "green", ["bold"]),
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=_EPILOG,
    )


def write_listing(out: TextIO, domains: Iterable[DomainSummary]) -> None:
    """The domain table. Inactive domains have no id and show as '-'."""
    out.write("ID\tName\t\tUUID\n")
    out.write(SEPARATOR + "\n")
    for d in domains:
        dom_id = "-" if d.id is None else str(d.id)
        out.write(f"{dom_id}\t{d.name}\t{d.uuid_hex}\n")
    out.write(SEPARATOR + "\n")


def report(session: HypervisorSession, out: TextIO) -> None:
    out.write(f"Version: {session.version()}\n")
    write_listing(out, session.list_domains())

    out.write("Printing XML...\n")
    out.write(encode(sample_descriptor()).decode("utf-8"))
    out.flush()


def run(settings: Settings, logger: logging.Logger, out: Optional[TextIO] = None) -> int:
    out = out or sys.stdout
    log = Log.bind(logger, uri=settings.uri)
    console = Console(stderr=True)

    with ExitStack() as stack:
        with console.status(f"Connecting to {settings.uri} ...", spinner="dots"):
            session = stack.enter_context(connect(settings.uri, timeout_s=settings.connect_timeout_s, logger=logger))
        log.debug("Connected")
        report(session, out)
    Log.ok(logger, "Sample domain XML printed")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> None:
    build_parser().parse_args(argv)

    try:
        settings = Settings.from_env()
    except Fatal as e:
        print(f"💥 ERROR    {e}", file=sys.stderr)
        raise SystemExit(e.code)

    logger = Log.setup(
        verbose=settings.verbose,
        log_file=settings.log_file,
        color=sys.stderr.isatty(),
        json_logs=settings.json_logs,
    )

    try:
        rc = run(settings, logger)
    except DomXmlError as e:
        Log.fail(logger, format_exception_for_cli(e, verbose=settings.verbose))
        rc = e.code
    except KeyboardInterrupt:
        logger.warning("Interrupted by user (Ctrl+C).")
        rc = 130
    except Exception as e:
        logger.error("💥 UNHANDLED %s: %s", type(e).__name__, e)
        logger.debug(traceback.format_exc())
        rc = 1

    raise SystemExit(rc)


if __name__ == "__main__":
    main()
