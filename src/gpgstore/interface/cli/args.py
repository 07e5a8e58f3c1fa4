from __future__ import annotations

"""
CLI Argument Definition and Mapping.

Defines the command-line schema (global options plus one subcommand per
store operation) and translates parsed namespaces into settings
overrides.
"""

import argparse
from typing import Any, Dict, List, Optional

from gpgstore.utils.i18n import i18n

# -----------------------------------------------------------------------------
# ARGUMENT DEFINITION
# -----------------------------------------------------------------------------

def build_parser() -> argparse.ArgumentParser:
    """
    Construct the argument parser for the gpgstore CLI.

    Returns:
        argparse.ArgumentParser: Configured parser instance.
    """
    p = argparse.ArgumentParser(
        prog="gpgstore",
        description=i18n.t("app.description"),
    )

    # --- Global options ---
    p.add_argument(
        "-s", "--store",
        dest="store_path",
        default=None,
        help=i18n.t("cli.args.store"),
    )
    p.add_argument(
        "-r", "--recipient",
        dest="default_recipient",
        default=None,
        help=i18n.t("cli.args.recipient"),
    )
    p.add_argument(
        "--debug",
        action="store_true",
        help=i18n.t("cli.args.debug"),
    )

    sub = p.add_subparsers(dest="command", metavar="COMMAND")
    sub.required = True

    # --- Browsing ---
    ls = sub.add_parser("list", help=i18n.t("cli.args.list"))
    ls.add_argument("--json", dest="json_output", action="store_true", help=i18n.t("cli.args.json"))

    search = sub.add_parser("search", help=i18n.t("cli.args.search"))
    search.add_argument("query")
    search.add_argument("--json", dest="json_output", action="store_true", help=i18n.t("cli.args.json"))

    # --- Entry workflow ---
    show = sub.add_parser("show", help=i18n.t("cli.args.show"))
    show.add_argument("name")

    edit = sub.add_parser("edit", help=i18n.t("cli.args.edit"))
    edit.add_argument("name")
    edit.add_argument("--from-file", dest="from_file", default=None, help=i18n.t("cli.args.from_file"))

    # --- Version control ---
    sub.add_parser("commit", help=i18n.t("cli.args.commit"))
    sub.add_parser("sync", help=i18n.t("cli.args.sync"))

    # --- Settings ---
    config = sub.add_parser("config", help=i18n.t("cli.args.config"))
    config.add_argument(
        "--set",
        dest="assignments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help=i18n.t("cli.args.set"),
    )

    return p

# -----------------------------------------------------------------------------
# ARGUMENT MAPPING
# -----------------------------------------------------------------------------

def args_to_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """
    Translate global options into per-run settings overrides.

    Only options the user actually passed are included.
    """
    overrides: Dict[str, Any] = {}
    if args.store_path is not None:
        overrides["password_store_path"] = args.store_path
    if args.default_recipient is not None:
        overrides["default_recipient"] = args.default_recipient
    return overrides


def parse_assignments(items: Optional[List[str]]) -> Dict[str, str]:
    """
    Parse repeated KEY=VALUE options.

    Raises:
        ValueError: On an item without '=' or with an empty key.
    """
    out: Dict[str, str] = {}
    for item in items or []:
        key, sep, value = item.partition("=")
        key = key.strip()
        if not sep or not key:
            raise ValueError(item)
        out[key] = value.strip()
    return out
