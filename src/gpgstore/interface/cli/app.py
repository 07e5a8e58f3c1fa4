from __future__ import annotations

"""
Command Line Interface (CLI) Application Controller.

Orchestrates the CLI lifecycle: logging bootstrap, settings resolution
(persistent file plus command-line overrides), store indexing, and the
interactive side of the entry workflow (passphrase and recipient
prompts). Acts as the reference front end for the core services.
"""

import getpass
import json
import sys
from typing import Any, Dict, List, Optional

from gpgstore.core.services.entry_workflow import EntryWorkflow
from gpgstore.core.services.indexer import build_index, resolve_entry, search_entries
from gpgstore.core.services.tree_renderer import index_to_dict, render_index_tree
from gpgstore.core.services.vcs_sync import SyncResult, commit_changes, sync_store
from gpgstore.domain.config import load_settings, resolve_store_path, update_settings
from gpgstore.domain.errors import RootUnreadableError
from gpgstore.domain.store_models import StoreIndex
from gpgstore.domain.workflow_models import ResultStatus, WorkflowResult
from gpgstore.infra.gpg import GpgRunner
from gpgstore.infra.logging import LoggingConfig, configure_logging, get_logger
from gpgstore.interface.cli import args as cli_args
from gpgstore.utils.i18n import i18n

logger = get_logger(__name__)

EXIT_OK = 0
EXIT_FAILURE = 1
EXIT_BAD_STORE = 2
EXIT_INTERRUPTED = 130

# -----------------------------------------------------------------------------
# ENTRYPOINT ORCHESTRATOR
# -----------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> int:
    """
    Execute the CLI.

    Args:
        argv: Command line arguments. Defaults to sys.argv.

    Returns:
        int: Process exit code.
    """
    parser = cli_args.build_parser()
    args = parser.parse_args(argv)

    configure_logging(LoggingConfig.for_cli(args.debug))

    settings = load_settings()
    settings.update(cli_args.args_to_overrides(args))

    try:
        if args.command == "config":
            return _cmd_config(args, settings)

        root = resolve_store_path(settings)
        logger.debug(f"Running '{args.command}' against store: {root}")
        if args.command == "commit":
            return _report_sync(commit_changes(root))
        if args.command == "sync":
            return _report_sync(sync_store(root))

        try:
            index = build_index(root)
        except RootUnreadableError as e:
            msg = i18n.t("cli.errors.store_unreadable", error=str(e))
            print(f"ERROR: {msg}", file=sys.stderr)
            return EXIT_BAD_STORE

        if args.command == "list":
            return _cmd_list(args, index)
        if args.command == "search":
            return _cmd_search(args, index)
        if args.command == "show":
            return _cmd_show(args, settings, index)
        if args.command == "edit":
            return _cmd_edit(args, settings, index)

    except KeyboardInterrupt:
        print(i18n.t("cli.status.interrupted"), file=sys.stderr)
        return EXIT_INTERRUPTED

    parser.error(f"unknown command {args.command!r}")
    return EXIT_FAILURE

# -----------------------------------------------------------------------------
# BROWSING COMMANDS
# -----------------------------------------------------------------------------

def _cmd_list(args: Any, index: StoreIndex) -> int:
    if args.json_output:
        print(json.dumps(index_to_dict(index), ensure_ascii=False, indent=2))
        return EXIT_OK

    for line in render_index_tree(index):
        print(line)
    print(i18n.t(
        "cli.status.summary",
        entries=len(index.relative_entry_paths()),
        directories=len(index.contents_by_path),
    ))
    _print_diagnostics(index)
    return EXIT_OK


def _cmd_search(args: Any, index: StoreIndex) -> int:
    results = search_entries(index, args.query)
    if args.json_output:
        print(json.dumps(results, ensure_ascii=False, indent=2))
        return EXIT_OK
    if not results:
        print(i18n.t("cli.status.no_results", query=args.query), file=sys.stderr)
        return EXIT_FAILURE
    for rel in results:
        print(rel)
    return EXIT_OK


def _print_diagnostics(index: StoreIndex) -> None:
    for w in index.warnings:
        print(i18n.t("cli.status.skipped", path=w.rel_path, error=w.error), file=sys.stderr)
    for c in index.collisions:
        print(
            i18n.t("cli.status.collision", name=c.name, kept=c.kept_path, shadowed=c.shadowed_path),
            file=sys.stderr,
        )

# -----------------------------------------------------------------------------
# ENTRY WORKFLOW COMMANDS
# -----------------------------------------------------------------------------

def _cmd_show(args: Any, settings: Dict[str, Any], index: StoreIndex) -> int:
    path = _resolve_or_report(index, args.name)
    if not path:
        return EXIT_FAILURE

    with _open_workflow(path, settings) as wf:
        result = _decrypt_interactive(wf, args.name)
        if not result.ok:
            return _report_failure(result)
        sys.stdout.write(result.plaintext)
        if result.plaintext and not result.plaintext.endswith("\n"):
            sys.stdout.write("\n")
        wf.discard()
    return EXIT_OK


def _cmd_edit(args: Any, settings: Dict[str, Any], index: StoreIndex) -> int:
    path = _resolve_or_report(index, args.name)
    if not path:
        return EXIT_FAILURE

    with _open_workflow(path, settings) as wf:
        result = _decrypt_interactive(wf, args.name)
        if not result.ok:
            return _report_failure(result)

        try:
            new_content = _read_new_content(args.from_file)
        except OSError as e:
            print(f"ERROR: {i18n.t('cli.errors.read_input', error=str(e))}", file=sys.stderr)
            return EXIT_FAILURE

        result = wf.save(new_content)
        if result.status is ResultStatus.NEEDS_RECIPIENT:
            result = wf.provide_recipient(_prompt_recipient(result.default_recipient))

        if not result.ok:
            return _report_failure(result)

    print(i18n.t("cli.status.saved", name=args.name))
    return EXIT_OK


def _open_workflow(path: str, settings: Dict[str, Any]) -> EntryWorkflow:
    return EntryWorkflow(
        path,
        default_recipient=settings.get("default_recipient", ""),
        runner=_build_runner(settings),
        identity_markers=settings.get("identity_markers", []),
    )


def _build_runner(settings: Dict[str, Any]) -> GpgRunner:
    return GpgRunner(settings.get("gpg_binary", ""))


def _decrypt_interactive(wf: EntryWorkflow, name: str) -> WorkflowResult:
    result = wf.decrypt()
    if result.status is ResultStatus.NEEDS_PASSPHRASE:
        result = wf.provide_passphrase(_prompt_passphrase(name))
    return result


def _resolve_or_report(index: StoreIndex, name: str) -> str:
    path = resolve_entry(index, name)
    if not path:
        msg = i18n.t("cli.errors.entry_not_found", name=name, root=index.root_path)
        print(f"ERROR: {msg}", file=sys.stderr)
    return path


def _report_failure(result: WorkflowResult) -> int:
    if result.status is ResultStatus.ABANDONED:
        print(i18n.t("cli.status.abandoned"), file=sys.stderr)
        return EXIT_FAILURE
    kind = result.error_kind.value if result.error_kind else "Error"
    print(f"ERROR: {i18n.t('cli.errors.failed', kind=kind, diagnostic=result.diagnostic)}", file=sys.stderr)
    return EXIT_FAILURE

# -----------------------------------------------------------------------------
# PROMPTS AND INPUT
# -----------------------------------------------------------------------------

def _prompt_passphrase(name: str) -> str:
    """Ask for the passphrase on the terminal; EOF counts as declining."""
    try:
        return getpass.getpass(i18n.t("cli.prompts.passphrase", name=name))
    except EOFError:
        return ""


def _prompt_recipient(default: str) -> str:
    """
    Ask for a recipient with the default pre-filled.

    Pressing Enter, or having no interactive input at all, accepts the
    pre-filled default.
    """
    if default:
        prompt = i18n.t("cli.prompts.recipient", default=default)
    else:
        prompt = i18n.t("cli.prompts.recipient_no_default")
    try:
        answer = input(prompt).strip()
    except EOFError:
        answer = ""
    return answer or default


def _read_new_content(from_file: Optional[str]) -> str:
    if from_file:
        with open(from_file, "r", encoding="utf-8") as f:
            return f.read()
    return sys.stdin.read()

# -----------------------------------------------------------------------------
# VERSION CONTROL AND SETTINGS COMMANDS
# -----------------------------------------------------------------------------

def _report_sync(result: SyncResult) -> int:
    if result.ok:
        print(result.message)
        return EXIT_OK
    print(f"ERROR: {result.message}", file=sys.stderr)
    if result.diagnostic:
        print(result.diagnostic.rstrip(), file=sys.stderr)
    return EXIT_FAILURE


def _cmd_config(args: Any, settings: Dict[str, Any]) -> int:
    if args.assignments:
        try:
            updates = cli_args.parse_assignments(args.assignments)
        except ValueError as e:
            print(f"ERROR: {i18n.t('cli.errors.bad_setting', item=str(e))}", file=sys.stderr)
            return EXIT_FAILURE
        settings = update_settings(updates)
    print(json.dumps(settings, ensure_ascii=False, indent=2))
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
