import argparse
import asyncio
import logging
import sys

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from auditchain import config
from auditchain.__version__ import __version__
from auditchain.core.registry import enrich_latest_versions
from auditchain.core.report import analyze_vulnerabilities, minimal_upgrade_summary, write_csv
from auditchain.core.resolver import resolve
from auditchain.managers import ManagerError, NpmManager, detect_manager

console = Console(log_time=False, log_path=False)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="auditchain",
        description="Map npm audit findings to the dependency chains that pull them in.",
    )
    parser.add_argument(
        "--audit",
        dest="audit_file",
        help="npm audit --json output. Runs npm audit in --project when omitted",
    )
    parser.add_argument(
        "--tree",
        dest="tree_file",
        help="npm ls --all --json output. Runs npm ls in --project when omitted",
    )
    parser.add_argument(
        "--project",
        default=".",
        dest="project_dir",
        help="npm project directory used when a document has to be generated",
    )
    parser.add_argument(
        "--csv",
        dest="csv_file",
        help="Write the table as CSV to this path",
    )
    parser.add_argument(
        "--no-latest",
        action="store_false",
        default=True,
        dest="latest",
        help="Skip the npm registry lookup of latest versions",
    )
    parser.add_argument(
        "--summary",
        action="store_true",
        default=False,
        help="Also print the per-package analysis",
    )
    parser.add_argument(
        "--tui",
        action="store_true",
        default=False,
        help="Open the interactive view",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        default=False,
        help="Debug logging",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def load_documents(args):
    """Reads the given documents; anything missing is produced by npm in the project dir."""
    manager = None
    if not (args.audit_file and args.tree_file):
        manager = detect_manager(args.project_dir)
        if not manager:
            raise ManagerError(f"No supported project found in {args.project_dir}.")
        logging.info(f"Manager: {manager.name}")

    report = NpmManager.read_json(args.audit_file) if args.audit_file else manager.get_audit_report()
    tree = NpmManager.read_json(args.tree_file) if args.tree_file else manager.get_dependency_tree()
    return report, tree


def print_table(rows, include_latest):
    table = Table(box=box.DOUBLE_EDGE, show_lines=True, title="Vulnerable Dependencies")
    columns = ["Vulnerable Package", "Version", "Parent Chain", "Severity", "Advisory URL"]
    if include_latest:
        columns.append("Latest Version")
    for c in columns:
        table.add_column(header=c, vertical="top")

    for row in rows:
        values = [row.package, row.version, row.chain_label, row.severity, row.advisory_url]
        if include_latest:
            values.append(row.latest_version)
        table.add_row(*(escape(v) for v in values))
    console.print(table)


def main(argv=None):
    """ Entrypoint when is installed via pip """
    args = build_parser().parse_args(argv)
    level = logging.DEBUG if args.verbose else logging.INFO

    if args.tui:
        from auditchain.app import AuditApp, configure_file_logging
        configure_file_logging(level)
    else:
        logging.basicConfig(
            level=level,
            format="%(message)s",
            handlers=[RichHandler(console=console, show_path=False)],
        )

    try:
        report, tree = load_documents(args)
    except ManagerError as e:
        logging.error(str(e))
        return 2

    resolution = resolve(report, tree)

    if args.tui:
        AuditApp(resolution, enrich=args.latest, csv_path=args.csv_file or config.CSV_FILE).run()
        return 0

    if not resolution.vulnerable:
        console.print("No vulnerable packages found in audit JSON.")
    else:
        logging.info(f"Vulnerable packages found: {', '.join(resolution.vulnerable)}")
        if args.latest and resolution.rows:
            asyncio.run(enrich_latest_versions(resolution.rows))
        print_table(resolution.rows, args.latest)
        console.print(minimal_upgrade_summary(resolution.groups), markup=False)
        if args.summary:
            console.print()
            console.print(analyze_vulnerabilities(resolution.rows), markup=False)

    if args.csv_file:
        try:
            write_csv(resolution.rows, args.csv_file, include_latest=args.latest)
        except OSError as e:
            logging.error(f"Error writing {args.csv_file}: {e}")
            return 2
    return 0


# Development mode
if __name__ == "__main__":
    sys.exit(main())
