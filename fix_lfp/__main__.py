#!/usr/bin/env python3
"""
Long File Path Fixer - CLI Entry Point
======================================

Finds entries whose absolute path is too long for OneDrive and optionally
moves them to ~/LFP, keeping their relative paths.

Usage:
    python -m fix_lfp -t "/path/to/scan"            # scan only (dry run)
    python -m fix_lfp -t "/path/to/scan" --move     # move files to ~/LFP
"""

import argparse
import sys
from datetime import datetime
from pathlib import Path

from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn

from .config import (
    LENGTH_UNITS,
    DEFAULT_LENGTH_UNIT,
    get_base_delay,
    get_max_retries,
    get_relocation_root,
    get_threshold,
    validate_retry_settings,
)
from .errors import InvalidTarget
from .executor import MoveOutcome, relocate_all, validate_relocation_root
from .ordering import order_deepest_first, violates_ordering
from .report import ReportWriter, RunLog, default_log_path, default_report_path
from .scanner import filter_long_paths, read_listing, scan_tree, validate_target, write_listing
from .session import RunSession
from .utils import console, print_error, print_header, print_success, print_summary_table, print_warning, save_json


def cmd_run(args) -> int:
    """Scan the target, write the report, then move or preview."""
    try:
        target = validate_target(args.target)
        relocation_root = Path(args.dest).expanduser().absolute() if args.dest else get_relocation_root()
        validate_relocation_root(target, str(relocation_root))
        threshold = args.threshold if args.threshold is not None else get_threshold()
        max_retries = args.max_retries if args.max_retries is not None else get_max_retries()
        base_delay = get_base_delay()
        validate_retry_settings(max_retries, base_delay)
        if threshold < 1:
            raise ValueError(f"threshold must be at least 1, got {threshold}")
    except (InvalidTarget, ValueError) as e:
        print_error(str(e))
        return 1

    now = datetime.now()
    report_path = args.report_out or default_report_path(now)
    log_path = args.log_out or default_log_path(now)

    mode_str = "MOVE (destroys source!)" if args.move else "SCAN ONLY (dry run)"
    print_header(
        "Long File Path Fixer",
        f"Target: {target}\nMode:   {mode_str}\nDate:   {now:%c}",
    )

    try:
        run_log = RunLog(log_path)
    except OSError as e:
        print_error(f"Cannot write log file {log_path}: {e}")
        return 1
    run_log.write(f"Target: {target} (threshold {threshold} {args.length_unit}, move={args.move})")

    with RunSession(keep_awake=not args.no_keep_awake) as session:
        try:
            # Step 1: Scan
            console.print("\n[bold cyan]--- Phase 1: Scanning ---[/bold cyan]")
            denied = []

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                TimeElapsedColumn(),
                console=console
            ) as progress:
                task_id = progress.add_task("Scanning...", total=None)

                def progress_cb(count, path):
                    short_path = str(path)
                    if len(short_path) > 40:
                        short_path = "..." + short_path[-37:]
                    progress.update(task_id, description=f"Scanning: {count} entries... {short_path}")

                scanned = write_listing(
                    scan_tree(target, on_error=denied.append, unit=args.length_unit, progress_callback=progress_cb),
                    session.listing,
                )

            # Step 2: Filter and record, before anything is touched
            writer = ReportWriter(report_path)
            matched = writer.write_all(
                filter_long_paths(read_listing(session.listing, args.length_unit), threshold)
            )

            console.print("Scan Complete.")
            print(f"[INFO] Scanned {scanned} entries")
            console.print(f"Found {len(matched)} entries exceeding {threshold} {args.length_unit}.")
            console.print(f"Report saved to: {report_path}")
            run_log.write(f"Scanned {scanned} entries, matched {len(matched)}")
            run_log.write(f"Report: {report_path}")

            if denied:
                print_warning(f"{len(denied)} folder(s) could not be read and were skipped")
                for err in denied:
                    run_log.write(f"Skipped unreadable: {err}")

            if not matched:
                console.print("No long paths found. Exiting.")
                run_log.write("Nothing to do")
                return 0

            # Step 3: Order deepest-first
            ordered = order_deepest_first(matched)
            violation = violates_ordering(ordered)
            if violation is not None:
                print_error(f"Unsafe move order: {violation[0].path} before {violation[1].path}")
                return 1

            # Step 4: Move (or preview)
            if args.move:
                console.print("\n[bold cyan]--- Phase 2: Moving Files ---[/bold cyan]")
            report = relocate_all(
                ordered,
                target,
                str(relocation_root),
                dry_run=not args.move,
                max_retries=max_retries,
                base_delay=base_delay,
            )
            summary = report.to_dict()
            print_summary_table(summary)
            run_log.write(
                f"Relocation: {report.moved_count} moved, {report.skipped_count} skipped, "
                f"{report.failed_count} failed, interrupted={report.interrupted}"
            )
            for r in report.results:
                if r.outcome is MoveOutcome.FAILED:
                    run_log.write(f"Failed: {r.detail}")

            if args.summary_out:
                save_json(summary, args.summary_out)

            if report.interrupted:
                print("\n[ABORT] Operation cancelled by user")
                return 130

            if args.move:
                print_success("Move Complete.")
            else:
                console.print("\n--- Dry Run Complete ---")
                print_warning("This was a DRY-RUN. No files were actually moved.")
                console.print("       To move these files, run the command again with --move")
            return 0

        except KeyboardInterrupt:
            print("\n[ABORT] Operation cancelled by user")
            run_log.write("Interrupted")
            return 130


# =============================================================================
# Main
# =============================================================================

def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="fix-lfp",
        description="Find paths too long for OneDrive and optionally move them to ~/LFP",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="Default behavior is SCAN ONLY (dry run).",
    )
    parser.add_argument("-t", "--target", type=str, required=True,
                        help="Target folder to scan (required)")
    parser.add_argument("-m", "--move", action="store_true",
                        help="Move files to the relocation root (destroys source!)")
    parser.add_argument("--threshold", type=int, default=None, metavar="N",
                        help="Maximum allowed path length (default: 376, env LFP_THRESHOLD)")
    parser.add_argument("--length-unit", choices=LENGTH_UNITS, default=DEFAULT_LENGTH_UNIT,
                        help="How path length is measured (default: chars)")
    parser.add_argument("--dest", type=str, default=None, metavar="DIR",
                        help="Relocation root (default: ~/LFP, env LFP_RELOCATION_ROOT)")
    parser.add_argument("--max-retries", type=int, default=None, metavar="N",
                        help="Copy attempts per file (default: 5, env LFP_MAX_RETRIES)")
    parser.add_argument("--report-out", type=Path, default=None,
                        help="Report file (default: ~/Desktop/LFP_Report-<date>.csv)")
    parser.add_argument("--log-out", type=Path, default=None,
                        help="Run log file (default: /var/log/onedrive-findlogs/...)")
    parser.add_argument("--summary-out", type=Path, default=None,
                        help="Write a JSON summary of the run")
    parser.add_argument("--no-keep-awake", action="store_true",
                        help="Do not prevent the machine from sleeping")

    args = parser.parse_args(argv)
    return cmd_run(args)


if __name__ == "__main__":
    sys.exit(main())
