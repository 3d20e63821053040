from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .doctor import collect_checks
from .external import ExternalCommandError, cmd_to_str
from .models import SUPPORTED_PRESETS, AlignmentSettings
from .naming import plan_outputs
from .nanopore import align_reads_to_reference, check_dependencies
from .report import render_report
from .resolve import READS, REFERENCE, normalize_folder, preview_folder, require_value, resolve_input_file
from .stats import alignment_stats, format_stats
from .utils import write_json


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    if isinstance(err, ExternalCommandError):
        msg = str(err)
    else:
        msg = f"{err.__class__.__name__}: {err}"

    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    # Input/environment problems are 1; a failed external tool is 2.
    return 2 if isinstance(err, ExternalCommandError) else 1


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Not an integer: {value}") from None
    if n < 1:
        raise argparse.ArgumentTypeError(f"Must be >= 1: {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ontalign",
        description=(
            "ontalign: align Oxford Nanopore reads to a reference (e.g. a plasmid) with "
            "minimap2 and produce a sorted, indexed BAM with samtools."
        ),
    )
    p.add_argument("--version", action="version", version=f"ontalign {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # run
    # -----------------
    r = sub.add_parser(
        "run",
        help="Find the reference/reads in a folder (prompting for anything not given) and align.",
    )
    r.add_argument("--folder", help="Folder holding the reference and the ONT reads.")
    r.add_argument("--ref", help="Reference name, with or without extension (e.g. plasmid or plasmid.fa).")
    r.add_argument(
        "--reads",
        help="ONT reads name, with or without extension (e.g. sample1 or sample1.fastq.gz).",
    )
    r.add_argument(
        "--preset",
        default="map-ont",
        choices=sorted(SUPPORTED_PRESETS),
        help="Minimap2 preset (default: map-ont; lr:hq for Q20+ reads).",
    )
    r.add_argument("--threads", type=_positive_int, default=None, help="Threads for minimap2/samtools.")
    r.add_argument("--sort-mem", default=None, help="samtools sort -m (memory per thread, e.g. 2G).")
    r.add_argument("-y", "--yes", action="store_true", help="Do not ask for confirmation.")
    r.add_argument(
        "--dry-run",
        action="store_true",
        help="Resolve inputs and print the planned commands without executing.",
    )
    r.add_argument("--report", default=None, help="Also write an HTML report to this path.")
    r.add_argument("--summary-json", default=None, help="Also write a JSON run summary to this path.")
    r.add_argument("--log-file", default=None, help="Also write log messages to this file.")
    r.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    # -----------------
    # doctor
    # -----------------
    d = sub.add_parser(
        "doctor",
        help="Check your environment for required external tools (minimap2/samtools).",
    )
    d.add_argument("--dry-run", action="store_true", help="Print checks without exiting nonzero.")
    d.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def _prompt(prompt: str) -> str:
    try:
        return input(f"{prompt}: ").strip()
    except EOFError:
        return ""


def _print_command_list(cmds: Sequence[Sequence[str]]) -> None:
    for cmd in cmds:
        print("  " + cmd_to_str(cmd))


def cmd_run(args: argparse.Namespace) -> int:
    log_path = Path(args.log_file).expanduser().resolve() if args.log_file else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("ontalign")
    logger.info("ontalign %s", __version__)

    try:
        settings = AlignmentSettings(preset=args.preset, threads=args.threads, sort_mem=args.sort_mem)

        print("=== Nanopore -> reference alignment helper ===")
        print()

        raw_folder = args.folder
        if raw_folder is None:
            raw_folder = _prompt("Paste the folder where ref and ONT files are stored")
        folder = normalize_folder(raw_folder)

        print()
        print(f"Folder set to: {folder}")
        print("Files in folder (preview):")
        shown, hidden = preview_folder(folder)
        for name in shown:
            print("  " + name)
        if hidden:
            print(f"  ... ({hidden} more)")
        print()

        ref_input = args.ref
        if ref_input is None:
            ref_input = _prompt("Paste the reference name (with or without extension, e.g. plasmid or plasmid.fa)")
        require_value(ref_input.strip(), "Reference name")

        reads_input = args.reads
        if reads_input is None:
            reads_input = _prompt(
                "Paste the ONT reads name (with or without extension, e.g. sample1 or sample1.fastq.gz)"
            )
        require_value(reads_input.strip(), "ONT reads name")

        reference = resolve_input_file(folder, ref_input, REFERENCE)
        reads = resolve_input_file(folder, reads_input, READS)

        check_dependencies()

        plan = plan_outputs(folder, reference, reads)

        print()
        print("Resolved files:")
        print(f"  Reference: {reference}")
        print(f"  Reads:     {reads}")
        print()
        print("Planned outputs:")
        print(f"  SAM : {plan.sam}")
        print(f"  BAM : {plan.bam}")
        print(f"  BAI : {plan.bai}")
        print()

        if args.dry_run:
            summary = align_reads_to_reference(
                reference=reference, reads=reads, plan=plan, settings=settings, dry_run=True
            )
            print("Dry-run: planned commands:")
            _print_command_list(
                [
                    summary["cmd_minimap2"],
                    ["tee", str(plan.sam)],
                    summary["cmd_samtools_view"],
                    summary["cmd_samtools_sort"],
                    summary["cmd_samtools_index"],
                ]
            )
            return 0

        if not args.yes:
            confirm = _prompt("Proceed with alignment? [y/N]")
            if confirm.lower() != "y":
                print("Aborted by user.")
                return 0

        print()
        print("Running minimap2 + samtools...")
        print()

        summary = align_reads_to_reference(reference=reference, reads=reads, plan=plan, settings=settings)

        stats = None
        try:
            stats = alignment_stats(plan.bam)
        except (OSError, ValueError) as e:
            logger.warning("Could not read alignment statistics from %s: %s", plan.bam, e)

        if stats is not None:
            summary["stats"] = stats
        if args.report:
            render_report(out_path=Path(args.report).expanduser(), version=__version__, summary=summary, stats=stats)
        if args.summary_json:
            write_json(Path(args.summary_json).expanduser(), summary)

        print()
        print("Done.")
        print(f"  SAM : {plan.sam}")
        print(f"  BAM : {plan.bam}")
        print(f"  BAI : {plan.bai}")
        if stats is not None:
            print()
            print(format_stats(stats))
        print()
        return 0
    except KeyboardInterrupt:
        sys.stderr.write("Interrupted by user.\n")
        return 130
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def cmd_doctor(args: argparse.Namespace) -> int:
    _setup_logging(args.verbose, logfile=None)

    checks = collect_checks()

    # Human-readable output
    lines = []
    ok_all = True
    for name in ["python", "pysam", "minimap2", "samtools"]:
        r = checks[name]
        status = "OK" if r.ok else "MISSING"
        lines.append(f"{name:9s} : {status:7s}  {r.detail}")
        if not r.ok:
            ok_all = False

    print("\n".join(lines))

    # Guidance
    for name in ["pysam", "minimap2", "samtools"]:
        r = checks[name]
        if not r.ok and r.howto:
            print("\n---")
            print(f"How to install/fix '{name}':")
            print(r.howto)

    if args.dry_run:
        return 0
    return 0 if ok_all else 1


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "run":
        return cmd_run(args)
    if args.cmd == "doctor":
        return cmd_doctor(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
