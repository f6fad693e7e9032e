"""fixloop CLI - Command-line interface for automated program repair.

This module provides the main CLI entrypoint for fixloop, allowing users
to repair a project from an error message or stack trace.
"""

import argparse
import logging
import sys
from pathlib import Path

from fixloop.core.config import get_config_value
from fixloop.core.engine import create_repair_engine
from fixloop.core.formatter import format_statistics
from fixloop.core.learning import StatisticsStore
from fixloop.workspace import CommandTestExecutor, LocalFileSystem

logger = logging.getLogger(__name__)

DEFAULT_STATS_FILE = ".fixloop-stats.json"


def main(argv=None):
    """Main CLI entrypoint for fixloop."""
    parser = argparse.ArgumentParser(
        prog="fixloop",
        description="fixloop - automated program repair from error signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Repair from a stack trace saved to a file
  fixloop repair --error-file trace.txt --root . --test-command "pytest -q -rf"

  # Repair from an inline error message, without tests (best-effort)
  fixloop repair "src/calc.py:12: ZeroDivisionError" --no-tests

  # Show learned statistics
  fixloop stats

Note:
  The command line has no template library, so the LLM is its only patch
  source: an OpenAI key is required and --no-llm is rejected.
  Set {'openai': {'api_key': 'sk-...'}} in config.json or OPENAI_API_KEY.
"""
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Repair command
    repair_parser = subparsers.add_parser(
        "repair",
        help="Repair the faults behind an error message"
    )
    repair_parser.add_argument(
        "error_text",
        nargs="?",
        help="Error message or stack trace (default: read --error-file or stdin)"
    )
    repair_parser.add_argument(
        "--error-file",
        help="File containing the error output"
    )
    repair_parser.add_argument(
        "--root",
        default=".",
        help="Project root that patches may touch (default: current directory)"
    )
    repair_parser.add_argument(
        "--test-command",
        default=None,
        help="Test command used to validate patches (default: from config.json or 'pytest -q -rf')"
    )
    repair_parser.add_argument(
        "--max-iterations",
        type=int,
        default=None,
        help="Maximum candidates validated per fault (default: from config.json or 5)"
    )
    repair_parser.add_argument(
        "--max-candidates",
        type=int,
        default=None,
        help="Maximum candidates kept per fault (default: from config.json or 10)"
    )
    repair_parser.add_argument(
        "--no-llm",
        action="store_true",
        help="Disable the LLM generator (rejected: the command line has no other patch source)"
    )
    repair_parser.add_argument(
        "--no-tests",
        action="store_true",
        help="Apply the best candidate without running tests"
    )
    repair_parser.add_argument(
        "--openai-model",
        help="OpenAI model to use (overrides config.json, e.g., gpt-4o-mini)"
    )
    stats_group = repair_parser.add_mutually_exclusive_group()
    stats_group.add_argument(
        "--stats-file",
        default=DEFAULT_STATS_FILE,
        help=f"Path to statistics file (default: {DEFAULT_STATS_FILE})"
    )
    stats_group.add_argument(
        "--no-stats",
        action="store_true",
        help="Do not load or save learned statistics"
    )
    repair_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Verbose output"
    )

    # Stats command
    stats_parser = subparsers.add_parser(
        "stats",
        help="Show learned repair statistics"
    )
    stats_parser.add_argument(
        "--stats-file",
        default=DEFAULT_STATS_FILE,
        help=f"Path to statistics file (default: {DEFAULT_STATS_FILE})"
    )

    args = parser.parse_args(argv)

    # Setup logging
    if getattr(args, "verbose", False):
        logging.basicConfig(level=logging.INFO, format='%(levelname)s: %(message)s')
    else:
        logging.basicConfig(level=logging.WARNING, format='%(levelname)s: %(message)s')

    # Handle commands
    if args.command == "repair":
        return cmd_repair(args)
    elif args.command == "stats":
        return cmd_stats(args)
    else:
        parser.print_help()
        return 1


def _read_error_text(args):
    if args.error_text:
        return args.error_text
    if args.error_file:
        return Path(args.error_file).read_text(encoding="utf-8")
    if not sys.stdin.isatty():
        return sys.stdin.read()
    return ""


def cmd_repair(args):
    """Handle repair command."""
    try:
        error_text = _read_error_text(args)
    except OSError as e:
        print(f"Error: Could not read error file: {e}", file=sys.stderr)
        return 1

    if not error_text.strip():
        print("Error: No error text given (pass it inline, via --error-file or stdin)", file=sys.stderr)
        return 1

    root = Path(args.root)
    if not root.is_dir():
        print(f"Error: Project root not found: {root}", file=sys.stderr)
        return 1

    overrides = {}
    if args.max_iterations is not None:
        overrides["max_iterations"] = args.max_iterations
    if args.max_candidates is not None:
        overrides["max_candidates"] = args.max_candidates
    if args.no_llm:
        overrides["use_llm"] = False
    if args.no_tests:
        overrides["validate_with_tests"] = False

    try:
        fs = LocalFileSystem(root)
        collaborators = {"file_reader": fs.read, "file_writer": fs.write}

        if not args.no_llm and args.openai_model:
            if get_config_value(["openai", "api_key"]):
                from fixloop.llm.adapter import LLMPatchGenerator
                collaborators["llm_generator"] = LLMPatchGenerator(model=args.openai_model)

        engine = create_repair_engine(config=overrides, **collaborators)

        if engine.llm_generator is None and engine.template_generator is None:
            reason = "--no-llm flag" if args.no_llm else "no OpenAI API key"
            print(f"Error: No patch source available ({reason}); the command line "
                  f"generates patches with the LLM only", file=sys.stderr)
            return 1
        if engine.llm_generator is not None:
            print(f"LLM generator: {engine.llm_generator.client.model}")

        if not args.no_tests:
            test_command = args.test_command or get_config_value(
                ["repair", "test_command"], default="pytest -q -rf"
            )
            runner = CommandTestExecutor(test_command, cwd=root)
            print(f"Running baseline tests: {test_command}")
            baseline = runner.capture_baseline()
            print(f"Baseline: {baseline.tests_failed} failing, {baseline.tests_passed} passing")
            engine.set_executors(test_executor=runner)

        store = None
        if not args.no_stats:
            store = StatisticsStore(args.stats_file)
            if store.load(engine.learning):
                stats = engine.get_statistics()
                print(f"Statistics: {args.stats_file} ({stats.total_faults} faults seen)")

        results = engine.repair(error_text)

        if store is not None:
            store.save(engine.learning)

        if not results:
            print("\n❌ No fault could be localized from the error text")
            return 1

        for result in results:
            print()
            print(engine.format_result(result))

        repaired = sum(1 for r in results if r.success)
        print(f"\nRepaired {repaired}/{len(results)} faults")
        return 0 if repaired == len(results) else 1

    except Exception as e:
        print(f"Error: {e}", file=sys.stderr)
        logger.exception("Repair failed")
        return 1


def cmd_stats(args):
    """Handle stats command."""
    from fixloop.core.learning import LearningTracker

    tracker = LearningTracker()
    store = StatisticsStore(args.stats_file)
    if not store.load(tracker):
        print(f"No statistics found at {args.stats_file}")
        return 0

    print(format_statistics(tracker.statistics()))
    return 0


if __name__ == "__main__":
    sys.exit(main())
