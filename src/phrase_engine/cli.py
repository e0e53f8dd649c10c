import argparse
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

from rich import print as rprint

from .expander import expand_phrase
from .search import find_by_shortcut, rank_phrases
from .validation import validate_field_values


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity level."""
    log_level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def load_json(path: str) -> Any:
    with open(Path(path), "r") as f:
        return json.load(f)


def select_phrase(library: Dict[str, Any], ref: str) -> Optional[Dict[str, Any]]:
    """Find a phrase by id, falling back to its autotext shortcut."""
    phrases: List[Dict[str, Any]] = library.get("phrases", [])
    for phrase in phrases:
        if phrase.get("id") == ref:
            return phrase
    return find_by_shortcut(phrases, ref)


def render_note_markdown(results: Dict[str, Any]) -> str:
    """Expanded text first, then the bookkeeping a reviewer of the note needs."""
    lines = [f"# {results['phrase']}", "", results["content"], ""]
    sections = [
        ("Fields Used", [f"- {key}" for key in results["used_fields"]]),
        ("Calculated Values", [f"- {key}: {value}" for key, value in results["calculated_values"].items()]),
        ("Validation", [f"- {key}: {message}" for key, message in results["errors"].items()]),
    ]
    for title, items in sections:
        if items:
            lines += [f"## {title}", *items, ""]
    return "\n".join(lines)


def save_results(
    results: Dict[str, Any],
    output_format: Literal["json", "markdown"],
    output_file: str
) -> None:
    logger = logging.getLogger(__name__)
    output_path = Path(output_file)
    logger.info(f"Writing {output_format} note to {output_path}")

    with open(output_path, "w") as f:
        if output_format == "json":
            json.dump(results, f, indent=2)
        else:
            f.write(render_note_markdown(results))


def run_expand(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    logger = logging.getLogger(__name__)
    library = load_json(args.library)
    phrase = select_phrase(library, args.phrase)
    if phrase is None:
        parser.error(f"Phrase not found: {args.phrase}")

    fields = library.get("fields", {}).get(phrase.get("id", ""), [])
    values = load_json(args.values) if args.values else {}
    patient = load_json(args.patient) if args.patient else None
    logger.debug(f"Loaded {len(fields)} field definitions for {args.phrase}")

    logger.info("Validating field values")
    errors = validate_field_values(fields, values)
    for key, message in errors.items():
        logger.warning(f"{key}: {message}")

    logger.info(f"Expanding phrase {args.phrase}")
    expanded = expand_phrase(phrase, fields, values, patient)

    results = {
        "phrase": phrase.get("name") or args.phrase,
        "content": expanded.content,
        "used_fields": expanded.used_fields,
        "calculated_values": expanded.calculated_values,
        "errors": errors,
    }

    rprint(results)
    print("\n=== EXPANDED TEXT ===\n", expanded.content)

    if args.output_format and args.save_results:
        save_results(results, args.output_format, args.save_results)


def run_search(args: argparse.Namespace, parser: argparse.ArgumentParser) -> None:
    library = load_json(args.library)
    matches = rank_phrases(
        library.get("phrases", []), args.query, active_only=True, limit=args.limit
    )
    rprint([
        {
            "id": match.phrase.id,
            "name": match.phrase.name,
            "shortcut": match.phrase.shortcut,
            "score": match.score,
            "match": match.match_type,
        }
        for match in matches
    ])


def main() -> None:
    parser = argparse.ArgumentParser(description="Expand and search clinical phrases.")
    parser.add_argument(
        "--library",
        default=os.getenv("PHRASE_LIBRARY"),
        help="Phrase library JSON (default: $PHRASE_LIBRARY)"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose logging")
    commands = parser.add_subparsers(dest="command", required=True)

    expand = commands.add_parser("expand", help="Expand one phrase")
    expand.add_argument("--phrase", required=True, help="Phrase id or shortcut (e.g. .sob)")
    expand.add_argument("--values", help="JSON file of field values")
    expand.add_argument("--patient", help="JSON file with patient data")
    expand.add_argument(
        "--output-format",
        choices=["json", "markdown"],
        help="Format for saving results (json or markdown)"
    )
    expand.add_argument(
        "--save-results",
        help="Path to save the results file"
    )

    search = commands.add_parser("search", help="Rank phrases against a query")
    search.add_argument("--query", required=True, help="Search text")
    search.add_argument("--limit", type=int, default=10, help="Maximum results (default: 10)")

    args = parser.parse_args()
    if not args.library:
        parser.error("--library is required when PHRASE_LIBRARY is not set")

    setup_logging(args.verbose)

    try:
        if args.command == "expand":
            run_expand(args, parser)
        else:
            run_search(args, parser)
    except (OSError, json.JSONDecodeError) as exc:
        parser.error(f"Could not read input: {exc}")


if __name__ == "__main__":
    main()
