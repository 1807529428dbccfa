#!/usr/bin/env python3
"""
Import checklist CSV files as templates.

Each file becomes one inactive template named after the file (or --name).
Rows with unknown field types are skipped and listed. Templates without
validation errors can be activated with --activate.

Usage:
    python scripts/import_checklist_csv.py checklists/epi.csv
    python scripts/import_checklist_csv.py checklists/*.csv --folder <folder_id>
    python scripts/import_checklist_csv.py epi.csv --dry-run --verbose
"""

import argparse
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from checklist_engine.core.config import settings
from checklist_engine.core.csv_codec import decode_fields
from checklist_engine.core.errors import TemplateEngineError
from checklist_engine.core.field_validation import count_by_severity, has_errors, validate_fields
from checklist_engine.core.logging import setup_logging
from checklist_engine.db.repository import SqlAlchemyTemplateRepository
from checklist_engine.db.session import SessionLocal
from checklist_engine.services.template_service import TemplateService


def _print_issues(path: Path, decode_issues, issues, verbose: bool) -> None:
    for d in decode_issues:
        print(f"  ! {path.name}: {d.message}")
    if verbose:
        for i in issues:
            print(f"  - [{i.severity.value}] {i.message}")


def check_file(path: Path, *, quoted_fields: bool, verbose: bool) -> bool:
    """Decode and validate without touching the database. True if importable."""
    decoded = decode_fields(path.read_text(encoding="utf-8"), quoted_fields=quoted_fields)
    if decoded.failed:
        print(f"✗ {path.name}: {decoded.issues[0].message}")
        return False

    issues = validate_fields(decoded.fields, max_name_length=settings.MAX_FIELD_NAME_LENGTH)
    counts = count_by_severity(issues)
    print(f"✓ {path.name}: {len(decoded.fields)} fields, {counts['error']} errors, {counts['warning']} warnings")
    _print_issues(path, decoded.issues, issues, verbose)
    return True


def run_import(
    paths: list[Path],
    *,
    name: str | None,
    category: str,
    folder_id: str | None,
    quoted_fields: bool,
    activate: bool,
    verbose: bool,
) -> dict:
    summary = {"imported": 0, "activated": 0, "failed": 0}

    db = SessionLocal()
    try:
        service = TemplateService(SqlAlchemyTemplateRepository(db))
        for path in paths:
            try:
                result = service.import_from_csv(
                    name or path.stem,
                    category,
                    path.read_text(encoding="utf-8"),
                    parent_folder_id=folder_id,
                    quoted_fields=quoted_fields,
                )
            except TemplateEngineError as e:
                db.rollback()
                summary["failed"] += 1
                print(f"✗ {path.name}: {e.message}")
                continue

            template = result.template
            summary["imported"] += 1
            print(f"✓ {path.name} -> {template.id} ({len(template.fields)} fields)")
            _print_issues(path, result.decode_issues, result.issues, verbose)

            if activate and not has_errors(result.issues):
                service.activate_template(template.id)
                summary["activated"] += 1

            db.commit()
    finally:
        db.close()

    return summary


def main():
    parser = argparse.ArgumentParser(description="Import checklist CSV files as templates")
    parser.add_argument("files", nargs="+", type=Path, help="CSV files (campo,tipo,obrigatorio,opcoes,descricao)")
    parser.add_argument("--name", help="Template name (default: file name; single file only)")
    parser.add_argument("--category", default="geral", help="Template category (default: geral)")
    parser.add_argument("--folder", dest="folder_id", help="Target folder id (default: root)")
    parser.add_argument(
        "--quoted",
        action="store_true",
        default=settings.CSV_QUOTED_FIELDS,
        help="Quote-aware parsing (values may contain commas)",
    )
    parser.add_argument("--activate", action="store_true", help="Activate templates without errors")
    parser.add_argument("--dry-run", action="store_true", help="Validate files without importing")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    setup_logging("DEBUG" if args.verbose else settings.LOG_LEVEL)

    missing = [p for p in args.files if not p.exists()]
    if missing:
        print(f"❌ Error: file not found: {', '.join(str(p) for p in missing)}")
        sys.exit(1)
    if args.name and len(args.files) > 1:
        print("❌ Error: --name only works with a single file")
        sys.exit(1)

    if args.dry_run:
        ok = [check_file(p, quoted_fields=args.quoted, verbose=args.verbose) for p in args.files]
        sys.exit(0 if all(ok) else 1)

    summary = run_import(
        args.files,
        name=args.name,
        category=args.category,
        folder_id=args.folder_id,
        quoted_fields=args.quoted,
        activate=args.activate,
        verbose=args.verbose,
    )

    print("\n=== Import Summary ===")
    print(f"Imported:  {summary['imported']}")
    print(f"Activated: {summary['activated']}")
    print(f"Failed:    {summary['failed']}")
    sys.exit(1 if summary["failed"] else 0)


if __name__ == "__main__":
    main()
