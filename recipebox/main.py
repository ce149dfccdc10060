import argparse
import logging
import sys

from sqlalchemy.orm import sessionmaker

from .bundle import dump_bundle, export_bundle, import_bundle, load_bundle
from .config import configure_logging
from .db import SessionLocal, create_db_engine, init_db
from .errors import RecipeBoxError
from .migrate import export_legacy, migrate_legacy, verify_store

logger = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(prog="recipebox")
    parser.add_argument("--database-url", help="override RECIPEBOX_DATABASE_URL")
    parser.add_argument("--log-level", default=None)
    parser.add_argument(
        "--timeout", type=float, help="seconds the import transaction may take"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("migrate", help="migrate the legacy store into the database")
    p.add_argument("--legacy", required=True, help="legacy store dump (JSON)")
    p.add_argument("--dry-run", action="store_true")
    p.add_argument("--export-dir", help="also write the intermediate bundle here")

    p = sub.add_parser("export", help="serialize the legacy store to a bundle only")
    p.add_argument("--legacy", required=True)
    p.add_argument("--export-dir", required=True)

    sub.add_parser("verify", help="recount rows and look for orphaned links")

    p = sub.add_parser("import", help="merge a bundle file into the database")
    p.add_argument("bundle")

    p = sub.add_parser("export-bundle", help="write the database as a bundle file")
    p.add_argument("output")
    return parser


def _session_factory(database_url):
    if not database_url:
        init_db()
        return SessionLocal
    engine = create_db_engine(database_url)
    init_db(bind=engine)
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def run(args) -> int:
    if args.command == "export":
        path = export_legacy(args.legacy, args.export_dir)
        print(f"Wrote {path}")
        return 0

    db = _session_factory(args.database_url)()
    try:
        if args.command == "migrate":
            report = migrate_legacy(
                db,
                args.legacy,
                dry_run=args.dry_run,
                export_dir=args.export_dir,
                timeout=args.timeout,
            )
            print(report.model_dump_json(indent=2))
            return 0 if report.verification.ok else 1
        if args.command == "verify":
            report = verify_store(db)
            print(report.model_dump_json(indent=2))
            return 0 if report.ok else 1
        if args.command == "import":
            result = import_bundle(db, load_bundle(args.bundle), timeout=args.timeout)
            print(result.model_dump_json(indent=2))
            return 0
        if args.command == "export-bundle":
            path = dump_bundle(export_bundle(db), args.output)
            print(f"Wrote {path}")
            return 0
    finally:
        db.close()
    return 2


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level)
    try:
        return run(args)
    except RecipeBoxError as exc:
        logger.error("%s failed: %s", args.command, exc)
        return 1


if __name__ == "__main__":
    sys.exit(main())
