from pathlib import Path

from recipebox.bundle import import_bundle, load_bundle
from recipebox.config import configure_logging
from recipebox.db import SessionLocal, init_db


def main():
    configure_logging()
    init_db()
    p = Path(__file__).resolve().parents[1] / 'data' / 'bundle.json'
    if not p.exists():
        print('data/bundle.json not found')
        return
    db = SessionLocal()
    try:
        result = import_bundle(db, load_bundle(p))
    finally:
        db.close()
    print(
        f'Imported {result.created_recipes} recipes, '
        f'{result.created_ingredients} ingredients, '
        f'{result.created_links} links'
    )


if __name__ == '__main__':
    main()
