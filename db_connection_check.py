import sys

from sqlalchemy import create_engine, text
from sqlalchemy.exc import SQLAlchemyError

from foodcourt.config import settings
from foodcourt.db import Base
from foodcourt import models  # noqa: F401  registers the tables on Base.metadata


def main(argv: list[str]) -> int:
    database_url = settings.database_url
    print(f"DATABASE_URL={database_url} ({settings.environment})")
    engine = create_engine(database_url, pool_pre_ping=True)
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        print("DB connection OK")
        if "--create-tables" in argv:
            Base.metadata.create_all(bind=engine)
            print(f"Created {len(Base.metadata.tables)} tables")
    except SQLAlchemyError as exc:
        print("DB connection FAILED")
        print(exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
