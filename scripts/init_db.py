from __future__ import annotations

import importlib

from dotenv import load_dotenv

from worksense.config import get_settings_module
from worksense.database.connection import DBConfig, DatabaseConnection
from worksense.payroll.mysql_status_repository import MySQLPayrollStatusRepository


def main() -> None:
    load_dotenv(override=False)
    settings = importlib.import_module(get_settings_module())
    db_config = DBConfig.from_mapping(settings.DB_CONFIG)

    repo = MySQLPayrollStatusRepository(DatabaseConnection.get_instance(db_config))
    repo.ensure_table()
    print(
        "OK: payroll_status ready -> "
        f"{db_config.user}@{db_config.host}:{db_config.port}/{db_config.database}"
    )


if __name__ == "__main__":
    main()
