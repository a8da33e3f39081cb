# scripts/check_db.py
# Проверяет подключение к DATABASE_URL из poufmaker.core.config.settings
import sys

from poufmaker.core.config import settings
from poufmaker.db.session import Database


def main() -> int:
    url = settings.DATABASE_URL
    print('Trying to connect to:', url.split("@")[-1])
    database = Database(url)
    try:
        database.connect()
        print('Connection OK')
        return 0
    except Exception as e:
        print('Connection failed:', e)
        return 1
    finally:
        database.dispose()


if __name__ == '__main__':
    sys.exit(main())
