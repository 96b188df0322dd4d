# config/database.py
# Connexion base de données : DATABASE_URL en priorité, sinon MySQL (DB_*), sinon SQLite local.
import os
from urllib.parse import quote_plus


def _database_url() -> str:
    url = os.getenv("SQLALCHEMY_DATABASE_URI") or os.getenv("DATABASE_URL")
    if url:
        return url

    host = os.getenv("DB_HOST")
    if host:
        return "mysql+pymysql://{user}:{pwd}@{host}:{port}/{name}".format(
            user=quote_plus(os.getenv("DB_USER", "ada")),
            pwd=quote_plus(os.getenv("DB_PASS", "ada_pwd")),
            host=host,
            port=os.getenv("DB_PORT", "3306"),
            name=os.getenv("DB_NAME", "ada"),
        )

    path = os.getenv("DB_PATH", os.path.join("storage", "ada.sqlite3"))
    if not os.path.isabs(path):
        path = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), path)
    return f"sqlite:///{path}"


CONFIG = {
    "url": _database_url(),
    "engine_options": {
        "pool_pre_ping": True,
        "pool_recycle": 1800,
        "pool_size": 5,
        "max_overflow": 10,
    },
}
