from flask_sqlalchemy import SQLAlchemy
from flask_migrate import Migrate
from sqlalchemy import event
from sqlalchemy.engine import Engine

db = SQLAlchemy()
migrate = Migrate()


def configure_sqlite(engine: Engine) -> None:
    """SQLite: включаем внешние ключи и открываем транзакции через BEGIN IMMEDIATE.

    У SQLite нет SELECT ... FOR UPDATE, поэтому сериализация пишущих транзакций
    делается блокировкой всей базы в момент начала транзакции.
    """
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_conn, _record):
        # транзакциями управляет SQLAlchemy, а не драйвер
        dbapi_conn.isolation_level = None
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
