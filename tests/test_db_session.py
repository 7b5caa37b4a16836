"""SQLite locking behaviour of writing and read-only sessions."""

from sqlalchemy import select

from cafeteria.db import session as db_session
from cafeteria.db.session import READ_ONLY_OPTION
from cafeteria.models.app_setting import AppSetting
from cafeteria.models.user import User


def _raw_connection(db):
    return db.connection().connection.dbapi_connection


def test_writing_session_holds_a_transaction(session_local, catalog) -> None:
    with session_local() as writer:
        writer.add(AppSetting(key="kitchen_note", value="deliveries at 6"))
        writer.flush()
        assert _raw_connection(writer).in_transaction is True
        writer.rollback()


def test_read_session_neither_waits_for_nor_blocks_writers(session_local, catalog) -> None:
    reads = db_session.get_read_db()
    reader = next(reads)
    try:
        assert reader.connection().get_execution_options()[READ_ONLY_OPTION] is True

        with session_local() as writer:
            writer.add(AppSetting(key="kitchen_note", value="deliveries at 6"))
            writer.flush()

            email = reader.scalar(select(User.email).where(User.id == catalog.staff_id))
            assert email == "staff@example.com"
            assert _raw_connection(reader).in_transaction is False

            writer.commit()

        assert reader.scalar(select(AppSetting.value).where(AppSetting.key == "kitchen_note")) == "deliveries at 6"
    finally:
        reads.close()
