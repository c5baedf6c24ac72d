"""Data access layer against a real SQL engine."""

from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Connection, Engine, Row
from sqlalchemy.exc import OperationalError

from user_api.core.exceptions import ArgumentError, DbError, MappingError
from user_api.infrastructure.database.data_service import DataService
from user_api.users.mappers import map_user_row
from user_api.users.models import User

USER_TABLE = '"User"'


def _note_body(row: Row[Any]) -> str:
    return row.body


def _count_users(engine: Engine) -> int:
    with engine.connect() as conn:
        return conn.execute(text('SELECT COUNT(*) FROM "User"')).scalar_one()


@pytest.mark.integration
class TestCrud:
    def test_insert_then_read(self, data_service: DataService[Any]) -> None:
        data_service.insert(USER_TABLE, {"id": 42, "username": "ada", "email": "a@x"})

        user = data_service.read(USER_TABLE, "id", 42, map_user_row)

        assert user == User(id=42, username="ada", email="a@x")

    def test_read_absent(self, data_service: DataService[Any]) -> None:
        assert data_service.read(USER_TABLE, "id", 404, map_user_row) is None

    def test_paginated_natural_order(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        for user_id in (3, 1, 2, 5, 4):
            add_user(user_id, f"u{user_id}", f"u{user_id}@x")

        first = data_service.read_paginated(USER_TABLE, 2, 1, map_user_row)
        third = data_service.read_paginated(USER_TABLE, 2, 3, map_user_row)
        past_end = data_service.read_paginated(USER_TABLE, 2, 4, map_user_row)

        assert [u.id for u in first] == [1, 2]
        assert [u.id for u in third] == [5]
        assert past_end == []

    def test_page_never_exceeds_size(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        for user_id in range(1, 8):
            add_user(user_id, f"u{user_id}", "e")

        for size in (1, 3, 10):
            assert len(data_service.read_paginated(USER_TABLE, size, 1, map_user_row)) <= size

    def test_my_records(self, data_service: DataService[Any]) -> None:
        for note_id, owner in ((1, 7), (2, 8), (3, 7), (4, 7)):
            data_service.insert(
                "notes", {"id": note_id, "userid": owner, "body": f"n{note_id}"}
            )

        page = data_service.read_my_records_paginated("notes", 7, 2, 1, _note_body)
        next_page = data_service.read_my_records_paginated("notes", 7, 2, 2, _note_body)

        assert page == ["n1", "n3"]
        assert next_page == ["n4"]

    def test_read_columns_by_condition(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        add_user(1, "ada", "a@x")

        email = data_service.read_columns_by_condition(
            USER_TABLE, "email", "username = ? AND email <> 'what?'", ["ada"]
        )
        missing = data_service.read_columns_by_condition(
            USER_TABLE, "email", "username = ?", ["nobody"]
        )

        assert email == "a@x"
        assert missing is None

    def test_colon_inside_literal(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        add_user(1, "ada", "a@x")

        name = data_service.read_columns_by_condition(
            USER_TABLE, "username", "email <> '12:30' AND id = ?", [1]
        )

        assert name == "ada"

    def test_update_and_delete(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        add_user(1, "ada", "a@x")

        data_service.update(USER_TABLE, {"email": "ada@x"}, "id = ?", [1])
        updated = data_service.read(USER_TABLE, "id", 1, map_user_row)
        data_service.delete(USER_TABLE, "id = ?", [1])

        assert updated is not None
        assert updated.email == "ada@x"
        assert data_service.read(USER_TABLE, "id", 1, map_user_row) is None


@pytest.mark.integration
class TestFailures:
    def test_unknown_table(self, data_service: DataService[Any]) -> None:
        with pytest.raises(DbError, match="Read failed") as exc_info:
            data_service.read('"Missing"', "id", 1, map_user_row)

        assert isinstance(exc_info.value.__cause__, OperationalError)

    def test_duplicate_key(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        add_user(1, "ada", "a@x")

        with pytest.raises(DbError, match="Insert failed"):
            data_service.insert(USER_TABLE, {"id": 1, "username": "b", "email": "b@x"})

    def test_mapper_failure(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        add_user(1, "ada", "a@x")

        with pytest.raises(MappingError):
            data_service.read(USER_TABLE, "id", 1, lambda row: row.nickname)

    def test_placeholder_mismatch(self, data_service: DataService[Any]) -> None:
        with pytest.raises(ArgumentError):
            data_service.delete(USER_TABLE, "id = ? AND username = ?", [1])

    def test_errors_propagate_on_caller_connection(
        self, data_service: DataService[Any], engine: Engine
    ) -> None:
        with engine.connect() as conn, pytest.raises(OperationalError):
            data_service.read('"Missing"', "id", 1, map_user_row, conn=conn)


@pytest.mark.integration
class TestTransactions:
    def test_commit(self, data_service: DataService[Any], engine: Engine) -> None:
        def body(conn: Connection) -> None:
            data_service.insert(
                USER_TABLE, {"id": 1, "username": "a", "email": "a@x"}, conn=conn
            )
            data_service.insert(
                USER_TABLE, {"id": 2, "username": "b", "email": "b@x"}, conn=conn
            )

        data_service.with_transaction(body)

        assert _count_users(engine) == 2

    def test_failed_body_rolls_back(
        self, data_service: DataService[Any], engine: Engine
    ) -> None:
        """A body that inserts and then raises leaves no row behind."""

        def body(conn: Connection) -> None:
            data_service.insert(
                USER_TABLE, {"id": 1, "username": "a", "email": "a@x"}, conn=conn
            )
            raise RuntimeError("abort")

        with pytest.raises(DbError) as exc_info:
            data_service.with_transaction(body)

        assert exc_info.value.message == "Transaction failed"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert _count_users(engine) == 0

    def test_statement_failure_rolls_back(
        self, data_service: DataService[Any], engine: Engine
    ) -> None:
        def body(conn: Connection) -> None:
            data_service.insert(
                USER_TABLE, {"id": 1, "username": "a", "email": "a@x"}, conn=conn
            )
            data_service.insert(
                USER_TABLE, {"id": 1, "username": "dup", "email": "d@x"}, conn=conn
            )

        with pytest.raises(DbError, match="Transaction failed"):
            data_service.with_transaction(body)

        assert _count_users(engine) == 0

    def test_return_value(
        self, data_service: DataService[Any], add_user: Callable[..., None]
    ) -> None:
        add_user(1, "ada", "a@x")

        def body(conn: Connection) -> str:
            data_service.update(USER_TABLE, {"email": "new@x"}, "id = ?", [1], conn=conn)
            return data_service.read_columns_by_condition(
                USER_TABLE, "email", "id = ?", [1], conn=conn
            )

        assert data_service.with_transaction_return(body) == "new@x"
