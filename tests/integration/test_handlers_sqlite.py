"""Request handlers end to end over a real SQL engine."""

import json
from collections.abc import Callable
from typing import Any

import pytest
from sqlalchemy import text
from sqlalchemy.engine import Engine

from user_api.handlers.get_all_users import GetAllUsersHandler
from user_api.handlers.get_user import GetUserHandler
from user_api.users.service import UserService


def _event(params: dict[str, str] | None = None) -> dict[str, Any]:
    return {
        "httpMethod": "GET",
        "path": "/users",
        "headers": {"X-Correlation-ID": "it-1"},
        "queryStringParameters": params,
    }


@pytest.mark.integration
class TestGetUser:
    def test_found(
        self, user_service: UserService, add_user: Callable[..., None]
    ) -> None:
        add_user(42, "ada", "a@x")

        response = GetUserHandler(user_service).handle(_event({"id": "42"}))

        assert response["statusCode"] == 200
        assert response["body"] == (
            '{"statusCode":200,"isSuccessful":true,"message":"User found",'
            '"data":{"id":42,"username":"ada","email":"a@x"}}'
        )

    def test_not_found(self, user_service: UserService) -> None:
        response = GetUserHandler(user_service).handle(_event({"id": "42"}))

        assert response["statusCode"] == 404
        assert response["body"] == (
            '{"statusCode":404,"isSuccessful":false,'
            '"message":"User not found with ID: 42","data":null}'
        )

    def test_invalid_id(self, user_service: UserService) -> None:
        response = GetUserHandler(user_service).handle(_event({"id": "abc"}))

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["message"] == (
            "Invalid ID format: must be a number"
        )

    def test_database_failure(self, user_service: UserService, engine: Engine) -> None:
        with engine.begin() as conn:
            conn.execute(text('DROP TABLE "User"'))

        response = GetUserHandler(user_service).handle(_event({"id": "1"}))

        assert response["statusCode"] == 500
        assert json.loads(response["body"])["message"] == (
            "Internal Server Error: Read failed"
        )


@pytest.mark.integration
class TestGetAllUsers:
    def test_three_rows(
        self, user_service: UserService, add_user: Callable[..., None]
    ) -> None:
        for user_id, name in ((1, "ada"), (2, "grace"), (3, "edsger")):
            add_user(user_id, name, f"{name}@x")

        response = GetAllUsersHandler(user_service).handle(_event())

        body = json.loads(response["body"])
        assert response["statusCode"] == 200
        assert body["message"] == "Users retrieved successfully"
        assert [user["username"] for user in body["data"]] == ["ada", "grace", "edsger"]

    def test_non_numeric_page_size(self, user_service: UserService) -> None:
        response = GetAllUsersHandler(user_service).handle(_event({"pageSize": "x"}))

        assert response["statusCode"] == 400
        assert json.loads(response["body"])["message"] == (
            "Pagination parameters must be numeric"
        )

    def test_second_page(
        self, user_service: UserService, add_user: Callable[..., None]
    ) -> None:
        for user_id in range(1, 6):
            add_user(user_id, f"u{user_id}", "e")

        response = GetAllUsersHandler(user_service).handle(
            _event({"pageSize": "2", "pageNumber": "2"})
        )

        assert [u["id"] for u in json.loads(response["body"])["data"]] == [3, 4]
