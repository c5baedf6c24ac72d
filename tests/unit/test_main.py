"""Unit tests for main.py module."""

import pytest
from pytest_mock import MockerFixture, MockType

import main
from user_api.core.config import Settings


@pytest.fixture
def mock_uvicorn(mocker: MockerFixture) -> MockType:
    """Mock uvicorn.run to prevent server startup."""
    return mocker.patch("main.uvicorn.run")


@pytest.fixture
def patched_main(mocker: MockerFixture, mock_settings: Settings) -> MockType:
    """Patch settings and logging in main; returns the setup_logging mock."""
    mocker.patch("main.get_settings", return_value=mock_settings)
    mocker.patch("main.logger.info")
    return mocker.patch("main.setup_logging")


@pytest.mark.unit
class TestMainFunction:
    def test_sets_up_logging(
        self,
        patched_main: MockType,
        mock_uvicorn: MockType,
        mock_settings: Settings,
    ) -> None:
        main.main()

        patched_main.assert_called_once_with(mock_settings)
        mock_uvicorn.assert_called_once()

    @pytest.mark.parametrize(
        ("env_port", "expected_port"),
        [
            ("8080", 8080),
            (None, 3000),
        ],
    )
    def test_port_precedence(
        self,
        patched_main: MockType,
        mock_uvicorn: MockType,
        monkeypatch: pytest.MonkeyPatch,
        env_port: str | None,
        expected_port: int,
    ) -> None:
        """Verify PORT environment variable precedence over settings."""
        del patched_main
        if env_port is not None:
            monkeypatch.setenv("PORT", env_port)
        else:
            monkeypatch.delenv("PORT", raising=False)

        main.main()

        assert mock_uvicorn.call_args.kwargs["port"] == expected_port

    def test_uvicorn_logs_through_loguru(
        self, patched_main: MockType, mock_uvicorn: MockType
    ) -> None:
        del patched_main

        main.main()

        kwargs = mock_uvicorn.call_args.kwargs
        log_config = kwargs["log_config"]
        assert (
            log_config["handlers"]["default"]["class"]
            == "user_api.core.logging.InterceptHandler"
        )
        assert set(log_config["loggers"]) == {"uvicorn", "uvicorn.error", "uvicorn.access"}
        assert mock_uvicorn.call_args.args[0] == "user_api.api.main:app"
        assert kwargs["reload"] is False
