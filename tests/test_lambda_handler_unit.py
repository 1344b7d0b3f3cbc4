"""Unit tests for the Lambda handler and Secrets Manager lookup."""

import json
import logging
import os
from io import StringIO
from unittest.mock import Mock, patch

import boto3
import pytest
from moto import mock_aws

from src.exceptions import DeliveryError
from src.lambda_handler import get_secret_token, lambda_handler
from src.models import BookmarkItem, InvocationResult, TerminalState

RAINDROP_TOKEN = "rd-very-secret-token"
BOT_TOKEN = "5555:very-secret-bot-token"

HANDLER_ENV = {
    "RAINDROP_COLLECTION_ID": "31337",
    "TELEGRAM_CHAT_ID": "-1009999",
    "RAINDROP_TOKEN": RAINDROP_TOKEN,
    "TELEGRAM_BOT_TOKEN": BOT_TOKEN,
}


@pytest.fixture
def aws_credentials():
    """Mocked AWS Credentials for moto."""
    with patch.dict(
        os.environ,
        {
            "AWS_ACCESS_KEY_ID": "testing",
            "AWS_SECRET_ACCESS_KEY": "testing",
            "AWS_SESSION_TOKEN": "testing",
            "AWS_DEFAULT_REGION": "us-east-1",
        },
    ):
        yield


class TestGetSecretToken:
    """Secrets Manager retrieval tests."""

    def test_plain_text_secret(self, aws_credentials):
        with mock_aws():
            client = boto3.client("secretsmanager", region_name="us-east-1")
            client.create_secret(Name="rd-secret", SecretString=f"  {RAINDROP_TOKEN}\n")

            assert get_secret_token("rd-secret", "us-east-1", "exec") == RAINDROP_TOKEN

    @pytest.mark.parametrize("key", ["token", "access_token", "bot_token", "telegram_token"])
    def test_json_secret(self, aws_credentials, key):
        with mock_aws():
            client = boto3.client("secretsmanager", region_name="us-east-1")
            client.create_secret(
                Name="tg-secret", SecretString=json.dumps({key: BOT_TOKEN, "other": 1})
            )

            assert get_secret_token("tg-secret", "us-east-1", "exec") == BOT_TOKEN

    def test_json_secret_without_known_key(self, aws_credentials):
        with mock_aws():
            client = boto3.client("secretsmanager", region_name="us-east-1")
            client.create_secret(Name="bad", SecretString=json.dumps({"password": "x"}))

            with pytest.raises(RuntimeError, match="Invalid secret format"):
                get_secret_token("bad", "us-east-1", "exec")

    def test_json_secret_not_an_object(self, aws_credentials):
        with mock_aws():
            client = boto3.client("secretsmanager", region_name="us-east-1")
            client.create_secret(Name="list", SecretString=json.dumps(["a"]))

            with pytest.raises(RuntimeError, match="Invalid secret format"):
                get_secret_token("list", "us-east-1", "exec")

    def test_missing_secret(self, aws_credentials):
        with mock_aws():
            with pytest.raises(RuntimeError, match="Failed to retrieve secret"):
                get_secret_token("does-not-exist", "us-east-1", "exec")

    @pytest.mark.parametrize("secret_name, region", [("", "us-east-1"), ("name", " ")])
    def test_empty_arguments(self, secret_name, region):
        with pytest.raises(ValueError):
            get_secret_token(secret_name, region, "exec")


class TestLambdaHandlerUnit:
    """Lambda handler tests with the pipeline mocked out."""

    def setup_method(self):
        self.item = BookmarkItem(
            identifier=7,
            title="Picked",
            excerpt="",
            link="https://picked.example.com",
            domain="picked.example.com",
            created="",
        )
        self.context = Mock(aws_request_id="req-1", function_name="random-raindrop")

    @pytest.mark.parametrize(
        "result, status_code",
        [
            (None, 200),
            (InvocationResult.failed(TerminalState.NOTIFIED_OF_FAILURE, "x", True), 200),
            (InvocationResult.failed(TerminalState.DELIVERY_FAILED, "x", False), 500),
            (InvocationResult.failed(TerminalState.DOUBLY_FAILED, "x", False), 500),
        ],
    )
    def test_status_code_follows_terminal_state(self, result, status_code):
        result = result or InvocationResult.delivered(self.item)
        with (
            patch.dict(os.environ, HANDLER_ENV, clear=True),
            patch("src.lambda_handler.RaindropClient") as mock_source_class,
            patch("src.lambda_handler.TelegramPublisher") as mock_publisher_class,
            patch("src.lambda_handler.run_invocation", return_value=result) as mock_run,
            patch("src.lambda_handler.send_cloudwatch_metrics") as mock_metrics,
            patch("src.lambda_handler.get_secret_token") as mock_get_secret,
        ):
            response = lambda_handler({}, self.context)

        assert response["statusCode"] == status_code
        body = json.loads(response["body"])
        assert body["result"]["state"] == result.state.value

        mock_get_secret.assert_not_called()
        raindrop_config = mock_source_class.call_args.args[0]
        assert raindrop_config.token == RAINDROP_TOKEN
        assert raindrop_config.collection_id == "31337"
        telegram_config = mock_publisher_class.call_args.args[0]
        assert telegram_config.bot_token == BOT_TOKEN
        assert telegram_config.chat_id == "-1009999"
        assert mock_run.call_args.args[2] == "31337"
        mock_metrics.assert_called_once()
        assert mock_metrics.call_args.args[0] is result

    def test_tokens_fetched_from_secrets_manager_when_not_in_env(self):
        env = {
            "RAINDROP_COLLECTION_ID": "31337",
            "TELEGRAM_CHAT_ID": "-1009999",
            "RAINDROP_SECRET_NAME": "rd-secret",
            "TELEGRAM_SECRET_NAME": "tg-secret",
        }
        with (
            patch.dict(os.environ, env, clear=True),
            patch("src.lambda_handler.RaindropClient") as mock_source_class,
            patch("src.lambda_handler.TelegramPublisher") as mock_publisher_class,
            patch(
                "src.lambda_handler.run_invocation",
                return_value=InvocationResult.delivered(self.item),
            ),
            patch("src.lambda_handler.send_cloudwatch_metrics"),
            patch(
                "src.lambda_handler.get_secret_token",
                side_effect=[RAINDROP_TOKEN, BOT_TOKEN],
            ) as mock_get_secret,
        ):
            response = lambda_handler({}, self.context)

        assert response["statusCode"] == 200
        assert [call.args[0] for call in mock_get_secret.call_args_list] == [
            "rd-secret",
            "tg-secret",
        ]
        assert mock_source_class.call_args.args[0].token == RAINDROP_TOKEN
        assert mock_publisher_class.call_args.args[0].bot_token == BOT_TOKEN

    def test_configuration_error_returns_500(self):
        with (
            patch.dict(os.environ, {"RAINDROP_TOKEN": "a", "TELEGRAM_BOT_TOKEN": "b"}, clear=True),
            patch("src.lambda_handler.run_invocation") as mock_run,
            patch("src.lambda_handler.send_cloudwatch_metrics") as mock_metrics,
        ):
            response = lambda_handler({}, self.context)

        assert response["statusCode"] == 500
        body = json.loads(response["body"])
        assert "RAINDROP_COLLECTION_ID" in body["error"]
        mock_run.assert_not_called()
        assert mock_metrics.call_args.args[0] is None

    def test_end_to_end_logs_never_contain_tokens(self):
        """Run the real pipeline over mocked HTTP and inspect every log line."""
        log_capture = StringIO()
        handler = logging.StreamHandler(log_capture)
        root_logger = logging.getLogger()
        original_level = root_logger.level
        original_handlers = root_logger.handlers[:]
        root_logger.handlers.clear()
        root_logger.addHandler(handler)
        root_logger.setLevel(logging.DEBUG)

        raindrop_session = Mock(headers={})
        raindrop_session.get.return_value = Mock(
            status_code=401, reason="Unauthorized"
        )
        telegram_session = Mock(headers={})
        telegram_session.post.return_value = Mock(status_code=200, reason="OK")

        try:
            with (
                patch.dict(os.environ, HANDLER_ENV, clear=True),
                # RaindropClient is built first, then TelegramPublisher.
                patch(
                    "requests.Session", side_effect=[raindrop_session, telegram_session]
                ),
                patch("src.lambda_handler.send_cloudwatch_metrics"),
            ):
                response = lambda_handler({}, self.context)
        finally:
            root_logger.handlers.clear()
            root_logger.handlers.extend(original_handlers)
            root_logger.setLevel(original_level)
            handler.close()

        assert response["statusCode"] == 200
        assert json.loads(response["body"])["result"]["state"] == "notified_of_failure"
        assert telegram_session.post.call_count == 1

        log_output = log_capture.getvalue()
        assert "Starting main execution" in log_output
        assert "Completed main execution" in log_output
        assert RAINDROP_TOKEN not in log_output
        assert BOT_TOKEN not in log_output
        assert RAINDROP_TOKEN not in response["body"]
        assert BOT_TOKEN not in response["body"]

    def test_delivery_error_text_excludes_token(self):
        error = DeliveryError(403, "Forbidden: bot was blocked by the user")

        assert BOT_TOKEN not in str(error)
        assert "403" in str(error)
