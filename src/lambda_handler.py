"""Main Lambda handler for Random Raindrop Telegram Bot."""

import json
import os
from datetime import UTC, datetime
from typing import Any

import boto3
from botocore.exceptions import ClientError

from .config import Config
from .logging_config import create_execution_logger, setup_structured_logging
from .models import InvocationResult, TerminalState
from .orchestrator import run_invocation
from .raindrop import RaindropClient
from .telegram import TelegramPublisher

METRICS_NAMESPACE = "Random-Raindrop-Bot"

SECRET_KEYS = (
    "token",
    "access_token",
    "bot_token",
    "raindrop_token",
    "telegram_token",
)

# Setup structured logging
setup_structured_logging(os.getenv("LOG_LEVEL", "INFO"))


def lambda_handler(event: dict[str, Any], context: Any) -> dict[str, Any]:
    """
    Main Lambda handler: deliver one random bookmark to Telegram.

    Args:
        event: Lambda event data (the scheduled trigger, ignored)
        context: Lambda context object

    Returns:
        Response dictionary with status and the invocation result
    """
    execution_id = f"lambda_{datetime.now(UTC).strftime('%Y%m%d_%H%M%S_%f')}"
    main_logger = create_execution_logger("main", execution_id)

    main_logger.log_execution_start(
        lambda_request_id=getattr(context, "aws_request_id", "unknown"),
        lambda_function_name=getattr(context, "function_name", "unknown"),
    )

    aws_region = "us-east-1"
    try:
        config = Config()
        aws_region = config.aws_region
        main_logger.info(
            "Configuration initialized",
            collection_id=config.collection_id,
            chat_id=config.chat_id,
        )

        raindrop_token = config.raindrop_token or get_secret_token(
            config.raindrop_secret_name, aws_region, execution_id
        )
        telegram_token = config.telegram_token or get_secret_token(
            config.telegram_secret_name, aws_region, execution_id
        )
        settings = config.build_settings(raindrop_token, telegram_token)

        source = RaindropClient(settings.raindrop, execution_id=execution_id)
        publisher = TelegramPublisher(settings.telegram, execution_id=execution_id)

        result = run_invocation(
            source,
            publisher,
            settings.raindrop.collection_id,
            execution_id=execution_id,
        )

    except Exception as e:
        error_msg = f"Critical error in Lambda handler: {str(e)}"
        main_logger.error(error_msg, error_kind=type(e).__name__)
        send_cloudwatch_metrics(None, aws_region, execution_id)
        main_logger.log_execution_end(success=False, error=error_msg)

        return {
            "statusCode": 500,
            "body": json.dumps(
                {
                    "message": "Random Raindrop Bot execution failed",
                    "execution_id": execution_id,
                    "error": error_msg,
                }
            ),
        }

    main_logger.log_result(result.to_dict())
    send_cloudwatch_metrics(result, aws_region, execution_id)
    main_logger.log_execution_end(success=result.succeeded, terminal_state=result.state.value)

    return {
        "statusCode": 200 if result.succeeded else 500,
        "body": json.dumps(
            {
                "message": "Random Raindrop Bot execution completed",
                "execution_id": execution_id,
                "result": result.to_dict(),
            },
            default=str,
        ),
    }


def get_secret_token(secret_name: str, aws_region: str, execution_id: str) -> str:
    """
    Retrieve an API token from AWS Secrets Manager.

    Supports both plain string and JSON secret formats. The secret value is
    never logged.

    Args:
        secret_name: Name of the secret in Secrets Manager
        aws_region: AWS region for Secrets Manager client
        execution_id: Execution ID for logging context

    Returns:
        The token

    Raises:
        RuntimeError: If the secret cannot be retrieved or has no usable value
        ValueError: If secret name or region is empty
    """
    secrets_logger = create_execution_logger("secrets_manager", execution_id)

    if not secret_name or not secret_name.strip():
        raise ValueError("Secret name cannot be empty")

    if not aws_region or not aws_region.strip():
        raise ValueError("AWS region cannot be empty")

    try:
        secrets_logger.info(f"Retrieving token from Secrets Manager: {secret_name}")
        secrets_client = boto3.client("secretsmanager", region_name=aws_region)

        response = secrets_client.get_secret_value(SecretId=secret_name)

        if "SecretString" not in response:
            raise ValueError(f"Secret {secret_name} does not contain a string value")

        secret_value = response["SecretString"]

        if not secret_value or not secret_value.strip():
            raise ValueError(f"Secret {secret_name} contains empty value")

        try:
            secret_data = json.loads(secret_value)
        except json.JSONDecodeError:
            secrets_logger.info("Successfully retrieved token from plain text secret")
            return secret_value.strip()

        if not isinstance(secret_data, dict):
            raise ValueError(f"JSON secret {secret_name} must be an object")

        for key in SECRET_KEYS:
            value = secret_data.get(key)
            if isinstance(value, str) and value.strip():
                secrets_logger.info("Successfully retrieved token from JSON secret")
                return value.strip()

        raise ValueError(f"No token found in JSON secret {secret_name}")

    except ClientError as e:
        error_code = e.response.get("Error", {}).get("Code", "Unknown")
        secrets_logger.error(
            f"AWS Secrets Manager error retrieving {secret_name}: {error_code}"
        )
        raise RuntimeError(f"Failed to retrieve secret {secret_name}") from e
    except ValueError as e:
        secrets_logger.error(f"Invalid secret format for {secret_name}: {e}")
        raise RuntimeError(f"Invalid secret format for {secret_name}") from e


def send_cloudwatch_metrics(
    result: InvocationResult | None, aws_region: str, execution_id: str
) -> None:
    """
    Send custom metrics to CloudWatch.

    Args:
        result: Invocation result, or None when the run aborted before the pipeline
        aws_region: AWS region for CloudWatch client
        execution_id: Execution ID for logging context
    """
    metrics_logger = create_execution_logger("cloudwatch_metrics", execution_id)

    state = result.state if result else None
    execution_success = bool(result and result.succeeded)
    status_dimension = [
        {"Name": "Status", "Value": "Success" if execution_success else "Failure"}
    ]

    metric_data = [
        {
            "MetricName": "ArticlesDelivered",
            "Value": 1 if state == TerminalState.DELIVERED else 0,
            "Unit": "Count",
        },
        {
            "MetricName": "ErrorNotificationsSent",
            "Value": 1 if state == TerminalState.NOTIFIED_OF_FAILURE else 0,
            "Unit": "Count",
        },
        {
            "MetricName": "DeliveryFailures",
            "Value": (
                1
                if state in (TerminalState.DELIVERY_FAILED, TerminalState.DOUBLY_FAILED)
                else 0
            ),
            "Unit": "Count",
        },
        {
            "MetricName": "ExecutionSuccess",
            "Value": 1 if execution_success else 0,
            "Unit": "Count",
            "Dimensions": status_dimension,
        },
        {
            "MetricName": "ExecutionFailure",
            "Value": 0 if execution_success else 1,
            "Unit": "Count",
            "Dimensions": status_dimension,
        },
    ]

    try:
        metrics_logger.info(
            "Sending metrics to CloudWatch",
            terminal_state=state.value if state else None,
        )
        cloudwatch = boto3.client("cloudwatch", region_name=aws_region)
        cloudwatch.put_metric_data(Namespace=METRICS_NAMESPACE, MetricData=metric_data)
        metrics_logger.info(
            "Successfully sent metrics to CloudWatch",
            metrics_sent=len(metric_data),
            namespace=METRICS_NAMESPACE,
            execution_success=execution_success,
        )
    except Exception as e:
        metrics_logger.error(f"Failed to send CloudWatch metrics: {e}", error=str(e))
        # Don't raise - metrics failure shouldn't break the main flow
