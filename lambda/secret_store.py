"""
Secrets Manager access for the shared temporary password.

The secret is a JSON object with a "password" key, generated by the
stack's AWS::SecretsManager::Secret resource. Failure to fetch or parse it
is fatal for the invocation, so errors are raised as SecretUnavailableError
rather than degraded.
"""

import json
import os
from dataclasses import dataclass, field

from botocore.exceptions import BotoCoreError, ClientError
from aws_lambda_powertools import Logger, Tracer

SERVICE_NAME = os.environ.get("POWERTOOLS_SERVICE_NAME") or "iam-user-notify"

logger = Logger(service=SERVICE_NAME, child=True)
tracer = Tracer(service=SERVICE_NAME)

DEFAULT_SECRET_ID = 'tempPassword'
PASSWORD_KEY = 'password'


class SecretUnavailableError(Exception):
    """Raised when the shared secret cannot be retrieved or parsed"""
    pass


@dataclass(frozen=True)
class SharedSecret:
    """Temporary password shared by every user created by the stack."""
    password: str = field(repr=False)


def parse_secret_string(secret_id: str, secret_string: str) -> SharedSecret:
    """
    Parse a SecretString into a SharedSecret.

    Args:
        secret_id: Secret identifier (used in error messages only)
        secret_string: Raw SecretString from Secrets Manager

    Returns:
        SharedSecret with the extracted password

    Raises:
        SecretUnavailableError: If the string is not a JSON object with a
            non-empty string password
    """
    try:
        secret_data = json.loads(secret_string)
    except (json.JSONDecodeError, TypeError) as e:
        raise SecretUnavailableError(f"Secret {secret_id} is not valid JSON: {e.__class__.__name__}") from e

    if not isinstance(secret_data, dict):
        raise SecretUnavailableError(f"Secret {secret_id} must be a JSON object")

    password = secret_data.get(PASSWORD_KEY)
    if not isinstance(password, str) or not password:
        raise SecretUnavailableError(f"Secret {secret_id} has no usable '{PASSWORD_KEY}' field")

    return SharedSecret(password=password)


@tracer.capture_method(capture_response=False)
def get_shared_secret(secrets_client, secret_id: str = DEFAULT_SECRET_ID) -> SharedSecret:
    """
    Fetch the shared temporary password from Secrets Manager.

    Called once per invocation; the same value is used for every user.

    Args:
        secrets_client: boto3 Secrets Manager client
        secret_id: Secret name or ARN

    Returns:
        SharedSecret

    Raises:
        SecretUnavailableError: If the secret cannot be retrieved or parsed
    """
    try:
        response = secrets_client.get_secret_value(SecretId=secret_id)
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code')
        logger.error("Error retrieving shared secret", extra={
            "secretId": secret_id,
            "errorCode": error_code,
            "error": str(e)
        })
        raise SecretUnavailableError(f"Failed to retrieve secret {secret_id}: {error_code}") from e
    except BotoCoreError as e:
        logger.error("Error retrieving shared secret", extra={
            "secretId": secret_id,
            "error": str(e)
        })
        raise SecretUnavailableError(f"Failed to retrieve secret {secret_id}: {e}") from e

    secret_string = response.get('SecretString')
    if secret_string is None:
        logger.error("Shared secret has no SecretString", extra={"secretId": secret_id})
        raise SecretUnavailableError(f"Secret {secret_id} has no SecretString")

    try:
        secret = parse_secret_string(secret_id, secret_string)
    except SecretUnavailableError as e:
        logger.error("Invalid shared secret format", extra={
            "secretId": secret_id,
            "error": str(e)
        })
        raise

    logger.info("Loaded shared secret", extra={"secretId": secret_id})
    return secret
