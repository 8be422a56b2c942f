"""
SSM Parameter Store lookups for optional user metadata.

Lookups return a tri-state MetadataLookupResult instead of raising, so a
missing or unreadable parameter never aborts the calling Lambda. Existence
is checked with describe_parameters (empty result) before the value is
fetched with get_parameter (ParameterNotFound error).
"""

import os
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from botocore.exceptions import BotoCoreError, ClientError
from aws_lambda_powertools import Logger, Tracer

SERVICE_NAME = os.environ.get("POWERTOOLS_SERVICE_NAME") or "iam-user-notify"

logger = Logger(service=SERVICE_NAME, child=True)
tracer = Tracer(service=SERVICE_NAME)


class LookupStatus(Enum):
    FOUND = 'found'
    NOT_FOUND = 'not_found'
    QUERY_FAILED = 'query_failed'


@dataclass(frozen=True)
class MetadataLookupResult:
    """Outcome of a single parameter lookup."""
    status: LookupStatus
    value: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def found(cls, value: str) -> 'MetadataLookupResult':
        return cls(LookupStatus.FOUND, value=value)

    @classmethod
    def not_found(cls) -> 'MetadataLookupResult':
        return cls(LookupStatus.NOT_FOUND)

    @classmethod
    def query_failed(cls, reason: str) -> 'MetadataLookupResult':
        return cls(LookupStatus.QUERY_FAILED, reason=reason)

    @property
    def is_found(self) -> bool:
        return self.status is LookupStatus.FOUND


def _error_reason(error: Exception) -> str:
    if isinstance(error, ClientError):
        return error.response.get('Error', {}).get('Code') or type(error).__name__
    return type(error).__name__


@tracer.capture_method
def parameter_exists(ssm_client, name: str) -> bool:
    """
    Check whether a parameter exists.

    Raises:
        ClientError, BotoCoreError: If the describe call fails
    """
    response = ssm_client.describe_parameters(
        ParameterFilters=[
            {
                'Key': 'Name',
                'Option': 'Equals',
                'Values': [name]
            }
        ]
    )
    return bool(response.get('Parameters'))


@tracer.capture_method
def lookup_parameter(ssm_client, name: str) -> MetadataLookupResult:
    """
    Look up an optional string parameter.

    Makes at most one describe_parameters call and one get_parameter call.
    Never raises: transport, permission and throttling errors in either
    phase are returned as QUERY_FAILED.

    Args:
        ssm_client: boto3 SSM client
        name: Parameter name (e.g. "/user/s3/email")

    Returns:
        MetadataLookupResult: FOUND with the value, NOT_FOUND, or QUERY_FAILED
            with the error code
    """
    try:
        if not parameter_exists(ssm_client, name):
            logger.info("Parameter does not exist", extra={"parameterName": name})
            return MetadataLookupResult.not_found()
    except (ClientError, BotoCoreError) as e:
        logger.warning("Failed to check parameter existence", extra={
            "parameterName": name,
            "error": str(e)
        })
        return MetadataLookupResult.query_failed(_error_reason(e))
    except Exception as e:
        logger.exception("Unexpected error checking parameter existence", extra={
            "parameterName": name,
            "error": str(e)
        })
        return MetadataLookupResult.query_failed(_error_reason(e))

    try:
        response = ssm_client.get_parameter(Name=name, WithDecryption=True)
        value = response['Parameter']['Value']
    except ClientError as e:
        error_code = e.response.get('Error', {}).get('Code')
        if error_code == 'ParameterNotFound':
            # Deleted between the describe and get calls
            logger.info("Parameter disappeared before retrieval", extra={"parameterName": name})
            return MetadataLookupResult.not_found()

        logger.warning("Failed to retrieve parameter", extra={
            "parameterName": name,
            "errorCode": error_code,
            "error": str(e)
        })
        return MetadataLookupResult.query_failed(_error_reason(e))
    except BotoCoreError as e:
        logger.warning("Failed to retrieve parameter", extra={
            "parameterName": name,
            "error": str(e)
        })
        return MetadataLookupResult.query_failed(_error_reason(e))
    except (KeyError, TypeError) as e:
        logger.warning("Malformed get_parameter response", extra={
            "parameterName": name,
            "error": str(e)
        })
        return MetadataLookupResult.query_failed("MalformedResponse")
    except Exception as e:
        logger.exception("Unexpected error retrieving parameter", extra={
            "parameterName": name,
            "error": str(e)
        })
        return MetadataLookupResult.query_failed(_error_reason(e))

    if not value:
        return MetadataLookupResult.not_found()

    return MetadataLookupResult.found(value)
