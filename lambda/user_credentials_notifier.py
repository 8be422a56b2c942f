"""
IAM User Credential Notifier Lambda Function

Triggered by an EventBridge rule on CloudTrail CreateUser events, this
function logs a one-time notification for each newly created IAM user:
1. Fetches the shared temporary password from Secrets Manager (once)
2. Maps each created user to its email parameter, skipping unknown users
3. Looks up the optional email in SSM Parameter Store
4. Writes one report line per known user to the Lambda log stream

A missing email is normal and never fails the invocation. A missing or
unreadable password fails the whole invocation before anything is reported.
"""

import json
import os
from dataclasses import dataclass, field
from typing import Dict, Any, List, Optional

import boto3
from aws_lambda_powertools import Logger, Tracer

from identity_resolver import load_identity_mappings, resolve_email_parameter
from parameter_store import LookupStatus, lookup_parameter
from secret_store import DEFAULT_SECRET_ID, SERVICE_NAME, SecretUnavailableError, get_shared_secret

# Configure structured JSON logging
logger = Logger(service=SERVICE_NAME)
tracer = Tracer(service=SERVICE_NAME)

# Environment configuration
ENVIRONMENT = os.environ.get('ENVIRONMENT', 'unknown')
TEMP_PASSWORD_SECRET_ID = os.environ.get('TEMP_PASSWORD_SECRET_ID') or DEFAULT_SECRET_ID
USER_EMAIL_PARAMETERS = load_identity_mappings(os.environ.get('USER_EMAIL_PARAMETERS'))

CREATE_USER_EVENT = 'CreateUser'
EMAIL_UNAVAILABLE = 'No email provided'

# Initialize AWS clients
ssm = boto3.client('ssm')
secretsmanager = boto3.client('secretsmanager')


@dataclass(frozen=True)
class Report:
    """Notification for a single created user."""
    user_name: str
    email: Optional[str]
    email_lookup: LookupStatus
    password: str = field(repr=False)

    @property
    def email_status(self) -> str:
        return self.email if self.email else EMAIL_UNAVAILABLE

    def format_line(self) -> str:
        email_info = f"Email: {self.email_status}" if self.email else self.email_status
        return f"User: {self.user_name}, {email_info}, Temporary Password: {self.password}"


def _user_name(record: Any, key: str) -> Optional[str]:
    if not isinstance(record, dict):
        return None
    name = record.get(key)
    if not isinstance(name, str) or not name:
        return None
    return name


def extract_user_names(event: Dict[str, Any]) -> List[str]:
    """
    Extract the names of created users from the triggering event, in order.

    Accepts the EventBridge envelope of a CloudTrail CreateUser call, where
    detail.responseElements.user is a single user object (or a list of them),
    and the simplified {"records": [{"name": ...}]} shape.

    Args:
        event: Lambda event

    Returns:
        list: User names in event order (possibly empty)
    """
    if 'records' in event:
        records = event.get('records') or []
        key = 'name'
    else:
        detail = event.get('detail') or {}
        if not isinstance(detail, dict):
            logger.warning("Skipping event with malformed detail", extra={"detail": detail})
            return []

        if detail.get('errorCode'):
            logger.info("Skipping failed API call", extra={
                "eventName": detail.get('eventName'),
                "errorCode": detail.get('errorCode')
            })
            return []

        event_name = detail.get('eventName')
        if event_name and event_name != CREATE_USER_EVENT:
            logger.warning("Skipping unexpected event", extra={"eventName": event_name})
            return []

        response_elements = detail.get('responseElements') or {}
        if not isinstance(response_elements, dict):
            logger.warning("Skipping event with malformed responseElements", extra={
                "responseElements": response_elements
            })
            return []

        records = response_elements.get('user') or []
        key = 'userName'

    if isinstance(records, dict):
        records = [records]
    elif not isinstance(records, list):
        logger.warning("Skipping malformed user records", extra={"records": records})
        return []

    names = []
    for record in records:
        name = _user_name(record, key)
        if name is None:
            logger.warning("Skipping user record without a name", extra={"record": record})
            continue
        names.append(name)
    return names


def emit_report(report: Report) -> None:
    """Write a report line to the Lambda log stream."""
    logger.info(report.format_line(), extra={
        "userName": report.user_name,
        "emailLookup": report.email_lookup.value
    })


def notify_created_users(event: Dict[str, Any], secrets_client, ssm_client,
                         secret_id: str = DEFAULT_SECRET_ID,
                         mappings: Optional[Dict[str, str]] = None) -> List[Report]:
    """
    Report the temporary password and email of every known created user.

    Args:
        event: CreateUser event (see extract_user_names)
        secrets_client: boto3 Secrets Manager client
        ssm_client: boto3 SSM client
        secret_id: Identifier of the shared temporary password secret
        mappings: User name -> email parameter table

    Returns:
        list: Emitted reports, in event order

    Raises:
        SecretUnavailableError: If the shared password cannot be loaded; no
            reports are emitted in that case
    """
    secret = get_shared_secret(secrets_client, secret_id)

    reports = []
    # One lookup per parameter per invocation
    lookups = {}
    for user_name in extract_user_names(event):
        parameter_name = resolve_email_parameter(user_name, mappings)
        if parameter_name is None:
            logger.info("Skipping unrecognised user", extra={"userName": user_name})
            continue

        if parameter_name not in lookups:
            lookups[parameter_name] = lookup_parameter(ssm_client, parameter_name)
        result = lookups[parameter_name]
        if result.status is LookupStatus.QUERY_FAILED:
            logger.warning("Email lookup failed, reporting without email", extra={
                "userName": user_name,
                "parameterName": parameter_name,
                "reason": result.reason
            })

        report = Report(
            user_name=user_name,
            email=result.value if result.is_found else None,
            email_lookup=result.status,
            password=secret.password
        )
        emit_report(report)
        reports.append(report)

    return reports


@logger.inject_lambda_context
@tracer.capture_lambda_handler(capture_response=False)
def lambda_handler(event, context):
    """
    Lambda handler for IAM CreateUser notifications.

    Args:
        event: EventBridge event wrapping a CloudTrail CreateUser call
        context: Lambda context object

    Returns:
        dict: Response with the number of reports and the reported user names

    Raises:
        SecretUnavailableError: If the shared password cannot be loaded
    """
    logger.info("Received user creation event", extra={
        "detailType": event.get('detail-type'),
        "eventId": event.get('id'),
        "environment": ENVIRONMENT
    })

    try:
        reports = notify_created_users(
            event,
            secretsmanager,
            ssm,
            secret_id=TEMP_PASSWORD_SECRET_ID,
            mappings=USER_EMAIL_PARAMETERS
        )
    except SecretUnavailableError as e:
        logger.exception("Shared secret unavailable, no users reported", extra={"error": str(e)})
        raise

    logger.info("Completed user notifications", extra={"reportCount": len(reports)})

    return {
        'statusCode': 200,
        'body': json.dumps({
            'reportCount': len(reports),
            'users': [report.user_name for report in reports]
        })
    }
