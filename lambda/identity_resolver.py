"""
Identity Resolver

Maps the name of a newly created IAM user to the SSM parameter that holds
its optional contact email. The table is static configuration: users that
are not listed (service accounts, other automation) are skipped by the
notifier rather than reported as errors.
"""

import json
from typing import Dict, Optional

# IAM user name -> role segment of the email parameter path
USER_ROLES = {
    's3-user': 's3',
    'ec2-user': 'ec2',
}

EMAIL_PARAMETER_TEMPLATE = '/user/{role}/email'


def build_identity_mappings(roles: Dict[str, str], template: str = EMAIL_PARAMETER_TEMPLATE) -> Dict[str, str]:
    """
    Build the user name -> parameter name table from a role table.

    Args:
        roles: IAM user name -> role segment (e.g. {'s3-user': 's3'})
        template: Parameter name template with a {role} placeholder

    Returns:
        dict: IAM user name -> SSM parameter name
    """
    return {user_name: template.format(role=role) for user_name, role in roles.items()}


DEFAULT_IDENTITY_MAPPINGS = build_identity_mappings(USER_ROLES)


def load_identity_mappings(raw: Optional[str]) -> Dict[str, str]:
    """
    Load the identity mapping table, optionally overridden from configuration.

    Args:
        raw: JSON object of user name -> parameter name, or None/empty to use
            the built-in table

    Returns:
        dict: IAM user name -> SSM parameter name

    Raises:
        ValueError: If the override is not a JSON object of non-empty strings
    """
    if not raw or not raw.strip():
        return dict(DEFAULT_IDENTITY_MAPPINGS)

    try:
        mappings = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ValueError(f"USER_EMAIL_PARAMETERS is not valid JSON: {e}") from e

    if not isinstance(mappings, dict):
        raise ValueError("USER_EMAIL_PARAMETERS must be a JSON object of user name to parameter name")

    for user_name, parameter_name in mappings.items():
        if not isinstance(parameter_name, str) or not user_name or not parameter_name:
            raise ValueError(f"Invalid mapping in USER_EMAIL_PARAMETERS for user '{user_name}'")

    return mappings


def resolve_email_parameter(user_name: str, mappings: Optional[Dict[str, str]] = None) -> Optional[str]:
    """
    Resolve the email parameter name for an IAM user.

    Args:
        user_name: IAM user name taken from the creation event
        mappings: Mapping table to use (defaults to the built-in table)

    Returns:
        str: SSM parameter name, or None if the user is not a known identity
    """
    if mappings is None:
        mappings = DEFAULT_IDENTITY_MAPPINGS
    return mappings.get(user_name)
