#!/usr/bin/env python3
"""
Principal Resolution

Produces the list of IAM principal ARNs to migrate, either from an explicitly
supplied role/user ARN or from client connections recorded during discovery,
and derives the Terraform-safe "clean" name used for grouping and file names.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Union
from dataclasses import dataclass

logger = logging.getLogger(__name__)

AUTH_IAM = "IAM"
USER_PREFIX = "User:"

# Characters collapsed to "_" in clean principal names
CLEAN_NAME_SEPARATORS = ('.', '@', '-', ' ', '/', '\\')


@dataclass
class DiscoveredClient:
    """A client connection recorded on the source cluster"""
    client_id: str
    role: str
    topic: str
    auth: str
    principal: str
    timestamp: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'DiscoveredClient':
        return cls(
            client_id=data.get('client_id', ''),
            role=data.get('role', ''),
            topic=data.get('topic', ''),
            auth=data.get('auth', ''),
            principal=data.get('principal') or '',
            timestamp=data.get('timestamp')
        )


def resolve_explicit(identifier: str) -> List[str]:
    """A single role or user ARN supplied by the user"""
    return [identifier]


def resolve_discovered(clients: Iterable[Union[DiscoveredClient, Dict[str, Any]]]) -> List[str]:
    """
    Resolve principal ARNs from recorded client connections

    Only IAM-authenticated clients are considered. STS session ARNs are folded
    onto their IAM role ARN and duplicates are dropped, keeping the order in
    which principals were first seen.
    """
    discovered = []
    skipped = 0

    for client in clients:
        if isinstance(client, dict):
            client = DiscoveredClient.from_dict(client)

        if client.auth != AUTH_IAM:
            skipped += 1
            continue

        if not client.principal:
            logger.warning(f"Skipping IAM client {client.client_id} with no recorded principal")
            skipped += 1
            continue

        discovered.append(client.principal)

    principal_arns = deduplicate(normalize_discovered(principal) for principal in discovered)

    logger.info(f"Resolved {len(principal_arns)} IAM principals from {len(discovered)} IAM clients "
                f"({skipped} clients ignored)")
    return principal_arns


# arn:aws:sts::000123456789:assumed-role/kcp-iam-role/i-0ab123456cdef7890
# arn:aws:iam::000123456789:role/kcp-iam-role
def normalize_discovered(identifier: str) -> str:
    """Normalize a recorded principal to its IAM role or user ARN"""
    arn = identifier.replace('arn:aws:sts::', 'arn:aws:iam::', 1) \
        if identifier.startswith('arn:aws:sts::') else identifier
    arn = arn.replace(':assumed-role/', ':role/', 1)

    # Drop the session name appended after the role name
    parts = arn.split('/')
    if len(parts) > 2:
        arn = '/'.join(parts[:2])

    return arn


def deduplicate(identifiers: Iterable[str]) -> List[str]:
    """Drop repeated identifiers, preserving first-seen order"""
    unique = []
    for identifier in identifiers:
        if identifier not in unique:
            unique.append(identifier)
    return unique


def principal_from_arn(identifier: str) -> str:
    """
    Derive the Kafka-style display principal from an ARN

    The second '/' segment of a role or user ARN is its name. Identifiers
    without a path (e.g. ``User:alice`` from a Kafka ACL) are returned as-is.
    """
    parts = identifier.split('/')
    if len(parts) < 2:
        return identifier
    return f"{USER_PREFIX}{parts[1]}"


def clean_name(identifier: str) -> str:
    """
    Terraform and filesystem safe name for an IAM principal ARN

    Only call this on raw identifiers; its output is not a valid input.
    """
    return clean_principal(principal_from_arn(identifier))


def clean_principal(principal: str) -> str:
    """Strip the ``User:`` prefix and collapse separators of a Kafka principal"""
    name = principal[len(USER_PREFIX):] if principal.startswith(USER_PREFIX) else principal

    for separator in CLEAN_NAME_SEPARATORS:
        name = name.replace(separator, '_')

    return name.lower()
