#!/usr/bin/env python3
"""
Direct Kafka ACL Conversion

Converts ACL entries observed on the source cluster into ACL records for the
target cluster. Fields are carried over unchanged apart from the principal,
which is reduced to its clean form.
"""

import logging
from typing import Any, Dict, Iterable, List, Union

from .principals import clean_principal, principal_from_arn
from .translation import AclRecord

logger = logging.getLogger(__name__)

REQUIRED_FIELDS = (
    'ResourceType',
    'ResourceName',
    'ResourcePatternType',
    'Principal',
    'Host',
    'Operation',
    'PermissionType',
)


def convert_acl(observed: Dict[str, Any]) -> AclRecord:
    """Convert one observed Kafka ACL entry"""
    missing = [name for name in REQUIRED_FIELDS if name not in observed]
    if missing:
        raise ValueError(f"Kafka ACL entry is missing fields: {', '.join(missing)}")

    return AclRecord(
        resource_type=observed['ResourceType'],
        resource_name=observed['ResourceName'],
        resource_pattern_type=observed['ResourcePatternType'],
        principal=clean_principal(principal_from_arn(observed['Principal'])),
        host=observed['Host'],
        operation=observed['Operation'],
        permission_type=observed['PermissionType']
    )


def convert_acls(observed_acls: Iterable[Dict[str, Any]]) -> List[AclRecord]:
    """Convert a batch of observed ACL entries, keeping their order"""
    records = [convert_acl(observed) for observed in observed_acls]
    logger.info(f"Converted {len(records)} Kafka ACL entries")
    return records


def group_by_principal(records: Iterable[Union[AclRecord, Dict[str, Any]]]) -> Dict[str, List[AclRecord]]:
    """
    Group ACL records by principal

    Dict entries are accepted in Kafka field names and converted first. The
    returned mapping keeps principals in first-seen order.
    """
    grouped: Dict[str, List[AclRecord]] = {}

    for record in records:
        if isinstance(record, dict):
            record = convert_acl(record)
        grouped.setdefault(record.principal, []).append(record)

    return grouped
