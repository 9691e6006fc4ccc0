#!/usr/bin/env python3
"""
IAM Action Mapping Table

This module holds the static lookup from MSK ``kafka-cluster:*`` IAM actions to
the Kafka ACL (operation, resource type) they grant, plus the reverse lookup
used when auditing generated ACLs.
"""

import logging
from types import MappingProxyType
from typing import List, Optional, Tuple
from dataclasses import dataclass

logger = logging.getLogger(__name__)

IAM_ACTION_PREFIX = "kafka-cluster:"
WILDCARD_ACTION = "kafka-cluster:*"

RESOURCE_TYPE_CLUSTER = "Cluster"
RESOURCE_TYPE_TOPIC = "Topic"
RESOURCE_TYPE_GROUP = "Group"
RESOURCE_TYPE_TRANSACTIONAL_ID = "TransactionalId"

RESOURCE_TYPES = (
    RESOURCE_TYPE_CLUSTER,
    RESOURCE_TYPE_TOPIC,
    RESOURCE_TYPE_GROUP,
    RESOURCE_TYPE_TRANSACTIONAL_ID,
)


@dataclass(frozen=True)
class ActionMapping:
    """Kafka ACL equivalent of a single IAM action"""
    operation: str
    resource_type: str
    requires_pattern: bool


# https://docs.aws.amazon.com/service-authorization/latest/reference/list_apachekafkaapisforamazonmskclusters.html
ACTION_MAPPINGS = MappingProxyType({
    # Cluster
    'kafka-cluster:AlterCluster': ActionMapping('Alter', RESOURCE_TYPE_CLUSTER, False),
    'kafka-cluster:AlterClusterDynamicConfiguration': ActionMapping('AlterConfigs', RESOURCE_TYPE_CLUSTER, False),
    'kafka-cluster:DescribeCluster': ActionMapping('Describe', RESOURCE_TYPE_CLUSTER, False),
    'kafka-cluster:DescribeClusterDynamicConfiguration': ActionMapping('DescribeConfigs', RESOURCE_TYPE_CLUSTER, False),
    'kafka-cluster:WriteDataIdempotently': ActionMapping('IdempotentWrite', RESOURCE_TYPE_CLUSTER, True),

    # Topic
    'kafka-cluster:AlterTopic': ActionMapping('Alter', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:AlterTopicDynamicConfiguration': ActionMapping('AlterConfigs', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:CreateTopic': ActionMapping('Create', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:DeleteTopic': ActionMapping('Delete', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:DescribeTopic': ActionMapping('Describe', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:DescribeTopicDynamicConfiguration': ActionMapping('DescribeConfigs', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:ReadData': ActionMapping('Read', RESOURCE_TYPE_TOPIC, True),
    'kafka-cluster:WriteData': ActionMapping('Write', RESOURCE_TYPE_TOPIC, True),

    # Consumer groups
    'kafka-cluster:AlterGroup': ActionMapping('Read', RESOURCE_TYPE_GROUP, True),
    'kafka-cluster:DeleteGroup': ActionMapping('Delete', RESOURCE_TYPE_GROUP, True),
    'kafka-cluster:DescribeGroup': ActionMapping('Describe', RESOURCE_TYPE_GROUP, True),

    # Transactions
    'kafka-cluster:AlterTransactionalId': ActionMapping('Write', RESOURCE_TYPE_TRANSACTIONAL_ID, True),
    'kafka-cluster:DescribeTransactionalId': ActionMapping('Describe', RESOURCE_TYPE_TRANSACTIONAL_ID, True),
})


def lookup(iam_action: str) -> Optional[ActionMapping]:
    """Get the ACL mapping for an IAM action, or None if the action is unknown"""
    return ACTION_MAPPINGS.get(iam_action.strip())


def all_mappings() -> Tuple[ActionMapping, ...]:
    """All mappings in table order, used to expand ``kafka-cluster:*``"""
    return tuple(ACTION_MAPPINGS.values())


def resolve_iam_actions(resource_type: str, operation: str) -> List[str]:
    """
    Find every IAM action that translates to the given ACL tuple

    Several actions can collapse onto the same (resource type, operation), so
    this returns all of them, sorted for stable report output.
    """
    return sorted(
        action for action, mapping in ACTION_MAPPINGS.items()
        if mapping.resource_type == resource_type and mapping.operation == operation
    )
