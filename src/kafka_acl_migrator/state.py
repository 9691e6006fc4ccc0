#!/usr/bin/env python3
"""
Discovery State File Reader

Reads the JSON state file written by cluster discovery. The file lists
regions, the MSK clusters found in each region, the client connections
observed on each cluster and the Kafka ACLs read from its admin API.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .principals import DiscoveredClient

logger = logging.getLogger(__name__)


class StateFileError(ValueError):
    """Raised when the state file cannot be read or lacks a requested cluster"""


def load_state(state_file: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a discovery state file

    Args:
        state_file: Path to the JSON state file

    Returns:
        Parsed state dictionary
    """
    state_path = Path(state_file)
    if not state_path.exists():
        raise StateFileError(f"state file not found: {state_path}")

    try:
        with open(state_path, 'r') as f:
            state = json.load(f)
    except json.JSONDecodeError as e:
        raise StateFileError(f"state file {state_path} is not valid JSON: {e}") from e

    if not isinstance(state, dict):
        raise StateFileError(f"state file {state_path} must contain a JSON object")

    regions = state.get('regions', [])
    cluster_count = sum(len(region.get('clusters', [])) for region in regions)
    logger.info(f"Loaded state file {state_path}: {len(regions)} regions, {cluster_count} clusters")

    return state


def get_cluster_by_arn(state: Dict[str, Any], cluster_arn: str) -> Dict[str, Any]:
    """Find a cluster entry by ARN across all regions"""
    for region in state.get('regions', []):
        for cluster in region.get('clusters', []):
            if cluster.get('arn') == cluster_arn:
                return cluster

    raise StateFileError(f"cluster {cluster_arn} not found in state file")


def discovered_clients(cluster: Dict[str, Any]) -> List[DiscoveredClient]:
    """Client connections recorded for a cluster"""
    return [DiscoveredClient.from_dict(client) for client in cluster.get('discovered_clients') or []]


def cluster_acls(cluster: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Kafka ACLs read from the cluster's admin API, in Kafka field names"""
    admin_info = cluster.get('kafka_admin_client_information') or {}
    return list(admin_info.get('acls') or [])


def cluster_name(cluster: Dict[str, Any]) -> str:
    """Cluster name, falling back to the name segment of the cluster ARN"""
    if cluster.get('name'):
        return cluster['name']

    # arn:aws:kafka:region:account:cluster/cluster-name/cluster-id
    parts = cluster.get('arn', '').split('/')
    if len(parts) >= 3:
        return parts[1]
    raise StateFileError(f"cluster entry has neither a name nor a parseable ARN: {cluster.get('arn')}")
