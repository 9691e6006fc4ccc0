#!/usr/bin/env python3
"""
IAM Policy to Kafka ACL Translation

This module decodes IAM policy documents into typed statements and translates
each ``kafka-cluster:*`` action they grant or deny into Confluent Cloud
compatible ACL records.
"""

import logging
from typing import Any, Dict, List, Tuple
from dataclasses import dataclass, field

from .mapping import IAM_ACTION_PREFIX, WILDCARD_ACTION, ActionMapping, all_mappings, lookup
from .patterns import PATTERN_LITERAL, WILDCARD, extract_pattern
from .principals import clean_name

logger = logging.getLogger(__name__)

DEFAULT_HOST = "*"


class PolicyDocumentError(ValueError):
    """Raised when a policy document does not have the IAM policy shape"""


@dataclass(frozen=True)
class PolicyStatement:
    """A single IAM policy statement, decoded from its JSON form"""
    effect: str
    actions: Tuple[str, ...] = field(default_factory=tuple)
    resources: Tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class AclRecord:
    """A Kafka ACL entry in the shape Confluent Cloud expects"""
    resource_type: str
    resource_name: str
    resource_pattern_type: str
    principal: str
    host: str
    operation: str
    permission_type: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'ResourceType': self.resource_type,
            'ResourceName': self.resource_name,
            'ResourcePatternType': self.resource_pattern_type,
            'Principal': self.principal,
            'Host': self.host,
            'Operation': self.operation,
            'PermissionType': self.permission_type
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'AclRecord':
        return cls(
            resource_type=data['ResourceType'],
            resource_name=data['ResourceName'],
            resource_pattern_type=data['ResourcePatternType'],
            principal=data['Principal'],
            host=data['Host'],
            operation=data['Operation'],
            permission_type=data['PermissionType']
        )


def decode_policy_document(document: Dict[str, Any]) -> List[PolicyStatement]:
    """
    Decode an IAM policy document into typed statements

    Args:
        document: Parsed policy JSON with a ``Statement`` entry

    Returns:
        List of PolicyStatement in document order

    Raises:
        PolicyDocumentError: If the document or one of its statements is malformed
    """
    if not isinstance(document, dict):
        raise PolicyDocumentError(f"policy document must be an object, got {type(document).__name__}")

    if 'Statement' not in document:
        raise PolicyDocumentError("policy document has no Statement")

    raw_statements = document['Statement']
    if isinstance(raw_statements, dict):
        raw_statements = [raw_statements]
    elif not isinstance(raw_statements, list):
        raise PolicyDocumentError(
            f"policy Statement must be a list or an object, got {type(raw_statements).__name__}"
        )

    return [_decode_statement(index, raw) for index, raw in enumerate(raw_statements)]


def _decode_statement(index: int, raw: Any) -> PolicyStatement:
    if not isinstance(raw, dict):
        raise PolicyDocumentError(f"statement {index} must be an object, got {type(raw).__name__}")

    effect = raw.get('Effect')
    if not isinstance(effect, str):
        raise PolicyDocumentError(f"statement {index} has no string Effect")

    return PolicyStatement(
        effect=effect.upper(),
        actions=_string_or_list(index, 'Action', raw.get('Action')),
        resources=_string_or_list(index, 'Resource', raw.get('Resource'))
    )


def _string_or_list(index: int, key: str, value: Any) -> Tuple[str, ...]:
    """Flatten an IAM field that may be a bare string or a list of strings"""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and all(isinstance(item, str) for item in value):
        return tuple(value)
    raise PolicyDocumentError(f"statement {index} {key} must be a string or a list of strings")


def translate_statement(principal_arn: str,
                        statement: PolicyStatement,
                        first_resource_only: bool = False) -> List[AclRecord]:
    """
    Translate one policy statement into ACL records

    Args:
        principal_arn: IAM role or user ARN the statement applies to
        statement: Decoded policy statement
        first_resource_only: Only translate the first resource of each action

    Returns:
        ACL records in action order, without duplicates
    """
    principal = clean_name(principal_arn)
    resources = statement.resources[:1] if first_resource_only else statement.resources
    records = []

    for action in statement.actions:
        if not action.startswith(IAM_ACTION_PREFIX):
            continue

        if action == WILDCARD_ACTION:
            mappings = all_mappings()
        else:
            mapping = lookup(action)
            if mapping is None:
                logger.debug(f"Skipping unmapped action {action}")
                continue
            mappings = (mapping,)

        for mapping in mappings:
            records.extend(_records_for_mapping(principal, mapping, statement.effect, resources))

    # The same ACL can be reached through several actions or resources
    unique = []
    for record in records:
        if record not in unique:
            unique.append(record)
    return unique


def _records_for_mapping(principal: str,
                         mapping: ActionMapping,
                         effect: str,
                         resources: Tuple[str, ...]) -> List[AclRecord]:
    if mapping.requires_pattern and resources:
        targets = [extract_pattern(resource, mapping.resource_type) for resource in resources]
    else:
        targets = [(WILDCARD, PATTERN_LITERAL)]

    return [
        AclRecord(
            resource_type=mapping.resource_type,
            resource_name=resource_name,
            resource_pattern_type=pattern_type,
            principal=principal,
            host=DEFAULT_HOST,
            operation=mapping.operation,
            permission_type=effect
        )
        for resource_name, pattern_type in targets
    ]


class PolicyTranslator:
    """Translates every policy attached to a principal into ACL records"""

    def __init__(self, first_resource_only: bool = False):
        self.first_resource_only = first_resource_only

    def translate_document(self, principal_arn: str, document: Dict[str, Any]) -> List[AclRecord]:
        """Translate all statements of a single policy document"""
        records = []
        for statement in decode_policy_document(document):
            records.extend(translate_statement(principal_arn, statement, self.first_resource_only))
        return records

    def translate_policies(self, principal_arn: str, policies: Any) -> List[AclRecord]:
        """
        Translate the attached and inline policies of a principal

        Args:
            principal_arn: IAM role or user ARN
            policies: PrincipalPolicies returned by the policy fetcher

        Returns:
            All ACL records, attached policies first
        """
        records = []

        for policy in policies.attached_policies:
            logger.info(f"Processing attached policy: {policy.name}")
            records.extend(self._translate_named(principal_arn, policy.name, policy.document))

        for policy in policies.inline_policies:
            logger.info(f"Processing inline policy: {policy.name}")
            records.extend(self._translate_named(principal_arn, policy.name, policy.document))

        return records

    def _translate_named(self, principal_arn: str, name: str, document: Dict[str, Any]) -> List[AclRecord]:
        try:
            return self.translate_document(principal_arn, document)
        except PolicyDocumentError as e:
            raise PolicyDocumentError(f"policy {name}: {e}") from e
