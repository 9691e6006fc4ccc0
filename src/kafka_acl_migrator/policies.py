#!/usr/bin/env python3
"""
IAM Policy Fetcher

This module retrieves the inline and managed policies attached to an IAM role
or user through boto3, returning each policy document as parsed JSON.
"""

import boto3
import json
import logging
from typing import Any, Dict, List, Optional, Tuple
from dataclasses import dataclass, field
from urllib.parse import unquote
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)

PRINCIPAL_TYPE_ROLE = "role"
PRINCIPAL_TYPE_USER = "user"


@dataclass
class PolicyInfo:
    """A single IAM policy and its document"""
    name: str
    document: Dict[str, Any]
    arn: Optional[str] = None
    description: Optional[str] = None


@dataclass
class PrincipalPolicies:
    """All policies that apply to an IAM principal"""
    principal_arn: str
    principal_name: str
    principal_type: str
    attached_policies: List[PolicyInfo] = field(default_factory=list)
    inline_policies: List[PolicyInfo] = field(default_factory=list)

    @property
    def policy_count(self) -> int:
        return len(self.attached_policies) + len(self.inline_policies)


def parse_principal_arn(principal_arn: str) -> Tuple[str, str]:
    """
    Split an IAM role or user ARN into (principal_type, name)

    Raises:
        ValueError: If the ARN is neither a role nor a user
    """
    if ':role/' in principal_arn:
        return PRINCIPAL_TYPE_ROLE, principal_arn.split(':role/', 1)[1].split('/')[-1]
    if ':user/' in principal_arn:
        return PRINCIPAL_TYPE_USER, principal_arn.split(':user/', 1)[1].split('/')[-1]
    raise ValueError(f"unsupported principal ARN, expected an IAM role or user: {principal_arn}")


def decode_document(document: Any) -> Dict[str, Any]:
    """IAM returns documents either parsed or as URL-encoded JSON strings"""
    if isinstance(document, str):
        return json.loads(unquote(document))
    return document


class PolicyFetcher:
    """
    Fetches IAM policies for roles and users

    The IAM API is global, so a region is only passed through to the session
    when one is configured.
    """

    def __init__(self,
                 profile: Optional[str] = None,
                 region: Optional[str] = None,
                 session: Optional[boto3.Session] = None):
        """
        Initialize the policy fetcher

        Args:
            profile: AWS profile to use for authentication
            region: AWS region for the session
            session: Pre-built boto3 session, mainly for tests
        """
        if session is None:
            session_args = {}
            if profile:
                session_args['profile_name'] = profile
            if region:
                session_args['region_name'] = region
            session = boto3.Session(**session_args)

        self.session = session
        self.iam_client = self.session.client('iam')

        logger.info(f"Initialized PolicyFetcher (profile: {profile or 'default'})")

    def get_principal_policies(self, principal_arn: str) -> PrincipalPolicies:
        """
        Get every policy attached to a role or user

        Args:
            principal_arn: IAM role or user ARN

        Returns:
            PrincipalPolicies with attached and inline policy documents
        """
        principal_type, name = parse_principal_arn(principal_arn)
        logger.info(f"Fetching policies for IAM {principal_type}: {name}")

        try:
            if principal_type == PRINCIPAL_TYPE_ROLE:
                inline = self._get_inline_policies('list_role_policies', 'get_role_policy', RoleName=name)
                attached = self._get_attached_policies('list_attached_role_policies', RoleName=name)
            else:
                inline = self._get_inline_policies('list_user_policies', 'get_user_policy', UserName=name)
                attached = self._get_attached_policies('list_attached_user_policies', UserName=name)
        except ClientError as e:
            logger.error(f"AWS API error fetching policies for {principal_arn}: {str(e)}")
            raise

        policies = PrincipalPolicies(
            principal_arn=principal_arn,
            principal_name=name,
            principal_type=principal_type,
            attached_policies=attached,
            inline_policies=inline
        )

        logger.info(f"Found {len(attached)} attached and {len(inline)} inline policies for {name}")
        return policies

    def _get_inline_policies(self, list_operation: str, get_operation: str, **principal) -> List[PolicyInfo]:
        policies = []

        paginator = self.iam_client.get_paginator(list_operation)
        for page in paginator.paginate(**principal):
            for policy_name in page['PolicyNames']:
                response = getattr(self.iam_client, get_operation)(PolicyName=policy_name, **principal)
                policies.append(PolicyInfo(
                    name=policy_name,
                    document=decode_document(response['PolicyDocument'])
                ))
                logger.debug(f"Fetched inline policy: {policy_name}")

        return policies

    def _get_attached_policies(self, list_operation: str, **principal) -> List[PolicyInfo]:
        policies = []

        paginator = self.iam_client.get_paginator(list_operation)
        for page in paginator.paginate(**principal):
            for attached in page['AttachedPolicies']:
                policy_arn = attached['PolicyArn']

                policy = self.iam_client.get_policy(PolicyArn=policy_arn)['Policy']
                version = self.iam_client.get_policy_version(
                    PolicyArn=policy_arn,
                    VersionId=policy['DefaultVersionId']
                )['PolicyVersion']

                policies.append(PolicyInfo(
                    name=attached['PolicyName'],
                    document=decode_document(version['Document']),
                    arn=policy_arn,
                    description=policy.get('Description')
                ))
                logger.debug(f"Fetched attached policy: {attached['PolicyName']} ({policy['DefaultVersionId']})")

        return policies
