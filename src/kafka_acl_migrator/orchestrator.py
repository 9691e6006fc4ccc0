#!/usr/bin/env python3
"""
Orchestration Controller

This module coordinates the two ACL migration paths. The IAM path resolves
principals, fetches their IAM policies, translates them into Kafka ACLs and
emits Terraform. The Kafka path converts ACLs already recorded in a discovery
state file. Both paths end in the same asset emitter.
"""

import time
import logging
from typing import Any, Dict, List, Optional
from botocore.exceptions import BotoCoreError, ClientError

from .config import ToolConfig
from .emitter import STAGE_REPORT, SOURCE_IAM, SOURCE_KAFKA, AssetEmitter, EmissionError, EmissionResult
from .kafka_acls import convert_acls, group_by_principal
from .policies import PolicyFetcher
from .principals import clean_name, resolve_discovered, resolve_explicit
from .state import cluster_acls, cluster_name, discovered_clients, get_cluster_by_arn, load_state
from .translation import AclRecord, PolicyDocumentError, PolicyTranslator

logger = logging.getLogger(__name__)

MULTI_PRINCIPAL_OUTPUT_DIR = "iam_acls"
CLIENT_DISCOVERY_OUTPUT_DIR = "client-discovery-acls"


class MigrationError(Exception):
    """Raised when a migration step fails"""


def build_emitter(config: ToolConfig) -> AssetEmitter:
    """Create the asset emitter described by the configuration"""
    return AssetEmitter(
        cluster_id=config.target.cluster_id,
        rest_endpoint=config.target.rest_endpoint,
        provider_version=config.target.provider_version,
        skip_audit_report=config.output.skip_audit_report
    )


def emit_assets(emitter: AssetEmitter,
                acls_by_principal: Dict[str, List[AclRecord]],
                output_directory: str,
                source: str) -> EmissionResult:
    """Run the emitter, wrapping write failures in MigrationError"""
    try:
        return emitter.emit(acls_by_principal, output_directory, source)
    except EmissionError as e:
        if e.stage == STAGE_REPORT:
            raise MigrationError(f"failed to generate audit report: {e}") from e
        raise MigrationError(f"failed to write Terraform files: {e}") from e


def _new_result() -> Dict[str, Any]:
    return {
        'success': False,
        'start_time': time.strftime('%Y-%m-%d %H:%M:%S'),
        'phases': [],
        'principals': [],
        'acls_count': 0,
        'output_directory': None,
        'files': [],
        'warnings': [],
        'errors': []
    }


def _apply_emission(result: Dict[str, Any], emission: EmissionResult):
    result['output_directory'] = emission.output_directory
    result['files'] = emission.files
    result['acls_count'] = emission.acls_count
    result['report_file'] = emission.report_file


class IamAclMigrator:
    """
    Migrates IAM policies of one or more principals to Confluent Cloud ACLs

    Principals come from exactly one of ``source.role_arn``,
    ``source.user_arn`` or ``source.state_file`` (with ``source.cluster_arn``).
    """

    def __init__(self,
                 config: ToolConfig,
                 policy_fetcher: Optional[PolicyFetcher] = None,
                 emitter: Optional[AssetEmitter] = None):
        """
        Initialize the migrator

        Args:
            config: Tool configuration object
            policy_fetcher: IAM policy fetcher, created from the config when omitted
            emitter: Asset emitter, created from the config when omitted
        """
        self.config = config
        self._policy_fetcher = policy_fetcher
        self.translator = PolicyTranslator(first_resource_only=config.translation.first_resource_only)
        self.emitter = emitter or build_emitter(config)

        logger.info("Initialized IamAclMigrator")

    @property
    def policy_fetcher(self) -> PolicyFetcher:
        if self._policy_fetcher is None:
            self._policy_fetcher = PolicyFetcher(
                profile=self.config.source.profile,
                region=self.config.source.region
            )
        return self._policy_fetcher

    @property
    def uses_state_file(self) -> bool:
        return bool(self.config.source.state_file)

    def resolve_principals(self) -> List[str]:
        """Resolve the principal ARNs to migrate from the configured source"""
        source = self.config.source
        selected = [value for value in (source.role_arn, source.user_arn, source.state_file) if value]

        if len(selected) != 1:
            raise ValueError("exactly one of role ARN, user ARN or state file must be provided")

        if source.role_arn:
            return resolve_explicit(source.role_arn)
        if source.user_arn:
            return resolve_explicit(source.user_arn)

        if not source.cluster_arn:
            raise ValueError("a cluster ARN is required when reading principals from a state file")

        cluster = get_cluster_by_arn(load_state(source.state_file), source.cluster_arn)
        return resolve_discovered(discovered_clients(cluster))

    def collect_acls(self, principal_arns: List[str]) -> Dict[str, List[AclRecord]]:
        """
        Fetch and translate the policies of every principal

        Returns:
            ACL records grouped by clean principal name, in principal order

        Raises:
            MigrationError: If a policy cannot be fetched or decoded
        """
        acls_by_principal: Dict[str, List[AclRecord]] = {}

        for principal_arn in principal_arns:
            logger.info(f"Retrieving IAM policies for principal {principal_arn}")

            try:
                policies = self.policy_fetcher.get_principal_policies(principal_arn)
            except (ClientError, BotoCoreError, ValueError) as e:
                raise MigrationError(f"failed to get principal policies: {e}") from e

            try:
                records = self.translator.translate_policies(principal_arn, policies)
            except PolicyDocumentError as e:
                raise MigrationError(f"failed to extract Kafka permissions: {e}") from e

            if not records:
                logger.info(f"No kafka-cluster permissions found in policies for {principal_arn}")
                continue

            for record in records:
                acls_by_principal.setdefault(record.principal, []).append(record)

        return acls_by_principal

    def output_directory(self, principal_arns: List[str]) -> str:
        """Output directory for this run, computed once before emission"""
        if self.config.output.output_directory:
            return self.config.output.output_directory
        if self.uses_state_file:
            return CLIENT_DISCOVERY_OUTPUT_DIR
        if len(principal_arns) == 1:
            return f"{clean_name(principal_arns[0])}_iam_acls"
        return MULTI_PRINCIPAL_OUTPUT_DIR

    def run(self) -> Dict[str, Any]:
        """
        Run the complete IAM ACL migration

        Returns:
            Dictionary with migration results and statistics
        """
        logger.info("Starting IAM ACL migration")
        start_time = time.time()
        result = _new_result()

        try:
            result['phases'].append('resolving_principals')
            principal_arns = self.resolve_principals()
            result['principals'] = principal_arns

            if not principal_arns:
                message = "No IAM principals found, nothing to migrate"
                logger.info(message)
                result['warnings'].append(message)
                result['success'] = True
                return result

            result['phases'].append('translating')
            acls_by_principal = self.collect_acls(principal_arns)

            if not acls_by_principal:
                message = ("No kafka-cluster permissions found in the specified principals' policies, "
                           "so there is nothing to convert")
                logger.info(message)
                result['warnings'].append(message)
                result['success'] = True
                return result

            result['phases'].append('emitting')
            output_directory = self.output_directory(principal_arns)
            emission = emit_assets(self.emitter, acls_by_principal, output_directory, SOURCE_IAM)
            _apply_emission(result, emission)

            result['phases'].append('done')
            result['success'] = True
            logger.info(f"IAM ACLs Terraform files generated in {emission.output_directory}: "
                        f"{len(acls_by_principal)} principals, {emission.acls_count} ACLs")

        except Exception as e:
            error_msg = f"IAM ACL migration failed: {str(e)}"
            logger.error(error_msg)
            result['errors'].append(error_msg)

        finally:
            result['total_time'] = time.time() - start_time
            result['end_time'] = time.strftime('%Y-%m-%d %H:%M:%S')

        return result


class KafkaAclMigrator:
    """Migrates Kafka ACLs recorded for an MSK cluster to Confluent Cloud ACLs"""

    def __init__(self, config: ToolConfig, emitter: Optional[AssetEmitter] = None):
        self.config = config
        self.emitter = emitter or build_emitter(config)

        logger.info("Initialized KafkaAclMigrator")

    def output_directory(self, name: str) -> str:
        if self.config.output.output_directory:
            return self.config.output.output_directory
        return f"{name}_kafka_acls"

    def migrate_acls(self, name: str, observed_acls: List[Dict[str, Any]]) -> Optional[EmissionResult]:
        """
        Convert and emit the ACLs of one cluster

        Args:
            name: Source cluster name, used for the default output directory
            observed_acls: ACL entries in Kafka field names

        Returns:
            EmissionResult, or None when the cluster has no ACLs
        """
        if not observed_acls:
            logger.warning(f"No Kafka ACLs found for cluster {name}")
            return None

        acls_by_principal = group_by_principal(convert_acls(observed_acls))
        return emit_assets(self.emitter, acls_by_principal, self.output_directory(name), SOURCE_KAFKA)

    def run(self) -> Dict[str, Any]:
        """Run the Kafka ACL migration for the configured state file and cluster"""
        logger.info("Starting Kafka ACL migration")
        start_time = time.time()
        result = _new_result()
        source = self.config.source

        try:
            if not source.state_file or not source.cluster_arn:
                raise ValueError("a state file and a cluster ARN are required to migrate Kafka ACLs")

            result['phases'].append('loading_state')
            cluster = get_cluster_by_arn(load_state(source.state_file), source.cluster_arn)
            name = cluster_name(cluster)

            result['phases'].append('emitting')
            emission = self.migrate_acls(name, cluster_acls(cluster))

            if emission is None:
                result['warnings'].append(f"No Kafka ACLs found for cluster {name}, nothing to convert")
            else:
                _apply_emission(result, emission)
                result['principals'] = emission.principals
                logger.info(f"Kafka ACLs Terraform files generated in {emission.output_directory}: "
                            f"{len(emission.principals)} principals, {emission.acls_count} ACLs")

            result['phases'].append('done')
            result['success'] = True

        except Exception as e:
            error_msg = f"Kafka ACL migration failed: {str(e)}"
            logger.error(error_msg)
            result['errors'].append(error_msg)

        finally:
            result['total_time'] = time.time() - start_time
            result['end_time'] = time.strftime('%Y-%m-%d %H:%M:%S')

        return result
