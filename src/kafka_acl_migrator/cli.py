#!/usr/bin/env python3
"""
Command Line Interface for the Kafka ACL Migrator

This module provides the main CLI interface for converting MSK IAM policies
and Kafka ACLs into Confluent Cloud ACL Terraform.
"""

import click
import logging
import logging.handlers
import sys
import os
import json
from typing import Any, Dict, Tuple
import yaml
from tabulate import tabulate

from . import __version__
from .config import ConfigManager, DEFAULT_CONFIG_TEMPLATE, LoggingConfig, ToolConfig
from .orchestrator import IamAclMigrator, KafkaAclMigrator

logger = logging.getLogger(__name__)


def configure_logging(logging_config: LoggingConfig):
    """Configure the root logger from the logging configuration"""
    root_logger = logging.getLogger()
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, logging_config.level))
    formatter = logging.Formatter(logging_config.format)

    if logging_config.console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        root_logger.addHandler(console_handler)

    if logging_config.file:
        file_handler = logging.handlers.RotatingFileHandler(
            logging_config.file,
            maxBytes=logging_config.max_file_size,
            backupCount=logging_config.backup_count
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)


def _load_config(ctx, cli_args: Dict[str, Any]) -> Tuple[ConfigManager, ToolConfig]:
    """Load configuration with the global options applied and set up logging"""
    config_manager = ConfigManager()
    cli_args = dict(cli_args)
    cli_args['verbose'] = ctx.obj.get('verbose', False)
    cli_args['quiet'] = ctx.obj.get('quiet', False)

    config = config_manager.load_config(
        config_file=ctx.obj.get('config_file'),
        cli_args=cli_args
    )
    configure_logging(config.logging)
    return config_manager, config


def _display_result(result: Dict[str, Any]):
    """Display a migration result summary"""
    rows = [
        ['Principals', len(result['principals'])],
        ['ACL entries', result['acls_count']],
        ['Output directory', result['output_directory'] or '-'],
        ['Files written', len(result['files'])],
        ['Time', f"{result.get('total_time', 0):.2f}s"],
    ]
    click.echo(tabulate(rows, tablefmt='grid'))

    for file_path in result['files']:
        click.echo(f"   {file_path}")

    for warning in result['warnings']:
        click.echo(f"Warning {warning}")


@click.group()
@click.version_option(version=__version__)
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.option('--quiet', '-q', is_flag=True,
              help='Enable quiet mode (warnings and errors only)')
@click.pass_context
def cli(ctx, config, verbose, quiet):
    """
    Kafka ACL Migrator

    Converts AWS MSK IAM policies and Kafka ACLs into Confluent Cloud ACL
    Terraform configuration with a markdown audit report.
    """
    ctx.ensure_object(dict)

    ctx.obj['config_file'] = config
    ctx.obj['verbose'] = verbose
    ctx.obj['quiet'] = quiet


def target_options(command):
    """Options shared by the migration commands"""
    options = [
        click.option('--target-cluster-id', help='Confluent Cloud cluster ID, e.g. lkc-abc123'),
        click.option('--target-rest-endpoint', help='REST endpoint of the Confluent Cloud cluster'),
        click.option('--output-dir', '-o', help='Output directory for the generated files'),
        click.option('--skip-audit-report', is_flag=True, help='Do not write the markdown audit report'),
    ]
    for option in reversed(options):
        command = option(command)
    return command


@cli.command()
@click.option('--role-arn', help='IAM role ARN whose policies are migrated')
@click.option('--user-arn', help='IAM user ARN whose policies are migrated')
@click.option('--state-file', type=click.Path(exists=True, dir_okay=False),
              help='Discovery state file; migrates every IAM client recorded for the cluster')
@click.option('--cluster-arn', help='MSK cluster ARN, required with --state-file')
@target_options
@click.option('--first-resource-only', is_flag=True,
              help='Only translate the first resource of each policy action')
@click.option('--profile', '-p', help='AWS profile to use')
@click.option('--region', '-r', help='AWS region for the session')
@click.pass_context
def iam(ctx, role_arn, user_arn, state_file, cluster_arn, target_cluster_id, target_rest_endpoint,
        output_dir, skip_audit_report, first_resource_only, profile, region):
    """
    Migrate IAM policies to Confluent Cloud ACLs

    Reads the kafka-cluster permissions granted to an IAM role or user, or to
    every IAM client recorded in a discovery state file, and writes matching
    confluent_kafka_acl resources.
    """
    selected = [name for name, value in (('--role-arn', role_arn),
                                         ('--user-arn', user_arn),
                                         ('--state-file', state_file)) if value]
    if len(selected) > 1:
        raise click.UsageError(f"{', '.join(selected)} are mutually exclusive")
    if state_file and not cluster_arn:
        raise click.UsageError("--cluster-arn is required with --state-file")

    try:
        _, config = _load_config(ctx, {
            'role_arn': role_arn,
            'user_arn': user_arn,
            'state_file': state_file,
            'cluster_arn': cluster_arn,
            'target_cluster_id': target_cluster_id,
            'target_rest_endpoint': target_rest_endpoint,
            'output_dir': output_dir,
            'skip_audit_report': skip_audit_report,
            'first_resource_only': first_resource_only,
            'profile': profile,
            'region': region
        })

        click.echo("Starting IAM ACL migration...")
        result = IamAclMigrator(config).run()

    except Exception as e:
        click.echo(f"Error IAM ACL migration failed: {str(e)}", err=True)
        sys.exit(1)

    if not result['success']:
        for error in result['errors']:
            click.echo(f"Error {error}", err=True)
        sys.exit(1)

    click.echo("\nSuccess IAM ACL migration completed!")
    _display_result(result)


@cli.command()
@click.option('--state-file', type=click.Path(exists=True, dir_okay=False),
              help='Discovery state file holding the cluster ACLs')
@click.option('--cluster-arn', help='MSK cluster ARN whose ACLs are migrated')
@target_options
@click.pass_context
def kafka(ctx, state_file, cluster_arn, target_cluster_id, target_rest_endpoint, output_dir, skip_audit_report):
    """
    Migrate Kafka ACLs to Confluent Cloud ACLs

    Converts the ACLs recorded for an MSK cluster in a discovery state file.
    """
    try:
        _, config = _load_config(ctx, {
            'state_file': state_file,
            'cluster_arn': cluster_arn,
            'target_cluster_id': target_cluster_id,
            'target_rest_endpoint': target_rest_endpoint,
            'output_dir': output_dir,
            'skip_audit_report': skip_audit_report
        })

        click.echo("Starting Kafka ACL migration...")
        result = KafkaAclMigrator(config).run()

    except Exception as e:
        click.echo(f"Error Kafka ACL migration failed: {str(e)}", err=True)
        sys.exit(1)

    if not result['success']:
        for error in result['errors']:
            click.echo(f"Error {error}", err=True)
        sys.exit(1)

    click.echo("\nSuccess Kafka ACL migration completed!")
    _display_result(result)


@cli.command()
@click.option('--output-file', '-o', default='kafka-acl-config.yaml',
              help='Output configuration file')
@click.option('--format', 'config_format', type=click.Choice(['yaml', 'json']),
              default='yaml', help='Configuration file format')
def init_config(output_file, config_format):
    """
    Generate a default configuration file

    The generated file lists every setting with its default value.
    """
    try:
        if os.path.exists(output_file):
            if not click.confirm(f"Configuration file {output_file} already exists. Overwrite?"):
                click.echo("Configuration file creation cancelled.")
                return

        with open(output_file, 'w') as f:
            if config_format == 'yaml':
                f.write(DEFAULT_CONFIG_TEMPLATE)
            else:
                json.dump(yaml.safe_load(DEFAULT_CONFIG_TEMPLATE), f, indent=2)

        click.echo(f"Success Default configuration file created: {output_file}")

    except OSError as e:
        click.echo(f"Error Failed to create configuration file: {str(e)}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def validate_config(ctx):
    """
    Validate configuration file

    Loads the configuration from all sources and checks it against the schema.
    """
    try:
        config_manager, _ = _load_config(ctx, {})
    except Exception as e:
        click.echo(f"Error Configuration validation failed: {str(e)}", err=True)
        sys.exit(1)

    click.echo("Success Configuration validation passed!")

    summary = config_manager.get_config_summary()
    click.echo("\nConfiguration Summary:")
    click.echo(tabulate([[key, value] for key, value in summary.items()], tablefmt='grid'))


def main():
    """Main entry point for the CLI"""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nWarning Operation cancelled by user.")
        sys.exit(1)


if __name__ == '__main__':
    main()
