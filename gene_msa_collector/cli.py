"""
Command-line interface for the Gene MSA Collector.

This module provides CLI commands for running a collection and inspecting
or cleaning up its output.
"""

import asyncio
import click
import json
import logging
import sys
import os
from pathlib import Path
from .config import SystemConfig, load_config_from_file
from .logging_config import setup_logging, log_error_with_context


@click.group()
@click.option('--config', '-c', type=click.Path(exists=True),
              help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True,
              help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Gene MSA Collector - orthobrowser alignment download tool."""
    ctx.ensure_object(dict)

    # Load configuration
    if config:
        system_config = load_config_from_file(config)
    else:
        system_config = SystemConfig.from_env()

    if verbose:
        system_config.logging.level = "DEBUG"

    setup_logging(system_config.logging)

    ctx.obj['config'] = system_config


@cli.command()
@click.option('--headless', is_flag=True,
              help='Run the browser without a visible window')
@click.option('--test', 'test_mode', is_flag=True,
              help='Only process the first few genes')
@click.option('--limit', type=int,
              help='Number of genes processed in test mode')
@click.option('--genes-csv', type=click.Path(),
              help='Two-column CSV of gene names and ids')
@click.option('--output-dir', type=click.Path(),
              help='Directory for collected alignments')
@click.pass_context
def collect(ctx, headless, test_mode, limit, genes_csv, output_dir):
    """Collect MSA data for every gene in the CSV file."""
    from .config import set_config
    from .genes import load_genes_csv
    from .collector.orchestrator import run_collection

    config = ctx.obj['config']

    if headless:
        config.browser.headless = True
    if test_mode:
        config.run.test_mode = True
    if limit is not None:
        config.run.test_limit = limit
    if genes_csv:
        config.run.genes_csv = genes_csv
    if output_dir:
        config.run.output_dir = output_dir
        config.run.failed_dir = os.path.join(output_dir, "failed")
    set_config(config)

    click.echo("=== Gene MSA Collection ===")
    click.echo(f"Genes file: {config.run.genes_csv}")
    click.echo(f"Output directory: {config.run.output_dir}")
    click.echo(f"Headless: {config.browser.headless}")

    try:
        genes = load_genes_csv(config.run.genes_csv)
        if config.run.test_mode:
            genes = genes[:config.run.test_limit]
            click.echo(f"Test mode: processing first {len(genes)} genes")

        report = asyncio.run(run_collection(genes, config))

        click.echo("\n=== Collection Results ===")
        click.echo(f"Total genes: {report.total}")
        click.echo(f"Successful: {report.success_count}")
        click.echo(f"Failed: {report.fail_count}")
        click.echo(f"Elapsed: {report.elapsed_seconds / 60:.1f} minutes")
        click.echo(f"Output directory: {Path(report.output_dir).resolve()}")
        if report.failure_log_path:
            click.echo(f"Failed genes logged to: {report.failure_log_path}")

    except KeyboardInterrupt:
        click.echo("\nCollection cancelled by user.")
        sys.exit(1)
    except Exception as e:
        log_error_with_context(logging.getLogger(__name__), e, "collect", genes_csv=config.run.genes_csv)
        click.echo(f"\nCollection failed: {e}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def summary(ctx):
    """Summarize collected alignments and failed genes."""
    from .storage import ArtifactStorage

    config = ctx.obj['config']
    storage = ArtifactStorage.from_config(config.run)
    result = storage.summarize()

    click.echo("=== Collection Summary ===")
    click.echo(f"Collected {len(result.artifacts)} genes:")
    for path, size in result.artifacts:
        click.echo(f"  {path.stem}: {size:,} bytes")

    if result.failures:
        click.echo(f"\n{len(result.failures)} genes failed:")
        for record in result.failures:
            click.echo(f"  {record.gene.name}: {record.error}")

    if result.failure_markers:
        click.echo(f"\nFailure markers: {len(result.failure_markers)}")

    click.echo(f"\nTotal size: {result.total_bytes:,} bytes")
    click.echo(f"Output directory: {storage.output_dir.resolve()}")


@cli.command()
@click.option('--remove', is_flag=True,
              help='Delete the files rejected by the classifier')
@click.pass_context
def cleanup(ctx, remove):
    """Find collected files that are not valid alignment text."""
    from .models.validation import MSADataValidator
    from .storage import ArtifactStorage

    config = ctx.obj['config']
    storage = ArtifactStorage.from_config(config.run)
    scan = storage.scan_artifacts(MSADataValidator(config.capture.classifier_min_length))

    click.echo(f"Total files: {len(scan.valid) + len(scan.corrupted)}")
    click.echo(f"Valid files: {len(scan.valid)}")
    click.echo(f"Corrupted files: {len(scan.corrupted)}")

    if not scan.corrupted:
        return

    click.echo("\nCorrupted files:")
    for path in scan.corrupted:
        click.echo(f"  - {path.name}")

    if remove:
        removed = storage.remove_artifacts(scan.corrupted)
        click.echo(f"\nRemoved {removed} corrupted files.")
    else:
        click.echo("\nTo remove them, run: msa-collector cleanup --remove")


@cli.command()
@click.argument('file', type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx, file):
    """Check whether FILE holds valid alignment text."""
    from .models.validation import MSADataValidator

    config = ctx.obj['config']
    validator = MSADataValidator(config.capture.classifier_min_length)

    try:
        text = Path(file).read_text(encoding="utf-8")
    except UnicodeDecodeError:
        click.echo(f"INVALID: {file} is not UTF-8 text")
        sys.exit(1)

    result = validator.validate(text)
    if result.is_valid:
        click.echo(f"VALID: {file} ({len(text):,} characters)")
        return

    click.echo(f"INVALID: {file}")
    for error in result.errors:
        click.echo(f"  [{error.error_type.value}] {error.message}")
    sys.exit(1)


@cli.command()
@click.option('--output', '-o', type=click.Path(),
              help='Output configuration file path')
@click.pass_context
def config_export(ctx, output):
    """Export current configuration to file."""
    config = ctx.obj['config']

    if output:
        config.to_file(output)
        click.echo(f"Configuration exported to: {output}")
    else:
        from dataclasses import asdict
        click.echo(json.dumps(asdict(config), indent=2))


def main():
    """Main entry point for the CLI."""
    try:
        cli()
    except KeyboardInterrupt:
        click.echo("\nOperation cancelled by user.", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(1)


if __name__ == '__main__':
    main()
