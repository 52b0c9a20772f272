"""Main CLI entry point for hrd-pipeline.

Provides command group with global options and subcommands for pipeline operations.
"""

import logging
from pathlib import Path

import click

from hrd_pipeline import __version__
from hrd_pipeline.config.loader import load_config
from hrd_pipeline.cli.annotate_cmd import annotate
from hrd_pipeline.cli.evaluate_cmd import evaluate
from hrd_pipeline.cli.sensitivity_cmd import sensitivity


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)


@click.group()
@click.option(
    '--config',
    type=click.Path(exists=True, path_type=Path),
    default='config/default.yaml',
    help='Path to pipeline configuration YAML file'
)
@click.option(
    '--verbose',
    is_flag=True,
    help='Enable verbose logging (DEBUG level)'
)
@click.pass_context
def cli(ctx, config, verbose):
    """hrd-pipeline: human-readable descriptions for query sequences.

    Scores candidate description lines from homology-search hits and
    assigns the best one to each query. Weight vectors can be evaluated
    against reference descriptions and probed for sensitivity.
    """
    ctx.ensure_object(dict)
    ctx.obj['config_path'] = config
    ctx.obj['verbose'] = verbose

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logging.debug("Verbose logging enabled")


@cli.command()
@click.pass_context
def info(ctx):
    """Display pipeline information and configuration summary."""
    config_path = ctx.obj['config_path']

    click.echo(f"HRD Pipeline v{__version__}")
    click.echo(f"Config: {config_path}")
    click.echo()

    try:
        config = load_config(config_path)
        weights = config.weights

        config_hash = config.config_hash()
        click.echo(f"Config Hash: {config_hash[:16]}...")
        click.echo()

        click.echo(click.style("Token Score Weights:", bold=True))
        for name, value in weights.token_weights().items():
            click.echo(f"  {name}: {value}")
        try:
            weights.validate_sum()
            click.echo(click.style("  (sum = 1.0)", fg='green'))
        except ValueError as e:
            click.echo(click.style(f"  {e}", fg='red'))
        click.echo()

        click.echo(click.style("Blast Databases:", bold=True))
        for name in sorted(weights.blast_databases):
            settings = weights.blast_databases[name]
            click.echo(
                f"  {name}: weight={settings.weight}, "
                f"description_score_bit_score_weight={settings.description_score_bit_score_weight}"
            )
        click.echo()

        click.echo(click.style("Description Score Weights:", bold=True))
        click.echo(f"  Pattern factor: {weights.description_score_pattern_factor_weight}")
        click.echo(f"  Domain similarity: {weights.description_score_domain_similarity_weight}")
        click.echo()

        click.echo(click.style("Paths:", bold=True))
        click.echo(f"  Output Directory: {config.output_dir}")

    except Exception as e:
        click.echo(click.style(f"Error loading config: {e}", fg='red'), err=True)
        ctx.exit(1)


# Register commands
cli.add_command(annotate)
cli.add_command(evaluate)
cli.add_command(sensitivity)


if __name__ == '__main__':
    cli()
