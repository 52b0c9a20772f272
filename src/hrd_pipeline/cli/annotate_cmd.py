"""Annotate command: assign one human-readable description per query.

Pipeline steps:
1. Validate the configured weight vector
2. Load pre-tokenized candidate description lines
3. Score tokens and descriptions per query, select the best candidate
4. Write TSV+Parquet output with provenance
"""

import logging
import sys
from pathlib import Path

import click

from hrd_pipeline.candidates import load_queries
from hrd_pipeline.config.loader import load_config_with_overrides, parse_overrides
from hrd_pipeline.output import write_description_output
from hrd_pipeline.persistence import ProvenanceTracker
from hrd_pipeline.scoring import annotate_queries

logger = logging.getLogger(__name__)


@click.command('annotate')
@click.option(
    '--candidates',
    'candidates_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='TSV of pre-tokenized candidate description lines'
)
@click.option(
    '--set',
    'overrides',
    multiple=True,
    metavar='KEY=VALUE',
    help='Override a config value by dotted key, repeatable '
         '(e.g. weights.token_score_bit_score_weight=0.5)'
)
@click.option(
    '--output-dir',
    type=click.Path(path_type=Path),
    default=None,
    help='Output directory (default: output_dir from config)'
)
@click.pass_context
def annotate(ctx, candidates_path, overrides, output_dir):
    """Assign the best scoring candidate description to every query.

    Examples:

        hrd-pipeline annotate --candidates hits.tsv

        hrd-pipeline --config my.yaml annotate --candidates hits.tsv --output-dir out/

        hrd-pipeline annotate --candidates hits.tsv --set weights.blast_databases.trembl.weight=700
    """
    config_path = ctx.obj['config_path']

    click.echo(click.style("=== Description Assignment ===", bold=True))
    click.echo()

    try:
        config = load_config_with_overrides(config_path, parse_overrides(overrides))
        weights = config.weights
        output_dir = Path(output_dir) if output_dir else config.output_dir
        provenance = ProvenanceTracker.from_config(config)
        if overrides:
            provenance.record_step('apply_overrides', {'overrides': list(overrides)})

        click.echo("Validating token score weights...")
        try:
            weights.validate_sum()
        except ValueError as e:
            click.echo(click.style(f"  Error: {e}", fg='red'), err=True)
            sys.exit(1)
        for name, value in weights.token_weights().items():
            click.echo(f"    {name}: {value:.4f}")
        click.echo()

        click.echo(click.style("Step 1: Loading candidates...", bold=True))
        queries = load_queries(candidates_path)
        provenance.record_input(candidates_path)
        candidate_count = sum(q.candidate_count for q in queries)
        click.echo(click.style(
            f"  Loaded {candidate_count} candidates for {len(queries)} queries",
            fg='green'
        ))
        click.echo()
        provenance.record_step('load_queries', {
            'path': str(candidates_path),
            'query_count': len(queries),
            'candidate_count': candidate_count,
        })

        click.echo(click.style("Step 2: Scoring descriptions...", bold=True))
        df = annotate_queries(queries, weights)
        with_description = df.filter(df['description_score'].is_not_null()).height
        click.echo(click.style(
            f"  Assigned descriptions to {with_description}/{df.height} queries",
            fg='green'
        ))
        click.echo()
        provenance.record_step('annotate_queries', {
            'total_queries': df.height,
            'with_description': with_description,
        })

        click.echo(click.style("Step 3: Writing output...", bold=True))
        paths = write_description_output(df, output_dir)
        sidecar = provenance.save_sidecar(paths['tsv'])
        click.echo(click.style(f"  TSV: {paths['tsv']}", fg='green'))
        click.echo(click.style(f"  Parquet: {paths['parquet']}", fg='green'))
        click.echo(click.style(f"  Provenance: {sidecar}", fg='green'))
        click.echo()

        click.echo(click.style("=== Summary ===", bold=True))
        click.echo(f"Queries: {df.height}")
        click.echo(f"With description: {with_description}")
        click.echo(f"Without description: {df.height - with_description}")
        click.echo()
        click.echo(click.style("Annotation complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Annotate command failed: {e}", fg='red'), err=True)
        logger.exception("Annotate command failed")
        sys.exit(1)
