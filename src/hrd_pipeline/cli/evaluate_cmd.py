"""Evaluate command: compare assigned descriptions against reference descriptions."""

import logging
import sys
from pathlib import Path

import click

from hrd_pipeline.candidates import attach_references, load_queries, load_references
from hrd_pipeline.config.loader import load_config_with_overrides, parse_overrides
from hrd_pipeline.output import settings_record, write_settings_report
from hrd_pipeline.persistence import ProvenanceTracker
from hrd_pipeline.scoring import evaluate_weights

logger = logging.getLogger(__name__)


@click.command('evaluate')
@click.option(
    '--candidates',
    'candidates_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='TSV of pre-tokenized candidate description lines'
)
@click.option(
    '--references',
    'references_path',
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    required=True,
    help='TSV of reference descriptions and their tokens'
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
def evaluate(ctx, candidates_path, references_path, overrides, output_dir):
    """Score the configured weight vector against reference descriptions.

    Writes the per-query evaluation table and a one-row settings report.
    """
    config_path = ctx.obj['config_path']

    click.echo(click.style("=== Weight Evaluation ===", bold=True))
    click.echo()

    try:
        config = load_config_with_overrides(config_path, parse_overrides(overrides))
        output_dir = Path(output_dir) if output_dir else config.output_dir
        output_dir.mkdir(parents=True, exist_ok=True)
        provenance = ProvenanceTracker.from_config(config)
        if overrides:
            provenance.record_step('apply_overrides', {'overrides': list(overrides)})

        queries = attach_references(
            load_queries(candidates_path),
            load_references(references_path),
        )
        provenance.record_input(candidates_path)
        provenance.record_input(references_path)
        click.echo(f"Loaded {len(queries)} queries")

        evaluation = evaluate_weights(
            queries, config.weights, beta=config.evaluation.f_measure_beta
        )
        provenance.record_step('evaluate_weights', {
            'evaluated_count': evaluation.evaluated_count,
            'skipped_count': evaluation.skipped_count,
            'average_evaluation_score': evaluation.average_evaluation_score,
        })

        evaluation_path = output_dir / "evaluation.tsv"
        evaluation.per_query.write_csv(evaluation_path, separator="\t", include_header=True)

        paths = write_settings_report(
            [settings_record(config.weights, evaluation.average_evaluation_score)],
            output_dir,
        )
        sidecar = provenance.save_sidecar(evaluation_path)

        click.echo()
        click.echo(click.style("=== Summary ===", bold=True))
        click.echo(f"Evaluated queries: {evaluation.evaluated_count}")
        click.echo(f"Queries without reference: {evaluation.skipped_count}")
        click.echo(f"Average evaluation score (F{config.evaluation.f_measure_beta:g}): "
                   f"{evaluation.average_evaluation_score:.4f}")
        click.echo()
        click.echo(f"Per-query evaluation: {evaluation_path}")
        click.echo(f"Settings report: {paths['tsv']}")
        click.echo(f"Provenance: {sidecar}")
        click.echo()
        click.echo(click.style("Evaluation complete!", fg='green', bold=True))

    except Exception as e:
        click.echo(click.style(f"Evaluate command failed: {e}", fg='red'), err=True)
        logger.exception("Evaluate command failed")
        sys.exit(1)
