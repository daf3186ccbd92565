"""Command-line interface for Taxon-Refinery.

Provides CLI commands for consistency filtering of taxonomic assignments.
"""

import logging
from pathlib import Path
from typing import Optional

import click

from taxon_refinery import __version__


def setup_logging(verbose: bool = False, debug: bool = False) -> logging.Logger:
    """Setup logging for CLI commands."""
    level = logging.DEBUG if debug else (logging.INFO if verbose else logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
        datefmt="%H:%M:%S",
    )
    return logging.getLogger("taxon_refinery")


@click.group()
@click.version_option(version=__version__, prog_name="taxon-refinery")
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.option("--debug", is_flag=True, help="Enable debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool, debug: bool) -> None:
    """Taxon-Refinery: drop taxonomic assignments inconsistent with their cluster.

    Examples:

        # Filter against a local NCBI taxdump
        taxon-refinery filter -a assignments.csv -c clusters.txt \\
            --nodes taxdump/nodes.dmp -o out/

        # Filter against NCBI E-utilities with 8 worker threads
        taxon-refinery -v filter -a assignments.csv -c clusters.txt \\
            --entrez --workers 8 -o out/
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["logger"] = setup_logging(verbose, debug)


def _build_taxonomy(
    nodes: Optional[str],
    parents: Optional[str],
    entrez: bool,
    entrez_timeout: float,
    entrez_api_key: Optional[str],
):
    from taxon_refinery.taxonomy import EntrezTaxonomy, load_ncbi_nodes, load_parent_table

    n_sources = sum([nodes is not None, parents is not None, entrez])
    if n_sources != 1:
        raise click.UsageError("Give exactly one of --nodes, --parents or --entrez")
    if nodes:
        return load_ncbi_nodes(nodes)
    if parents:
        sep = "\t" if parents.endswith((".tsv", ".txt")) else ","
        return load_parent_table(parents, sep=sep)
    return EntrezTaxonomy(timeout=entrez_timeout, api_key=entrez_api_key)


@cli.command(name="filter")
@click.option("--assignments", "-a", "assignments_path", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="Assignment table (id,taxa CSV without header)")
@click.option("--clusters", "-c", "clusters_path", required=True,
              type=click.Path(exists=True, dir_okay=False),
              help="Clusters file (one comma-separated cluster per line)")
@click.option("--out", "-o", "output_path", required=True, type=click.Path(file_okay=False),
              help="Output directory")
@click.option("--nodes", type=click.Path(exists=True, dir_okay=False),
              help="NCBI taxdump nodes.dmp")
@click.option("--parents", type=click.Path(exists=True, dir_okay=False),
              help="Parent table with 'taxon' and 'parent' columns (CSV or TSV)")
@click.option("--entrez", is_flag=True, help="Query NCBI E-utilities for lineages")
@click.option("--entrez-timeout", type=float, default=30.0, show_default=True,
              help="Per-request timeout for --entrez (seconds)")
@click.option("--entrez-api-key", envvar="NCBI_API_KEY", default=None,
              help="NCBI API key for --entrez")
@click.option("--config", "config_path", type=click.Path(exists=True, dir_okay=False),
              help="Filter configuration file (YAML)")
@click.option("--min-ratio", type=float, default=None,
              help="Minimum ancestor count ratio [default: 0.75]")
@click.option("--ancestry-level", type=int, default=None,
              help="Ancestry level of the comparison ancestor [default: 2]")
@click.option("--workers", type=int, default=None, help="Worker threads [default: 1]")
@click.option("--on-lookup-error", type=click.Choice(["raise", "skip", "empty"]),
              default=None, help="Policy for failed taxonomy lookups [default: raise]")
@click.pass_context
def filter_command(
    ctx: click.Context,
    assignments_path: str,
    clusters_path: str,
    output_path: str,
    nodes: Optional[str],
    parents: Optional[str],
    entrez: bool,
    entrez_timeout: float,
    entrez_api_key: Optional[str],
    config_path: Optional[str],
    min_ratio: Optional[float],
    ancestry_level: Optional[int],
    workers: Optional[int],
    on_lookup_error: Optional[str],
) -> None:
    """Partition each sequence's assignments into accepted and rejected.

    Writes partitioned_assignments.csv and run_summary.yaml to the output
    directory.
    """
    logger = ctx.obj["logger"]

    from taxon_refinery.core.consistency import (
        ConsistencyFilter,
        FilterConfig,
        run_clusters,
        summarize_results,
    )
    from taxon_refinery.io import (
        ensure_output_dir,
        get_logger,
        iter_clusters,
        load_assignment_table,
        log_json,
        log_yaml,
        write_partition_table,
    )
    from taxon_refinery.taxonomy import LineageLookupError, LineageResolver

    # Load config if provided, then apply command-line overrides
    try:
        config = FilterConfig.from_yaml(Path(config_path)) if config_path else FilterConfig()
        if min_ratio is not None:
            config.consistency.minimum_ratio = min_ratio
        if ancestry_level is not None:
            config.consistency.ancestry_level = ancestry_level
        if workers is not None:
            config.n_workers = workers
        if on_lookup_error is not None:
            config.on_lookup_error = on_lookup_error
        config.validate()
    except (TypeError, ValueError) as e:
        raise click.BadParameter(str(e))

    out_dir = ensure_output_dir(output_path)
    _, log_path = get_logger(
        "taxon_refinery",
        out_dir / "logs" / "consistency_filter.log",
        level=logging.DEBUG if ctx.obj["debug"] else logging.INFO,
        propagate=ctx.obj["verbose"] or ctx.obj["debug"],
    )
    logger.info(f"Logging to: {log_path}")
    logger.info(f"Configuration: {config.to_dict()}")

    try:
        taxonomy = _build_taxonomy(nodes, parents, entrez, entrez_timeout, entrez_api_key)
        assignments = load_assignment_table(assignments_path, delimiter=config.taxa_delimiter)
    except (FileNotFoundError, ValueError) as e:
        raise click.ClickException(str(e))

    resolver = LineageResolver(taxonomy, on_error=config.resolver_on_error)
    consistency_filter = ConsistencyFilter(assignments, resolver, config.consistency)

    try:
        results = run_clusters(
            iter_clusters(clusters_path),
            consistency_filter,
            n_workers=config.n_workers,
            on_lookup_error=config.on_lookup_error,
            logger=logger,
        )
    except LineageLookupError as e:
        raise click.ClickException(f"{e} (use --on-lookup-error skip|empty to continue)")

    records = [record for result in results for record in result.records]
    table_path = write_partition_table(
        records,
        out_dir / "partitioned_assignments.csv",
        delimiter=config.taxa_delimiter,
    )

    failures_path = None
    for result in results:
        if not result.success:
            failures_path = log_json(log_path.with_name(f"{log_path.stem}_failures.jsonl"), {
                "cluster_index": result.cluster_index,
                "ids": result.ids,
                "error": result.error,
                "timing_seconds": round(result.timing_seconds, 3),
            })

    summary = summarize_results(results)
    log_yaml(out_dir / "run_summary.yaml", {
        "version": __version__,
        "assignments": str(assignments_path),
        "clusters": str(clusters_path),
        "config": config.to_dict(),
        "summary": summary,
        "lineage_cache": resolver.stats(),
        "cluster_failures": str(failures_path) if failures_path else None,
    })

    click.echo(
        f"Filtering complete: {summary['n_ids']} IDs in {summary['n_clusters']} clusters, "
        f"{summary['n_accepted']} accepted, {summary['n_rejected']} rejected "
        f"({summary['n_rescued']} rescued)"
    )
    if summary["n_clusters_failed"]:
        click.echo(f"Clusters skipped after lookup failures: {summary['n_clusters_failed']}")
        click.echo(f"Failure details: {failures_path}")
    click.echo(f"Output saved to: {table_path}")


def main() -> None:
    """Main entry point for CLI."""
    cli(obj={})


if __name__ == "__main__":
    main()
