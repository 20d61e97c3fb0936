"""
Main orchestration logic for vcfconvert commands.

This module builds conversion plans from command-line values and runs the
two conversion pipelines:
- gensample: VCF/BCF -> gen + sample files
- tsv2vcf: ancestral-allele call table -> VCF/BCF
"""

from pathlib import Path
from typing import Any, List, Optional
import logging
import time

from rich.console import Console

from .codec import GenLineEncoder, decode_site, DecodedSite, parse_tag
from .config import VcfConvertConfig, get_config
from .errors import (
    ConfigurationError,
    SampleMismatchError,
    SinkError,
    SiteSkip,
    UnsupportedCallLength,
)
from .filters import FilterGate
from .io_utils import GenStreamWriter, resolve_output_targets, write_sample_file
from .models import (
    ConversionCounters,
    ConversionMode,
    ConversionPlan,
    ConversionResult,
    FilterLogic,
    GensampleOptions,
    RegionSpec,
    SampleSpec,
    Tsv2VcfOptions,
)
from .reference import ReferenceSequence
from .samples import apply_sample_selection, read_sample_list
from .tsv import ColumnLayout, TabularRow, iter_data_lines, open_table
from .vcf_ops import (
    build_tsv2vcf_header,
    iter_records,
    open_variant_sink,
    open_variant_source,
    parse_output_type,
    parse_regions,
)

logger = logging.getLogger(__name__)


def _pick_list(
    inline: Optional[str], from_file: Optional[str], what: str
) -> Optional[tuple]:
    if inline and from_file:
        raise ConfigurationError(f"Cannot combine --{what} and --{what}-file")
    if inline:
        return inline, False
    if from_file:
        return from_file, True
    return None


def create_gensample_plan(
    input_path: str,
    output_spec: str,
    tag: Optional[str] = None,
    include: Optional[str] = None,
    exclude: Optional[str] = None,
    regions: Optional[str] = None,
    regions_file: Optional[str] = None,
    targets: Optional[str] = None,
    targets_file: Optional[str] = None,
    samples: Optional[str] = None,
    samples_file: Optional[str] = None,
    config: Optional[VcfConvertConfig] = None,
) -> ConversionPlan:
    """
    Create a plan for the VCF -> gen/sample direction.

    Raises:
        ConfigurationError: For conflicting or unrecognised options
    """
    config = config or get_config()

    if include and exclude:
        raise ConfigurationError("Cannot use --include and --exclude together")

    prob_tag = parse_tag(tag or config.get_gensample_setting("tag", "GT"))

    sample_choice = _pick_list(samples, samples_file, "samples")
    region_choice = _pick_list(regions, regions_file, "regions")
    target_choice = _pick_list(targets, targets_file, "targets")

    options = GensampleOptions(
        input_path=input_path,
        output_spec=output_spec,
        tag=prob_tag,
        samples=SampleSpec(*sample_choice) if sample_choice else None,
        regions=RegionSpec(*region_choice) if region_choice else None,
        targets=RegionSpec(*target_choice) if target_choice else None,
        filter_expr=include or exclude,
        filter_logic=FilterLogic.EXCLUDE if exclude else FilterLogic.INCLUDE,
    )
    return ConversionPlan(mode=ConversionMode.GENSAMPLE, gensample=options)


def create_tsv2vcf_plan(
    input_path: str,
    reference: Optional[Path],
    samples: Optional[str] = None,
    samples_file: Optional[str] = None,
    columns: Optional[str] = None,
    output: str = "-",
    output_type: Optional[str] = None,
    config: Optional[VcfConvertConfig] = None,
) -> ConversionPlan:
    """
    Create a plan for the table -> VCF direction.

    Raises:
        ConfigurationError: For missing or unrecognised options
    """
    config = config or get_config()

    if reference is None:
        raise ConfigurationError("Missing the --fasta-ref option")
    sample_choice = _pick_list(samples, samples_file, "samples")
    if sample_choice is None:
        raise ConfigurationError("Missing the --samples option")

    columns = columns or config.get_tsv2vcf_setting("columns", "ID,CHROM,POS,AA")
    # Validate early so bad layouts fail before any I/O
    ColumnLayout.parse(columns)

    options = Tsv2VcfOptions(
        input_path=input_path,
        reference=reference,
        samples=SampleSpec(*sample_choice),
        columns=columns,
        output=output,
        output_type=parse_output_type(
            output_type or config.get_tsv2vcf_setting("output_type", "v")
        ),
    )
    return ConversionPlan(mode=ConversionMode.TSV2VCF, tsv2vcf=options)


def run_gensample(
    options: GensampleOptions, config: Optional[VcfConvertConfig] = None
) -> ConversionResult:
    """
    Convert a VCF/BCF file to gen + sample files.

    The sample file is written and closed before any site reaches the gen
    stream. Sites without an alternate allele, sites failing the filter and
    sites the encoder drops are counted as skipped.

    Args:
        options: gensample options
        config: Configuration (uses global if None)

    Returns:
        ConversionResult with per-run counters

    Raises:
        ConfigurationError, SourceError, RecordError, SinkError
    """
    config = config or get_config()
    outputs = resolve_output_targets(
        options.output_spec,
        gen_suffix=config.get_gensample_setting("gen_suffix", ".gen.gz"),
        samples_suffix=config.get_gensample_setting("samples_suffix", ".samples"),
    )
    regions = parse_regions(options.regions) if options.regions else None
    targets = parse_regions(options.targets) if options.targets else None

    logger.info(f"Opening variant source {options.input_path}")
    counters = ConversionCounters()

    with open_variant_source(options.input_path) as source:
        sample_set = apply_sample_selection(source, options.samples)
        gate = FilterGate.from_expression(
            options.filter_expr,
            options.filter_logic,
            info_keys=list(source.header.info),
        )
        encoder = GenLineEncoder(
            sample_set.indices if sample_set.reordered else sample_set.names,
            tag=options.tag,
            float_format=config.get_output_setting("float_format", "%f"),
        )

        write_sample_file(Path(outputs.sample_path), sample_set.names)

        logger.info(f"Streaming sites to {outputs.gen_path}")
        with GenStreamWriter(outputs.gen_path, outputs.compressed) as gen:
            for record in iter_records(source, regions, targets):
                counters.total += 1

                if len(record.alleles or ()) < 2:
                    counters.skipped += 1
                    continue

                if not gate.passes(record):
                    counters.skipped += 1
                    continue

                line = encoder.encode(record)
                if not line:
                    counters.skipped += 1
                    continue

                gen.write(line)
                counters.written += 1

    logger.info(
        f"gensample finished: {counters.total} sites, {counters.written} written, "
        f"{counters.skipped} skipped"
    )
    return ConversionResult(
        mode=ConversionMode.GENSAMPLE,
        counters=counters,
        outputs=[outputs.gen_path, outputs.sample_path],
    )


def _write_site(sink: Any, row: TabularRow, site: DecodedSite, samples: List[str]) -> None:
    record = sink.new_record(
        contig=row.chrom,
        start=row.pos,
        stop=row.pos + 1,
        alleles=site.alleles,
        id=row.id,
        qual=None,
    )
    for name, call in zip(samples, site.calls):
        record.samples[name]["GT"] = call.as_tuple()
        record.samples[name].phased = False
    try:
        sink.write(record)
    except OSError as e:
        raise SinkError(f"Error writing record at {row.chrom}:{row.pos + 1}: {e}") from e


def run_tsv2vcf(
    options: Tsv2VcfOptions, config: Optional[VcfConvertConfig] = None
) -> ConversionResult:
    """
    Build VCF/BCF records from an ancestral-allele call table.

    Each row contributes one record, in input order, unless one of its
    sample calls is a gap, indel or no-call, in which case the whole row is
    skipped. Comment lines are not counted.

    Args:
        options: tsv2vcf options
        config: Configuration (uses global if None)

    Returns:
        ConversionResult with per-run counters

    Raises:
        ConfigurationError, SourceError, RecordError, SinkError
    """
    if options.reference is None:
        raise ConfigurationError("Missing the --fasta-ref option")
    if options.samples is None:
        raise ConfigurationError("Missing the --samples option")

    layout = ColumnLayout.parse(options.columns)
    sample_names = read_sample_list(options.samples.value, options.samples.is_file)
    if len(set(sample_names)) != len(sample_names):
        raise SampleMismatchError("Duplicate sample names in the sample list")

    counters = ConversionCounters()

    logger.info(f"Loading reference {options.reference}")
    with ReferenceSequence(options.reference) as reference:
        header = build_tsv2vcf_header(reference.contigs(), sample_names)
        contig_names = set(header.contigs)

        with open_table(options.input_path) as table:
            sink = open_variant_sink(options.output, header, options.output_type)
            try:
                for line in iter_data_lines(table):
                    counters.total += 1
                    try:
                        row = layout.split(line, len(sample_names), contig_names)
                    except SiteSkip as skip:
                        counters.skipped += 1
                        logger.warning(f"Skipping malformed row {counters.total}: {skip}")
                        continue

                    ref_base = reference.base_at(row.chrom, row.pos)
                    try:
                        site = decode_site(ref_base, row.calls)
                    except SiteSkip as skip:
                        counters.skipped += 1
                        logger.debug(f"Skipping {row.chrom}:{row.pos + 1}: {skip}")
                        continue
                    except UnsupportedCallLength as e:
                        raise UnsupportedCallLength(
                            f"Error parsing the site {row.chrom}:{row.pos + 1}: {e}"
                        ) from e

                    _write_site(sink, row, site, sample_names)
                    counters.merge(site.counters)
                    counters.written += 1
            except BaseException:
                # Close without replacing the error already propagating
                try:
                    sink.close()
                except OSError as close_error:
                    logger.debug(f"Close failed after error: {close_error}")
                raise
            else:
                try:
                    sink.close()
                except OSError as e:
                    raise SinkError(f"Close failed: {options.output}: {e}") from e

    logger.info(
        f"tsv2vcf finished: {counters.total} rows, {counters.skipped} skipped"
    )
    return ConversionResult(
        mode=ConversionMode.TSV2VCF,
        counters=counters,
        outputs=[options.output],
    )


def execute_plan(plan: ConversionPlan) -> ConversionResult:
    """
    Run the pipeline selected by the plan's mode.

    Returns:
        ConversionResult
    """
    start_time = time.time()

    if plan.mode == ConversionMode.GENSAMPLE:
        assert plan.gensample is not None
        result = run_gensample(plan.gensample)
    elif plan.mode == ConversionMode.TSV2VCF:
        assert plan.tsv2vcf is not None
        result = run_tsv2vcf(plan.tsv2vcf)
    else:
        raise ConfigurationError(f"Unsupported conversion mode: {plan.mode}")

    logger.debug(f"{plan.mode.value} completed in {time.time() - start_time:.2f}s")
    logger.debug(f"Run result: {result.to_dict()}")
    return result


def format_summary(result: ConversionResult) -> List[str]:
    """Run-end summary lines for diagnostic output."""
    c = result.counters
    if result.mode == ConversionMode.TSV2VCF:
        return [
            f"Rows total: \t{c.total}",
            f"Rows skipped: \t{c.skipped}",
            f"Hom RR: \t{c.hom_rr}",
            f"Het RA: \t{c.het_ra}",
            f"Hom AA: \t{c.hom_aa}",
            f"Het AA: \t{c.het_aa}",
        ]
    return [
        f"Sites total: \t{c.total}",
        f"Sites skipped: \t{c.skipped}",
        f"Sites written: \t{c.written}",
    ]


def print_summary(result: ConversionResult, console: Optional[Console] = None) -> None:
    """Print the run-end summary to stderr."""
    console = console or Console(stderr=True)
    for line in format_summary(result):
        console.print(line, highlight=False)
        logger.info(line.replace("\t", ""))
