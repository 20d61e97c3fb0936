"""
Sample selection for vcfconvert.

Resolves a user sample specification (inline list or file, optionally
negated with a leading '^') against the sample names of a source header,
and applies the selection to a pysam.VariantFile.
"""

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from .errors import ConfigurationError, SampleMismatchError
from .models import SampleSet, SampleSpec

logger = logging.getLogger(__name__)


def read_sample_list(value: str, is_file: bool = False) -> List[str]:
    """
    Read sample names from an inline comma-separated list or a file.

    Args:
        value: Inline list, or path to a file with one name per line
        is_file: Whether ``value`` is a file path

    Returns:
        Sample names in list or file order

    Raises:
        ConfigurationError: If the file cannot be read or the list is empty
    """
    if is_file:
        path = Path(value)
        try:
            with open(path, "r") as f:
                names = [line.strip() for line in f]
        except OSError as e:
            raise ConfigurationError(f"Could not read sample file {path}: {e}")
        names = [name for name in names if name]
    else:
        names = [name for name in value.split(",") if name]

    if not names:
        raise ConfigurationError(f"Could not parse sample list: {value!r}")

    return names


def resolve_samples(
    header_samples: Sequence[str], spec: Optional[SampleSpec]
) -> SampleSet:
    """
    Resolve a sample specification against the source header's samples.

    Without a specification (or with '-') every sample is kept in source
    order. A negated list excludes samples and keeps source order. A plain
    list becomes the authoritative order of the run.

    Args:
        header_samples: Sample names in source header order
        spec: User sample specification, or None

    Returns:
        Resolved SampleSet

    Raises:
        SampleMismatchError: If a name is absent from the header, or the list
            repeats a name so fewer distinct samples remain than requested
    """
    header_samples = list(header_samples)

    if spec is None or spec.selects_all:
        return SampleSet(names=header_samples)

    requested = read_sample_list(spec.body, spec.is_file)
    known = set(header_samples)
    for i, name in enumerate(requested, start=1):
        if name not in known:
            raise SampleMismatchError(
                f"Sample name mismatch: sample #{i} ({name}) not found in the header"
            )

    if spec.negated:
        excluded = set(requested)
        kept = [s for s in header_samples if s not in excluded]
        logger.debug(f"Excluding {len(excluded)} samples, {len(kept)} remain")
        return SampleSet(names=kept, negated=True, from_file=spec.is_file)

    wanted = set(requested)
    subset = [s for s in header_samples if s in wanted]
    if len(subset) != len(requested):
        raise SampleMismatchError(
            f"The number of samples does not match ({len(requested)} requested, "
            f"{len(subset)} distinct), perhaps some are present multiple times?"
        )

    position = {name: i for i, name in enumerate(subset)}
    return SampleSet(
        names=requested,
        negated=False,
        from_file=spec.is_file,
        indices=[position[name] for name in requested],
    )


def apply_sample_selection(
    variant_file: Any, spec: Optional[SampleSpec]
) -> SampleSet:
    """
    Resolve the selection and restrict the variant file's header to it.

    Must be called once, before the first record is read.

    Args:
        variant_file: Open pysam.VariantFile
        spec: User sample specification, or None

    Returns:
        Resolved SampleSet
    """
    header_samples = list(variant_file.header.samples)
    sample_set = resolve_samples(header_samples, spec)

    if spec is None or spec.selects_all:
        return sample_set

    selected = set(sample_set.names)
    keep = [s for s in header_samples if s in selected]
    variant_file.subset_samples(keep)

    retained = len(variant_file.header.samples)
    if retained != len(sample_set):
        raise SampleMismatchError(
            f"Restricted header holds {retained} samples, expected {len(sample_set)}"
        )

    logger.info(
        f"Selected {retained} of {len(header_samples)} samples"
        + (f" from {spec.body}" if sample_set.from_file else "")
        + (" (reordered)" if sample_set.reordered else "")
    )
    return sample_set
