"""Copy ENA sequence names from a freshly parsed assembly onto an existing one."""

import logging
from typing import Iterable, Optional

from .entities import SequenceEntity

logger = logging.getLogger(__name__)


def add_ena_sequence_names(
    source_sequences: Optional[Iterable[SequenceEntity]],
    target_sequences: Optional[Iterable[SequenceEntity]],
) -> list[SequenceEntity]:
    """
    Reconcile two sequence collections by INSDC accession.

    Target sequences whose accession appears in the source get the source's
    ENA sequence name (the archive always wins). Source sequences with no
    counterpart in the target are appended to the result. Target entities
    are updated in place; the target collection itself is not grown.

    Args:
        source_sequences: Sequences from the ENA report. None counts as empty.
        target_sequences: Sequences of the assembly being enriched. None
            counts as empty.

    Returns:
        The reconciled sequences: target entities in their original order,
        followed by unmatched source entities. Duplicate target accessions
        collapse to the last one seen.
    """
    by_accession: dict[str, SequenceEntity] = {}
    for target in target_sequences or []:
        by_accession[target.insdc_accession] = target

    matched = 0
    added = 0
    for source in source_sequences or []:
        existing = by_accession.get(source.insdc_accession)
        if existing is not None:
            existing.ena_sequence_name = source.ena_sequence_name
            matched += 1
        else:
            by_accession[source.insdc_accession] = source
            added += 1

    logger.debug("Merged ENA names: %d matched, %d new sequences", matched, added)
    return list(by_accession.values())
