"""Parse macro-synteny alignment records into synteny features."""
import logging
import math
import re
from typing import Any, Optional

from fields import get_nested_value
from schemas import FieldMapping, Mate, SyntenyFeature

logger = logging.getLogger(__name__)

LEADING_INT = re.compile(r"^\s*([+-]?\d+)")
MINUS_STRANDS = ("-", -1, "-1")


def to_int(value: Any) -> Optional[int]:
    """Leading-integer coercion: 1000, 1000.7 and "1000bp" all give 1000."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        match = LEADING_INT.match(value)
        return int(match.group(1)) if match else None
    return None


def to_float(value: Any, default: float = 0.0) -> float:
    """Best-effort float; non-numeric and non-finite values give the default."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    return number if math.isfinite(number) else default


def parse_strand(value: Any) -> int:
    """Map "-", -1 and "-1" to -1; everything else, missing included, is +1."""
    return -1 if value in MINUS_STRANDS else 1


def parse_alignments(
    data: Any,
    mapping: FieldMapping,
    assembly_names: list[str],
    assembly_name: Optional[str],
) -> list[SyntenyFeature]:
    """
    Convert a response body into features oriented for the requesting assembly.

    Records that fail validation are logged and skipped; a body whose
    alignments value is not a list yields no features.
    """
    alignments = get_nested_value(data, mapping.alignments_field)

    if not isinstance(alignments, list):
        logger.warning(
            '"%s" is not an array in API response (got %s)',
            mapping.alignments_field, type(alignments).__name__,
        )
        return []

    features = []
    for index, alignment in enumerate(alignments):
        try:
            feature = parse_alignment(alignment, index, mapping, assembly_names, assembly_name)
        except Exception:
            logger.warning("Failed to parse alignment at index %d", index, exc_info=True)
            continue
        if feature is not None:
            features.append(feature)

    logger.debug("Parsed %d of %d alignments", len(features), len(alignments))
    return features


def _coordinates(
    alignment: Any, name_field: str, start_field: str, end_field: str
) -> tuple[Optional[str], Optional[int], Optional[int]]:
    """Resolve one side's name, start and end."""
    name = get_nested_value(alignment, name_field)
    start = to_int(get_nested_value(alignment, start_field))
    end = to_int(get_nested_value(alignment, end_field))
    return (str(name) if name else None), start, end


def _invalid(name: Optional[str], start: Optional[int], end: Optional[int]) -> Optional[str]:
    """Describe what is wrong with one side's coordinates, or None if they are usable."""
    if not name or start is None or end is None:
        return "coordinates"
    if start >= end:
        return "coordinate range (start >= end)"
    return None


def parse_alignment(
    alignment: Any,
    index: int,
    mapping: FieldMapping,
    assembly_names: list[str],
    assembly_name: Optional[str],
) -> Optional[SyntenyFeature]:
    """Build one feature from a raw record, or None if the record is invalid."""
    query_name, query_start, query_end = _coordinates(
        alignment, mapping.query_name_field, mapping.query_start_field, mapping.query_end_field
    )
    target_name, target_start, target_end = _coordinates(
        alignment, mapping.target_name_field, mapping.target_start_field, mapping.target_end_field
    )

    problem = _invalid(query_name, query_start, query_end)
    if problem:
        logger.warning("Invalid query %s in alignment at index %d: %r", problem, index, alignment)
        return None
    problem = _invalid(target_name, target_start, target_end)
    if problem:
        logger.warning("Invalid target %s in alignment at index %d: %r", problem, index, alignment)
        return None

    unique_id = f"{query_name}:{query_start}-{query_end}_{target_name}:{target_start}-{target_end}"

    # Viewing the first assembly puts the query side first; anything else
    # (second assembly or unknown) puts the target side first.
    flip = bool(assembly_names) and assembly_names[0] == assembly_name
    query = (query_name, query_start, query_end)
    target = (target_name, target_start, target_end)
    primary, other = (query, target) if flip else (target, query)

    mate_assembly = None
    if assembly_names:
        mate_assembly = assembly_names[1] if flip else assembly_names[0]

    return SyntenyFeature(
        unique_id=unique_id,
        ref_name=primary[0],
        start=primary[1],
        end=primary[2],
        assembly_name=assembly_name,
        strand=parse_strand(get_nested_value(alignment, mapping.strand_field)),
        mate=Mate(ref_name=other[0], start=other[1], end=other[2], assembly_name=mate_assembly),
        synteny_id=index,
        name=unique_id,
        query_length=to_int(get_nested_value(alignment, mapping.query_length_field)),
        target_length=to_int(get_nested_value(alignment, mapping.target_length_field)),
        num_matches=to_int(get_nested_value(alignment, mapping.num_residue_matches_field)),
        block_len=to_int(get_nested_value(alignment, mapping.alignment_block_length_field)),
        mapping_quality=to_int(get_nested_value(alignment, mapping.mapping_quality_field)),
        identity=to_float(get_nested_value(alignment, mapping.identity_field)),
    )
