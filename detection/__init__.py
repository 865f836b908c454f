# seqdetect detection modules

from .ranges import (
    Range,
    resolve_range,
    parse_ranges,
    ranges_from_bed,
)
from .pairwise_aligner import (
    AlnParams,
    AlignmentResult,
    AlignmentError,
    PairwiseAligner,
    align_local,
)
from .records import (
    Query,
    Reference,
    DetectionContext,
    AlignedSeq,
)
from .seq_detector import (
    SeqDetector,
    best_hits,
    compute_null_score,
    detect_sequences,
)
from .hit_metrics import (
    HIT_FIELDS,
    mapping_quality,
    raw_accuracy,
    clipped_accuracy,
    query_coverage,
    format_hit,
    format_alignment,
)
from .read_processor import (
    ReadProcessor,
    write_hits,
    hits_to_dataframe,
    save_hits_to_csv,
)
