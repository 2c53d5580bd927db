# magdb/__init__.py
from .models.record import Record, Chunk
from .errors import (
    MagdbError, ConfigurationError, MalformedFastaError, MalformedReportError,
    DuplicateIdentifierError, ToolError,
)

# Convenience re-exports for direct functional use
from .sequences.fasta import iter_records
from .sequences.split import split_record
from .merge import FastaMerger, MergeStats, ReheaderOptions, label_for, reheader_and_append
