"""docspine execution -- bounded, ordered request pipelines.

ARCHITECTURE
────────────
::

    PipelineBase          sliding window of outstanding futures, FIFO results
      ├── BatchPipeline   source iterable → serialized batches → Result per item
      └── CursorPaginator one page in flight, prefetch on arrival
"""

from docspine.execution.pagination import CursorPaginator, Page, normalize_page
from docspine.execution.pipeline import BatchPipeline, BatchRequest, PipelineBase

__all__ = [
    "PipelineBase",
    "BatchPipeline",
    "BatchRequest",
    "CursorPaginator",
    "Page",
    "normalize_page",
]
