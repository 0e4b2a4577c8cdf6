"""
docspine - client-side data access for a document, annotation and
classification-task service.

Usage::

    from docspine import Client, Content

    with Client.from_settings() as client:
        news = client.collection("news")
        for result in news.add_documents(Content(text) for text in texts):
            result.fold(lambda failure: print(failure.error), print)
"""

__version__ = "0.1.0"

from docspine.client import Client
from docspine.core import (
    APIFailure,
    ClientSettings,
    DocSpineError,
    Err,
    EvictionPolicy,
    IdentityCache,
    Ok,
    Result,
    configure_logging,
    get_logger,
)
from docspine.model import (
    Assignment,
    Collection,
    Content,
    Document,
    DocumentContent,
    DocumentPrediction,
    DocumentSearcher,
    Judgment,
    Label,
    OntologyGraph,
    Provenance,
    ReturnData,
    SpanAssignment,
    SpanPrediction,
    Task,
    TaskScope,
)
from docspine.transport import HttpxTransport, Transport, TransportProperty

__all__ = [
    "__version__",
    "Client",
    # core
    "Ok",
    "Err",
    "Result",
    "APIFailure",
    "DocSpineError",
    "IdentityCache",
    "EvictionPolicy",
    "ClientSettings",
    "configure_logging",
    "get_logger",
    # transport
    "Transport",
    "TransportProperty",
    "HttpxTransport",
    # model
    "Collection",
    "Document",
    "DocumentContent",
    "Content",
    "DocumentSearcher",
    "ReturnData",
    "Task",
    "TaskScope",
    "Label",
    "OntologyGraph",
    "Assignment",
    "SpanAssignment",
    "Judgment",
    "Provenance",
    "DocumentPrediction",
    "SpanPrediction",
]
