from .contact_record import ContactRecord
from .profile_record import ProfileRecord
from .enrichment_result import ProfileEnrichmentResult
from .graph import GraphEdge, LinkPrediction, profile_node_id
from .comparison import ComparisonResult

__all__ = [
    "ContactRecord",
    "ProfileRecord",
    "ProfileEnrichmentResult",
    "GraphEdge",
    "LinkPrediction",
    "profile_node_id",
    "ComparisonResult",
]
