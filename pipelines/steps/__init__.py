# Namespace for pipeline steps
from .parse_export import ReadExport, ParseExportFiles  # noqa: F401
from .merge_contacts import MergeContacts, MapProfiles  # noqa: F401
from .persist_profiles import PersistProfiles, LogUpload  # noqa: F401
from .enrich_profiles import LoadPendingProfiles, EnrichAndPersistProfiles, NotifyUser  # noqa: F401
from .build_graph import BuildProfileNodes, AffiliationEdges, TitleSimilarityEdges, MutualEdges, GenerateEmbeddings  # noqa: F401
from .predict_links import PredictLinks  # noqa: F401
