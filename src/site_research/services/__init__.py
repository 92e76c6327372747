from .artifact_store import AgentDataArtifactStore, ArtifactStore, artifact_key
from .places_service import PlacesService
from .site_record_store import AgentDataSiteRecordStore, SiteRecordStore
from .step_journal import StepJournal


__all__ = [
    "AgentDataArtifactStore",
    "AgentDataSiteRecordStore",
    "ArtifactStore",
    "PlacesService",
    "SiteRecordStore",
    "StepJournal",
    "artifact_key",
]
