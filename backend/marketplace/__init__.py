from .models import Listing, FilterSet, ChatTurn, ListingDraft, AssistantRequest, AssistantResponse, ImportRequest, ImportResponse
from .router import extract_filters, parse_filters
from .assistant import CarAssistant, AssistantReply
from .importer import ListingImporter, ImportResult
from .query import public_query, pending_query, owner_query
from .tools import ListingCatalog, apply_filters

__all__ = [
    'Listing','FilterSet','ChatTurn','ListingDraft','AssistantRequest','AssistantResponse','ImportRequest','ImportResponse',
    'extract_filters','parse_filters',
    'CarAssistant','AssistantReply','ListingImporter','ImportResult',
    'public_query','pending_query','owner_query',
    'ListingCatalog','apply_filters'
]
