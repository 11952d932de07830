"""Import a listing from another marketplace

The page markup is handed to the model, which answers with the listing fields
as JSON. Unlike filter extraction there is no safe default here, so a bad
answer is an error for the caller
"""

from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import urlsplit

from .errors import InputError, ModelCallError, ModelResponseParseError
from .fetcher import PageFetcher
from .gateway import ChatGateway
from .models import ListingDraft
from .router import parse_model_json
from .vocabulary import BODY_TYPES, FUEL_TYPES, TRANSMISSIONS

logger = logging.getLogger(__name__)

ALLOWED_DOMAINS = ("standvirtual.com", "olx.pt", "custojusto.pt", "autoscout24.pt")
MAX_HTML_CHARS = 50_000
IMPORT_MAX_TOKENS = 2000
IMPORT_TEMPERATURE = 0.1

IMPORT_PROMPT = f"""You are an expert at extracting structured car listing data from HTML.
Extract the following fields from the provided HTML of a Portuguese car listing website:
- title: The full title of the listing
- brand: Car manufacturer (e.g., BMW, Mercedes-Benz, Audi, Porsche)
- model: Car model (e.g., Série 3, Classe C, A4, 911)
- year: Year of manufacture (number)
- price: Price in euros (number only, no currency symbol)
- mileage: Kilometers driven (number only)
- fuel_type: Type of fuel ({", ".join(FUEL_TYPES)})
- transmission: Type of transmission ({", ".join(TRANSMISSIONS)})
- body_type: Body type ({", ".join(BODY_TYPES)})
- color: Color of the car in Portuguese
- location: City/region in Portugal
- description: Full description text
- images: Array of image URLs (only include direct image URLs, not thumbnails)

IMPORTANT:
- Return ONLY valid JSON, no markdown or explanations
- Use null for missing fields
- Price and mileage must be numbers without formatting
- Year must be a 4-digit number
- Extract all available images from the listing"""


@dataclass
class ImportResult:
    draft: ListingDraft
    source_url: str
    missing_fields: List[str] = field(default_factory=list)


def is_allowed_host(host: Optional[str]) -> bool:
    host = (host or "").lower().rstrip(".")
    return any(host == d or host.endswith("." + d) for d in ALLOWED_DOMAINS)


def validate_source_url(url: Optional[str]) -> str:
    """Check the URL before anything goes over the network"""
    if not url or not url.strip():
        raise InputError("URL é obrigatório")
    url = url.strip()
    try:
        parts = urlsplit(url)
        host = parts.hostname
    except ValueError:
        raise InputError("URL inválido")
    if parts.scheme not in ("http", "https") or not host:
        raise InputError("URL inválido")
    if not is_allowed_host(host):
        raise InputError(
            "Domínio não suportado. Domínios permitidos: StandVirtual, OLX, CustoJusto, AutoScout24"
        )
    return url


def parse_draft(text: str) -> ListingDraft:
    try:
        data = parse_model_json(text)
    except ValueError as e:
        logger.error("Failed to parse AI response: %s | raw: %r", e, (text or "")[:500])
        raise ModelResponseParseError("Erro ao processar dados extraídos.") from e
    if not isinstance(data, dict):
        logger.error("AI response is not an object: %r", (text or "")[:500])
        raise ModelResponseParseError("Erro ao processar dados extraídos.")
    return ListingDraft.model_validate(data)


class ListingImporter:
    def __init__(self, gateway: ChatGateway, fetcher: PageFetcher, max_chars: int = MAX_HTML_CHARS):
        self.gateway = gateway
        self.fetcher = fetcher
        self.max_chars = max_chars

    def import_listing(self, url: Optional[str]) -> ImportResult:
        source_url = validate_source_url(url)
        logger.info("Importing listing from: %s", source_url)

        html = self.fetcher.fetch(source_url)
        logger.info("Fetched HTML length: %d", len(html))
        # Anything past max_chars is never seen by the model
        truncated = html[: self.max_chars]

        try:
            text = self.gateway.complete(
                IMPORT_PROMPT,
                [{"role": "user", "content": f"Extract the car listing data from this HTML:\n\n{truncated}"}],
                max_tokens=IMPORT_MAX_TOKENS,
                temperature=IMPORT_TEMPERATURE,
            )
        except ModelCallError as e:
            logger.error("AI extraction failed: %s", e)
            raise ModelCallError("Erro ao processar o anúncio. Tente novamente.") from e
        if not text or not text.strip():
            raise ModelCallError("Não foi possível extrair dados do anúncio.")

        draft = parse_draft(text)
        missing = draft.missing_fields()
        if missing:
            logger.warning("Imported listing is missing required fields: %s", ", ".join(missing))
        logger.info("Successfully extracted: %s", draft.title)
        return ImportResult(draft=draft, source_url=source_url, missing_fields=missing)
