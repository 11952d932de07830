"""Turn a chat message into search filters

The model reads the message and answers with a small JSON object. Whatever it
answers is treated as untrusted: fences are stripped, the JSON is validated
field by field and values are mapped onto the store vocabulary
Anything that goes wrong here fails open to "not a search" so the conversation
keeps going
"""

from __future__ import annotations
import json
import logging
import re
from typing import Any, Tuple

from .gateway import ChatGateway
from .models import FilterSet
from .vocabulary import BODY_TYPES, BRANDS, COLORS, FUEL_TYPES, LOCATIONS, TRANSMISSIONS, canonicalize

logger = logging.getLogger(__name__)

EXTRACTION_MAX_TOKENS = 200
EXTRACTION_TEMPERATURE = 0.0

FILTER_EXTRACTION_PROMPT = f"""You are a filter extraction assistant for CarrosUsados.pt, a Portuguese car marketplace. Analyze the user message (in Portuguese or English) and extract car search filters.

Available filters:
- brand: car brand ({", ".join(BRANDS[:12])}, etc.)
- model: car model (e.g. Golf, Série 3, Clio)
- minPrice / maxPrice: price range in EUR (euros), plain numbers
- minYear / maxYear: year range
- fuelType: one of {", ".join(FUEL_TYPES)}
- transmission: one of {", ".join(TRANSMISSIONS)}
- bodyType: one of {", ".join(BODY_TYPES)}
- color: one of {", ".join(COLORS)}
- location: one of {", ".join(LOCATIONS)}
- minMileage / maxMileage: kilometers, plain numbers
- search: free text keywords that fit none of the fields above

Always answer with the Portuguese values listed above, even when the user writes in English (Diesel -> Gasóleo, Automatic -> Automático).

Respond ONLY with a JSON object containing the extracted filters. Use null for filters not mentioned.
Example: {{"brand": "Toyota", "maxPrice": 15000, "fuelType": "Gasóleo", "location": "Lisboa"}}

If the user is NOT asking about finding/searching cars (e.g., asking general questions, greetings, advice), respond with: {{"isSearch": false}}"""

_FENCE_OPEN = re.compile(r"^```[a-zA-Z]*\s*")
_FENCE_CLOSE = re.compile(r"\s*```$")

_CANONICAL_FIELDS = ("brand", "fuel_type", "transmission", "body_type", "color", "location")


def strip_code_fences(text: str) -> str:
    """Remove a ```json ... ``` wrapper if the model added one"""
    t = (text or "").strip()
    if t.startswith("```"):
        t = _FENCE_OPEN.sub("", t)
        t = _FENCE_CLOSE.sub("", t)
    return t.strip()


def parse_model_json(text: str) -> Any:
    # Raises ValueError (JSONDecodeError) when the text is not JSON
    return json.loads(strip_code_fences(text))


def canonicalize_filters(filters: FilterSet) -> FilterSet:
    updates = {f: canonicalize(f, getattr(filters, f)) for f in _CANONICAL_FIELDS if getattr(filters, f)}
    return filters.model_copy(update=updates) if updates else filters


def parse_filters(text: str) -> Tuple[FilterSet, bool]:
    """Read the extraction answer, returning (filters, is_search)"""
    try:
        data = parse_model_json(text)
    except ValueError:
        logger.info("Could not parse filters: %r", (text or "")[:200])
        return FilterSet(), False
    if not isinstance(data, dict):
        logger.info("Filter answer is not an object: %r", data)
        return FilterSet(), False
    if data.get("isSearch") is False:
        return FilterSet(), False
    try:
        filters = FilterSet.model_validate(data)
    except ValueError as e:
        logger.info("Filter answer failed validation: %s", e)
        return FilterSet(), False
    return canonicalize_filters(filters), True


def extract_filters(message: str, gateway: ChatGateway) -> Tuple[FilterSet, bool]:
    """Ask the model for filters, never raising

    Greetings and general questions come back as (empty filters, False)
    """
    if not message or not message.strip():
        return FilterSet(), False
    try:
        text = gateway.complete(
            FILTER_EXTRACTION_PROMPT,
            [{"role": "user", "content": message}],
            max_tokens=EXTRACTION_MAX_TOKENS,
            temperature=EXTRACTION_TEMPERATURE,
        )
    except Exception as e:
        logger.warning("Filter extraction call failed, continuing without filters: %s", e)
        return FilterSet(), False
    return parse_filters(text)
