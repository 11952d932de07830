from __future__ import annotations
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from .errors import StoreError
from .gateway import ChatGateway
from .models import ChatTurn, FilterSet, Listing
from .query import public_query
from .router import extract_filters
from .tools import ListingStore

logger = logging.getLogger(__name__)

# How many listings a chat turn may pull from the store
QUERY_LIMIT = 10
REPLY_MAX_TOKENS = 800

FALLBACK_REPLY = (
    "Desculpe, não consegui processar o seu pedido. Tente novamente. "
    "(Sorry, I could not process that.)"
)
NO_RESULTS_NOTE = (
    "Não encontrei carros com esses critérios. "
    "Pode ajustar os filtros ou ver todos os anúncios disponíveis."
)

REPLY_PROMPT = """You are a helpful car marketplace assistant for CarrosUsados.pt, a Portuguese used car marketplace. You help users in both Portuguese and English - respond in the same language they use.

You help users:
- Find cars based on their preferences (brand, budget, fuel type, location in Portugal, etc.)
- Answer questions about car listings
- Provide guidance on buying/selling cars in Portugal
- Give tips on car maintenance and ownership

When presenting car results:
- List the cars clearly with key details
- Always show prices in euros (€) formatted for Portugal (e.g., 15.000 €)
- Mention price, year, fuel type, transmission, mileage
- Be enthusiastic but honest
- Suggest users click on listings for more details
{results}
Be friendly, concise, and helpful. Format your responses nicely with bullet points or numbered lists when appropriate. If the user writes in Portuguese, respond in Portuguese. If they write in English, respond in English."""


def format_thousands(value: int) -> str:
    # pt-PT groups thousands with a dot
    return f"{int(value):,}".replace(",", ".")


def format_price(value: int) -> str:
    return f"{format_thousands(value)} €"


def render_listings(listings: Sequence[Listing]) -> str:
    """Plain text rendering of the matches for the reply prompt"""
    lines = [f"Encontrei {len(listings)} carro(s) que correspondem aos critérios:"]
    for i, car in enumerate(listings, start=1):
        mileage = f"{format_thousands(car.mileage)} km" if car.mileage is not None else "N/A"
        lines.append(
            f"{i}. {car.title} - {car.brand} {car.model} ({car.year})\n"
            f"   Preço: {format_price(car.price)}\n"
            f"   {car.fuel_type or 'N/A'} | {car.transmission or 'N/A'} | {mileage}\n"
            f"   Localização: {car.location or 'N/A'}\n"
            f"   ID: {car.id}"
        )
    return "\n\n".join(lines)


def build_reply_prompt(context: str) -> str:
    results = f"\nRESULTADOS DA PESQUISA:\n{context}\n" if context else ""
    return REPLY_PROMPT.format(results=results)


@dataclass
class AssistantReply:
    reply: str
    cars: List[Listing] = field(default_factory=list)
    filters: Optional[FilterSet] = None

    def filters_payload(self) -> Optional[dict]:
        return self.filters.constraints() if self.filters is not None else None


class CarAssistant:
    """Chat pipeline: extract filters, look up listings, write the answer"""

    def __init__(self, gateway: ChatGateway, store: ListingStore):
        self.gateway = gateway
        self.store = store

    def extract_filters(self, message: str) -> Tuple[FilterSet, bool]:
        return extract_filters(message, self.gateway)

    def search(self, filters: FilterSet) -> List[Listing]:
        return self.store.execute(public_query(filters, limit=QUERY_LIMIT))

    def respond(
        self,
        message: str,
        history: Sequence[ChatTurn],
        filters: FilterSet,
        is_search: bool,
    ) -> AssistantReply:
        cars: List[Listing] = []
        used: Optional[FilterSet] = None
        context = ""
        if is_search and not filters.is_empty():
            used = filters
            try:
                cars = self.search(filters)
            except StoreError as e:
                # Answer without listing context rather than failing the chat
                logger.error("Listing lookup failed for %s: %s", filters.constraints(), e)
            else:
                context = render_listings(cars) if cars else NO_RESULTS_NOTE
        messages = [{"role": t.role, "content": t.content} for t in history]
        messages.append({"role": "user", "content": message})
        try:
            reply = self.gateway.complete(build_reply_prompt(context), messages, max_tokens=REPLY_MAX_TOKENS)
        except Exception as e:
            logger.warning("Reply generation failed, sending fallback: %s", e)
            reply = ""
        if not reply or not reply.strip():
            reply = FALLBACK_REPLY
        return AssistantReply(reply=reply, cars=cars, filters=used)

    def handle(self, message: str, history: Sequence[ChatTurn] = ()) -> AssistantReply:
        filters, is_search = self.extract_filters(message)
        return self.respond(message, history, filters, is_search)
