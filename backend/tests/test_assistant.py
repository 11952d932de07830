from marketplace.assistant import (
    FALLBACK_REPLY, NO_RESULTS_NOTE, QUERY_LIMIT, REPLY_MAX_TOKENS, CarAssistant, format_price, render_listings,
)
from marketplace.errors import ModelCallError, StoreError
from marketplace.models import ChatTurn, FilterSet, Listing
from marketplace.tools import ListingCatalog
from helpers import RecordingStore, StubGateway, make_catalog, make_listing


def suv_store():
    return RecordingStore(ListingCatalog.from_records([
        make_listing(1, title="Peugeot 3008", brand="Peugeot", body_type="SUV", price=19800,
                     created_at="2025-03-05T09:00:00Z"),
        make_listing(2, title="Nissan Qashqai", brand="Nissan", body_type="SUV", price=17500, mileage=None,
                     created_at="2025-03-04T09:00:00Z"),
        make_listing(3, title="Volvo XC60", brand="Volvo", body_type="SUV", price=31000),
        make_listing(4, title="Seat Leon", brand="Seat", body_type="Hatchback", price=12000),
        make_listing(5, title="Kia Sportage", brand="Kia", body_type="SUV", price=18000, location="Porto"),
    ]))


# End to end: filters, lookup, reply
def test_search_turn_returns_matches_and_reply():
    store = suv_store()
    gw = StubGateway(
        '{"bodyType": "SUV", "location": "Lisboa", "maxPrice": 20000}',
        "Encontrei 2 SUVs em Lisboa dentro do seu orçamento.",
    )
    result = CarAssistant(gw, store).handle("Mostra SUVs em Lisboa até 20000€")
    assert [c.title for c in result.cars] == ["Peugeot 3008", "Nissan Qashqai"]
    assert "Encontrei 2" in result.reply
    assert result.filters_payload() == {"bodyType": "SUV", "location": "Lisboa", "maxPrice": 20000}
    assert store.queries[0].limit == QUERY_LIMIT

    reply_call = gw.calls[1]
    assert reply_call["max_tokens"] == REPLY_MAX_TOKENS
    assert "RESULTADOS DA PESQUISA" in reply_call["prompt"]
    assert "19.800 €" in reply_call["prompt"]
    assert make_listing(2)["id"] in reply_call["prompt"]


def test_small_talk_never_touches_the_store():
    store = RecordingStore(make_catalog())
    gw = StubGateway('{"isSearch": false}', "Olá! Em que posso ajudar?")
    result = CarAssistant(gw, store).handle("Olá, como estás?")
    assert store.queries == []
    assert result.cars == []
    assert result.filters is None
    assert result.reply == "Olá! Em que posso ajudar?"
    assert "RESULTADOS" not in gw.calls[1]["prompt"]


def test_extraction_failure_still_replies():
    store = RecordingStore(make_catalog())
    gw = StubGateway(ModelCallError("gateway down"), "Posso ajudar a encontrar um carro.")
    result = CarAssistant(gw, store).handle("Quero um Toyota")
    assert result.reply == "Posso ajudar a encontrar um carro."
    assert store.queries == []
    assert result.filters is None


def test_reply_failure_uses_fallback():
    store = suv_store()
    gw = StubGateway('{"bodyType": "SUV"}', ModelCallError("timeout"))
    result = CarAssistant(gw, store).handle("SUVs")
    assert result.reply == FALLBACK_REPLY
    assert len(result.cars) == 4


def test_empty_reply_uses_fallback():
    gw = StubGateway('{"isSearch": false}', "   ")
    assert CarAssistant(gw, RecordingStore()).handle("?").reply == FALLBACK_REPLY


def test_store_failure_answers_without_context():
    store = RecordingStore(error=StoreError("down"))
    gw = StubGateway('{"brand": "BMW"}', "De momento não consigo pesquisar.")
    result = CarAssistant(gw, store).handle("BMW")
    assert result.cars == []
    assert result.reply == "De momento não consigo pesquisar."
    assert "RESULTADOS" not in gw.calls[1]["prompt"]


def test_no_results_note_in_prompt():
    gw = StubGateway('{"brand": "Ferrari"}', "Não encontrei nenhum Ferrari.")
    result = CarAssistant(gw, RecordingStore(make_catalog())).handle("Ferrari")
    assert result.cars == []
    assert result.filters_payload() == {"brand": "Ferrari"}
    assert NO_RESULTS_NOTE in gw.calls[1]["prompt"]


# Empty filters count as "not a search" even if the model said otherwise
def test_empty_filters_skip_the_store():
    store = RecordingStore(make_catalog())
    assistant = CarAssistant(StubGateway("Diga-me o que procura."), store)
    result = assistant.respond("carros", [], FilterSet(), True)
    assert store.queries == []
    assert result.filters is None


def test_history_is_sent_in_order():
    gw = StubGateway("Claro.")
    history = [
        ChatTurn(role="user", content="Olá"),
        ChatTurn(role="assistant", content="Olá! Procura algum carro?"),
    ]
    CarAssistant(gw, RecordingStore()).respond("Sim, um SUV", history, FilterSet(), False)
    assert gw.calls[0]["messages"] == [
        {"role": "user", "content": "Olá"},
        {"role": "assistant", "content": "Olá! Procura algum carro?"},
        {"role": "user", "content": "Sim, um SUV"},
    ]


def test_query_is_capped():
    rows = [make_listing(1, id=f"id-{i:02d}", created_at=f"2025-01-{i + 1:02d}T00:00:00Z") for i in range(12)]
    store = RecordingStore(ListingCatalog.from_records(rows))
    gw = StubGateway('{"brand": "Toyota"}', "Vários Toyota disponíveis.")
    result = CarAssistant(gw, store).handle("Toyota")
    assert len(result.cars) == QUERY_LIMIT
    assert result.cars[0].id == "id-11"


def test_price_formatting_and_rendering():
    assert format_price(15000) == "15.000 €"
    assert format_price(950) == "950 €"
    car = Listing.model_validate(make_listing(1, mileage=None, transmission=None, price=123456))
    text = render_listings([car])
    assert "Preço: 123.456 €" in text
    assert "Gasóleo | N/A | N/A" in text
    assert f"ID: {car.id}" in text


# The chat shows at most five cards per message
def test_chat_turn_display_cap():
    cars = [Listing.model_validate(make_listing(1, id=f"id-{i}")) for i in range(7)]
    turn = ChatTurn(role="assistant", content="Aqui estão", cars=cars)
    assert [c.id for c in turn.display_cars()] == ["id-0", "id-1", "id-2", "id-3", "id-4"]
    assert turn.hidden_count() == 2
    assert ChatTurn(role="user", content="oi").hidden_count() == 0
