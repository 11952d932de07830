# Test doubles shared by the test modules
from marketplace.errors import ModelCallError
from marketplace.tools import ListingCatalog


class StubGateway:
    """Hands out canned answers in order and remembers every call"""

    def __init__(self, *answers):
        self.answers = list(answers)
        self.calls = []

    def complete(self, prompt, messages, max_tokens, temperature=None):
        self.calls.append({
            "prompt": prompt,
            "messages": list(messages),
            "max_tokens": max_tokens,
            "temperature": temperature,
        })
        if not self.answers:
            raise ModelCallError("no canned answer left")
        answer = self.answers.pop(0)
        if isinstance(answer, Exception):
            raise answer
        return answer


class StubFetcher:
    def __init__(self, html="<html><body>anúncio</body></html>", error=None):
        self.html = html
        self.error = error
        self.calls = []

    def fetch(self, url):
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        return self.html


class RecordingStore:
    # Runs queries on an in-memory catalog and keeps them for assertions
    def __init__(self, catalog=None, error=None):
        self.catalog = catalog or ListingCatalog.empty()
        self.error = error
        self.queries = []

    def execute(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.catalog.execute(query)

    def find_by_suffix(self, short_id, clauses=()):
        return self.catalog.find_by_suffix(short_id, clauses)


class FakeResponse:
    def __init__(self, status_code=200, text="", payload=None):
        self.status_code = status_code
        self.text = text
        self.payload = payload

    def json(self):
        if self.payload is None:
            raise ValueError("no json")
        return self.payload


class FakeSession:
    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = []

    def get(self, url, **kwargs):
        self.calls.append((url, kwargs))
        r = self.responses.pop(0)
        if isinstance(r, Exception):
            raise r
        return r


def make_listing(n, **overrides):
    row = {
        "id": f"3f1c2a90-5b7d-4e0a-9c1e-00000000000{n}",
        "user_id": "owner-1",
        "title": f"Carro {n}",
        "brand": "Toyota",
        "model": "Corolla",
        "year": 2018,
        "price": 15000,
        "mileage": 100000,
        "fuel_type": "Gasóleo",
        "transmission": "Manual",
        "body_type": "Berlina",
        "color": "Preto",
        "location": "Lisboa",
        "description": None,
        "images": [],
        "is_sold": False,
        "is_approved": True,
        "created_at": f"2025-03-0{n}T10:00:00Z",
    }
    row.update(overrides)
    return row


def make_catalog():
    # a..d are public, e is waiting for approval, f is sold
    return ListingCatalog.from_records([
        make_listing(1, title="Toyota Corolla 1.4 D-4D", price=12900, mileage=148000,
                     created_at="2025-03-02T10:00:00Z"),
        make_listing(2, title="Peugeot 3008 BlueHDi", brand="Peugeot", model="3008", year=2019, price=19800,
                     mileage=92000, transmission="Automático", body_type="SUV", color="Branco",
                     created_at="2025-03-05T09:00:00Z"),
        make_listing(3, title="BMW 320d Line Sport", brand="BMW", model="Série 3", price=23500, mileage=None,
                     location="Porto", user_id="owner-2", created_at="2025-02-20T18:30:00Z"),
        make_listing(4, title="Renault Clio TCe", brand="Renault", model="Clio", year=2021, price=14250,
                     mileage=35000, fuel_type="Gasolina", body_type="Hatchback", location="Braga",
                     user_id="owner-2", created_at="2025-03-05T09:00:00Z"),
        make_listing(5, title="Tesla Model 3", brand="Tesla", model="Model 3", price=29900, is_approved=False,
                     user_id="owner-3", created_at="2025-03-06T08:45:00Z"),
        make_listing(6, title="Volkswagen Golf TDI", brand="Volkswagen", model="Golf", price=9900, is_sold=True,
                     created_at="2025-01-15T14:20:00Z"),
    ])
