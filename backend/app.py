# FastAPI backend for the CarrosUsados.pt marketplace
# Serves the chat assistant, listing import from other marketplaces and public browsing
import logging
from typing import Optional

from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from marketplace.assistant import CarAssistant
from marketplace.config import Settings
from marketplace.errors import ConfigurationError, ErrorKind, MarketplaceError
from marketplace.fetcher import RequestsPageFetcher
from marketplace.gateway import OpenAIGateway
from marketplace.importer import ListingImporter
from marketplace.logs import configure_logging
from marketplace.models import (
    AssistantRequest, AssistantResponse, FilterSet, ImportRequest, ImportResponse, Listing, ListingsResponse,
)
from marketplace.query import public_query
from marketplace.rest_store import SupabaseListingStore
from marketplace.slugs import find_by_slug
from marketplace.tools import ListingCatalog, ListingStore
from marketplace.vocabulary import vocabulary

APP_VERSION = "1.0.0"
INTERNAL_ERROR = "Erro interno. Tente novamente mais tarde."

SETTINGS = Settings.from_env()
logger = configure_logging(SETTINGS.log_level).getChild("api")

app = FastAPI(title="CarrosUsados API", version=APP_VERSION)

# The browser calls these endpoints straight from the storefront
app.add_middleware(
    CORSMiddleware,
    allow_origins=list(SETTINGS.allowed_origins),
    allow_methods=["*"],
    allow_headers=[
        "authorization", "x-client-info", "apikey", "content-type",
        "x-supabase-client-platform", "x-supabase-client-platform-version",
        "x-supabase-client-runtime", "x-supabase-client-runtime-version",
    ],
)

# Global state, built once on startup
STORE: ListingStore | None = None
ASSISTANT: CarAssistant | None = None
IMPORTER: ListingImporter | None = None


def build_store(settings: Settings) -> ListingStore:
    if settings.uses_hosted_store:
        return SupabaseListingStore(settings.supabase_url, settings.supabase_key, timeout=settings.store_timeout)
    try:
        return ListingCatalog.from_csv(settings.listings_path)
    except FileNotFoundError:
        logger.warning("No listings store configured and %s not found, starting empty", settings.listings_path)
        return ListingCatalog.empty()


@app.on_event("startup")
def startup():
    global STORE, ASSISTANT, IMPORTER
    try:
        STORE = build_store(SETTINGS)
    except Exception as e:
        raise RuntimeError(f"Failed to initialize listings store: {e}")
    if not SETTINGS.ai_api_key:
        logger.warning("AI gateway key missing, assistant and import are disabled")
        return
    gateway = OpenAIGateway(SETTINGS)
    ASSISTANT = CarAssistant(gateway, STORE)
    IMPORTER = ListingImporter(gateway, RequestsPageFetcher(timeout=SETTINGS.fetch_timeout))


def get_store() -> ListingStore:
    if STORE is None:
        raise ConfigurationError("Listings store not ready")
    return STORE


def get_assistant() -> CarAssistant:
    if ASSISTANT is None:
        raise ConfigurationError("Assistant not configured")
    return ASSISTANT


def get_importer() -> ListingImporter:
    if IMPORTER is None:
        raise ConfigurationError("Listing import not configured")
    return IMPORTER


@app.exception_handler(MarketplaceError)
def marketplace_error(request, exc: MarketplaceError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
def validation_error(request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    msg = f"Invalid request: {where} {first.get('msg', '')}".strip()
    return JSONResponse(status_code=400, content={"error": msg, "kind": ErrorKind.INPUT.value})


@app.exception_handler(StarletteHTTPException)
def http_error(request, exc: StarletteHTTPException):
    kind = ErrorKind.NOT_FOUND if exc.status_code == 404 else (
        ErrorKind.INPUT if exc.status_code < 500 else ErrorKind.INTERNAL
    )
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail), "kind": kind.value})


@app.get("/health")
def health():
    return {
        "status": "ok",
        "store": type(STORE).__name__ if STORE else None,
        "assistant": ASSISTANT is not None,
        "version": APP_VERSION,
    }


@app.get("/version")
def version():
    return {"version": APP_VERSION}


@app.post("/car-assistant", response_model=AssistantResponse)
def car_assistant(req: AssistantRequest, assistant: CarAssistant = Depends(get_assistant)):
    # Extraction and reply generation fail soft on their own, so only surprises land here
    try:
        result = assistant.handle(req.message, req.history)
    except MarketplaceError:
        raise
    except Exception:
        logger.exception("Car assistant error")
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR, "kind": ErrorKind.INTERNAL.value})
    return AssistantResponse(response=result.reply, cars=result.cars, filters=result.filters_payload())


@app.post("/import-listing", response_model=ImportResponse)
def import_listing(req: ImportRequest, importer: ListingImporter = Depends(get_importer)):
    try:
        result = importer.import_listing(req.url)
    except MarketplaceError:
        raise
    except Exception:
        logger.exception("Import error")
        return JSONResponse(status_code=500, content={"error": INTERNAL_ERROR, "kind": ErrorKind.INTERNAL.value})
    return ImportResponse(data=result.draft, source_url=result.source_url, missing_fields=result.missing_fields)


@app.get("/cars", response_model=ListingsResponse)
def list_cars(
    brand: Optional[str] = None,
    model: Optional[str] = None,
    min_price: Optional[int] = Query(None, alias="minPrice", ge=0),
    max_price: Optional[int] = Query(None, alias="maxPrice", ge=0),
    min_year: Optional[int] = Query(None, alias="minYear", ge=0),
    max_year: Optional[int] = Query(None, alias="maxYear", ge=0),
    fuel_type: Optional[str] = Query(None, alias="fuelType"),
    transmission: Optional[str] = None,
    body_type: Optional[str] = Query(None, alias="bodyType"),
    color: Optional[str] = None,
    location: Optional[str] = None,
    min_mileage: Optional[int] = Query(None, alias="minMileage", ge=0),
    max_mileage: Optional[int] = Query(None, alias="maxMileage", ge=0),
    search: Optional[str] = None,
    store: ListingStore = Depends(get_store),
):
    filters = FilterSet(
        brand=brand, model=model, min_price=min_price, max_price=max_price,
        min_year=min_year, max_year=max_year, fuel_type=fuel_type, transmission=transmission,
        body_type=body_type, color=color, location=location,
        min_mileage=min_mileage, max_mileage=max_mileage, search=search,
    )
    return {"cars": store.execute(public_query(filters))}


@app.get("/cars/by-slug/{slug}", response_model=Listing)
def get_car_by_slug(slug: str, store: ListingStore = Depends(get_store)):
    car = find_by_slug(store, slug)
    if car is None:
        raise HTTPException(status_code=404, detail="Anúncio não encontrado")
    return car


@app.get("/meta")
def meta():
    return vocabulary()
