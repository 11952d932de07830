"""Canonical Portuguese vocabulary used by the listings store

The assistant prompt lists these values, and every value the model returns goes
through canonicalize so English or accent free answers still match the store
"""

from __future__ import annotations
import logging
import unicodedata
from typing import Dict, Iterable, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)

BRANDS: Tuple[str, ...] = (
    "Abarth", "Alfa Romeo", "Alpine", "Aston Martin", "Audi", "Bentley", "BMW", "BYD",
    "Chevrolet", "Chrysler", "Citroën", "Cupra", "Dacia", "DS Automobiles", "Ferrari",
    "Fiat", "Ford", "Honda", "Hyundai", "Isuzu", "Jaguar", "Jeep", "Kia", "Lamborghini",
    "Land Rover", "Lexus", "Maserati", "Mazda", "Mercedes-Benz", "Mini", "Mitsubishi",
    "MG", "Nissan", "Opel", "Peugeot", "Polestar", "Porsche", "RAM", "Renault",
    "Rolls-Royce", "Seat", "Škoda", "Smart", "Subaru", "Suzuki", "Tesla", "Toyota",
    "Volkswagen", "Volvo",
)

FUEL_TYPES: Tuple[str, ...] = ("Gasolina", "Gasóleo", "Elétrico", "Híbrido", "GPL")

TRANSMISSIONS: Tuple[str, ...] = ("Manual", "Automático", "Semi-automático")

BODY_TYPES: Tuple[str, ...] = (
    "Berlina", "Hatchback", "SUV", "Coupé", "Descapotável", "Carrinha",
    "Comercial", "Pick-up", "Monovolume",
)

COLORS: Tuple[str, ...] = (
    "Preto", "Branco", "Prata", "Cinzento", "Azul", "Vermelho", "Verde",
    "Castanho", "Bege", "Amarelo", "Laranja", "Roxo",
)

LOCATIONS: Tuple[str, ...] = (
    "Lisboa", "Porto", "Braga", "Faro", "Coimbra", "Setúbal", "Aveiro", "Leiria",
    "Viseu", "Santarém", "Évora", "Castelo Branco", "Viana do Castelo", "Vila Real",
    "Bragança", "Guarda", "Portalegre", "Beja", "Açores", "Madeira",
)

# English and colloquial spellings the model tends to return
BRAND_SYNONYMS: Dict[str, str] = {
    "mercedes": "Mercedes-Benz",
    "mercedes benz": "Mercedes-Benz",
    "merc": "Mercedes-Benz",
    "vw": "Volkswagen",
    "ds": "DS Automobiles",
    "alfa": "Alfa Romeo",
    "range rover": "Land Rover",
    "rolls royce": "Rolls-Royce",
}

FUEL_SYNONYMS: Dict[str, str] = {
    "petrol": "Gasolina",
    "gasoline": "Gasolina",
    "gas": "Gasolina",
    "diesel": "Gasóleo",
    "gasoleo": "Gasóleo",
    "electric": "Elétrico",
    "electrico": "Elétrico",
    "ev": "Elétrico",
    "hybrid": "Híbrido",
    "plug-in hybrid": "Híbrido",
    "lpg": "GPL",
}

TRANSMISSION_SYNONYMS: Dict[str, str] = {
    "automatic": "Automático",
    "auto": "Automático",
    "automatica": "Automático",
    "semi-automatic": "Semi-automático",
    "semi automatic": "Semi-automático",
    "semiautomatico": "Semi-automático",
    "manual gearbox": "Manual",
}

BODY_TYPE_SYNONYMS: Dict[str, str] = {
    "sedan": "Berlina",
    "saloon": "Berlina",
    "hatch": "Hatchback",
    "utilitario": "Hatchback",
    "estate": "Carrinha",
    "station wagon": "Carrinha",
    "wagon": "Carrinha",
    "coupe": "Coupé",
    "convertible": "Descapotável",
    "cabrio": "Descapotável",
    "cabriolet": "Descapotável",
    "van": "Comercial",
    "commercial": "Comercial",
    "pickup": "Pick-up",
    "pick up": "Pick-up",
    "minivan": "Monovolume",
    "mpv": "Monovolume",
    "crossover": "SUV",
    "jipe": "SUV",
}

COLOR_SYNONYMS: Dict[str, str] = {
    "black": "Preto",
    "white": "Branco",
    "silver": "Prata",
    "grey": "Cinzento",
    "gray": "Cinzento",
    "cinza": "Cinzento",
    "blue": "Azul",
    "red": "Vermelho",
    "green": "Verde",
    "brown": "Castanho",
    "beige": "Bege",
    "yellow": "Amarelo",
    "orange": "Laranja",
    "purple": "Roxo",
}

LOCATION_SYNONYMS: Dict[str, str] = {
    "lisbon": "Lisboa",
    "oporto": "Porto",
    "azores": "Açores",
}


def fold(text: str) -> str:
    """Lower case and drop accents so "Gasóleo" and "gasoleo" compare equal"""
    decomposed = unicodedata.normalize("NFKD", text.strip().lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return " ".join(stripped.replace("_", " ").split())


def _lookup(values: Iterable[str], synonyms: Mapping[str, str]) -> Dict[str, str]:
    table = {fold(k): v for k, v in synonyms.items()}
    table.update({fold(v): v for v in values})
    return table


_TABLES: Dict[str, Dict[str, str]] = {
    "brand": _lookup(BRANDS, BRAND_SYNONYMS),
    "fuel_type": _lookup(FUEL_TYPES, FUEL_SYNONYMS),
    "transmission": _lookup(TRANSMISSIONS, TRANSMISSION_SYNONYMS),
    "body_type": _lookup(BODY_TYPES, BODY_TYPE_SYNONYMS),
    "color": _lookup(COLORS, COLOR_SYNONYMS),
    "location": _lookup(LOCATIONS, LOCATION_SYNONYMS),
}

# Brands are open vocabulary, everything else should land on a known value
CLOSED_FIELDS = ("fuel_type", "transmission", "body_type", "color")


def canonicalize(field: str, value: Optional[str]) -> Optional[str]:
    """Map a free form value onto the store vocabulary for that field

    Unknown values are returned trimmed so the caller still filters on what was asked
    """
    if value is None:
        return None
    cleaned = value.strip()
    if not cleaned:
        return None
    table = _TABLES.get(field)
    if table is None:
        return cleaned
    hit = table.get(fold(cleaned))
    if hit is not None:
        return hit
    if field in CLOSED_FIELDS:
        logger.warning("No canonical %s for %r, filtering on it as given", field, cleaned)
    return cleaned


def vocabulary() -> Dict[str, list]:
    return {
        "brands": list(BRANDS),
        "fuel_types": list(FUEL_TYPES),
        "transmissions": list(TRANSMISSIONS),
        "body_types": list(BODY_TYPES),
        "colors": list(COLORS),
        "locations": list(LOCATIONS),
    }
