"""Static reference data: quiz categories, locations and coin packages."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CategoryDefinition:
    key: str
    label: str
    opentdb_category_id: int


@dataclass(frozen=True)
class CoinPackage:
    key: str
    label: str
    coins: int
    bonus: int
    price_eur: int

    @property
    def total_coins(self) -> int:
        return self.coins + self.bonus


_CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition(key="Geography", label="Geography", opentdb_category_id=22),
    CategoryDefinition(key="History", label="History", opentdb_category_id=23),
    CategoryDefinition(key="Science", label="Science", opentdb_category_id=17),
    CategoryDefinition(key="Arts", label="Arts", opentdb_category_id=25),
    CategoryDefinition(key="Sports", label="Sports", opentdb_category_id=21),
)

DEFAULT_CATEGORY_KEY = "Geography"

CATEGORY_KEY_TO_DEFINITION: dict[str, CategoryDefinition] = {item.key: item for item in _CATEGORIES}
VALID_CATEGORY_KEYS: set[str] = set(CATEGORY_KEY_TO_DEFINITION)

CONTINENT_COUNTRIES: dict[str, tuple[str, ...]] = {
    "Europe": ("France", "Germany", "Spain", "Italy", "United Kingdom", "Netherlands", "Poland"),
    "North America": ("United States", "Canada", "Mexico"),
    "Asia": ("China", "Japan", "India", "South Korea", "Thailand"),
    "Africa": ("Nigeria", "South Africa", "Egypt", "Kenya"),
    "South America": ("Brazil", "Argentina", "Chile", "Peru"),
    "Oceania": ("Australia", "New Zealand", "Fiji"),
}

_COIN_PACKAGES: tuple[CoinPackage, ...] = (
    CoinPackage(key="small", label="Small pack", coins=10, bonus=0, price_eur=2),
    CoinPackage(key="medium", label="Medium pack", coins=25, bonus=5, price_eur=5),
    CoinPackage(key="large", label="Large pack", coins=60, bonus=15, price_eur=10),
    CoinPackage(key="mega", label="Mega pack", coins=150, bonus=50, price_eur=20),
)
COIN_PACKAGE_KEY_TO_DEFINITION: dict[str, CoinPackage] = {item.key: item for item in _COIN_PACKAGES}


def list_categories() -> tuple[CategoryDefinition, ...]:
    return _CATEGORIES


def normalize_category(value: object) -> str | None:
    """Return the canonical category key for ``value`` (case-insensitive), or None."""
    if value is None:
        return None
    candidate = str(value).strip().lower()
    if not candidate:
        return None
    for key in VALID_CATEGORY_KEYS:
        if key.lower() == candidate:
            return key
    return None


def opentdb_category_id(category: str) -> int:
    definition = CATEGORY_KEY_TO_DEFINITION.get(category)
    # 9 is Open Trivia DB's "General Knowledge".
    return definition.opentdb_category_id if definition else 9


def list_continents() -> list[str]:
    return list(CONTINENT_COUNTRIES)


def list_countries(continent: str | None = None) -> list[str]:
    if continent and continent in CONTINENT_COUNTRIES:
        return list(CONTINENT_COUNTRIES[continent])
    return [country for countries in CONTINENT_COUNTRIES.values() for country in countries]


def continent_for_country(country: str) -> str | None:
    for continent, countries in CONTINENT_COUNTRIES.items():
        if country in countries:
            return continent
    return None


def list_coin_packages() -> tuple[CoinPackage, ...]:
    return _COIN_PACKAGES


def get_coin_package(key: object) -> CoinPackage | None:
    return COIN_PACKAGE_KEY_TO_DEFINITION.get(str(key or "").strip().lower())
