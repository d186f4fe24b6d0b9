#!/usr/bin/env python3
"""
Deterministic copy generator for location x service landing pages.

Every template choice is driven by a 32-bit string hash of a seed built from
the location slug, the service slug and a category label, so the same pair
always resolves to the same copy while different pairs spread across the
catalog. Catalog order is part of the output contract: reordering any
category changes which variant existing pages resolve to.
"""

from __future__ import annotations

import json
import re
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from types import MappingProxyType
from typing import Any, Iterable, Mapping, Sequence, TypeVar
from urllib.parse import quote

T = TypeVar("T")

CATALOG_VERSION = "2024.1"
TITLE_BUDGET = 30
DESCRIPTION_LIMIT = 160
ELLIPSIS = "..."

TOKEN_RE = re.compile(r"\{([a-z_]+)\}")
VARIATION_TOKEN_RE = re.compile(r"\{\{(city|state|service|keyword)\}\}", re.IGNORECASE)
KNOWN_TOKENS = {
    "brand",
    "context",
    "context_cap",
    "modifier",
    "modifier_lower",
    "phone",
    "region",
    "service",
    "service_lower",
    "since",
    "state",
    "town",
}

TITLE_SHORT = "{service} in {town}, {state} | {brand}"
TITLE_LONG = "{modifier} {service} in {town}, {state} | {brand}"

FAQ_TEMPLATES = (
    (
        "How much does {service_lower} cost in {town}?",
        "{service} costs vary based on property size, scope of work, and specific needs. "
        "{brand} offers free estimates for all {town} properties. "
        "Contact us at {phone} for a customized quote.",
    ),
    (
        "Do you offer {service_lower} in {town} year-round?",
        "Yes! {brand} provides {service_lower} services to {town} customers throughout the year. "
        "Our team is experienced with {region}'s climate and seasonal requirements.",
    ),
    (
        "Are you licensed and insured in {town}, {state}?",
        "Absolutely. {brand} is fully licensed, insured, and bonded to operate in {town} "
        "and throughout {region}. Your property and our team are always protected.",
    ),
)

KEYWORD_TEMPLATES = (
    "{service_lower} {town}",
    "{service_lower} near me",
    "{town} {service_lower}",
    "{service_lower} {region}",
    "{town} {state} {service_lower}",
)
CONTEXT_KEYWORD_TEMPLATE = "{context} {service_lower} {town}"


class CatalogError(ValueError):
    """Template catalog is empty or malformed for a queried category."""


class RecordError(ValueError):
    """Service or location record violates the caller contract."""


# Hashing


def utf16_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le", "surrogatepass")
    return [raw[i] | (raw[i + 1] << 8) for i in range(0, len(raw), 2)]


def utf16_length(text: str) -> int:
    return len(text.encode("utf-16-le", "surrogatepass")) // 2


def hash_seed(seed: str) -> int:
    """Absolute value of the signed 32-bit `h * 31 + unit` rolling hash.

    Units are UTF-16 code units and every step wraps modulo 2**32, which
    keeps selections identical to the ones already live on published pages.
    """
    value = 0
    for unit in utf16_units(seed):
        value = (value * 31 + unit) & 0xFFFFFFFF
    if value & 0x80000000:
        value -= 0x100000000
    return abs(value)


def select_index(count: int, seed: str) -> int:
    if count <= 0:
        raise CatalogError(f"Cannot select from an empty template list (seed={seed!r})")
    return hash_seed(seed) % count


def select_template(templates: Sequence[T], seed: str) -> T:
    return templates[select_index(len(templates), seed)]


def substitute(template: str, values: Mapping[str, str]) -> str:
    """Replace `{token}` placeholders in one pass.

    Substituted text is never scanned again, so a value that itself contains
    `{town}` comes through literally. Tokens without a value are left as-is.
    """

    def replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in values:
            return values[key]
        return match.group(0)

    return TOKEN_RE.sub(replace, template)


def capitalize_first(value: str) -> str:
    return value[:1].upper() + value[1:]


def truncate_description(text: str, limit: int = DESCRIPTION_LIMIT) -> str:
    if utf16_length(text) <= limit:
        return text
    keep = (limit - len(ELLIPSIS)) * 2
    head = text.encode("utf-16-le", "surrogatepass")[:keep]
    # A surrogate pair cut in half is dropped rather than emitted broken.
    return head.decode("utf-16-le", "ignore") + ELLIPSIS


# Records


def _clean(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def _pick(record: Mapping[str, Any], keys: Iterable[str]) -> Any:
    mapped = {str(k).strip().lower(): v for k, v in record.items()}
    for key in keys:
        value = mapped.get(key)
        if _clean(value):
            return value
    return None


def _optional_float(value: Any) -> float | None:
    if value is None or _clean(value) == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise RecordError(f"Invalid coordinate value: {value!r}") from exc


@dataclass(frozen=True)
class Service:
    slug: str
    title: str
    description: str | None = None

    def __post_init__(self) -> None:
        if not _clean(self.slug):
            raise RecordError("Service is missing a slug")
        if not _clean(self.title):
            raise RecordError(f"Service '{self.slug}' is missing a title")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Service":
        slug = _clean(_pick(record, ["slug", "service_slug", "id"]))
        title = _clean(_pick(record, ["title", "name", "service"]))
        description = _clean(_pick(record, ["description", "excerpt"])) or None
        return cls(slug=slug, title=title, description=description)


@dataclass(frozen=True)
class Location:
    slug: str
    town: str
    state: str | None = None
    latitude: float | None = None
    longitude: float | None = None

    def __post_init__(self) -> None:
        if not _clean(self.slug):
            raise RecordError("Location is missing a slug")
        if not _clean(self.town):
            raise RecordError(f"Location '{self.slug}' is missing a town")

    @classmethod
    def from_record(cls, record: Mapping[str, Any]) -> "Location":
        geo = record.get("geo") if isinstance(record.get("geo"), Mapping) else {}
        return cls(
            slug=_clean(_pick(record, ["slug", "location_slug", "id"])),
            town=_clean(_pick(record, ["town", "city", "name"])),
            state=_clean(_pick(record, ["state", "region_code"])) or None,
            latitude=_optional_float(_pick(record, ["lat", "latitude"]) or geo.get("lat")),
            longitude=_optional_float(_pick(record, ["lng", "lon", "longitude"]) or geo.get("lng")),
        )


@dataclass(frozen=True)
class BrandProfile:
    name: str = "Blue Lawns"
    phone: str = "609-425-2954"
    region: str = "Cape May County"
    state: str = "NJ"
    since: str = "2010"

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BrandProfile":
        known = {f.name for f in fields(cls)}
        values = {key: str(value).strip() for key, value in payload.items() if key in known and value is not None}
        for key, value in values.items():
            if not value:
                raise ValueError(f"brand.{key} must not be empty")
        return cls(**values)


DEFAULT_BRAND = BrandProfile()


# Catalog


def _frozen_contexts(raw: Mapping[str, Iterable[str]]) -> Mapping[str, tuple[str, ...]]:
    return MappingProxyType({str(slug): tuple(str(item) for item in items) for slug, items in raw.items()})


@dataclass(frozen=True)
class TemplateCatalog:
    version: str
    title_modifiers: tuple[str, ...]
    h1_templates: tuple[str, ...]
    intro_templates: tuple[str, ...]
    meta_description_templates: tuple[str, ...]
    callout_templates: tuple[str, ...]
    service_contexts: Mapping[str, tuple[str, ...]] = field(default_factory=lambda: MappingProxyType({}))
    fallback_contexts: tuple[str, ...] = ("professional",)

    LIST_CATEGORIES = (
        "title_modifiers",
        "h1_templates",
        "intro_templates",
        "meta_description_templates",
        "callout_templates",
        "fallback_contexts",
    )

    def contexts_for(self, service_slug: str) -> tuple[str, ...]:
        return self.service_contexts.get(service_slug) or self.fallback_contexts

    def curated_contexts(self, service_slug: str) -> tuple[str, ...]:
        return self.service_contexts.get(service_slug, ())

    def validate(self) -> "TemplateCatalog":
        if not str(self.version or "").strip():
            raise CatalogError("Catalog version is required")
        for name in self.LIST_CATEGORIES:
            values = getattr(self, name)
            if not values:
                raise CatalogError(f"Catalog category '{name}' is empty")
            for template in values:
                unknown = set(TOKEN_RE.findall(template)) - KNOWN_TOKENS
                if unknown:
                    raise CatalogError(
                        f"Catalog category '{name}' uses unknown placeholder(s): {', '.join(sorted(unknown))}"
                    )
        for slug, values in self.service_contexts.items():
            if not values:
                raise CatalogError(f"Service context list for '{slug}' is empty")
        return self

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], base: "TemplateCatalog | None" = None) -> "TemplateCatalog":
        base = base or DEFAULT_CATALOG
        version = str(payload.get("version") or "").strip()
        if not version:
            raise CatalogError("Catalog file must declare a version")
        values: dict[str, Any] = {"version": version}
        for name in cls.LIST_CATEGORIES:
            if name in payload:
                raw = payload[name]
                if not isinstance(raw, list):
                    raise CatalogError(f"Catalog category '{name}' must be a list of strings")
                values[name] = tuple(str(item) for item in raw)
            else:
                values[name] = getattr(base, name)
        contexts = payload.get("service_contexts")
        if contexts is None:
            values["service_contexts"] = base.service_contexts
        elif isinstance(contexts, dict):
            for slug, items in contexts.items():
                if not isinstance(items, list) or not all(isinstance(item, str) for item in items):
                    raise CatalogError(f"service_contexts['{slug}'] must be a list of strings")
            values["service_contexts"] = _frozen_contexts(contexts)
        else:
            raise CatalogError("service_contexts must be an object of slug -> list")
        return cls(**values).validate()

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"version": self.version}
        for name in self.LIST_CATEGORIES:
            payload[name] = list(getattr(self, name))
        payload["service_contexts"] = {slug: list(items) for slug, items in self.service_contexts.items()}
        return payload


def load_catalog(path: str | Path) -> TemplateCatalog:
    catalog_path = Path(path).resolve()
    if not catalog_path.exists():
        raise CatalogError(f"Catalog file not found: {catalog_path}")
    try:
        payload = json.loads(catalog_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Invalid JSON in {catalog_path}: {exc}") from exc
    if not isinstance(payload, dict):
        raise CatalogError("Catalog JSON root must be an object")
    return TemplateCatalog.from_dict(payload)


DEFAULT_CATALOG = TemplateCatalog(
    version=CATALOG_VERSION,
    title_modifiers=(
        "Expert",
        "Professional",
        "Top-Rated",
        "Local",
        "Trusted",
        "Reliable",
        "Affordable",
        "Quality",
    ),
    h1_templates=(
        "{modifier} {service} in {town}",
        "{service} Services for {town} Properties",
        "{town} {service} Specialists",
        "Professional {service} Serving {town}, {state}",
        "{service} Experts for {town} Homeowners",
        "{modifier} {service} for {town} Residents",
    ),
    intro_templates=(
        "Looking for {modifier_lower} {service_lower} in {town}? {brand} provides comprehensive "
        "{service_lower} services tailored to the unique needs of {town} properties. Our licensed team "
        "understands the {context} challenges and delivers results that last.",
        "{town} homeowners trust {brand} for {modifier_lower} {service_lower}. We combine years of local "
        "experience with proven techniques to deliver {service_lower} that enhances your property's beauty "
        "and value. Serving {town} since {since}.",
        "Transform your {town} property with {modifier_lower} {service_lower} from {brand}. Our team "
        "specializes in {context} {service_lower}, delivering professional results for residential and "
        "commercial properties throughout {town}, {state}.",
        "{brand} brings {modifier_lower} {service_lower} to {town} homeowners who demand excellence. Our "
        "comprehensive approach ensures your property receives the care it deserves, with attention to "
        "every detail. Licensed, insured, and satisfaction guaranteed.",
    ),
    meta_description_templates=(
        "Expert {service_lower} in {town}, {state}. Licensed, insured, and trusted by {town} homeowners. "
        "Free estimates. Call {phone} today.",
        "Professional {service_lower} for {town} properties. {modifier} service, guaranteed results. "
        "Serving {region} since {since}. Get a free quote.",
        "{service} services in {town}, {state} by {brand}. {context_cap} solutions for residential and "
        "commercial properties. Licensed & insured.",
    ),
    callout_templates=(
        "Proudly serving {town} homeowners since {since}.",
        "{town} residents trust {brand} for {service_lower}.",
        "Licensed and insured in {town}, {state}.",
        "Your neighbors in {town} choose {brand}.",
        "{town}'s premier {service_lower} company.",
    ),
    service_contexts=_frozen_contexts(
        {
            "landscape-maintenance": ["coastal", "salt-tolerant", "weather-resistant", "year-round"],
            "landscaping": ["coastal", "native plant", "low-maintenance", "sustainable"],
            "hardscaping": ["durable", "weather-resistant", "custom-designed", "premium"],
            "landscape-lighting": ["energy-efficient", "security-enhancing", "architectural", "low-voltage"],
            "pool-service": ["crystal-clear", "maintenance-free", "chemical-balanced", "summer-ready"],
            "commercial-services": ["professional", "maintenance-free", "reliable", "contract-based"],
            "lawn-care": ["weed-free", "fertilization", "thick and green", "disease-resistant"],
            "seasonal-cleanup": ["spring", "fall", "debris removal", "property preparation"],
            "power-washing": ["pressure washing", "mold removal", "exterior cleaning", "surface restoration"],
            "fencing": ["privacy", "security", "vinyl or wood", "property boundary"],
        }
    ),
)


# Assembler


def seed_for(service: Service, location: Location, category: str) -> str:
    return f"{location.slug}-{service.slug}-{category}"


def base_values(service: Service, location: Location, brand: BrandProfile) -> dict[str, str]:
    return {
        "service": service.title,
        "service_lower": service.title.lower(),
        "town": location.town,
        "state": location.state or brand.state,
        "brand": brand.name,
        "phone": brand.phone,
        "region": brand.region,
        "since": brand.since,
    }


def generate_meta_title(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> str:
    values = base_values(service, location, brand)
    values["modifier"] = select_template(catalog.title_modifiers, seed_for(service, location, "title"))
    # Over budget: drop the modifier instead of cutting the title mid-word.
    if utf16_length(service.title) + utf16_length(location.town) > TITLE_BUDGET:
        return substitute(TITLE_SHORT, values)
    return substitute(TITLE_LONG, values)


def generate_meta_description(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> str:
    modifier = select_template(catalog.title_modifiers, seed_for(service, location, "modifier"))
    context = select_template(catalog.contexts_for(service.slug), seed_for(service, location, "context"))
    template = select_template(catalog.meta_description_templates, seed_for(service, location, "desc"))
    values = base_values(service, location, brand)
    values.update(
        modifier=modifier.lower(),
        modifier_lower=modifier.lower(),
        context=context,
        context_cap=capitalize_first(context),
    )
    return truncate_description(substitute(template, values))


def generate_h1(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> str:
    values = base_values(service, location, brand)
    values["modifier"] = select_template(catalog.title_modifiers, seed_for(service, location, "h1-mod"))
    template = select_template(catalog.h1_templates, seed_for(service, location, "h1"))
    return substitute(template, values)


def generate_intro_paragraph(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> str:
    modifier = select_template(catalog.title_modifiers, seed_for(service, location, "intro-mod"))
    context = select_template(catalog.contexts_for(service.slug), seed_for(service, location, "intro-ctx"))
    template = select_template(catalog.intro_templates, seed_for(service, location, "intro"))
    values = base_values(service, location, brand)
    values.update(
        modifier=modifier,
        modifier_lower=modifier.lower(),
        context=context,
        context_cap=capitalize_first(context),
    )
    return substitute(template, values)


def generate_local_callout(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> str:
    template = select_template(catalog.callout_templates, seed_for(service, location, "callout"))
    return substitute(template, base_values(service, location, brand))


@dataclass(frozen=True)
class FAQ:
    question: str
    answer: str


@dataclass(frozen=True)
class Breadcrumb:
    name: str
    url: str


def generate_faqs(
    service: Service,
    location: Location,
    brand: BrandProfile = DEFAULT_BRAND,
) -> list[FAQ]:
    values = base_values(service, location, brand)
    return [FAQ(question=substitute(q, values), answer=substitute(a, values)) for q, a in FAQ_TEMPLATES]


def generate_breadcrumbs(service: Service, location: Location) -> list[Breadcrumb]:
    location_url = f"/locations/{quote(location.slug)}"
    return [
        Breadcrumb(name="Home", url="/"),
        Breadcrumb(name="Service Areas", url="/locations"),
        Breadcrumb(name=location.town, url=location_url),
        Breadcrumb(name=service.title, url=f"{location_url}/{quote(service.slug)}"),
    ]


def generate_keywords(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> list[str]:
    values = base_values(service, location, brand)
    keywords = [substitute(template, values) for template in KEYWORD_TEMPLATES]
    for context in catalog.curated_contexts(service.slug):
        keywords.append(substitute(CONTEXT_KEYWORD_TEMPLATE, {**values, "context": context}))
    return keywords


@dataclass(frozen=True)
class SEOBundle:
    title: str
    description: str
    h1: str
    intro_paragraph: str
    local_callout: str
    faqs: tuple[FAQ, ...]
    breadcrumbs: tuple[Breadcrumb, ...]
    keywords: tuple[str, ...]

    def to_dict(self) -> dict[str, Any]:
        return {
            "title": self.title,
            "description": self.description,
            "h1": self.h1,
            "introParagraph": self.intro_paragraph,
            "localCallout": self.local_callout,
            "faqs": [asdict(item) for item in self.faqs],
            "breadcrumbs": [asdict(item) for item in self.breadcrumbs],
            "keywords": list(self.keywords),
        }


def generate_location_service_seo(
    service: Service,
    location: Location,
    catalog: TemplateCatalog = DEFAULT_CATALOG,
    brand: BrandProfile = DEFAULT_BRAND,
) -> SEOBundle:
    return SEOBundle(
        title=generate_meta_title(service, location, catalog, brand),
        description=generate_meta_description(service, location, catalog, brand),
        h1=generate_h1(service, location, catalog, brand),
        intro_paragraph=generate_intro_paragraph(service, location, catalog, brand),
        local_callout=generate_local_callout(service, location, catalog, brand),
        faqs=tuple(generate_faqs(service, location, brand)),
        breadcrumbs=tuple(generate_breadcrumbs(service, location)),
        keywords=tuple(generate_keywords(service, location, catalog, brand)),
    )


# Variation of CMS-authored copy


def apply_content_variation(
    text: str | None,
    service: Service,
    location: Location,
    keyword: str | None = None,
    brand: BrandProfile = DEFAULT_BRAND,
) -> str:
    """Fill `{{city}}`-style placeholders and localize generic service copy.

    Text that talks about a service or provider without naming the town gets
    " in <town>" appended for roughly three pairs in ten, chosen by hash so
    the decision is stable across rebuilds.
    """
    if not text:
        return ""
    values = {
        "city": location.town,
        "state": location.state or brand.state,
        "service": service.title,
        "keyword": keyword or "",
    }

    def replace(match: re.Match[str]) -> str:
        value = values[match.group(1).lower()]
        return value if value else match.group(0)

    varied = VARIATION_TOKEN_RE.sub(replace, text)
    lowered = varied.lower()
    if (
        location.town not in varied
        and ("service" in lowered or "provider" in lowered)
        and select_index(10, f"{location.slug}-{service.slug}-variation-{text}") >= 7
    ):
        varied += f" in {location.town}"
    return varied


def vary_component_props(
    props: Any,
    service: Service,
    location: Location,
    keyword: str | None = None,
    brand: BrandProfile = DEFAULT_BRAND,
) -> Any:
    if isinstance(props, str):
        return apply_content_variation(props, service, location, keyword, brand)
    if isinstance(props, list):
        return [vary_component_props(item, service, location, keyword, brand) for item in props]
    if isinstance(props, dict):
        return {
            key: value if str(key).startswith("_") else vary_component_props(value, service, location, keyword, brand)
            for key, value in props.items()
        }
    return props
