#!/usr/bin/env python3
"""
JSON-LD and canonical URL helpers for generated location x service pages.
"""

from __future__ import annotations

from typing import Any, Iterable
from urllib.parse import parse_qsl, urlencode, urljoin, urlparse, urlunparse

from location_content import Breadcrumb, BrandProfile, FAQ, Location, SEOBundle, Service

SCHEMA_CONTEXT = "https://schema.org"
UTM_PARAMS = {"utm_source", "utm_medium", "utm_campaign", "utm_term", "utm_content"}
STAGING_MARKERS = ("staging", "preview", "dev", "test", "localhost", "127.0.0.1")

REQUIRED_FIELDS: dict[str, list[str]] = {
    "breadcrumblist": ["itemListElement"],
    "listitem": ["position", "name"],
    "faqpage": ["mainEntity"],
    "question": ["name", "acceptedAnswer"],
    "answer": ["text"],
    "service": ["name", "provider"],
    "localbusiness": ["name", "address"],
}
URL_FIELDS = {"url", "item", "image", "@id"}


def normalize_canonical_url(url: str, site_url: str) -> str:
    parsed = urlparse(urljoin(site_url, url))
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        return url
    query = urlencode([(k, v) for k, v in parse_qsl(parsed.query, keep_blank_values=True) if k not in UTM_PARAMS])
    path = parsed.path or "/"
    if path != "/" and path.endswith("/"):
        path = path.rstrip("/") or "/"
    return urlunparse((parsed.scheme, parsed.netloc, path, "", query, ""))


def build_canonical_url(path: str, site_url: str, override: str | None = None) -> str:
    if override:
        return normalize_canonical_url(override, site_url)
    normalized_path = path if path.startswith("/") else f"/{path}"
    return normalize_canonical_url(f"{site_url.rstrip('/')}{normalized_path}", site_url)


def is_staging_domain(domain: str) -> bool:
    lowered = domain.lower()
    return any(marker in lowered for marker in STAGING_MARKERS)


def absolute_url(value: str) -> bool:
    parsed = urlparse(value.strip())
    return parsed.scheme in {"http", "https"} and bool(parsed.netloc)


def breadcrumb_schema(breadcrumbs: Iterable[Breadcrumb], site_url: str) -> dict[str, Any]:
    base = site_url.rstrip("/")
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "BreadcrumbList",
        "itemListElement": [
            {
                "@type": "ListItem",
                "position": index,
                "name": crumb.name,
                "item": crumb.url if absolute_url(crumb.url) else f"{base}{crumb.url}",
            }
            for index, crumb in enumerate(breadcrumbs, start=1)
        ],
    }


def faq_schema(faqs: Iterable[FAQ]) -> dict[str, Any]:
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "FAQPage",
        "mainEntity": [
            {
                "@type": "Question",
                "name": faq.question,
                "acceptedAnswer": {"@type": "Answer", "text": faq.answer},
            }
            for faq in faqs
        ],
    }


def service_schema(
    service: Service,
    location: Location,
    brand: BrandProfile,
    url: str,
    description: str,
    site_url: str,
) -> dict[str, Any]:
    area: dict[str, Any] = {"@type": "City", "name": location.town}
    if location.latitude is not None and location.longitude is not None:
        area["geo"] = {
            "@type": "GeoCoordinates",
            "latitude": location.latitude,
            "longitude": location.longitude,
        }
    return {
        "@context": SCHEMA_CONTEXT,
        "@type": "Service",
        "name": f"{service.title} in {location.town}",
        "serviceType": service.title,
        "description": description,
        "url": url,
        "areaServed": area,
        "provider": {
            "@type": "LocalBusiness",
            "name": brand.name,
            "url": site_url.rstrip("/") + "/",
            "telephone": brand.phone,
            "address": {
                "@type": "PostalAddress",
                "addressRegion": location.state or brand.state,
                "addressCountry": "US",
            },
            "priceRange": "$$",
        },
    }


def page_schema(
    bundle: SEOBundle,
    service: Service,
    location: Location,
    brand: BrandProfile,
    site_url: str,
) -> list[dict[str, Any]]:
    url = build_canonical_url(bundle.breadcrumbs[-1].url, site_url)
    return [
        service_schema(service, location, brand, url, bundle.description, site_url),
        breadcrumb_schema(bundle.breadcrumbs, site_url),
        faq_schema(bundle.faqs),
    ]


def iter_schema_nodes(value: Any):
    if isinstance(value, dict):
        if "@type" in value:
            yield value
        for child in value.values():
            yield from iter_schema_nodes(child)
    elif isinstance(value, list):
        for child in value:
            yield from iter_schema_nodes(child)


def validate_node(node: dict[str, Any]) -> list[str]:
    issues: list[str] = []
    raw_type = node.get("@type")
    if isinstance(raw_type, list):
        raw_type = raw_type[0] if raw_type else ""
    schema_type = str(raw_type or "").strip().lower()
    if not schema_type:
        return ["Missing or invalid @type value."]
    for field_name in REQUIRED_FIELDS.get(schema_type, []):
        if node.get(field_name) in (None, "", [], {}):
            issues.append(f"Missing required property for {schema_type}: {field_name}")
    for key in URL_FIELDS:
        value = node.get(key)
        if isinstance(value, str) and value.strip() and not absolute_url(value):
            issues.append(f"{key} should be an absolute URL: {value}")
    return issues


def validate_payload(payload: Any) -> list[str]:
    issues: list[str] = []
    for node in iter_schema_nodes(payload):
        issues.extend(validate_node(node))
    return sorted(set(issues))
