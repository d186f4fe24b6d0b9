#!/usr/bin/env python3
"""
Generate, audit, and validate location x service landing page copy.
"""

from __future__ import annotations

import argparse
import csv
import json
import re
import xml.etree.ElementTree as ET
from collections import Counter, defaultdict
from dataclasses import asdict
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Callable
from urllib.parse import urlparse

import requests
from bs4 import BeautifulSoup

from location_content import (
    DEFAULT_BRAND,
    DEFAULT_CATALOG,
    DESCRIPTION_LIMIT,
    BrandProfile,
    CatalogError,
    Location,
    RecordError,
    Service,
    TemplateCatalog,
    apply_content_variation,
    generate_location_service_seo,
    load_catalog,
    utf16_length,
)
from location_schema import build_canonical_url, is_staging_domain, page_schema, validate_payload

HEADERS = {
    "User-Agent": "Mozilla/5.0 (compatible; LocalSEOPages/1.0)",
    "Accept": "application/json,text/plain;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.8",
}
SITEMAP_NS = "http://www.sitemaps.org/schemas/sitemap/0.9"
SEVERITY_ORDER = {"Critical": 0, "High": 1, "Medium": 2, "Low": 3, "Info": 4}
SEO_RULES = {
    "title_min": 30,
    "title_max": 60,
    "description_min": 120,
    "description_max": DESCRIPTION_LIMIT,
    "h2_max": 10,
}
QUALITY_THRESHOLDS = {
    "max_h1_shape_share": 0.40,
    "min_pages_for_h1_gate": 10,
}
BUNDLE_FIELDS = ("title", "description", "h1", "introParagraph", "localCallout", "faqs", "breadcrumbs", "keywords")
RECORD_KEYS = ("records", "rows", "items", "pages", "data", "result", "services", "locations")
JSONLD_TYPE_RE = re.compile(r"application/ld\+json", re.IGNORECASE)


def normalize_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (int, float, bool)):
        return str(value)
    return json.dumps(value, sort_keys=True)


def load_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc


def records_from_payload(payload: Any, source: str) -> list[dict[str, Any]]:
    if isinstance(payload, list):
        return [dict(item) for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict):
        for key in RECORD_KEYS:
            maybe = payload.get(key)
            if isinstance(maybe, list):
                return [dict(item) for item in maybe if isinstance(item, dict)]
        return [dict(payload)]
    raise ValueError(f"Unsupported JSON structure in {source}")


def read_records(path_value: str) -> list[dict[str, Any]]:
    path = Path(path_value).resolve()
    if not path.exists():
        raise ValueError(f"File not found: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        with path.open("r", encoding="utf-8", newline="") as handle:
            reader = csv.DictReader(handle)
            return [dict(row) for row in reader]
    if suffix == ".json":
        return records_from_payload(load_json(path), str(path))

    raise ValueError("Supported file types: .csv, .json")


def fetch_records(url: str, timeout: int) -> list[dict[str, Any]]:
    parsed = urlparse(url.strip())
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"Unsupported dataset URL: {url}")
    response = requests.get(url, headers=HEADERS, timeout=timeout)
    response.raise_for_status()
    try:
        payload = response.json()
    except ValueError as exc:
        raise ValueError(f"Invalid JSON from {url}: {exc}") from exc
    return records_from_payload(payload, url)


def write_text(path: Path, content: str) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content.rstrip() + "\n", encoding="utf-8")


def write_json(path: Path, payload: Any) -> None:
    write_text(path, json.dumps(payload, indent=2, ensure_ascii=False))


def sanitize_csv_cell(value: Any) -> str:
    text = normalize_text(value)
    if not text:
        return text
    if text[0] in {"=", "+", "-", "@", "\t"}:
        # Prevent spreadsheet formula execution when opening exported CSV in Excel/Sheets.
        return "'" + text
    return text


def write_csv(path: Path, rows: list[dict[str, Any]], fieldnames: list[str]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8", newline="") as handle:
        writer = csv.DictWriter(handle, fieldnames=fieldnames)
        writer.writeheader()
        for row in rows:
            writer.writerow({key: sanitize_csv_cell(row.get(key, "")) for key in fieldnames})


def add_issue(issues: list[dict[str, str]], severity: str, title: str, detail: str) -> None:
    issues.append({"severity": severity, "title": title, "detail": detail})


def render_issue_sections(issues: list[dict[str, str]]) -> list[str]:
    by_severity: dict[str, list[dict[str, str]]] = defaultdict(list)
    for issue in issues:
        by_severity[issue["severity"]].append(issue)
    sections = []
    for severity in ("Critical", "High", "Medium", "Low", "Info"):
        bucket = by_severity.get(severity, [])
        if not bucket:
            continue
        sections.append(f"### {severity} Issues")
        for item in bucket:
            sections.append(f"- **{item['title']}**: {item['detail']}")
        sections.append("")
    return sections or ["No issues detected.", ""]


def severity_counts(issues: list[dict[str, str]]) -> dict[str, int]:
    counts = Counter(issue["severity"] for issue in issues)
    return {severity: counts.get(severity, 0) for severity in SEVERITY_ORDER}


# ---- generate ----


def build_generate_config(args: argparse.Namespace) -> dict[str, Any]:
    source: dict[str, Any] = {}
    if args.config_file:
        payload = load_json(Path(args.config_file).resolve())
        if not isinstance(payload, dict):
            raise ValueError("config-file JSON root must be an object")
        source = payload

    site_url = (args.site_url or source.get("site_url") or "").strip()
    if not site_url:
        raise ValueError("site-url is required (or provide site_url in config-file)")
    parsed = urlparse(site_url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError(f"site-url must be an absolute http(s) URL: {site_url}")
    site_url = site_url.rstrip("/")

    brand_source = source.get("brand") or {}
    if not isinstance(brand_source, dict):
        raise ValueError("brand must be a JSON object")
    brand = BrandProfile.from_dict(brand_source) if brand_source else DEFAULT_BRAND

    catalog_file = args.catalog_file or source.get("catalog_file")
    catalog = load_catalog(catalog_file) if catalog_file else DEFAULT_CATALOG

    try:
        timeout = int(args.timeout if args.timeout is not None else source.get("timeout", 20))
    except (TypeError, ValueError) as exc:
        raise ValueError("timeout must be an integer") from exc

    return {
        "site_url": site_url,
        "brand": brand,
        "catalog": catalog,
        "timeout": max(1, timeout),
        "services_file": args.services_file or source.get("services_file"),
        "services_url": args.services_url or source.get("services_url"),
        "locations_file": args.locations_file or source.get("locations_file"),
        "locations_url": args.locations_url or source.get("locations_url"),
    }


def load_entities(
    label: str,
    file_value: str | None,
    url_value: str | None,
    factory: Callable[[dict[str, Any]], Any],
    timeout: int,
) -> tuple[list[Any], list[str]]:
    if bool(file_value) == bool(url_value):
        raise ValueError(f"provide exactly one of --{label}-file or --{label}-url")
    records = read_records(file_value) if file_value else fetch_records(url_value, timeout)

    entities: list[Any] = []
    warnings: list[str] = []
    seen: set[str] = set()
    for idx, record in enumerate(records, start=1):
        try:
            entity = factory(record)
        except RecordError as exc:
            warnings.append(f"{label} row {idx}: {exc}; skipped")
            continue
        if entity.slug in seen:
            warnings.append(f"{label} row {idx}: duplicate slug '{entity.slug}'; skipped")
            continue
        seen.add(entity.slug)
        entities.append(entity)
    return entities, warnings


def generate_matrix(
    services: list[Service],
    locations: list[Location],
    catalog: TemplateCatalog,
    brand: BrandProfile,
    site_url: str,
) -> tuple[list[dict[str, Any]], list[str]]:
    pages: list[dict[str, Any]] = []
    failures: list[str] = []
    for location in locations:
        for service in services:
            try:
                bundle = generate_location_service_seo(service, location, catalog, brand)
            except RecordError as exc:
                failures.append(f"{location.slug}/{service.slug}: {exc}")
                continue
            path = bundle.breadcrumbs[-1].url
            pages.append(
                {
                    "url": path,
                    "canonical_url": build_canonical_url(path, site_url),
                    "service_slug": service.slug,
                    "service_title": service.title,
                    "location_slug": location.slug,
                    "town": location.town,
                    "bundle": bundle.to_dict(),
                    "service_summary": apply_content_variation(service.description, service, location, brand=brand),
                    "schema": page_schema(bundle, service, location, brand, site_url),
                }
            )
    return pages, failures


def build_urlset(urls: list[str], lastmod_value: str | None) -> ET.Element:
    root = ET.Element("urlset", xmlns=SITEMAP_NS)
    for url in urls:
        url_node = ET.SubElement(root, "url")
        loc_node = ET.SubElement(url_node, "loc")
        loc_node.text = url
        if lastmod_value:
            lastmod_node = ET.SubElement(url_node, "lastmod")
            lastmod_node.text = lastmod_value
    return root


def write_xml(path: Path, root: ET.Element) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    ET.indent(root, space="  ")
    path.write_bytes(ET.tostring(root, encoding="utf-8", xml_declaration=True))


def diff_bundles(previous: dict[str, Any], pages: list[dict[str, Any]], catalog_version: str) -> dict[str, Any]:
    before = {page.get("url"): page.get("bundle") or {} for page in previous.get("pages", []) if isinstance(page, dict)}
    changed: list[dict[str, Any]] = []
    added: list[str] = []
    for page in pages:
        old = before.pop(page["url"], None)
        if old is None:
            added.append(page["url"])
            continue
        fields = [name for name in BUNDLE_FIELDS if old.get(name) != page["bundle"].get(name)]
        if fields:
            changed.append({"url": page["url"], "fields": fields})
    return {
        "previous_catalog_version": previous.get("catalog_version"),
        "catalog_version": catalog_version,
        "version_changed": previous.get("catalog_version") != catalog_version,
        "changed": changed,
        "added": added,
        "removed": sorted(str(url) for url in before),
    }


def render_changelog(diff: dict[str, Any]) -> str:
    lines = [
        "# Location Page Copy Changelog",
        "",
        f"- Previous catalog version: `{diff['previous_catalog_version']}`",
        f"- Current catalog version: `{diff['catalog_version']}`",
        f"- Pages with changed copy: **{len(diff['changed'])}**",
        f"- Pages added: **{len(diff['added'])}**",
        f"- Pages removed: **{len(diff['removed'])}**",
        "",
    ]
    if diff["changed"] and not diff["version_changed"]:
        lines.append(
            "> Copy changed without a catalog version bump. Bump the version whenever templates are edited or reordered."
        )
        lines.append("")
    if diff["changed"]:
        lines.append("## Changed Pages")
        lines.append("")
        lines.extend(f"- `{item['url']}`: {', '.join(item['fields'])}" for item in diff["changed"])
        lines.append("")
    if diff["added"]:
        lines.append("## Added Pages")
        lines.append("")
        lines.extend(f"- `{url}`" for url in diff["added"])
        lines.append("")
    if diff["removed"]:
        lines.append("## Removed Pages")
        lines.append("")
        lines.extend(f"- `{url}`" for url in diff["removed"])
    return "\n".join(lines)


def run_generate(args: argparse.Namespace) -> int:
    try:
        config = build_generate_config(args)
        services, service_warnings = load_entities(
            "services", config["services_file"], config["services_url"], Service.from_record, config["timeout"]
        )
        locations, location_warnings = load_entities(
            "locations", config["locations_file"], config["locations_url"], Location.from_record, config["timeout"]
        )
    except requests.exceptions.RequestException as exc:
        print(f"Error: failed to fetch dataset: {exc}")
        return 2
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}")
        return 2

    if not services or not locations:
        print("Error: need at least one valid service and one valid location")
        return 2

    catalog: TemplateCatalog = config["catalog"]
    brand: BrandProfile = config["brand"]
    site_url: str = config["site_url"]
    warnings = service_warnings + location_warnings
    if is_staging_domain(urlparse(site_url).hostname or ""):
        warnings.append(f"site-url {site_url} looks like a staging domain; canonical URLs will point at it.")

    try:
        pages, failures = generate_matrix(services, locations, catalog, brand, site_url)
    except CatalogError as exc:
        print(f"Error: {exc}")
        return 2
    warnings.extend(failures)

    output_dir = Path(args.output_dir).resolve()
    bundles_path = output_dir / "BUNDLES.json"
    pages_path = output_dir / "PAGES.csv"
    schema_path = output_dir / "SCHEMA.json"
    sitemap_path = output_dir / "sitemap.xml"
    summary_path = output_dir / "SUMMARY.json"
    changelog_path = output_dir / "CHANGELOG.md"

    diff = None
    if args.previous_file:
        try:
            previous = load_json(Path(args.previous_file).resolve())
        except (ValueError, OSError) as exc:
            print(f"Error: {exc}")
            return 2
        if not isinstance(previous, dict):
            print("Error: previous-file JSON root must be an object")
            return 2
        diff = diff_bundles(previous, pages, catalog.version)

    write_json(
        bundles_path,
        {
            "catalog_version": catalog.version,
            "site_url": site_url,
            "brand": asdict(brand),
            "pages": [{key: value for key, value in page.items() if key != "schema"} for page in pages],
        },
    )
    write_csv(
        pages_path,
        [
            {
                "url": page["url"],
                "canonical_url": page["canonical_url"],
                "title": page["bundle"]["title"],
                "title_length": utf16_length(page["bundle"]["title"]),
                "description_length": utf16_length(page["bundle"]["description"]),
                "h1": page["bundle"]["h1"],
            }
            for page in pages
        ],
        ["url", "canonical_url", "title", "title_length", "description_length", "h1"],
    )
    write_json(schema_path, {page["url"]: page["schema"] for page in pages})
    write_xml(sitemap_path, build_urlset([page["canonical_url"] for page in pages], args.lastmod or None))

    outputs = {
        "BUNDLES.json": bundles_path.as_posix(),
        "PAGES.csv": pages_path.as_posix(),
        "SCHEMA.json": schema_path.as_posix(),
        "sitemap.xml": sitemap_path.as_posix(),
        "SUMMARY.json": summary_path.as_posix(),
    }
    if diff is not None:
        write_text(changelog_path, render_changelog(diff))
        outputs["CHANGELOG.md"] = changelog_path.as_posix()

    write_json(
        summary_path,
        {
            "mode": "generate",
            "generated_at": datetime.now(UTC).isoformat(),
            "catalog_version": catalog.version,
            "services": len(services),
            "locations": len(locations),
            "pages": len(pages),
            "warnings": warnings,
            "changed_pages": len(diff["changed"]) if diff else None,
            "outputs": outputs,
        },
    )

    for warning in warnings:
        print(f"Warning: {warning}")
    print(f"Catalog version: {catalog.version}")
    print(f"Pages generated: {len(pages)} ({len(locations)} locations x {len(services)} services)")
    if diff is not None:
        print(f"Pages with changed copy: {len(diff['changed'])}")
    print(f"Generated location page artifacts in: {output_dir}")
    return 0


# ---- audit ----


def h1_shape(h1: str, service_title: str, town: str) -> str:
    shape = h1.replace(service_title, "{service}") if service_title else h1
    return shape.replace(town, "{town}") if town else shape


def analyze_matrix(pages: list[dict[str, Any]]) -> dict[str, Any]:
    metrics: dict[str, Any] = {
        "total_pages": len(pages),
        "missing_fields": 0,
        "title_too_short": 0,
        "title_too_long": 0,
        "description_too_short": 0,
        "description_too_long": 0,
        "truncated_descriptions": 0,
        "examples": defaultdict(list),
    }
    titles: Counter[str] = Counter()
    descriptions: Counter[str] = Counter()
    h1s: Counter[str] = Counter()
    shapes: Counter[str] = Counter()

    def note(key: str, value: str) -> None:
        metrics[key] += 1
        if len(metrics["examples"][key]) < 5:
            metrics["examples"][key].append(value)

    for page in pages:
        bundle = page.get("bundle") or {}
        url = normalize_text(page.get("url")) or "(unknown)"
        missing = [name for name in BUNDLE_FIELDS if not bundle.get(name)]
        if missing:
            note("missing_fields", f"{url} ({', '.join(missing)})")

        title = normalize_text(bundle.get("title"))
        description = normalize_text(bundle.get("description"))
        h1 = normalize_text(bundle.get("h1"))
        if title:
            titles[title] += 1
            if utf16_length(title) < SEO_RULES["title_min"]:
                note("title_too_short", f"{url} ({utf16_length(title)})")
            elif utf16_length(title) > SEO_RULES["title_max"]:
                note("title_too_long", f"{url} ({utf16_length(title)})")
        if description:
            descriptions[description] += 1
            if utf16_length(description) < SEO_RULES["description_min"]:
                note("description_too_short", f"{url} ({utf16_length(description)})")
            elif utf16_length(description) > SEO_RULES["description_max"]:
                note("description_too_long", f"{url} ({utf16_length(description)})")
            if description.endswith("..."):
                note("truncated_descriptions", url)
        if h1:
            h1s[h1] += 1
            shapes[h1_shape(h1, normalize_text(page.get("service_title")), normalize_text(page.get("town")))] += 1

    total = len(pages)
    top_shape, top_count = shapes.most_common(1)[0] if shapes else ("", 0)
    metrics.update(
        {
            "duplicate_titles": sum(count - 1 for count in titles.values() if count > 1),
            "duplicate_descriptions": sum(count - 1 for count in descriptions.values() if count > 1),
            "duplicate_h1s": sum(count - 1 for count in h1s.values() if count > 1),
            "distinct_h1_shapes": len(shapes),
            "top_h1_shape": top_shape,
            "top_h1_shape_share": round(top_count / total, 4) if total else 0.0,
            "h1_shape_counts": dict(shapes.most_common(10)),
        }
    )
    return metrics


def build_audit_issues(metrics: dict[str, Any]) -> tuple[list[dict[str, str]], dict[str, bool]]:
    issues: list[dict[str, str]] = []
    total = metrics["total_pages"]
    if total == 0:
        add_issue(issues, "Critical", "Empty bundle file", "No generated pages found to audit.")

    over_share = metrics["top_h1_shape_share"] > QUALITY_THRESHOLDS["max_h1_shape_share"]
    # Below the minimum sample the share is reported, not gated.
    concentrated = over_share and total >= QUALITY_THRESHOLDS["min_pages_for_h1_gate"]
    if over_share and not concentrated:
        add_issue(
            issues,
            "Info",
            "H1 pattern share not gated",
            (
                f"'{metrics['top_h1_shape']}' accounts for {round(metrics['top_h1_shape_share'] * 100, 1)}% of H1s, "
                f"but only {total} pages were audited (gate applies from "
                f"{QUALITY_THRESHOLDS['min_pages_for_h1_gate']})."
            ),
        )
    if concentrated:
        add_issue(
            issues,
            "Critical",
            "Hard stop: H1 pattern concentration",
            (
                f"'{metrics['top_h1_shape']}' accounts for {round(metrics['top_h1_shape_share'] * 100, 1)}% of H1s "
                f"(limit {int(QUALITY_THRESHOLDS['max_h1_shape_share'] * 100)}%). Check the catalog and seeds."
            ),
        )
    if metrics["description_too_long"]:
        add_issue(
            issues,
            "Critical",
            "Descriptions over limit",
            f"{metrics['description_too_long']} descriptions exceed {SEO_RULES['description_max']} characters.",
        )
    if metrics["missing_fields"]:
        add_issue(issues, "High", "Incomplete bundles", f"{metrics['missing_fields']} pages are missing bundle fields.")
    if metrics["duplicate_titles"]:
        add_issue(issues, "High", "Duplicate titles", f"{metrics['duplicate_titles']} duplicate meta titles detected.")
    if metrics["duplicate_descriptions"]:
        add_issue(
            issues,
            "High",
            "Duplicate descriptions",
            f"{metrics['duplicate_descriptions']} duplicate meta descriptions detected.",
        )
    if metrics["duplicate_h1s"]:
        add_issue(issues, "Medium", "Duplicate H1s", f"{metrics['duplicate_h1s']} duplicate H1 headings detected.")
    if metrics["title_too_long"]:
        add_issue(
            issues,
            "Medium",
            "Long titles",
            f"{metrics['title_too_long']} titles exceed {SEO_RULES['title_max']} characters.",
        )
    if metrics["description_too_short"]:
        add_issue(
            issues,
            "Medium",
            "Short descriptions",
            f"{metrics['description_too_short']} descriptions are under {SEO_RULES['description_min']} characters.",
        )
    if metrics["title_too_short"]:
        add_issue(
            issues,
            "Low",
            "Short titles",
            f"{metrics['title_too_short']} titles are under {SEO_RULES['title_min']} characters.",
        )
    if metrics["truncated_descriptions"]:
        add_issue(
            issues,
            "Info",
            "Truncated descriptions",
            f"{metrics['truncated_descriptions']} descriptions were cut to {SEO_RULES['description_max']} characters.",
        )

    gate_status = {
        "hard_stop_h1_concentration": concentrated,
        "hard_stop_description_length": metrics["description_too_long"] > 0,
    }
    return sorted(issues, key=lambda issue: SEVERITY_ORDER[issue["severity"]]), gate_status


def render_audit_report(metrics: dict[str, Any], issues: list[dict[str, str]], catalog_version: str | None) -> str:
    shape_rows = [
        f"| `{shape}` | {count} |" for shape, count in metrics["h1_shape_counts"].items()
    ] or ["| (none) | 0 |"]
    return (
        "# Location Page Copy Audit\n\n"
        f"- Generated: {datetime.now(UTC).isoformat()}\n"
        f"- Catalog version: `{catalog_version}`\n"
        f"- Pages audited: **{metrics['total_pages']}**\n\n"
        "## Uniqueness\n\n"
        f"- Distinct H1 patterns: **{metrics['distinct_h1_shapes']}**\n"
        f"- Largest H1 pattern share: **{round(metrics['top_h1_shape_share'] * 100, 1)}%**\n"
        f"- Duplicate titles: **{metrics['duplicate_titles']}**\n"
        f"- Duplicate descriptions: **{metrics['duplicate_descriptions']}**\n"
        f"- Duplicate H1s: **{metrics['duplicate_h1s']}**\n\n"
        "| H1 Pattern | Pages |\n"
        "|---|---|\n"
        f"{chr(10).join(shape_rows)}\n\n"
        "## Length Rules\n\n"
        f"- Titles under {SEO_RULES['title_min']} chars: **{metrics['title_too_short']}**\n"
        f"- Titles over {SEO_RULES['title_max']} chars: **{metrics['title_too_long']}**\n"
        f"- Descriptions under {SEO_RULES['description_min']} chars: **{metrics['description_too_short']}**\n"
        f"- Descriptions over {SEO_RULES['description_max']} chars: **{metrics['description_too_long']}**\n"
        f"- Truncated descriptions: **{metrics['truncated_descriptions']}**\n\n"
        "## Findings\n\n"
        f"{chr(10).join(render_issue_sections(issues))}\n"
    )


def run_audit(args: argparse.Namespace) -> int:
    try:
        payload = load_json(Path(args.bundles_file).resolve())
    except (ValueError, OSError) as exc:
        print(f"Error: {exc}")
        return 2
    if not isinstance(payload, dict) or not isinstance(payload.get("pages"), list):
        print("Error: bundles-file must be a generate BUNDLES.json payload with a 'pages' list")
        return 2

    pages = [page for page in payload["pages"] if isinstance(page, dict)]
    metrics = analyze_matrix(pages)
    issues, gate_status = build_audit_issues(metrics)

    output_dir = Path(args.output_dir).resolve()
    report_path = output_dir / "LOCAL-PAGES-REPORT.md"
    quality_path = output_dir / "QUALITY-GATES.json"
    summary_path = output_dir / "SUMMARY.json"
    write_text(report_path, render_audit_report(metrics, issues, payload.get("catalog_version")))
    write_json(
        quality_path,
        {
            "mode": "audit",
            "thresholds": {**QUALITY_THRESHOLDS, **SEO_RULES},
            "observed": {
                "total_pages": metrics["total_pages"],
                "top_h1_shape": metrics["top_h1_shape"],
                "top_h1_shape_share": metrics["top_h1_shape_share"],
                "duplicate_titles": metrics["duplicate_titles"],
                "duplicate_descriptions": metrics["duplicate_descriptions"],
                "description_too_long": metrics["description_too_long"],
            },
            "gate_status": gate_status,
        },
    )
    write_json(
        summary_path,
        {
            "mode": "audit",
            "generated_at": datetime.now(UTC).isoformat(),
            "catalog_version": payload.get("catalog_version"),
            "pages_audited": metrics["total_pages"],
            "issue_counts": severity_counts(issues),
            "issues": issues,
            "outputs": {
                "LOCAL-PAGES-REPORT.md": report_path.as_posix(),
                "QUALITY-GATES.json": quality_path.as_posix(),
                "SUMMARY.json": summary_path.as_posix(),
            },
        },
    )

    print(f"Pages audited: {metrics['total_pages']}")
    print(f"Largest H1 pattern share: {round(metrics['top_h1_shape_share'] * 100, 1)}%")
    print(f"Issues found: {len(issues)}")
    print(f"Report: {report_path}")
    if args.strict and any(gate_status.values()):
        print("Quality gate failed.")
        return 1
    return 0


# ---- validate ----


def soup_of(html: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html, "lxml")
    except Exception:
        return BeautifulSoup(html, "html.parser")


def meta(soup: BeautifulSoup, name: str) -> str | None:
    tag = soup.find("meta", attrs={"name": name})
    if tag and tag.get("content"):
        return str(tag.get("content")).strip()
    return None


def inspect_page(html: str) -> dict[str, Any]:
    soup = soup_of(html)
    title = soup.title.get_text(" ", strip=True) if soup.title else None
    h1s = [tag.get_text(" ", strip=True) for tag in soup.find_all("h1")]
    jsonld_errors: list[str] = []
    schema_issues: list[str] = []
    scripts = soup.find_all("script", attrs={"type": JSONLD_TYPE_RE})
    for idx, script in enumerate(scripts, start=1):
        raw = (script.string or script.get_text() or "").strip()
        if not raw:
            jsonld_errors.append(f"Block {idx}: empty JSON-LD script")
            continue
        try:
            schema_issues.extend(validate_payload(json.loads(raw)))
        except json.JSONDecodeError as exc:
            jsonld_errors.append(f"Block {idx}: invalid JSON ({exc})")
    return {
        "title": title,
        "description": meta(soup, "description"),
        "h1s": [text for text in h1s if text],
        "h2_count": len(soup.find_all("h2")),
        "jsonld_blocks": len(scripts),
        "jsonld_errors": jsonld_errors,
        "schema_issues": sorted(set(schema_issues)),
    }


def page_issues(page: dict[str, Any]) -> list[str]:
    issues: list[str] = []
    title = page["title"]
    description = page["description"]
    if not title:
        issues.append("Missing <title>")
    elif utf16_length(title) < SEO_RULES["title_min"]:
        issues.append(f"Title too short ({utf16_length(title)} chars)")
    elif utf16_length(title) > SEO_RULES["title_max"]:
        issues.append(f"Title too long ({utf16_length(title)} chars)")
    if not description:
        issues.append("Missing meta description")
    elif utf16_length(description) < SEO_RULES["description_min"]:
        issues.append(f"Description too short ({utf16_length(description)} chars)")
    elif utf16_length(description) > SEO_RULES["description_max"]:
        issues.append(f"Description too long ({utf16_length(description)} chars)")
    if not page["h1s"]:
        issues.append("Missing H1")
    elif len(page["h1s"]) > 1:
        issues.append(f"Multiple H1 tags ({len(page['h1s'])})")
    if page["h2_count"] > SEO_RULES["h2_max"]:
        issues.append(f"Too many H2 tags ({page['h2_count']})")
    issues.extend(page["jsonld_errors"])
    issues.extend(page["schema_issues"])
    return issues


def collect_html_files(path_value: str) -> list[Path]:
    path = Path(path_value).resolve()
    if path.is_file():
        return [path]
    if not path.is_dir():
        raise ValueError(f"Path not found: {path}")
    return sorted(p for p in path.rglob("*.html") if p.is_file())


def run_validate(args: argparse.Namespace) -> int:
    try:
        files = collect_html_files(args.pages_dir)
    except ValueError as exc:
        print(f"Error: {exc}")
        return 2
    if not files:
        print("Error: no .html files found")
        return 2

    root = Path(args.pages_dir).resolve()
    results: list[dict[str, Any]] = []
    titles: dict[str, list[str]] = defaultdict(list)
    descriptions: dict[str, list[str]] = defaultdict(list)
    for file_path in files:
        relative = file_path.relative_to(root).as_posix() if root.is_dir() else file_path.name
        page = inspect_page(file_path.read_text(encoding="utf-8", errors="replace"))
        if page["title"]:
            titles[page["title"]].append(relative)
        if page["description"]:
            descriptions[page["description"]].append(relative)
        results.append({"file": relative, "issues": page_issues(page), **page})

    duplicate_titles = {text: paths for text, paths in titles.items() if len(paths) > 1}
    duplicate_descriptions = {text: paths for text, paths in descriptions.items() if len(paths) > 1}
    failing = [result for result in results if result["issues"]]

    output_dir = Path(args.output_dir).resolve()
    report_path = output_dir / "VALIDATION-REPORT.md"
    summary_path = output_dir / "SUMMARY.json"
    lines = [
        "# Rendered Page SEO Validation",
        "",
        f"- Generated: {datetime.now(UTC).isoformat()}",
        f"- Pages checked: **{len(results)}**",
        f"- Pages with issues: **{len(failing)}**",
        f"- Duplicate titles: **{len(duplicate_titles)}**",
        f"- Duplicate descriptions: **{len(duplicate_descriptions)}**",
        "",
        "## Page Issues",
        "",
    ]
    for result in failing:
        lines.append(f"### `{result['file']}`")
        lines.extend(f"- {issue}" for issue in result["issues"])
        lines.append("")
    if not failing:
        lines.extend(["No page-level issues detected.", ""])
    if duplicate_titles or duplicate_descriptions:
        lines.extend(["## Duplicates", ""])
        for text, paths in duplicate_titles.items():
            lines.append(f"- Title `{text}`: {', '.join(paths)}")
        for text, paths in duplicate_descriptions.items():
            lines.append(f"- Description `{text[:60]}...`: {', '.join(paths)}")
    write_text(report_path, "\n".join(lines))
    write_json(
        summary_path,
        {
            "mode": "validate",
            "generated_at": datetime.now(UTC).isoformat(),
            "pages_checked": len(results),
            "pages_with_issues": len(failing),
            "duplicate_titles": duplicate_titles,
            "duplicate_descriptions": duplicate_descriptions,
            "pages": [{"file": result["file"], "issues": result["issues"]} for result in results],
            "outputs": {
                "VALIDATION-REPORT.md": report_path.as_posix(),
                "SUMMARY.json": summary_path.as_posix(),
            },
        },
    )

    print(f"Pages checked: {len(results)}")
    print(f"Pages with issues: {len(failing)}")
    print(f"Report: {report_path}")
    if args.strict and (failing or duplicate_titles or duplicate_descriptions):
        return 1
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Deterministic location x service page copy generator and auditor.")
    sub = parser.add_subparsers(dest="command", required=True)

    p_generate = sub.add_parser("generate", help="Generate SEO bundles for every location x service pair")
    p_generate.add_argument("--config-file", help="Optional JSON config; CLI args override file values.")
    p_generate.add_argument("--services-file", help="CSV or JSON service records")
    p_generate.add_argument("--services-url", help="JSON endpoint returning service records")
    p_generate.add_argument("--locations-file", help="CSV or JSON location records")
    p_generate.add_argument("--locations-url", help="JSON endpoint returning location records")
    p_generate.add_argument("--catalog-file", help="Optional JSON template catalog (must declare a version)")
    p_generate.add_argument("--site-url", help="Canonical site URL, e.g. https://www.example.com")
    p_generate.add_argument("--previous-file", help="Earlier BUNDLES.json to diff against")
    p_generate.add_argument("--lastmod", default="", help="Optional YYYY-MM-DD sitemap lastmod; omitted when unset")
    p_generate.add_argument("--timeout", type=int, default=None)
    p_generate.add_argument("--output-dir", default="seo-local-pages-output")
    p_generate.set_defaults(func=run_generate)

    p_audit = sub.add_parser("audit", help="Audit a generated BUNDLES.json for uniqueness and length rules")
    p_audit.add_argument("--bundles-file", required=True, help="BUNDLES.json written by generate")
    p_audit.add_argument("--strict", action="store_true", help="Exit 1 when a hard-stop gate triggers")
    p_audit.add_argument("--output-dir", default="seo-local-pages-output")
    p_audit.set_defaults(func=run_audit)

    p_validate = sub.add_parser("validate", help="Validate rendered HTML pages")
    p_validate.add_argument("--pages-dir", required=True, help="Built site directory or single HTML file")
    p_validate.add_argument("--strict", action="store_true", help="Exit 1 when any page has issues")
    p_validate.add_argument("--output-dir", default="seo-local-pages-output")
    p_validate.set_defaults(func=run_validate)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    return args.func(args)


if __name__ == "__main__":
    raise SystemExit(main())
