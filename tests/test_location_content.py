"""Unit tests for skills/seo-local-pages/scripts/location_content.py."""

import dataclasses
from collections import Counter

import pytest

import location_content as lc
from location_content import (
    DEFAULT_CATALOG,
    BrandProfile,
    CatalogError,
    Location,
    RecordError,
    Service,
    TemplateCatalog,
)


# ---------------------------------------------------------------------------
# Hash and selection
# ---------------------------------------------------------------------------

class TestHashSeed:
    """Reference values the published pages were generated with."""

    @pytest.mark.parametrize(
        "seed, expected",
        [
            ("", 0),
            ("x", 120),
            ("ocean-view-lawn-care-title", 1042744388),
            ("avalon-lawn-care-title", 870588113),
            ("a-very-long-seed-that-overflows-32-bit-arithmetic-many-times-over", 1488677256),
        ],
    )
    def test_golden_values(self, seed, expected):
        assert lc.hash_seed(seed) == expected

    def test_astral_characters_hash_as_utf16_surrogates(self):
        assert lc.hash_seed("café-😀") == 548535439
        assert lc.utf16_units("😀") == [0xD83D, 0xDE00]

    def test_result_fits_signed_32_bit_magnitude(self):
        for seed in ("z" * 500, "avalon-" * 100, "Ω≈ç√∫" * 40):
            assert 0 <= lc.hash_seed(seed) <= 2**31

    def test_stable_across_calls(self):
        seed = "stone-harbor-hardscaping-h1"
        assert len({lc.hash_seed(seed) for _ in range(50)}) == 1


class TestSelectTemplate:
    def test_single_char_seed_selects_first(self):
        assert lc.select_template(["a", "b", "c"], "x") == "a"

    def test_golden_selection(self):
        assert lc.select_template(["a", "b", "c"], "ocean-view-lawn-care-title") == "c"

    def test_empty_templates_fail_fast(self):
        with pytest.raises(CatalogError):
            lc.select_template([], "anything")

    def test_works_on_tuples(self):
        assert lc.select_template(("only",), "seed") == "only"


# ---------------------------------------------------------------------------
# Substitution and truncation
# ---------------------------------------------------------------------------

class TestSubstitute:
    def test_replaces_known_tokens(self):
        result = lc.substitute("{service} in {town}", {"service": "Lawn Care", "town": "Avalon"})
        assert result == "Lawn Care in Avalon"

    def test_unknown_tokens_are_left_in_place(self):
        assert lc.substitute("{service} {unknown}", {"service": "Mulching"}) == "Mulching {unknown}"

    def test_substituted_values_are_not_rescanned(self):
        values = {"service": "{town} Care", "town": "Avalon"}
        assert lc.substitute("{service} in {town}", values) == "{town} Care in Avalon"

    def test_overlapping_token_names_do_not_collide(self):
        values = {"service": "Lawn Care", "service_lower": "lawn care"}
        assert lc.substitute("{service_lower}/{service}", values) == "lawn care/Lawn Care"


class TestTruncateDescription:
    def test_short_text_untouched(self):
        text = "x" * 160
        assert lc.truncate_description(text) == text

    def test_long_text_cut_to_limit_with_ellipsis(self):
        result = lc.truncate_description("y" * 200)
        assert len(result) == 160
        assert result == "y" * 157 + "..."

    def test_split_surrogate_pair_is_dropped(self):
        text = "a" * 156 + "😀" + "b" * 10
        assert lc.truncate_description(text) == "a" * 156 + "..."


# ---------------------------------------------------------------------------
# Golden bundles
# ---------------------------------------------------------------------------

class TestGoldenBundles:
    def test_lawn_care_avalon_full_bundle(self, lawn_care, avalon):
        bundle = lc.generate_location_service_seo(lawn_care, avalon).to_dict()
        assert bundle == {
            "title": "Professional Lawn Care in Avalon, NJ | Blue Lawns",
            "description": (
                "Lawn Care services in Avalon, NJ by Blue Lawns. Thick and green solutions for residential "
                "and commercial properties. Licensed & insured."
            ),
            "h1": "Professional Lawn Care in Avalon",
            "introParagraph": (
                "Avalon homeowners trust Blue Lawns for expert lawn care. We combine years of local experience "
                "with proven techniques to deliver lawn care that enhances your property's beauty and value. "
                "Serving Avalon since 2010."
            ),
            "localCallout": "Proudly serving Avalon homeowners since 2010.",
            "faqs": [
                {
                    "question": "How much does lawn care cost in Avalon?",
                    "answer": (
                        "Lawn Care costs vary based on property size, scope of work, and specific needs. Blue Lawns "
                        "offers free estimates for all Avalon properties. Contact us at 609-425-2954 for a "
                        "customized quote."
                    ),
                },
                {
                    "question": "Do you offer lawn care in Avalon year-round?",
                    "answer": (
                        "Yes! Blue Lawns provides lawn care services to Avalon customers throughout the year. Our "
                        "team is experienced with Cape May County's climate and seasonal requirements."
                    ),
                },
                {
                    "question": "Are you licensed and insured in Avalon, NJ?",
                    "answer": (
                        "Absolutely. Blue Lawns is fully licensed, insured, and bonded to operate in Avalon and "
                        "throughout Cape May County. Your property and our team are always protected."
                    ),
                },
            ],
            "breadcrumbs": [
                {"name": "Home", "url": "/"},
                {"name": "Service Areas", "url": "/locations"},
                {"name": "Avalon", "url": "/locations/avalon"},
                {"name": "Lawn Care", "url": "/locations/avalon/lawn-care"},
            ],
            "keywords": [
                "lawn care Avalon",
                "lawn care near me",
                "Avalon lawn care",
                "lawn care Cape May County",
                "Avalon NJ lawn care",
                "weed-free lawn care Avalon",
                "fertilization lawn care Avalon",
                "thick and green lawn care Avalon",
                "disease-resistant lawn care Avalon",
            ],
        }

    def test_landscape_lighting_north_wildwood(self):
        service = Service(slug="landscape-lighting", title="Landscape Lighting")
        location = Location(slug="north-wildwood", town="North Wildwood")
        bundle = lc.generate_location_service_seo(service, location)
        assert bundle.title == "Landscape Lighting in North Wildwood, NJ | Blue Lawns"
        assert bundle.description == (
            "Professional landscape lighting for North Wildwood properties. expert service, guaranteed results. "
            "Serving Cape May County since 2010. Get a free quote."
        )
        assert bundle.h1 == "North Wildwood Landscape Lighting Specialists"
        assert bundle.local_callout == "Your neighbors in North Wildwood choose Blue Lawns."
        assert bundle.intro_paragraph.startswith("Blue Lawns brings expert landscape lighting to North Wildwood")

    def test_uncurated_service_falls_back_to_professional(self):
        service = Service(slug="snow-removal", title="Snow Removal")
        location = Location(slug="cape-may", town="Cape May")
        bundle = lc.generate_location_service_seo(service, location)
        assert bundle.title == "Quality Snow Removal in Cape May, NJ | Blue Lawns"
        assert "Professional solutions" in bundle.description
        assert bundle.local_callout == "Cape May's premier snow removal company."
        assert list(bundle.keywords) == [
            "snow removal Cape May",
            "snow removal near me",
            "Cape May snow removal",
            "snow removal Cape May County",
            "Cape May NJ snow removal",
        ]


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------

class TestMetaTitle:
    def test_at_budget_uses_modifier(self):
        service = Service(slug="landscape-lighting", title="Landscape Lighting")
        location = Location(slug="stone-harbor", town="Stone Harbor")
        assert len(service.title) + len(location.town) == 30
        assert lc.generate_meta_title(service, location) == (
            "Affordable Landscape Lighting in Stone Harbor, NJ | Blue Lawns"
        )

    def test_over_budget_uses_short_form(self):
        service = Service(slug="landscape-lighting", title="Landscape Lighting")
        location = Location(slug="wildwood-crest", town="Wildwood Crest")
        assert lc.generate_meta_title(service, location) == "Landscape Lighting in Wildwood Crest, NJ | Blue Lawns"

    def test_branch_holds_across_matrix(self, services, locations):
        for service in services:
            for location in locations:
                title = lc.generate_meta_title(service, location)
                if len(service.title) + len(location.town) > 30:
                    assert title.startswith(f"{service.title} in ")
                else:
                    modifier, rest = title.split(" ", 1)
                    assert modifier in DEFAULT_CATALOG.title_modifiers
                    assert rest.startswith(f"{service.title} in ")


class TestMetaDescription:
    def test_every_description_within_limit(self, services, locations):
        lengths = [
            len(lc.generate_meta_description(service, location)) for service in services for location in locations
        ]
        assert len(lengths) == 400
        assert max(lengths) <= 160

    def test_long_names_truncate_after_substitution(self):
        service = Service(
            slug="commercial-snow-and-ice-management-services",
            title="Commercial Snow And Ice Management Services",
        )
        location = Location(slug="cape-may-court-house", town="Cape May Court House")
        description = lc.generate_meta_description(service, location)
        assert description == (
            "Commercial Snow And Ice Management Services services in Cape May Court House, NJ by Blue Lawns. "
            "Professional solutions for residential and commercial propert..."
        )
        assert len(description) == 160


class TestFixedFields:
    def test_faqs_are_three_fixed_questions(self, lawn_care, avalon):
        faqs = lc.generate_faqs(lawn_care, avalon)
        assert [faq.question for faq in faqs] == [
            "How much does lawn care cost in Avalon?",
            "Do you offer lawn care in Avalon year-round?",
            "Are you licensed and insured in Avalon, NJ?",
        ]

    def test_breadcrumbs_four_levels(self, lawn_care, avalon):
        crumbs = lc.generate_breadcrumbs(lawn_care, avalon)
        assert [crumb.url for crumb in crumbs] == ["/", "/locations", "/locations/avalon", "/locations/avalon/lawn-care"]
        assert crumbs[-1].name == "Lawn Care"

    def test_keyword_count_tracks_context_list(self, services, avalon):
        for service in services:
            keywords = lc.generate_keywords(service, avalon)
            assert len(keywords) == 5 + len(DEFAULT_CATALOG.curated_contexts(service.slug))


# ---------------------------------------------------------------------------
# Matrix properties
# ---------------------------------------------------------------------------

class TestMatrixProperties:
    def test_bundles_are_identical_on_repeat(self, services, locations):
        for service in services[:5]:
            for location in locations[:5]:
                first = lc.generate_location_service_seo(service, location).to_dict()
                second = lc.generate_location_service_seo(service, location).to_dict()
                assert first == second

    def test_no_h1_pattern_dominates(self, services, locations):
        shapes = Counter()
        for service in services:
            for location in locations:
                h1 = lc.generate_h1(service, location)
                shapes[h1.replace(service.title, "{service}").replace(location.town, "{town}")] += 1
        total = sum(shapes.values())
        assert len(shapes) > 6
        assert shapes.most_common(1)[0][1] / total <= 0.40

    def test_reordering_a_category_changes_some_outputs(self, services, locations):
        reordered = dataclasses.replace(
            DEFAULT_CATALOG,
            version="reordered",
            title_modifiers=tuple(reversed(DEFAULT_CATALOG.title_modifiers)),
        )
        changed = unchanged = 0
        for service in services:
            for location in locations:
                before = lc.generate_h1(service, location)
                after = lc.generate_h1(service, location, reordered)
                if before == after:
                    unchanged += 1
                else:
                    changed += 1
        assert changed > 0
        assert unchanged > 0


# ---------------------------------------------------------------------------
# Records, brand, catalog
# ---------------------------------------------------------------------------

class TestRecords:
    def test_blank_slug_is_rejected(self):
        with pytest.raises(RecordError):
            Service(slug=" ", title="Lawn Care")

    def test_missing_town_is_rejected(self):
        with pytest.raises(RecordError):
            Location.from_record({"slug": "avalon"})

    def test_from_record_accepts_aliases(self):
        service = Service.from_record({"Slug": "mulching", "name": "Mulching", "excerpt": "Fresh mulch."})
        location = Location.from_record({"slug": "avalon", "city": "Avalon", "geo": {"lat": 39.1, "lng": -74.7}})
        assert service == Service(slug="mulching", title="Mulching", description="Fresh mulch.")
        assert (location.town, location.latitude, location.longitude) == ("Avalon", 39.1, -74.7)

    def test_bad_coordinate_is_record_error(self):
        with pytest.raises(RecordError):
            Location.from_record({"slug": "avalon", "town": "Avalon", "lat": "north"})

    def test_location_state_overrides_brand_state(self, lawn_care):
        location = Location(slug="lewes", town="Lewes", state="DE")
        assert lc.generate_meta_title(lawn_care, location).endswith("in Lewes, DE | Blue Lawns")


class TestBrandProfile:
    def test_custom_brand_flows_into_copy(self, lawn_care, avalon):
        brand = BrandProfile.from_dict({"name": "Shore Greens", "phone": "555-0100", "ignored": "x"})
        bundle = lc.generate_location_service_seo(lawn_care, avalon, brand=brand)
        assert bundle.title.endswith("| Shore Greens")
        assert "555-0100" in bundle.faqs[0].answer
        assert "Blue Lawns" not in repr(bundle.to_dict())

    def test_empty_brand_value_rejected(self):
        with pytest.raises(ValueError):
            BrandProfile.from_dict({"name": "  "})


class TestTemplateCatalog:
    def test_default_catalog_validates(self):
        assert DEFAULT_CATALOG.validate() is DEFAULT_CATALOG

    def test_default_catalog_is_read_only(self):
        with pytest.raises(dataclasses.FrozenInstanceError):
            DEFAULT_CATALOG.title_modifiers = ("Cheap",)
        with pytest.raises(TypeError):
            DEFAULT_CATALOG.service_contexts["lawn-care"] = ("mutated",)

    def test_from_dict_requires_version(self):
        with pytest.raises(CatalogError):
            TemplateCatalog.from_dict({"title_modifiers": ["Expert"]})

    def test_from_dict_rejects_empty_category(self):
        with pytest.raises(CatalogError):
            TemplateCatalog.from_dict({"version": "2", "h1_templates": []})

    @pytest.mark.parametrize("contexts", [{"lawn-care": "weed-free"}, {"lawn-care": ["weed-free", 3]}])
    def test_from_dict_rejects_non_list_contexts(self, contexts):
        with pytest.raises(CatalogError):
            TemplateCatalog.from_dict({"version": "2", "service_contexts": contexts})

    def test_from_dict_rejects_unknown_placeholder(self):
        with pytest.raises(CatalogError):
            TemplateCatalog.from_dict({"version": "2", "callout_templates": ["Hello {neighborhood}"]})

    def test_partial_catalog_inherits_defaults(self):
        catalog = TemplateCatalog.from_dict({"version": "2", "title_modifiers": ["Expert"]})
        assert catalog.version == "2"
        assert catalog.title_modifiers == ("Expert",)
        assert catalog.h1_templates == DEFAULT_CATALOG.h1_templates
        assert catalog.service_contexts == DEFAULT_CATALOG.service_contexts

    def test_round_trip_through_dict(self):
        assert TemplateCatalog.from_dict(DEFAULT_CATALOG.to_dict()) == DEFAULT_CATALOG

    def test_load_catalog_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            lc.load_catalog(tmp_path / "missing.json")


# ---------------------------------------------------------------------------
# Content variation
# ---------------------------------------------------------------------------

class TestContentVariation:
    def test_placeholders_are_case_insensitive(self, lawn_care, avalon):
        text = "Best {{Service}} in {{CITY}}, {{state}} for {{keyword}}"
        result = lc.apply_content_variation(text, lawn_care, avalon, keyword="green lawns")
        assert result == "Best Lawn Care in Avalon, NJ for green lawns"

    def test_missing_keyword_leaves_placeholder(self, lawn_care, avalon):
        assert lc.apply_content_variation("Ask about {{keyword}} in Avalon", lawn_care, avalon) == (
            "Ask about {{keyword}} in Avalon"
        )

    def test_injection_is_hash_seeded(self, lawn_care, avalon):
        text = "Our lawn service keeps yards healthy."
        cape_may = Location(slug="cape-may", town="Cape May")
        assert lc.apply_content_variation(text, lawn_care, avalon) == text + " in Avalon"
        assert lc.apply_content_variation(text, lawn_care, cape_may) == text

    def test_empty_text(self, lawn_care, avalon):
        assert lc.apply_content_variation(None, lawn_care, avalon) == ""

    def test_vary_component_props_skips_internal_keys(self, lawn_care, avalon):
        props = {
            "_key": "{{city}}",
            "heading": "{{service}} near {{city}}",
            "items": ["{{city}} crews", 3],
        }
        assert lc.vary_component_props(props, lawn_care, avalon) == {
            "_key": "{{city}}",
            "heading": "Lawn Care near Avalon",
            "items": ["Avalon crews", 3],
        }
