"""Unit tests for the address grammar parser."""

import pytest

from address_match.grammar import AddressParser, parse_address
from address_match.lexer import tokenize
from address_match.models import ParseConfidence

SAMPLES = [
    "123 N Main St Apt 4",
    "123 1/2 E Oak Ave, Grants Pass, OR 97526",
    "456 North St #12",
    "789 NE NE Cedar Ln",
    "  , 12 Elm Rd ,  ",
    "42",
    "Main Street",
    "###@@@",
    "123 Main St !! extra",
    "",
]


class TestStreetAddress:
    def test_full_street_address(self):
        p = parse_address("123 N Main St Apt 4")
        assert p.house_number == "123"
        assert p.pre_directional == "N"
        assert p.street_name == "Main"
        assert p.street_suffix == "St"
        assert p.unit_type == "Apt"
        assert p.unit_number == "4"
        assert p.unparsed == ""
        assert p.confidence == ParseConfidence.COMPLETE
        assert p.production == "street_address"

    def test_locality_after_commas(self):
        p = parse_address("123 1/2 E Oak Ave, Grants Pass, OR 97526")
        assert p.fraction == "1/2"
        assert p.street_name == "Oak"
        assert p.street_suffix == "Ave"
        assert p.city == "Grants Pass"
        assert p.state == "OR"
        assert p.postal_code == "97526"
        assert p.is_complete

    def test_locality_without_commas(self):
        p = parse_address("123 Main St Springfield IL 62701")
        assert (p.street_name, p.street_suffix) == ("Main", "St")
        assert (p.city, p.state, p.postal_code) == ("Springfield", "IL", "62701")

    def test_multi_word_street_name(self):
        p = parse_address("900 Lake Shore Dr")
        assert p.street_name == "Lake Shore"
        assert p.street_suffix == "Dr"

    def test_post_directional(self):
        p = parse_address("55 Cedar Ln SE")
        assert p.street_suffix == "Ln"
        assert p.post_directional == "SE"

    def test_hash_unit(self):
        p = parse_address("456 Oak Ave #12")
        assert (p.unit_type, p.unit_number) == ("#", "12")

    def test_directional_used_as_street_name(self):
        p = parse_address("456 North St #12")
        assert p.production == "directional_street"
        assert p.pre_directional is None
        assert p.street_name == "North"
        assert p.street_suffix == "St"

    @pytest.mark.parametrize("raw, pre, street, suffix", [
        ("123 E North St", "E", "North", "St"),
        ("12 N West Ave", "N", "West", "Ave"),
        ("100 W South Temple St", "W", "South Temple", "St"),
    ])
    def test_directional_then_directional_street_name(self, raw, pre, street, suffix):
        p = parse_address(raw)
        assert (p.pre_directional, p.street_name, p.street_suffix) == (pre, street, suffix)
        assert p.unparsed == ""
        assert p.confidence == ParseConfidence.COMPLETE

    def test_distinct_directionals_are_not_noise(self):
        p = parse_address("789 NE SW Cedar Ln")
        assert p.pre_directional == "NE"
        assert p.street_name == "SW Cedar"
        assert p.unparsed == ""


class TestPartialParses:
    def test_repeated_directional_is_noise(self):
        p = parse_address("789 NE NE Cedar Ln")
        assert p.pre_directional == "NE"
        assert p.street_name == "Cedar"
        assert p.unparsed == "NE"
        assert p.confidence == ParseConfidence.PARTIAL

    def test_bare_number(self):
        p = parse_address("42")
        assert p.house_number == "42"
        assert p.street_name is None
        assert p.confidence == ParseConfidence.PARTIAL

    def test_street_without_number(self):
        p = parse_address("Main Street")
        assert p.house_number is None
        assert p.street_name == "Main"
        assert p.street_suffix == "Street"
        assert not p.is_complete

    def test_trailing_noise_is_unparsed(self):
        p = parse_address("123 Main St !! extra")
        assert p.street_name == "Main"
        assert p.unparsed == "!! extra"
        assert not p.is_complete

    def test_leading_and_trailing_separators_ignored(self):
        p = parse_address("  , 12 Elm Rd ,  ")
        assert p.house_number == "12"
        assert p.unparsed == ""
        assert p.is_complete

    def test_malformed_input_yields_empty_parse(self):
        p = parse_address("###@@@")
        assert p.is_empty
        assert p.unparsed == "###@@@"
        assert p.production is None
        assert p.confidence == ParseConfidence.PARTIAL


class TestParserProperties:
    @pytest.mark.parametrize("raw", SAMPLES)
    def test_lossless_reconstruction(self, raw):
        assert parse_address(raw).reconstruct() == raw

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_spans_do_not_overlap(self, raw):
        p = parse_address(raw)
        spans = sorted(p.consumed_spans + p.unparsed_spans)
        for (s1, e1), (s2, e2) in zip(spans, spans[1:]):
            assert e1 <= s2

    @pytest.mark.parametrize("raw", SAMPLES)
    def test_idempotent(self, raw):
        parser = AddressParser()
        assert parser.parse_text(raw) == parser.parse_text(raw)

    def test_accepts_token_stream(self):
        parser = AddressParser()
        assert parser.parse(tokenize("123 Main St")) == parser.parse_text("123 Main St")
