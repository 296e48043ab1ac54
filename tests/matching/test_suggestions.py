"""Tests for wine suggestion parsing and matching."""
from sommelier.database.models import WineType
from sommelier.matching import match_suggestions, parse_reply

REPLY = """With the risotto I would open something elegant from Piedmont.

[WINE_SUGGESTIONS]{"suggestions": [
    {"wineName": "Barolo Francia", "producer": "Giacomo Conterno", "wineType": "red", "reason": "Structure"},
    {"wine_name": "Etna Bianco", "wine_type": "white", "region": "Sicilia"}
]}[/WINE_SUGGESTIONS]"""


def test_parse_reply_splits_text_and_suggestions():
    parsed = parse_reply(REPLY)

    assert parsed.text == "With the risotto I would open something elegant from Piedmont."
    assert [s.name for s in parsed.suggestions] == ["Barolo Francia", "Etna Bianco"]
    assert parsed.suggestions[0].wine_type == WineType.RED
    assert parsed.suggestions[0].reason == "Structure"
    assert parsed.suggestions[1].region == "Sicilia"


def test_reply_without_block_is_returned_as_is():
    parsed = parse_reply("  Just drink what you like.  ")

    assert parsed.text == "Just drink what you like."
    assert parsed.suggestions == []


def test_malformed_block_keeps_the_text():
    parsed = parse_reply("Try a Nebbiolo. [WINE_SUGGESTIONS]{not json[/WINE_SUGGESTIONS]")

    assert parsed.text == "Try a Nebbiolo."
    assert parsed.suggestions == []


def test_match_suggestions_against_cellar(index, matcher):
    parsed = parse_reply(REPLY)

    matches = match_suggestions(parsed.suggestions, index.wine_set_for("alice"), matcher)

    assert len(matches) == 2
    assert matches[0].in_cellar
    assert matches[0].best.wine.name == "Barolo Francia"
    assert not matches[1].in_cellar
    assert len(matches[1].alternatives) <= 3
