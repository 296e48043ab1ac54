"""Tests for label-extraction conversion and resolution."""
from sommelier.database.models import WineType
from sommelier.matching import (
    ExtractedWine,
    MatchSignal,
    mention_from_extraction,
    resolve_extraction,
    split_grapes,
)

LABEL = {
    "name": {"value": "Barolo Francia", "confidence": 0.95},
    "producer": {"value": "Giacomo Conterno", "confidence": 0.9},
    "vintage": {"value": "2016", "confidence": 0.98},
    "type": {"value": "red", "confidence": 0.95},
    "region": {"value": "Piemonte", "confidence": 0.4},
    "grapes": {"value": "Nebbiolo", "confidence": 0.82},
}


def test_overall_confidence_is_the_mean_of_present_fields():
    extracted = ExtractedWine.model_validate(LABEL)

    assert extracted.overall_confidence == round((0.95 + 0.9 + 0.98 + 0.95 + 0.4 + 0.82) / 6, 4)


def test_empty_extraction_has_zero_confidence():
    extracted = ExtractedWine.model_validate({"name": {"value": "", "confidence": 0.9}})

    assert extracted.name is None
    assert extracted.overall_confidence == 0.0


def test_mention_keeps_confident_fields_only():
    extracted = ExtractedWine.model_validate(LABEL)

    mention = mention_from_extraction(extracted, min_confidence=0.5)

    assert mention.name == "Barolo Francia"
    assert mention.producer == "Giacomo Conterno"
    assert mention.wine_type == WineType.RED
    assert mention.region is None
    assert mention.grapes == ["Nebbiolo"]


def test_accented_type_is_parsed():
    extracted = ExtractedWine.model_validate({
        "name": {"value": "Chiaretto", "confidence": 0.9},
        "type": {"value": "Rosé", "confidence": 0.9},
    })

    assert mention_from_extraction(extracted).wine_type == WineType.ROSE


def test_split_grapes():
    assert split_grapes("Sangiovese, Merlot e Cabernet Sauvignon") == ["Sangiovese", "Merlot", "Cabernet Sauvignon"]
    assert split_grapes("Syrah / Grenache and Mourvedre") == ["Syrah", "Grenache", "Mourvedre"]
    assert split_grapes(["Nebbiolo", "nebbiolo", " "]) == ["Nebbiolo"]
    assert split_grapes(None) == []


def test_resolve_extraction_against_wine_set(index, matcher):
    extracted = ExtractedWine.model_validate(LABEL)

    result = resolve_extraction(extracted, index.wine_set_for("alice"), matcher)

    assert result.best is not None
    assert result.best.wine.name == "Barolo Francia"
    assert result.best.matched_signals[:3] == [
        MatchSignal.NAME_EXACT, MatchSignal.PRODUCER_EXACT, MatchSignal.TYPE_DECLARED,
    ]
