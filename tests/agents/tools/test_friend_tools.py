"""Tests for get_friend_preferences."""
from tests.conftest import OTHER_USER_ID, USER_ID


def test_friend_preferences_by_partial_name(registry, seeded):
    result = registry.dispatch("get_friend_preferences", {"friendName": "giulia"}, USER_ID)

    assert result["friend"] == {"name": "Giulia Rossi", "foodie_level": "enthusiast", "notes": None}
    assert result["restrictions"]["allergy"] == [{"category": "shellfish", "severity": "severe", "notes": None}]
    assert result["restrictions"]["diet"] == [{"category": "pescatarian", "severity": None, "notes": None}]


def test_every_preference_type_is_listed(registry, seeded):
    result = registry.dispatch("get_friend_preferences", {"friend_name": "Marco"}, USER_ID)

    assert result["friend"]["name"] == "Marco Bianchi"
    assert result["restrictions"] == {
        "allergy": [], "intolerance": [], "diet": [], "dislike": [], "preference": [],
    }


def test_friend_lookup_ignores_accents_and_case(registry, seeded):
    result = registry.dispatch("get_friend_preferences", {"friend_name": "BIÀNCHI"}, USER_ID)

    assert result["friend"]["name"] == "Marco Bianchi"


def test_friends_are_scoped_to_the_user(registry, seeded):
    alice = registry.dispatch("get_friend_preferences", {"friend_name": "Verdi"}, USER_ID)
    bob = registry.dispatch("get_friend_preferences", {"friend_name": "Giulia"}, OTHER_USER_ID)

    assert alice["error_type"] == "not_found"
    assert bob["friend"]["name"] == "Giulia Verdi"


def test_blank_friend_name_is_rejected(registry, seeded):
    result = registry.dispatch("get_friend_preferences", {"friend_name": "  "}, USER_ID)

    assert result["error_type"] == "invalid_arguments"
