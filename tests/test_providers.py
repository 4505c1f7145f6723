from __future__ import annotations

import time

import pytest
import requests

from conftest import FOOD_URL, PET_URL, dog_food_payload, make_response, product_url, route_product
from patoune_catalog.errors import ProviderError, ProviderTimeout
from patoune_catalog.providers.chain import build_provider_chain
from patoune_catalog.providers.client import OpenFoodFactsClient
from patoune_catalog.providers.formatter import format_product


# --------------- formatting ---------------
def test_format_product_maps_provider_fields():
    product = format_product(dog_food_payload(), "111", "openpetfoodfacts")

    assert product.barcode == "111"
    assert product.name == "Croquettes chien adulte poulet"
    assert product.brand == "Patounette"
    assert product.category == "alimentation"
    assert product.target_animal == ["chien"]
    assert [i.name for i in product.ingredients] == ["Viande fraîche de poulet", "riz"]
    assert all(i.risk == "safe" and not i.is_controversial for i in product.ingredients)
    assert [(a.code, a.name, a.risk) for a in product.additives] == [("E330", "E330", "moderate")]
    assert product.nutrients.protein == 28
    assert product.image == "https://img.example.test/croquettes.jpg"
    assert product.source == "openpetfoodfacts"
    # 70 + min(15, 15) - 4 + protein 5 + fat 3 + fiber 1
    assert product.nutrition_score == 90
    assert product.score_details.additives_penalty == 4
    assert product.score_details.quality_bonus == 15


def test_format_product_keeps_first_fifteen_ingredients():
    ingredients = [{"text": f"ingrédient {i}"} for i in range(20)]
    product = format_product(dog_food_payload(ingredients=ingredients), "1", "openfoodfacts")
    assert len(product.ingredients) == 15
    assert product.ingredients[-1].name == "ingrédient 14"


def test_format_product_ingredient_name_fallbacks():
    ingredients = [{"text": "Poulet"}, {"id": "en:rice"}, {}]
    product = format_product(dog_food_payload(ingredients=ingredients), "1", "openfoodfacts")
    assert [i.name for i in product.ingredients] == ["Poulet", "en:rice", "Inconnu"]


def test_format_product_does_not_flag_controversial_terms():
    product = format_product(dog_food_payload(ingredients=[{"text": "maïs"}]), "1", "openfoodfacts")
    assert product.ingredients[0].is_controversial is False


def test_format_product_every_external_additive_is_moderate():
    tags = ["en:e320", "fr:e102", "e200"]
    product = format_product(dog_food_payload(additives_tags=tags), "1", "openfoodfacts")
    assert [a.code for a in product.additives] == ["E320", "E102", "E200"]
    assert {a.risk for a in product.additives} == {"moderate"}


@pytest.mark.parametrize(
    "categories, expected",
    [
        ("Pet food", "alimentation"),
        ("Soins pour chiens", "soin"),
        ("Pet care", "soin"),
        ("Hygiène animale, shampoo", "hygiene"),
        ("Dog toys", "jouet"),
        ("Pet care, toys", "jouet"),
    ],
)
def test_format_product_category_keywords(categories, expected):
    product = format_product(dog_food_payload(categories=categories, product_name="X"), "1", "openfoodfacts")
    assert product.category == expected


def test_format_product_species_detection_and_sentinel():
    both = format_product({"product_name": "Friandises chien et chat", "categories": ""}, "1", "openfoodfacts")
    assert both.target_animal == ["chien", "chat"]

    birds = format_product({"product_name": "Graines", "categories": "Bird food"}, "2", "openfoodfacts")
    assert birds.target_animal == ["oiseau"]

    unknown = format_product({"product_name": "Granulés", "categories": "Pellets"}, "3", "openfoodfacts")
    assert unknown.target_animal == ["tous"]


def test_format_product_minimal_payload_defaults():
    product = format_product({"generic_name": "Pâtée"}, "42", "openfoodfacts")
    assert product.name == "Pâtée"
    assert product.brand == ""
    assert product.image == ""
    assert product.ingredients == []
    assert (product.nutrients.protein, product.nutrients.fat, product.nutrients.fiber) == (0, 0, 0)
    # nutrients are always present for provider data: fat 0 < 15 gives +3
    assert product.nutrition_score == 73

    nameless = format_product({}, "43", "openfoodfacts")
    assert nameless.name == "Produit inconnu"


def test_format_product_tolerates_string_nutrients():
    payload = dog_food_payload(nutriments={"proteins_100g": "26.5", "fat_100g": "n/a"})
    product = format_product(payload, "1", "openfoodfacts")
    assert product.nutrients.protein == 26.5
    assert product.nutrients.fat == 0.0


def test_format_product_zeroes_non_finite_nutrients():
    payload = dog_food_payload(nutriments={"proteins_100g": "nan", "fat_100g": float("inf"), "fiber_100g": "1e400"})
    product = format_product(payload, "1", "openfoodfacts")
    assert (product.nutrients.protein, product.nutrients.fat, product.nutrients.fiber) == (0.0, 0.0, 0.0)
    assert product.score_details.protein == 0
    assert product.score_details.fat == 3


# --------------- client ---------------
def test_client_returns_payload_when_present(session):
    route_product(session, PET_URL, "111", dog_food_payload())
    client = OpenFoodFactsClient("openpetfoodfacts", PET_URL, session=session, timeout=5)
    payload = client.get_product("111")
    assert payload["brands"] == "Patounette"
    assert session.calls[0]["url"] == product_url(PET_URL, "111")
    assert session.calls[0]["timeout"] == 5.0


def test_client_absent_product_returns_none(session):
    client = OpenFoodFactsClient("openfoodfacts", FOOD_URL, session=session)
    assert client.get_product("000") is None  # unrouted -> 404
    route_product(session, FOOD_URL, "001", None)
    assert client.get_product("001") is None  # status 0


def test_client_raises_structured_errors(session):
    client = OpenFoodFactsClient("openfoodfacts", FOOD_URL, session=session)

    session.routes[product_url(FOOD_URL, "1")] = requests.Timeout("slow")
    with pytest.raises(ProviderTimeout):
        client.get_product("1")

    session.routes[product_url(FOOD_URL, "2")] = requests.ConnectionError("down")
    with pytest.raises(ProviderError):
        client.get_product("2")

    session.routes[product_url(FOOD_URL, "3")] = make_response(503, {"error": "busy"})
    with pytest.raises(ProviderError):
        client.get_product("3")

    session.routes[product_url(FOOD_URL, "4")] = make_response(200, "<html>oops</html>")
    with pytest.raises(ProviderError):
        client.get_product("4")


def test_client_caps_timeout_to_caller_budget(session):
    client = OpenFoodFactsClient("openfoodfacts", FOOD_URL, session=session, timeout=5)
    client.get_product("9", timeout=1.5)
    client.get_product("9", timeout=30)
    assert [c["timeout"] for c in session.calls] == [1.5, 5.0]


# --------------- chain ---------------
def test_chain_prefers_pet_provider(settings, session):
    route_product(session, PET_URL, "111", dog_food_payload(brands="Pet"))
    route_product(session, FOOD_URL, "111", dog_food_payload(brands="Food"))
    chain = build_provider_chain(settings, session=session)

    source, payload = chain.lookup("111")
    assert source == "openpetfoodfacts"
    assert payload["brands"] == "Pet"
    assert session.calls_to(FOOD_URL) == 0


def test_chain_falls_through_errors_and_absences(settings, session):
    session.routes[product_url(PET_URL, "111")] = requests.Timeout("slow")
    route_product(session, FOOD_URL, "111", dog_food_payload(brands="Food"))
    chain = build_provider_chain(settings, session=session)

    source, payload = chain.lookup("111")
    assert source == "openfoodfacts"
    assert payload["brands"] == "Food"


def test_chain_returns_none_when_exhausted(settings, session):
    session.routes[product_url(PET_URL, "111")] = requests.ConnectionError("down")
    chain = build_provider_chain(settings, session=session)
    assert chain.lookup("111") is None
    assert session.calls_to(PET_URL) == 1
    assert session.calls_to(FOOD_URL) == 1


def test_chain_skips_providers_after_deadline(settings, session):
    chain = build_provider_chain(settings, session=session)
    assert chain.lookup("111", deadline=time.monotonic() - 1) is None
    assert session.calls == []
