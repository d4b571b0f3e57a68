"""Tests for the action request builders, response interpreters and run_action.

The client is always an AsyncMock, so no network calls are made.
"""

import asyncio
from unittest.mock import AsyncMock

import pytest

from postcodes_explorer import actions
from postcodes_explorer.actions import ACTIONS, InvalidInput, run_action
from postcodes_explorer.clients.postcodes import PostcodesAPIError
from postcodes_explorer.models import Card, Request
from postcodes_explorer.results import ResultsArea

# --- Helper fixtures ---


@pytest.fixture
def results():
    return ResultsArea()


def _client(response=None, **kwargs):
    client = AsyncMock()
    client.send.return_value = response
    for key, value in kwargs.items():
        setattr(client.send, key, value)
    return client


def _ok(result):
    return {"status": 200, "result": result}


# --- Registry ---


def test_all_actions_registered():
    assert list(ACTIONS) == [
        "lookup_postcode",
        "validate_postcode",
        "query_postcodes",
        "bulk_lookup",
        "random_postcode",
        "autocomplete",
        "nearest_postcodes",
        "reverse_geocode",
        "bulk_reverse_geocode",
        "reverse_outcode",
        "lookup_outcode",
        "nearest_outcodes",
        "lookup_place",
        "query_places",
        "random_place",
        "terminated_postcode",
        "scottish_postcode",
    ]


def test_required_fields_are_declared_fields():
    for action in ACTIONS.values():
        assert set(action.required) <= set(action.fields)


# --- Request building ---


@pytest.mark.parametrize(
    "name, inputs, expected",
    [
        ("lookup_postcode", {"postcode": "SW1A 1AA"}, Request("GET", "/postcodes/SW1A%201AA")),
        ("validate_postcode", {"postcode": "SW1A 1AA"}, Request("GET", "/postcodes/SW1A%201AA/validate")),
        ("query_postcodes", {"postcode": "SW1A"}, Request("GET", "/postcodes", {"q": "SW1A", "limit": "20"})),
        ("random_postcode", {"postcode": ""}, Request("GET", "/random/postcodes", {})),
        ("random_postcode", {"postcode": "SW1A"}, Request("GET", "/random/postcodes", {"outcode": "SW1A"})),
        ("autocomplete", {"postcode": "SW1"}, Request("GET", "/postcodes/SW1/autocomplete", {"limit": "20"})),
        ("nearest_postcodes", {"postcode": "SW1A 1AA"}, Request("GET", "/postcodes/SW1A%201AA/nearest", {"limit": "10"})),
        (
            "reverse_geocode",
            {"latitude": "51.5", "longitude": "-0.14"},
            Request("GET", "/postcodes", {"lat": "51.5", "lon": "-0.14", "limit": "10", "radius": "200"}),
        ),
        (
            "reverse_outcode",
            {"latitude": "51.5", "longitude": "-0.14"},
            Request("GET", "/outcodes", {"lat": "51.5", "lon": "-0.14", "limit": "10", "radius": "5000"}),
        ),
        ("lookup_outcode", {"outcode": "SW1A"}, Request("GET", "/outcodes/SW1A")),
        ("nearest_outcodes", {"outcode": "SW1A"}, Request("GET", "/outcodes/SW1A/nearest", {"limit": "10"})),
        ("lookup_place", {"place_code": "osgb4000000074564391"}, Request("GET", "/places/osgb4000000074564391")),
        ("query_places", {"place_query": "Bath"}, Request("GET", "/places", {"q": "Bath", "limit": "20"})),
        ("random_place", {}, Request("GET", "/random/places")),
        ("terminated_postcode", {"terminated_postcode": "E1W 1UU"}, Request("GET", "/terminated_postcodes/E1W%201UU")),
        ("scottish_postcode", {"scottish_postcode": "EH1 1YZ"}, Request("GET", "/scotland/postcodes/EH1%201YZ")),
    ],
)
def test_build_request(name, inputs, expected):
    action = ACTIONS[name]
    assert action.build(actions.trim_inputs(action, inputs)) == expected


def test_path_segments_are_percent_encoded():
    request = actions.build_lookup_postcode({"postcode": "a/b?c#d"})
    assert request.path == "/postcodes/a%2Fb%3Fc%23d"


@pytest.mark.parametrize(
    "name",
    [name for name, action in ACTIONS.items() if action.required],
)
def test_build_returns_none_when_required_input_empty(name):
    action = ACTIONS[name]
    assert action.build(actions.trim_inputs(action, {})) is None


def test_reverse_geocode_needs_both_coordinates():
    assert actions.build_reverse_geocode({"latitude": "51.5", "longitude": ""}) is None
    assert actions.build_reverse_outcode({"latitude": "", "longitude": "-0.1"}) is None


def test_trim_inputs():
    action = ACTIONS["reverse_geocode"]
    assert actions.trim_inputs(action, {"latitude": "  51.5 ", "longitude": None, "other": "x"}) == {
        "latitude": "51.5",
        "longitude": "",
    }


# --- Bulk inputs ---


def test_split_bulk_postcodes():
    text = "SW1A 1AA\n, OX49 5NU,,\n  M32 0JG  \n\n"
    assert actions.split_bulk_postcodes(text) == ["SW1A 1AA", "OX49 5NU", "M32 0JG"]


def test_bulk_lookup_builds_post():
    request = actions.build_bulk_lookup({"bulk_postcodes": "SW1A 1AA, OX49 5NU"})
    assert request == Request("POST", "/postcodes", payload={"postcodes": ["SW1A 1AA", "OX49 5NU"]})


def test_bulk_lookup_allows_exactly_100():
    text = "\n".join(f"AB{i} 1AA" for i in range(100))
    request = actions.build_bulk_lookup({"bulk_postcodes": text})
    assert len(request.payload["postcodes"]) == 100


def test_bulk_lookup_rejects_101():
    text = "\n".join(f"AB{i} 1AA" for i in range(101))
    with pytest.raises(InvalidInput, match="limited to 100"):
        actions.build_bulk_lookup({"bulk_postcodes": text})


def test_bulk_reverse_geocode_builds_post():
    text = '[{"latitude": 51.5, "longitude": -0.14}]'
    request = actions.build_bulk_reverse_geocode({"bulk_geolocations": text})
    assert request == Request(
        "POST", "/postcodes", payload={"geolocations": [{"latitude": 51.5, "longitude": -0.14}]}
    )


@pytest.mark.parametrize("text", ["not json", '{"latitude": 51.5}', "[1, 2"])
def test_bulk_reverse_geocode_rejects_bad_json(text):
    with pytest.raises(InvalidInput, match="Invalid JSON"):
        actions.build_bulk_reverse_geocode({"bulk_geolocations": text})


# --- Response interpretation ---


def test_lookup_postcode_success():
    cards = actions.interpret_lookup_postcode(
        {"postcode": "sw1a 1aa"}, _ok({"postcode": "SW1A 1AA", "country": "England"})
    )
    assert cards == [Card("Postcode: SW1A 1AA", {"postcode": "SW1A 1AA", "country": "England"})]


def test_lookup_postcode_api_error():
    cards = actions.interpret_lookup_postcode({"postcode": "XX1"}, {"status": 404, "error": "Postcode not found"})
    assert cards == [Card("Error", {"message": "Postcode not found"})]


def test_lookup_postcode_fallback_error():
    cards = actions.interpret_lookup_postcode({"postcode": "XX1"}, {"status": 500})
    assert cards == [Card("Error", {"message": "No data found for XX1"})]


def test_validate_postcode():
    assert actions.interpret_validate_postcode({"postcode": "sw1a1aa"}, _ok(False)) == [
        Card("Validate Postcode: SW1A1AA", {"postcode": "SW1A1AA", "valid": False})
    ]
    assert actions.interpret_validate_postcode({"postcode": "x"}, _ok(None)) == [
        Card("Error", {"message": "Unexpected validation response"})
    ]


def test_query_postcodes_cards_per_match():
    cards = actions.interpret_query_postcodes(
        {"postcode": "SW1A"}, _ok([{"postcode": "SW1A 0AA"}, {"postcode": "SW1A 0PW"}])
    )
    assert [c.title for c in cards] == ["Match 1: SW1A 0AA", "Match 2: SW1A 0PW"]


@pytest.mark.parametrize("data", [_ok([]), _ok(None), {"status": 404}, "oops"])
def test_query_postcodes_no_matches(data):
    cards = actions.interpret_query_postcodes({"postcode": "ZZ"}, data)
    assert cards == [Card("Error", {"message": "No matches found for query 'ZZ'."})]


def test_bulk_lookup_results():
    data = _ok([
        {"query": "SW1A 1AA", "result": {"postcode": "SW1A 1AA"}},
        {"query": "NOPE", "result": None},
    ])
    cards = actions.interpret_bulk_lookup({}, data)
    assert cards == [
        Card("Bulk Result for SW1A 1AA", {"postcode": "SW1A 1AA"}),
        Card("Bulk Result for NOPE", {"error": "Not found"}),
    ]


def test_bulk_lookup_keeps_empty_results():
    data = _ok([
        {"query": "A", "result": {}},
        {"query": "B", "result": []},
        {"query": "C", "result": False},
        {"query": "D", "result": ""},
        {"query": "E", "result": 0},
    ])
    cards = actions.interpret_bulk_lookup({}, data)
    assert [c.value for c in cards] == [
        {},
        [],
        {"error": "Not found"},
        {"error": "Not found"},
        {"error": "Not found"},
    ]


def test_bulk_lookup_unexpected_response():
    assert actions.interpret_bulk_lookup({}, _ok({})) == [
        Card("Error", {"message": "Unexpected bulk lookup response."})
    ]


def test_random_postcode():
    assert actions.interpret_random_postcode({}, _ok({"postcode": "M1 1AE"})) == [
        Card("Random Postcode", {"postcode": "M1 1AE"})
    ]
    assert actions.interpret_random_postcode({}, {"status": 500}) == [
        Card("Error", {"message": "Failed to retrieve random postcode."})
    ]


def test_autocomplete_single_card():
    cards = actions.interpret_autocomplete({"postcode": "SW1A"}, _ok(["SW1A 0AA", "SW1A 0PW"]))
    assert cards == [Card("Autocomplete for 'SW1A'", ["SW1A 0AA", "SW1A 0PW"])]
    assert actions.interpret_autocomplete({"postcode": "QQ"}, _ok(None)) == [
        Card("Error", {"message": "No autocomplete results for 'QQ'."})
    ]


def test_nearest_postcodes():
    cards = actions.interpret_nearest_postcodes({"postcode": "SW1A 1AA"}, _ok([{"postcode": "SW1A 1AA"}]))
    assert cards[0].title == "Nearest 1: SW1A 1AA"


def test_reverse_geocode():
    cards = actions.interpret_reverse_geocode({}, _ok([{"postcode": "SW1A 1AA"}, {"postcode": "SW1A 1AB"}]))
    assert [c.title for c in cards] == ["Reverse Geocode 1: SW1A 1AA", "Reverse Geocode 2: SW1A 1AB"]
    assert actions.interpret_reverse_geocode({}, _ok(None)) == [
        Card("Error", {"message": "No postcodes found for the provided coordinates."})
    ]


def test_bulk_reverse_geocode_titles_by_position():
    data = _ok([
        {"query": {"latitude": 51.5, "longitude": -0.1}, "result": [{"postcode": "SE1 7PB"}]},
        {"query": {"latitude": 0, "longitude": 0}, "result": None},
    ])
    cards = actions.interpret_bulk_reverse_geocode({}, data)
    assert cards == [
        Card("Bulk Reverse Result 1", [{"postcode": "SE1 7PB"}]),
        Card("Bulk Reverse Result 2", None),
    ]


def test_reverse_outcode():
    cards = actions.interpret_reverse_outcode({}, _ok([{"outcode": "SW1A"}]))
    assert cards[0].title == "Reverse Outcode 1: SW1A"


def test_lookup_outcode():
    assert actions.interpret_lookup_outcode({"outcode": "sw1a"}, _ok({"outcode": "SW1A"}))[0].title == "Outcode: SW1A"
    assert actions.interpret_lookup_outcode({"outcode": "zz"}, {"status": 404}) == [
        Card("Error", {"message": "No data found for outcode 'zz'."})
    ]


def test_nearest_outcodes():
    cards = actions.interpret_nearest_outcodes({"outcode": "SW1A"}, _ok([{"outcode": "SW1A"}, {"outcode": "SW1E"}]))
    assert [c.title for c in cards] == ["Nearest Outcode 1: SW1A", "Nearest Outcode 2: SW1E"]


def test_lookup_place():
    cards = actions.interpret_lookup_place({"place_code": "osgb1"}, _ok({"name_1": "Bath"}))
    assert cards == [Card("Place Code: osgb1", {"name_1": "Bath"})]


def test_query_places_titles():
    cards = actions.interpret_query_places({"place_query": "Bath"}, _ok([{"place_name": "Bath"}, {"code": "x"}]))
    assert [c.title for c in cards] == ["Bath", "Place 2"]


def test_random_place():
    assert actions.interpret_random_place({}, _ok({"name_1": "Bath"})) == [Card("Random Place", {"name_1": "Bath"})]
    assert actions.interpret_random_place({}, {}) == [Card("Error", {"message": "Failed to retrieve random place."})]


def test_terminated_and_scottish():
    assert actions.interpret_terminated_postcode({"terminated_postcode": "e1w 1uu"}, _ok({}))[0].title == (
        "Terminated Postcode: E1W 1UU"
    )
    assert actions.interpret_scottish_postcode({"scottish_postcode": "eh1 1yz"}, {"status": 404, "error": "Nope"}) == [
        Card("Error", {"message": "Nope"})
    ]
    assert actions.interpret_scottish_postcode({"scottish_postcode": "x"}, {"status": 404}) == [
        Card("Error", {"message": "No Scottish data for 'x'."})
    ]


# --- run_action ---


async def test_run_action_renders_lookup_card(results):
    client = _client(_ok({"postcode": "SW1A 1AA", "country": "England"}))
    ran = await run_action(ACTIONS["lookup_postcode"], {"postcode": " sw1a 1aa "}, client, results)

    assert ran is True
    client.send.assert_called_once_with(Request("GET", "/postcodes/sw1a%201aa"))
    (card,) = results.cards
    assert "SW1A 1AA" in card.title
    assert "<li><strong>country:</strong> England</li>" in results.to_html()


async def test_run_action_api_error_envelope(results):
    client = _client({"status": 404, "error": "Postcode not found"})
    await run_action(ACTIONS["lookup_postcode"], {"postcode": "XX1 1XX"}, client, results)

    assert results.cards == (Card("Error", {"message": "Postcode not found"}),)
    assert client.send.call_count == 1


async def test_run_action_empty_input_aborts_silently(results):
    results.render_card("Previous", 1)
    client = _client()
    ran = await run_action(ACTIONS["lookup_postcode"], {"postcode": "   "}, client, results)

    assert ran is False
    client.send.assert_not_called()
    assert [c.title for c in results.cards] == ["Previous"]


async def test_run_action_clears_previous_cards(results):
    results.render_card("Previous", 1)
    client = _client(_ok({"postcode": "M1 1AE"}))
    await run_action(ACTIONS["random_postcode"], {}, client, results)

    assert [c.title for c in results.cards] == ["Random Postcode"]


async def test_run_action_bulk_limit_makes_no_request(results):
    client = _client()
    text = ",".join(f"AB{i} 1AA" for i in range(101))
    await run_action(ACTIONS["bulk_lookup"], {"bulk_postcodes": text}, client, results)

    client.send.assert_not_called()
    assert results.cards == (Card("Error", {"message": "Bulk lookup is limited to 100 postcodes."}),)


async def test_run_action_bulk_reverse_invalid_json_makes_no_request(results):
    client = _client()
    await run_action(ACTIONS["bulk_reverse_geocode"], {"bulk_geolocations": "not json"}, client, results)

    client.send.assert_not_called()
    assert results.cards == (Card("Error", {"message": "Invalid JSON for bulk reverse geocode."}),)


async def test_run_action_transport_error(results):
    client = _client(side_effect=PostcodesAPIError("503 Service Unavailable", status_code=503))
    await run_action(ACTIONS["lookup_outcode"], {"outcode": "SW1A"}, client, results)

    assert results.cards == (Card("Error", {"message": "503 Service Unavailable"}),)


async def test_run_action_never_raises(results):
    client = _client(side_effect=RuntimeError("boom"))
    await run_action(ACTIONS["random_place"], {}, client, results)

    assert results.cards == (Card("Error", {"message": "boom"}),)


async def test_concurrent_actions_share_results_area(results):
    async def send(request):
        # The first request finishes after the second
        await asyncio.sleep(0.02 if "postcodes" in request.path else 0)
        if request.path.startswith("/outcodes"):
            return _ok({"outcode": "SW1A"})
        return _ok({"postcode": "SW1A 1AA"})

    client = AsyncMock()
    client.send.side_effect = send

    await asyncio.gather(
        run_action(ACTIONS["lookup_postcode"], {"postcode": "SW1A 1AA"}, client, results),
        run_action(ACTIONS["lookup_outcode"], {"outcode": "SW1A"}, client, results),
    )

    assert client.send.call_count == 2
    # Both handlers cleared before either appended, so each card appears once.
    assert [c.title for c in results.cards] == ["Outcode: SW1A", "Postcode: SW1A 1AA"]
