"""User actions against the postcodes.io API.

Each action is a pair of pure functions:

- ``build(inputs)`` turns trimmed form inputs into a Request, returns None
  when a required input is empty, or raises InvalidInput for input the
  client can reject before any request is made.
- ``interpret(inputs, data)`` turns the API envelope into the cards to show.

``run_action`` wires the two together around a client and a results area.
"""

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

from postcodes_explorer.models import Card, Request

logger = logging.getLogger(__name__)

QUERY_LIMIT = 20
NEAREST_LIMIT = 10
REVERSE_POSTCODE_RADIUS = 200
REVERSE_OUTCODE_RADIUS = 5000
BULK_LIMIT = 100

Inputs = Mapping[str, str]


class InvalidInput(ValueError):
    """Raised by ``build`` for input rejected before any request is sent."""


@dataclass(frozen=True)
class Action:
    name: str
    title: str
    description: str
    fields: tuple[str, ...]
    required: tuple[str, ...]
    build: Callable[[Inputs], Request | None]
    interpret: Callable[[Inputs, Any], list[Card]]


def error_plan(message: str) -> list[Card]:
    return [Card("Error", {"message": message})]


def segment(value: str) -> str:
    """Percent-encode a user-supplied path segment."""
    return quote(value, safe="")


def _is_ok(data: Any) -> bool:
    return isinstance(data, dict) and data.get("status") == 200


def _non_empty_list(data: Any) -> list | None:
    if _is_ok(data) and isinstance(data.get("result"), list) and data["result"]:
        return data["result"]
    return None


def _api_error(data: Any, fallback: str) -> str:
    if isinstance(data, dict) and data.get("error"):
        return str(data["error"])
    return fallback


def _item_field(item: Any, key: str) -> Any:
    return item.get(key) if isinstance(item, dict) else None


def _has_result(value: Any) -> bool:
    # Empty containers still count as a result; null, false, "" and 0 do not.
    return value is not None and value is not False and value != "" and value != 0


# --- Postcodes ---


def build_lookup_postcode(inputs: Inputs) -> Request | None:
    postcode = inputs.get("postcode", "")
    if not postcode:
        return None
    return Request("GET", f"/postcodes/{segment(postcode)}")


def interpret_lookup_postcode(inputs: Inputs, data: Any) -> list[Card]:
    postcode = inputs.get("postcode", "")
    if _is_ok(data):
        return [Card(f"Postcode: {postcode.upper()}", data.get("result"))]
    return error_plan(_api_error(data, f"No data found for {postcode}"))


def build_validate_postcode(inputs: Inputs) -> Request | None:
    postcode = inputs.get("postcode", "")
    if not postcode:
        return None
    return Request("GET", f"/postcodes/{segment(postcode)}/validate")


def interpret_validate_postcode(inputs: Inputs, data: Any) -> list[Card]:
    postcode = inputs.get("postcode", "").upper()
    # {"status": 200, "result": true/false}
    valid = data.get("result") if isinstance(data, dict) else None
    if isinstance(valid, bool):
        return [Card(f"Validate Postcode: {postcode}", {"postcode": postcode, "valid": valid})]
    return error_plan("Unexpected validation response")


def build_query_postcodes(inputs: Inputs) -> Request | None:
    query = inputs.get("postcode", "")
    if not query:
        return None
    return Request("GET", "/postcodes", {"q": query, "limit": str(QUERY_LIMIT)})


def interpret_query_postcodes(inputs: Inputs, data: Any) -> list[Card]:
    results = _non_empty_list(data)
    if results is None:
        return error_plan(f"No matches found for query '{inputs.get('postcode', '')}'.")
    return [
        Card(f"Match {i}: {_item_field(item, 'postcode')}", item)
        for i, item in enumerate(results, start=1)
    ]


def split_bulk_postcodes(text: str) -> list[str]:
    """Split on newlines and commas, trim, and drop empty entries."""
    entries = text.replace(",", "\n").split("\n")
    return [entry.strip() for entry in entries if entry.strip()]


def build_bulk_lookup(inputs: Inputs) -> Request | None:
    postcodes = split_bulk_postcodes(inputs.get("bulk_postcodes", ""))
    if not postcodes:
        return None
    if len(postcodes) > BULK_LIMIT:
        raise InvalidInput(f"Bulk lookup is limited to {BULK_LIMIT} postcodes.")
    return Request("POST", "/postcodes", payload={"postcodes": postcodes})


def interpret_bulk_lookup(inputs: Inputs, data: Any) -> list[Card]:
    if not (_is_ok(data) and isinstance(data.get("result"), list)):
        return error_plan("Unexpected bulk lookup response.")
    cards = []
    for item in data["result"]:
        result = _item_field(item, "result")
        title = f"Bulk Result for {_item_field(item, 'query')}"
        cards.append(Card(title, result if _has_result(result) else {"error": "Not found"}))
    return cards


def build_random_postcode(inputs: Inputs) -> Request:
    outcode = inputs.get("postcode", "")
    params = {"outcode": outcode} if outcode else {}
    return Request("GET", "/random/postcodes", params)


def interpret_random_postcode(inputs: Inputs, data: Any) -> list[Card]:
    if _is_ok(data):
        return [Card("Random Postcode", data.get("result"))]
    return error_plan("Failed to retrieve random postcode.")


def build_autocomplete(inputs: Inputs) -> Request | None:
    partial = inputs.get("postcode", "")
    if not partial:
        return None
    return Request(
        "GET",
        f"/postcodes/{segment(partial)}/autocomplete",
        {"limit": str(QUERY_LIMIT)},
    )


def interpret_autocomplete(inputs: Inputs, data: Any) -> list[Card]:
    partial = inputs.get("postcode", "")
    results = _non_empty_list(data)
    if results is None:
        return error_plan(f"No autocomplete results for '{partial}'.")
    return [Card(f"Autocomplete for '{partial}'", results)]


def build_nearest_postcodes(inputs: Inputs) -> Request | None:
    postcode = inputs.get("postcode", "")
    if not postcode:
        return None
    return Request(
        "GET",
        f"/postcodes/{segment(postcode)}/nearest",
        {"limit": str(NEAREST_LIMIT)},
    )


def interpret_nearest_postcodes(inputs: Inputs, data: Any) -> list[Card]:
    results = _non_empty_list(data)
    if results is None:
        return error_plan(f"No nearest postcodes found for '{inputs.get('postcode', '')}'.")
    return [
        Card(f"Nearest {i}: {_item_field(item, 'postcode')}", item)
        for i, item in enumerate(results, start=1)
    ]


# --- Reverse geocoding ---


def _coordinates(inputs: Inputs, limit: int, radius: int) -> dict[str, str] | None:
    lat = inputs.get("latitude", "")
    lon = inputs.get("longitude", "")
    if not lat or not lon:
        return None
    return {"lat": lat, "lon": lon, "limit": str(limit), "radius": str(radius)}


def build_reverse_geocode(inputs: Inputs) -> Request | None:
    params = _coordinates(inputs, NEAREST_LIMIT, REVERSE_POSTCODE_RADIUS)
    if params is None:
        return None
    return Request("GET", "/postcodes", params)


def interpret_reverse_geocode(inputs: Inputs, data: Any) -> list[Card]:
    results = _non_empty_list(data)
    if results is None:
        return error_plan("No postcodes found for the provided coordinates.")
    return [
        Card(f"Reverse Geocode {i}: {_item_field(item, 'postcode')}", item)
        for i, item in enumerate(results, start=1)
    ]


def build_bulk_reverse_geocode(inputs: Inputs) -> Request | None:
    text = inputs.get("bulk_geolocations", "")
    if not text:
        return None
    try:
        geolocations = json.loads(text)
    except ValueError as e:
        raise InvalidInput("Invalid JSON for bulk reverse geocode.") from e
    if not isinstance(geolocations, list):
        raise InvalidInput("Invalid JSON for bulk reverse geocode.")
    return Request("POST", "/postcodes", payload={"geolocations": geolocations})


def interpret_bulk_reverse_geocode(inputs: Inputs, data: Any) -> list[Card]:
    if not (_is_ok(data) and isinstance(data.get("result"), list)):
        return error_plan("Unexpected bulk reverse geocode response.")
    # Titled by position only; the per-item query is not shown.
    return [
        Card(f"Bulk Reverse Result {i}", _item_field(item, "result"))
        for i, item in enumerate(data["result"], start=1)
    ]


def build_reverse_outcode(inputs: Inputs) -> Request | None:
    params = _coordinates(inputs, NEAREST_LIMIT, REVERSE_OUTCODE_RADIUS)
    if params is None:
        return None
    return Request("GET", "/outcodes", params)


def interpret_reverse_outcode(inputs: Inputs, data: Any) -> list[Card]:
    results = _non_empty_list(data)
    if results is None:
        return error_plan("No outcodes found for the provided coordinates.")
    return [
        Card(f"Reverse Outcode {i}: {_item_field(item, 'outcode')}", item)
        for i, item in enumerate(results, start=1)
    ]


# --- Outcodes ---


def build_lookup_outcode(inputs: Inputs) -> Request | None:
    outcode = inputs.get("outcode", "")
    if not outcode:
        return None
    return Request("GET", f"/outcodes/{segment(outcode)}")


def interpret_lookup_outcode(inputs: Inputs, data: Any) -> list[Card]:
    outcode = inputs.get("outcode", "")
    if _is_ok(data):
        return [Card(f"Outcode: {outcode.upper()}", data.get("result"))]
    return error_plan(_api_error(data, f"No data found for outcode '{outcode}'."))


def build_nearest_outcodes(inputs: Inputs) -> Request | None:
    outcode = inputs.get("outcode", "")
    if not outcode:
        return None
    return Request(
        "GET",
        f"/outcodes/{segment(outcode)}/nearest",
        {"limit": str(NEAREST_LIMIT)},
    )


def interpret_nearest_outcodes(inputs: Inputs, data: Any) -> list[Card]:
    results = _non_empty_list(data)
    if results is None:
        return error_plan(f"No nearest outcodes found for '{inputs.get('outcode', '')}'.")
    return [
        Card(f"Nearest Outcode {i}: {_item_field(item, 'outcode')}", item)
        for i, item in enumerate(results, start=1)
    ]


# --- Places ---


def build_lookup_place(inputs: Inputs) -> Request | None:
    code = inputs.get("place_code", "")
    if not code:
        return None
    return Request("GET", f"/places/{segment(code)}")


def interpret_lookup_place(inputs: Inputs, data: Any) -> list[Card]:
    code = inputs.get("place_code", "")
    if _is_ok(data):
        return [Card(f"Place Code: {code}", data.get("result"))]
    return error_plan(_api_error(data, f"No place found for code '{code}'."))


def build_query_places(inputs: Inputs) -> Request | None:
    query = inputs.get("place_query", "")
    if not query:
        return None
    return Request("GET", "/places", {"q": query, "limit": str(QUERY_LIMIT)})


def interpret_query_places(inputs: Inputs, data: Any) -> list[Card]:
    results = _non_empty_list(data)
    if results is None:
        return error_plan(f"No places found matching '{inputs.get('place_query', '')}'.")
    # Place results may omit fields; fall back to a positional title.
    return [
        Card(str(_item_field(item, "place_name") or f"Place {i}"), item)
        for i, item in enumerate(results, start=1)
    ]


def build_random_place(inputs: Inputs) -> Request:
    return Request("GET", "/random/places")


def interpret_random_place(inputs: Inputs, data: Any) -> list[Card]:
    if _is_ok(data):
        return [Card("Random Place", data.get("result"))]
    return error_plan("Failed to retrieve random place.")


# --- Terminated and Scottish postcodes ---


def build_terminated_postcode(inputs: Inputs) -> Request | None:
    postcode = inputs.get("terminated_postcode", "")
    if not postcode:
        return None
    return Request("GET", f"/terminated_postcodes/{segment(postcode)}")


def interpret_terminated_postcode(inputs: Inputs, data: Any) -> list[Card]:
    postcode = inputs.get("terminated_postcode", "")
    if _is_ok(data):
        return [Card(f"Terminated Postcode: {postcode.upper()}", data.get("result"))]
    return error_plan(_api_error(data, f"No terminated data for '{postcode}'."))


def build_scottish_postcode(inputs: Inputs) -> Request | None:
    postcode = inputs.get("scottish_postcode", "")
    if not postcode:
        return None
    return Request("GET", f"/scotland/postcodes/{segment(postcode)}")


def interpret_scottish_postcode(inputs: Inputs, data: Any) -> list[Card]:
    postcode = inputs.get("scottish_postcode", "")
    if _is_ok(data):
        return [Card(f"Scottish Postcode: {postcode.upper()}", data.get("result"))]
    return error_plan(_api_error(data, f"No Scottish data for '{postcode}'."))


# Registry, in page order

ACTIONS: dict[str, Action] = {
    action.name: action
    for action in [
        Action(
            "lookup_postcode", "Lookup Postcode",
            "Look up a UK postcode and show all of its location data.",
            ("postcode",), ("postcode",),
            build_lookup_postcode, interpret_lookup_postcode,
        ),
        Action(
            "validate_postcode", "Validate Postcode",
            "Check whether a UK postcode is valid.",
            ("postcode",), ("postcode",),
            build_validate_postcode, interpret_validate_postcode,
        ),
        Action(
            "query_postcodes", "Query Postcodes",
            f"Free-text postcode search (up to {QUERY_LIMIT} matches).",
            ("postcode",), ("postcode",),
            build_query_postcodes, interpret_query_postcodes,
        ),
        Action(
            "bulk_lookup", "Bulk Lookup",
            f"Look up to {BULK_LIMIT} postcodes at once, separated by newlines or commas.",
            ("bulk_postcodes",), ("bulk_postcodes",),
            build_bulk_lookup, interpret_bulk_lookup,
        ),
        Action(
            "random_postcode", "Random Postcode",
            "Fetch a random postcode, optionally restricted to an outcode.",
            ("postcode",), (),
            build_random_postcode, interpret_random_postcode,
        ),
        Action(
            "autocomplete", "Autocomplete",
            f"Complete a partial postcode (up to {QUERY_LIMIT} suggestions).",
            ("postcode",), ("postcode",),
            build_autocomplete, interpret_autocomplete,
        ),
        Action(
            "nearest_postcodes", "Nearest Postcodes",
            f"Find the {NEAREST_LIMIT} postcodes nearest to a postcode.",
            ("postcode",), ("postcode",),
            build_nearest_postcodes, interpret_nearest_postcodes,
        ),
        Action(
            "reverse_geocode", "Reverse Geocode",
            f"Find postcodes within {REVERSE_POSTCODE_RADIUS}m of a latitude/longitude.",
            ("latitude", "longitude"), ("latitude", "longitude"),
            build_reverse_geocode, interpret_reverse_geocode,
        ),
        Action(
            "bulk_reverse_geocode", "Bulk Reverse Geocode",
            'Reverse geocode a JSON array of {"latitude": ..., "longitude": ...} objects.',
            ("bulk_geolocations",), ("bulk_geolocations",),
            build_bulk_reverse_geocode, interpret_bulk_reverse_geocode,
        ),
        Action(
            "reverse_outcode", "Reverse Geocode Outcode",
            f"Find outcodes within {REVERSE_OUTCODE_RADIUS}m of a latitude/longitude.",
            ("latitude", "longitude"), ("latitude", "longitude"),
            build_reverse_outcode, interpret_reverse_outcode,
        ),
        Action(
            "lookup_outcode", "Lookup Outcode",
            "Look up an outcode (postcode district).",
            ("outcode",), ("outcode",),
            build_lookup_outcode, interpret_lookup_outcode,
        ),
        Action(
            "nearest_outcodes", "Nearest Outcodes",
            f"Find the {NEAREST_LIMIT} outcodes nearest to an outcode.",
            ("outcode",), ("outcode",),
            build_nearest_outcodes, interpret_nearest_outcodes,
        ),
        Action(
            "lookup_place", "Lookup Place",
            "Look up a place by its code.",
            ("place_code",), ("place_code",),
            build_lookup_place, interpret_lookup_place,
        ),
        Action(
            "query_places", "Query Places",
            f"Free-text place search (up to {QUERY_LIMIT} matches).",
            ("place_query",), ("place_query",),
            build_query_places, interpret_query_places,
        ),
        Action(
            "random_place", "Random Place",
            "Fetch a random place.",
            (), (),
            build_random_place, interpret_random_place,
        ),
        Action(
            "terminated_postcode", "Terminated Postcode",
            "Look up a postcode that is no longer in use.",
            ("terminated_postcode",), ("terminated_postcode",),
            build_terminated_postcode, interpret_terminated_postcode,
        ),
        Action(
            "scottish_postcode", "Scottish Postcode",
            "Look up Scotland-specific data for a postcode.",
            ("scottish_postcode",), ("scottish_postcode",),
            build_scottish_postcode, interpret_scottish_postcode,
        ),
    ]
}


def trim_inputs(action: Action, inputs: Mapping[str, Any] | None) -> dict[str, str]:
    """Trim every field the action reads; missing or null inputs become ''."""
    inputs = inputs or {}
    return {name: str(inputs.get(name) or "").strip() for name in action.fields}


async def run_action(action: Action, inputs: Mapping[str, Any] | None, client, results) -> bool:
    """Run one action end to end against ``client``, rendering into ``results``.

    Returns False when the action aborted silently because a required input
    was empty, True otherwise. Failures never propagate: they become a
    single error card.
    """
    trimmed = trim_inputs(action, inputs)
    try:
        request = action.build(trimmed)
    except InvalidInput as e:
        # Cleared first so the error never sits next to stale cards.
        results.clear()
        results.render_error(str(e))
        return True
    if request is None:
        return False

    logger.info("Running %s", action.name)
    results.clear()
    try:
        data = await client.send(request)
        cards = action.interpret(trimmed, data)
    except Exception as e:
        logger.warning("%s failed: %s", action.name, e)
        results.render_error(str(e))
        return True

    for card in cards:
        results.render_card(card.title, card.value)
    return True
