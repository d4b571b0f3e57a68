"""HTML page with the explorer's input fields, action buttons and results area."""

from collections.abc import Mapping

from postcodes_explorer.actions import ACTIONS
from postcodes_explorer.render import escape
from postcodes_explorer.results import ResultsArea

# form field -> (element id, label, multi-line)
FIELDS: dict[str, tuple[str, str, bool]] = {
    "postcode": ("postcodeInput", "Postcode", False),
    "bulk_postcodes": ("bulkPostcodes", "Bulk postcodes (newline or comma separated)", True),
    "latitude": ("latitudeInput", "Latitude", False),
    "longitude": ("longitudeInput", "Longitude", False),
    "bulk_geolocations": ("bulkGeo", "Bulk geolocations (JSON array)", True),
    "outcode": ("outcodeInput", "Outcode", False),
    "place_code": ("placeCodeInput", "Place code", False),
    "place_query": ("placeQueryInput", "Place search", False),
    "terminated_postcode": ("terminatedInput", "Terminated postcode", False),
    "scottish_postcode": ("scottishInput", "Scottish postcode", False),
}

BUTTON_IDS = {
    "lookup_postcode": "lookupPostcodeBtn",
    "validate_postcode": "validatePostcodeBtn",
    "query_postcodes": "queryPostcodeBtn",
    "bulk_lookup": "bulkLookupBtn",
    "random_postcode": "randomPostcodeBtn",
    "autocomplete": "autocompleteBtn",
    "nearest_postcodes": "nearestPostcodeBtn",
    "reverse_geocode": "reverseGeocodeBtn",
    "bulk_reverse_geocode": "bulkReverseBtn",
    "reverse_outcode": "reverseOutcodeBtn",
    "lookup_outcode": "lookupOutcodeBtn",
    "nearest_outcodes": "nearestOutcodeBtn",
    "lookup_place": "lookupPlaceBtn",
    "query_places": "queryPlaceBtn",
    "random_place": "randomPlaceBtn",
    "terminated_postcode": "terminatedLookupBtn",
    "scottish_postcode": "scottishLookupBtn",
}

# Which fields and buttons share a fieldset
SECTIONS = [
    ("Postcodes", ["postcode"], [
        "lookup_postcode", "validate_postcode", "query_postcodes",
        "random_postcode", "autocomplete", "nearest_postcodes",
    ]),
    ("Bulk lookup", ["bulk_postcodes"], ["bulk_lookup"]),
    ("Reverse geocoding", ["latitude", "longitude"], ["reverse_geocode", "reverse_outcode"]),
    ("Bulk reverse geocoding", ["bulk_geolocations"], ["bulk_reverse_geocode"]),
    ("Outcodes", ["outcode"], ["lookup_outcode", "nearest_outcodes"]),
    ("Places", ["place_code", "place_query"], ["lookup_place", "query_places", "random_place"]),
    ("Terminated postcodes", ["terminated_postcode"], ["terminated_postcode"]),
    ("Scottish postcodes", ["scottish_postcode"], ["scottish_postcode"]),
]

STYLE = """
body { font-family: system-ui, sans-serif; margin: 0 auto; max-width: 960px; padding: 1rem; }
fieldset { margin-bottom: 1rem; }
label { display: block; margin: .25rem 0; }
textarea { width: 100%; min-height: 4rem; }
.result-card { border: 1px solid #ccc; border-radius: 6px; padding: .5rem 1rem; margin: .5rem 0; }
.null { color: #888; font-style: italic; }
"""


def _field_html(name: str, value: str) -> str:
    element_id, label, multiline = FIELDS[name]
    if multiline:
        control = f'<textarea id="{element_id}" name="{name}">{escape(value)}</textarea>'
    else:
        control = f'<input type="text" id="{element_id}" name="{name}" value="{escape(value)}">'
    return f'<label for="{element_id}">{escape(label)}</label>{control}'


def _button_html(action_name: str) -> str:
    action = ACTIONS[action_name]
    return (
        f'<button type="submit" name="action" value="{action.name}" '
        f'id="{BUTTON_IDS[action_name]}" title="{escape(action.description)}">'
        f"{escape(action.title)}</button>"
    )


def render_page(values: Mapping[str, str] | None = None, results: ResultsArea | None = None) -> str:
    """Render the full page, keeping submitted ``values`` in their fields."""
    values = values or {}
    results = results or ResultsArea()

    sections = []
    for legend, fields, actions in SECTIONS:
        controls = "".join(_field_html(name, values.get(name, "")) for name in fields)
        buttons = " ".join(_button_html(name) for name in actions)
        sections.append(f"<fieldset><legend>{escape(legend)}</legend>{controls}<p>{buttons}</p></fieldset>")

    return (
        "<!doctype html>\n"
        '<html lang="en"><head><meta charset="utf-8">'
        "<title>Postcodes Explorer</title>"
        f"<style>{STYLE}</style></head><body>"
        "<h1>Postcodes Explorer</h1>"
        f'<form method="post" action="/">{"".join(sections)}</form>'
        f"{results.to_html()}"
        "</body></html>"
    )
