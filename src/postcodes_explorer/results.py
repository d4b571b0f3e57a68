"""The results area: an ordered collection of titled cards.

A ResultsArea is passed explicitly to every handler. It does no locking, so
handlers running concurrently against one area interleave their clear and
append calls.
"""

from typing import Any

from postcodes_explorer.models import Card
from postcodes_explorer.render import escape, render

ERROR_TITLE = "Error"


class ResultsArea:
    """Display surface holding the cards rendered by actions."""

    def __init__(self):
        self._cards: list[Card] = []

    @property
    def cards(self) -> tuple[Card, ...]:
        return tuple(self._cards)

    def __len__(self) -> int:
        return len(self._cards)

    def clear(self):
        self._cards.clear()

    def render_card(self, title: str, value: Any):
        self._cards.append(Card(title, value))

    def render_error(self, message: str):
        self.render_card(ERROR_TITLE, {"message": message})

    def to_html(self) -> str:
        """Serialise the area as the #results container markup."""
        cards = "".join(card_html(card) for card in self._cards)
        return f'<div id="results">{cards}</div>'


def card_html(card: Card) -> str:
    # Title is plain text, the body is rendered markup.
    return (
        '<div class="result-card">'
        f"<h3>{escape(card.title)}</h3>"
        f"<div>{render(card.value)}</div>"
        "</div>"
    )
