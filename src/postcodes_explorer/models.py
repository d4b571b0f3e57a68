"""Request and card types passed between actions, the client and the results area."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Request:
    """An outbound API call.

    ``path`` is relative to the API base and already has user-supplied
    segments percent-encoded.
    """

    method: str
    path: str
    params: dict[str, str] = field(default_factory=dict)
    payload: Any = None


@dataclass(frozen=True)
class Card:
    """A titled block showing one API result or one error."""

    title: str
    value: Any
