"""Locate JSON values embedded in page markup by the key that introduces them."""
import json
import re
from typing import Any, Optional

from bs4 import BeautifulSoup

_DECODER = json.JSONDecoder()


class MarkupExtractor:
    """
    Finds the first JSON value introduced by ``"key":`` inside a page.

    The platform ships its data as JSON blobs inside <script> tags, so only
    script bodies are scanned. Markup without any script body (a bare JSON
    document, for instance) is scanned as a whole.
    """

    def __init__(self, markup: str):
        soup = BeautifulSoup(markup, "html.parser")
        self.texts = [script.string for script in soup.find_all("script") if script.string]
        if not self.texts:
            self.texts = [markup]

    def extract(self, key: str, disambiguator: Optional[str] = None) -> Optional[Any]:
        """
        Return the first decodable value for ``key``.

        When ``disambiguator`` is given, only an object that has that key
        directly is accepted, e.g. ``extract("event", "name")`` skips every
        ``"event"`` object without a ``name``.
        """
        anchor = re.compile(r'"' + re.escape(key) + r'"\s*:\s*')
        for text in self.texts:
            for match in anchor.finditer(text):
                try:
                    value, _ = _DECODER.raw_decode(text, match.end())
                except json.JSONDecodeError:
                    continue
                if disambiguator is None:
                    return value
                if isinstance(value, dict) and disambiguator in value:
                    return value
        return None


def extract_json(markup: str, key: str, disambiguator: Optional[str] = None) -> Optional[Any]:
    return MarkupExtractor(markup).extract(key, disambiguator)


def decode_first_document(text: str) -> Any:
    """Decode the first JSON document of a body that may hold several back to back."""
    value, _ = _DECODER.raw_decode(text.lstrip())
    return value
