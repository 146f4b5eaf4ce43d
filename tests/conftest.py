from __future__ import annotations

import json
from typing import List, Optional


def reply(T=None, C=None, L=None, level=None, note=None, rationale=None) -> str:
    """Render a classifier reply the way the model is asked to produce it."""
    payload = {}
    for key, value in (("T", T), ("C", C), ("L", L), ("level", level), ("note", note), ("rationale", rationale)):
        if value is not None:
            payload[key] = value
    return json.dumps(payload)


class ScriptedOracle:
    """In-memory oracle replaying canned replies; exceptions in the script are raised."""

    def __init__(self, replies: Optional[list] = None, generated: Optional[List[str]] = None):
        self.replies = list(replies or [])
        self.generated = list(generated or [])
        self.calls: List[tuple] = []
        self.generate_calls: List[tuple] = []

    def classify(self, description, prompt, response):
        self.calls.append((description, prompt, response))
        if not self.replies:
            raise AssertionError("oracle called more times than scripted")
        item = self.replies.pop(0)
        if isinstance(item, Exception):
            raise item
        return item

    def generate(self, prompt, description, count):
        self.generate_calls.append((prompt, description, count))
        return self.generated[:count]
