"""
Semantic estimator adapter

Wraps the classifier oracle: strips markdown fencing, parses the JSON reply
(falling back to the first balanced {...} block), and turns oracle failures
into an EstimateOutcome instead of letting them escape.

Failure policy per call, by attempt index:
- attempt 0: a transport failure is returned as the outcome's error, and an
  unparseable reply yields an empty outcome; either way no later attempt runs.
- attempt > 0: the failed attempt is skipped and the loop continues.
"""

import json
import logging
import math
import re
from typing import Any, Dict, List, Optional

from ..core.exceptions import ParseError, TransportError
from .information_metrics import stability_from_spread
from .oracle import SemanticOracle
from .types import DimensionRationale, EstimateOutcome, SemanticEstimate, clamp01

logger = logging.getLogger(__name__)

_FENCE_OPEN_RE = re.compile(r"^```(?:json)?\s*\n?", re.IGNORECASE)
_FENCE_CLOSE_RE = re.compile(r"\n?```\s*$")


def strip_fencing(text: str) -> str:
    text = text.strip()
    text = _FENCE_OPEN_RE.sub('', text)
    text = _FENCE_CLOSE_RE.sub('', text)
    return text.strip()


def extract_json_object(text: str) -> Optional[str]:
    """Return the first balanced {...} substring, honouring JSON string literals."""
    start = text.find('{')
    while start != -1:
        depth = 0
        in_string = False
        escaped = False
        for i in range(start, len(text)):
            ch = text[i]
            if in_string:
                if escaped:
                    escaped = False
                elif ch == '\\':
                    escaped = True
                elif ch == '"':
                    in_string = False
                continue
            if ch == '"':
                in_string = True
            elif ch == '{':
                depth += 1
            elif ch == '}':
                depth -= 1
                if depth == 0:
                    return text[start:i + 1]
        # Unbalanced from this brace; try the next one
        start = text.find('{', start + 1)
    return None


def parse_classifier_reply(raw: str) -> Dict[str, Any]:
    """Parse the classifier's text into a dict or raise ParseError."""
    text = strip_fencing(raw or '')
    try:
        parsed = json.loads(text)
    except json.JSONDecodeError:
        logger.warning(f"Failed to parse classifier reply, trying embedded object: {text[:300]!r}")
        candidate = extract_json_object(text)
        if candidate is None:
            raise ParseError("Classifier reply contains no JSON object")
        try:
            parsed = json.loads(candidate)
        except json.JSONDecodeError as e:
            raise ParseError(f"Embedded JSON object is invalid: {e}")

    if not isinstance(parsed, dict):
        raise ParseError(f"Classifier reply is a JSON {type(parsed).__name__}, not an object")
    return parsed


def _number(value: Any) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    value = float(value)
    # json.loads accepts NaN and Infinity
    return value if math.isfinite(value) else None


def to_estimate(parsed: Dict[str, Any]) -> SemanticEstimate:
    """Keep the well-typed fields of a parsed reply; T/C/L are clamped to [0, 1]."""
    dims = {}
    for key in ('T', 'C', 'L'):
        value = _number(parsed.get(key))
        dims[key] = clamp01(value) if value is not None else None

    note = parsed.get('note')
    rationale = parsed.get('rationale')
    return SemanticEstimate(
        T=dims['T'],
        C=dims['C'],
        L=dims['L'],
        level=_number(parsed.get('level')),
        note=note if isinstance(note, str) and note.strip() else None,
        rationale=DimensionRationale.from_dict(rationale) if isinstance(rationale, dict) else None,
    )


class SemanticEstimator:
    """
    Calls the oracle one or more times for a single probe and reduces the runs
    """

    def __init__(self, oracle: SemanticOracle, samples: int = 1):
        self.oracle = oracle
        self.samples = max(1, samples)

    def estimate(self, description: Optional[str], prompt: str, response: Optional[str],
                 samples: Optional[int] = None) -> EstimateOutcome:
        """Classify one response, repeating the call `samples` times."""
        attempts = max(1, samples if samples is not None else self.samples)
        runs: List[SemanticEstimate] = []

        for i in range(attempts):
            try:
                raw = self.oracle.classify(description, prompt, response)
            except TransportError as e:
                logger.error(f"Classifier error (attempt {i + 1}/{attempts}): {e}")
                if i == 0:
                    return EstimateOutcome(error=e)
                continue

            try:
                parsed = parse_classifier_reply(raw)
            except ParseError as e:
                logger.warning(f"Unparseable classifier reply (attempt {i + 1}/{attempts}): {e}")
                if i == 0:
                    return EstimateOutcome()
                continue

            runs.append(to_estimate(parsed))

        if not runs:
            return EstimateOutcome()

        base = runs[0]
        base.temporal_stability = stability_from_spread([r.T for r in runs if r.T is not None])
        return EstimateOutcome(estimate=base)
