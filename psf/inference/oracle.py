"""
Semantic classifier oracle

The oracle is the external collaborator that scores a system description and
example response. Anything with `classify` and `generate` methods will do; the
default implementation prompts a model served by Ollama.
"""

import logging
from typing import List, Optional, Protocol

from ..core.exceptions import TransportError
from ..utils.llm_client import LLMClient

logger = logging.getLogger(__name__)

CLASSIFIER_INSTRUCTION = """You are an HCI researcher evaluating the predictability of an AI system along three dimensions:
- Temporal predictability T: stability of outputs for similar inputs over time.
- Confidence predictability C: how clearly the system communicates its uncertainty and calibration.
- Learning predictability L: how easily users can build a reliable mental model of the system's behavior over repeated use.

Given the following description of an AI system, a user prompt, and an example response (if any), estimate T, C, and L as real numbers between 0 and 1, and suggest an overall predictability level between 1 and 5 (1 = fully predictable, 5 = fully unpredictable).

Also provide a rationale explaining why each dimension received its score.

CRITICAL: Respond with ONLY a valid JSON object. Do NOT wrap it in markdown code blocks, do NOT add any text before or after. Start with { and end with }.

The JSON must have this exact shape:
{"level": <number>, "T": <number>, "C": <number>, "L": <number>, "note": "<explanation>", "rationale": {"overall": "<overall reason>", "T": "<why T>", "C": "<why C>", "L": "<why L>", "cues": ["<textual cue 1>", "<textual cue 2>"]}}"""

SIMULATION_INSTRUCTION = """You are simulating responses from an AI system. Given the system description and user prompt below, generate a realistic response that this system might produce. Be concise and natural.

System: {description}
User prompt: {prompt}

Generate only the response content, nothing else."""

UNSPECIFIED_SYSTEM = 'Unspecified system'


class SemanticOracle(Protocol):
    """Interface of the external classifier/generator."""

    def classify(self, description: Optional[str], prompt: str, response: Optional[str]) -> str:
        """Return raw classifier text; raise TransportError when unreachable."""
        ...

    def generate(self, prompt: str, description: Optional[str], count: int) -> List[str]:
        """Return up to `count` independently generated outputs."""
        ...


def build_classifier_prompt(description: Optional[str], prompt: str, response: Optional[str]) -> str:
    return '\n'.join([
        CLASSIFIER_INSTRUCTION,
        f"System description: {description or UNSPECIFIED_SYSTEM}",
        f"User prompt: {prompt or ''}",
        f"Example response: {response or '(none provided)'}",
    ])


class OllamaOracle:
    """
    Oracle backed by an Ollama-served model
    """

    def __init__(self, llm_client: LLMClient, classify_temperature: float = 0.1,
                 generate_temperature: float = 0.7):
        self.llm_client = llm_client
        self.classify_temperature = classify_temperature
        self.generate_temperature = generate_temperature

    def classify(self, description: Optional[str], prompt: str, response: Optional[str]) -> str:
        content = build_classifier_prompt(description, prompt, response)
        return self.llm_client.call_ollama_text(content, temperature=self.classify_temperature)

    def generate(self, prompt: str, description: Optional[str], count: int) -> List[str]:
        """Simulate `count` outputs of the evaluated system; failed calls are skipped."""
        instruction = SIMULATION_INSTRUCTION.format(
            description=description or UNSPECIFIED_SYSTEM,
            prompt=prompt,
        )

        responses = []
        for i in range(count):
            try:
                text = self.llm_client.call_ollama_text(instruction, temperature=self.generate_temperature)
            except TransportError as e:
                logger.warning(f"Error generating response {i + 1}/{count}: {e}")
                continue
            responses.append(text.strip())

        logger.info(f"Generated {len(responses)}/{count} responses")
        return responses
