"""
LLM client for Ollama integration
"""

import logging
import time
import requests
from typing import Dict, Any, Optional, List

from ..core.exceptions import TransportError

logger = logging.getLogger(__name__)

class LLMClient:
    """
    Client for interacting with Ollama LLM services
    """

    def __init__(self, llm_config: Dict[str, Any]):
        self.config = llm_config
        self.base_url = llm_config['base_url'].rstrip('/')
        self.default_model = llm_config['default_model']
        self.timeout = llm_config.get('timeout', 120)

    def test_connection(self) -> bool:
        """Test connection to Ollama service"""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            if response.status_code == 200:
                models = [model['name'] for model in response.json().get('models', [])]
                logger.info(f"✓ Ollama connected. Available models: {len(models)}")

                if self.default_model not in models:
                    logger.warning(f"Missing model: {self.default_model}")

                return True
            else:
                logger.error(f"Ollama service returned HTTP {response.status_code}")
                return False
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Ollama connection test failed: {e}")
            return False

    def call_ollama_text(self, prompt: str, model: Optional[str] = None,
                         temperature: float = 0.3) -> str:
        """Call Ollama for text generation"""
        model = model or self.default_model
        start_time = time.time()

        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": temperature,
                "top_p": 0.9
            }
        }

        try:
            logger.info(f"🔄 LLM call to {model} starting...")
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout
            )
            response.raise_for_status()
            result = response.json()
        except requests.RequestException as e:
            call_time = time.time() - start_time
            logger.error(f"❌ LLM call to {model} failed after {call_time:.2f}s: {e}")
            raise TransportError(f"Ollama request failed: {e}")
        except ValueError as e:
            # requests raises a ValueError subclass when the body is not JSON
            logger.error(f"❌ LLM call to {model} returned an undecodable body: {e}")
            raise TransportError(f"Ollama returned an invalid response body: {e}")

        response_text = result.get('response', '') if isinstance(result, dict) else ''
        call_time = time.time() - start_time
        logger.info(f"✅ LLM call to {model} completed: {call_time:.2f}s ({len(response_text)} chars)")
        return response_text

    def get_available_models(self) -> List[str]:
        """Get list of available models"""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
            response.raise_for_status()
            models = response.json().get('models', [])
            return [model['name'] for model in models]
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Failed to get available models: {e}")
            return []
