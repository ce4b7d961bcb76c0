"""
Ollama LLM Service

Thin HTTP client for the locally hosted generative model that backs the
recipe and nutrient flows. The service only transports prompts and
replies; parsing and validation belong to the flows.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Dict, Any

import requests

from config import get_settings


logger = logging.getLogger("LLMService")


@dataclass
class LLMResponse:
    """Response from LLM service."""
    content: str
    success: bool
    error: Optional[str] = None
    model: Optional[str] = None


class OllamaService:
    """
    Ollama chat client used by the recipe and nutrient flows.

    Features:
    - Named system prompts per flow
    - JSON-schema constrained replies (Ollama structured outputs)
    - Failures reported through LLMResponse, never raised

    Usage:
        service = OllamaService()
        response = service.generate_structured(prompt, "recipe_chef", schema)
    """

    SYSTEM_PROMPTS = {
        "recipe_chef": """You are a world-class chef. You invent practical, tasty recipes
from the ingredients a home cook has in the fridge.

Important rules:
- Respect every listed allergy: avoid the allergen or warn about it
- Keep instructions short, one action per step
- Only attach a timer to steps that involve waiting (baking, simmering, resting)
- Reply with a single JSON object that matches the requested schema. No markdown.""",

        "nutrition_analyst": """You are a clinical nutritionist. You estimate the
macronutrient and micronutrient content of recipes from their ingredients
and quantities.

Important rules:
- Give estimates per ingredient and for the whole recipe
- Use standard units (g, mg, mcg, kcal)
- Never provide medical diagnoses
- Reply with a single JSON object that matches the requested schema. No markdown.""",
    }

    def __init__(
        self,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[int] = None,
    ):
        """
        Initialize the Ollama client.

        Args:
            base_url: Ollama API base URL (defaults to OLLAMA_BASE_URL setting)
            model: Model to use (defaults to OLLAMA_MODEL setting)
            timeout: Seconds to wait for a reply (defaults to LLM_TIMEOUT_SECONDS)
        """
        settings = get_settings()
        self.base_url = (base_url or settings.ollama_base_url).rstrip("/")
        self.model = model or settings.ollama_model
        self.timeout = timeout or settings.llm_timeout_seconds

    def check_connection(self) -> bool:
        """Ping Ollama; used by the health endpoint."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=5)
        except requests.exceptions.RequestException as e:
            logger.warning("Cannot reach Ollama at %s: %s", self.base_url, e)
            return False

        if response.status_code != 200:
            logger.warning("Ollama returned status %s", response.status_code)
            return False
        return True

    def chat(
        self,
        prompt: str,
        system_prompt: Optional[str] = None,
        response_format: Optional[Dict[str, Any]] = None,
    ) -> LLMResponse:
        """
        Send one prompt to the model.

        Args:
            prompt: Rendered flow prompt
            system_prompt: SYSTEM_PROMPTS key or a custom system prompt
            response_format: JSON schema the reply must follow, if any

        Returns:
            LLMResponse with content and status
        """
        system = self.SYSTEM_PROMPTS.get(system_prompt, system_prompt) or self.SYSTEM_PROMPTS["recipe_chef"]

        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "stream": False,
        }
        if response_format is not None:
            payload["format"] = response_format

        try:
            response = requests.post(
                f"{self.base_url}/api/chat",
                json=payload,
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout:
            logger.error("Ollama request timed out after %ss", self.timeout)
            return LLMResponse(
                content="",
                success=False,
                error="Request timed out. The model may be loading or processing a complex query.",
            )
        except requests.exceptions.ConnectionError:
            logger.error("Cannot connect to Ollama at %s", self.base_url)
            return LLMResponse(
                content="",
                success=False,
                error="LLM service not available. Please ensure Ollama is running.",
            )
        except requests.exceptions.RequestException as e:
            logger.error("Error calling Ollama API: %s", e)
            return LLMResponse(content="", success=False, error=str(e))

        if response.status_code != 200:
            return LLMResponse(
                content="",
                success=False,
                error=f"Ollama API error: {response.status_code}",
            )

        try:
            result = response.json()
        except ValueError:
            return LLMResponse(content="", success=False, error="Ollama returned a non-JSON body")

        content = result.get("message", {}).get("content", "")
        return LLMResponse(content=content, success=True, model=self.model)

    def generate_structured(
        self,
        prompt: str,
        system_prompt: str,
        schema: Dict[str, Any],
    ) -> LLMResponse:
        """Ask for a reply constrained to the given JSON schema."""
        return self.chat(prompt, system_prompt=system_prompt, response_format=schema)


# Global singleton instance
_ollama_service: Optional[OllamaService] = None


def get_llm_service() -> OllamaService:
    """Get or create the global Ollama service instance."""
    global _ollama_service
    if _ollama_service is None:
        _ollama_service = OllamaService()
    return _ollama_service
