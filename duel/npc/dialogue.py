"""Ollama HTTP client used to voice the duel's NPCs (master and opponents)."""

from __future__ import annotations
import logging
from typing import Optional

import requests

from config import (
    get_ollama_enabled,
    get_ollama_base_url,
    get_ollama_model,
    get_ollama_timeout,
    get_ollama_temperature,
    get_ollama_max_tokens,
)


class OllamaClient:
    """Simple Ollama HTTP client for short generated lines."""

    def __init__(self, base_url: str, timeout: float):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.available = False
        self._check_availability()

    def _check_availability(self):
        """Check if Ollama is running and available."""
        try:
            response = requests.get(f"{self.base_url}/api/tags", timeout=min(2, self.timeout))
            self.available = response.status_code == 200
        except requests.RequestException:
            self.available = False

    def generate_response(self, prompt: str, model: str, temperature: float, max_tokens: int,
                          system: str = "") -> Optional[str]:
        """Generate response using Ollama."""
        if not self.available:
            return None

        payload = {
            "model": model,
            "prompt": prompt,
            "stream": False,
            "options": {
                "temperature": float(temperature),
                "num_predict": int(max_tokens),
            }
        }
        if system:
            payload["system"] = system

        try:
            response = requests.post(
                f"{self.base_url}/api/generate",
                json=payload,
                timeout=self.timeout
            )
            if response.status_code == 200:
                result = response.json()
                return result.get("response", "").strip()
            logging.warning(f"Ollama returned HTTP {response.status_code}")
        except (requests.RequestException, ValueError) as e:
            logging.error(f"Ollama error: {e}")

        return None


def default_llm_call():
    """Build the llm_call(system, user) used by CombatNarrator from config.

    Returns None when Ollama is disabled, so callers go straight to fallbacks.
    """
    if not get_ollama_enabled():
        return None
    client = OllamaClient(get_ollama_base_url(), get_ollama_timeout())
    if not client.available:
        logging.warning("Ollama enabled but unreachable, using fallback lines")
        return None
    model = get_ollama_model()
    temperature = get_ollama_temperature()
    max_tokens = get_ollama_max_tokens()

    def _call(system: str, user: str) -> Optional[str]:
        return client.generate_response(user, model=model, temperature=temperature,
                                        max_tokens=max_tokens, system=system)

    return _call
