import requests
import json
import re
import time
from typing import Optional, Dict, Any, Union, Callable

from .logging import get_logger, ConfigError, APIError

logger = get_logger(__name__)


class TokenTracker:
    """Tracks token usage across the session."""
    def __init__(self):
        self.usage = {}  # model_name -> {"prompt": int, "completion": int}

    def add_usage(self, model: str, prompt: int, completion: int):
        if model not in self.usage:
            self.usage[model] = {"prompt": 0, "completion": 0}
        self.usage[model]["prompt"] += prompt
        self.usage[model]["completion"] += completion

    def get_summary(self) -> Dict[str, Dict[str, int]]:
        return self.usage


# Global instance
tracker = TokenTracker()


def clean_ai_response(text: str) -> str:
    """Removes <think>/<thinking>/<reasoning> blocks some models emit before the answer."""
    if not text:
        return ""

    cleaned = re.sub(r'<think>.*?</think>', '', text, flags=re.DOTALL)
    cleaned = re.sub(r'<thinking>.*?</thinking>', '', cleaned, flags=re.DOTALL)
    cleaned = re.sub(r'<reasoning>.*?</reasoning>', '', cleaned, flags=re.DOTALL)
    return cleaned.strip()


def extract_json(text: str) -> Optional[Dict[str, Any]]:
    """
    Extracts the first JSON object found in a string.
    Resilient to preambles, postambles, and markdown blocks.
    """
    if not text:
        return None

    text = clean_ai_response(text)

    try:
        parsed = json.loads(text.strip())
        if isinstance(parsed, dict):
            return parsed
    except json.JSONDecodeError:
        pass

    md_match = re.search(r'```(?:json)?\s*(\{.*?\})\s*```', text, re.DOTALL | re.IGNORECASE)
    if md_match:
        try:
            return json.loads(md_match.group(1))
        except json.JSONDecodeError:
            pass

    first_brace = text.find('{')
    last_brace = text.rfind('}')
    if first_brace != -1 and last_brace != -1 and last_brace > first_brace:
        try:
            return json.loads(text[first_brace:last_brace + 1])
        except json.JSONDecodeError:
            pass

    logger.warning(f"Failed to extract JSON from AI response. Preview: {text[:200]}...")
    return None


def _response_text(data: Dict[str, Any]) -> Optional[str]:
    candidates = data.get("candidates") or []
    if not candidates:
        return None
    parts = (candidates[0].get("content") or {}).get("parts") or []
    texts = [p.get("text", "") for p in parts if isinstance(p, dict)]
    return "".join(texts) or None


def call_gemini(
    prompt: str,
    response_schema: Optional[Dict[str, Any]] = None,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    status_callback: Optional[Callable[[str], None]] = None,
    config=None,
) -> Union[Dict[str, Any], str]:
    """
    Calls Gemini generateContent with retries.

    With a response_schema the model is asked for application/json and the
    parsed object is returned; otherwise the cleaned text is returned.

    Raises:
        ConfigError: If no API key is configured.
        APIError: If the service fails or returns nothing usable.
    """
    if config is None:
        from .config import get_gemini_config
        config = get_gemini_config()

    if not config.api_key:
        raise ConfigError("GEMINI_API_KEY is not set.")

    target_model = model or config.model
    endpoint = f"{config.base_url.rstrip('/')}/models/{target_model}:generateContent"

    generation_config: Dict[str, Any] = {}
    if response_schema is not None:
        generation_config["responseMimeType"] = "application/json"
        generation_config["responseSchema"] = response_schema
    if temperature is not None:
        generation_config["temperature"] = temperature

    payload: Dict[str, Any] = {"contents": [{"role": "user", "parts": [{"text": prompt}]}]}
    if generation_config:
        payload["generationConfig"] = generation_config

    headers = {"Content-Type": "application/json", "x-goog-api-key": config.api_key}
    last_error = "no attempts made"

    for attempt in range(config.max_retries + 1):
        msg = f"Calling Gemini [Attempt {attempt+1}/{config.max_retries+1}]"
        logger.debug(f"{msg}: {endpoint}")
        if status_callback:
            status_callback(msg)

        try:
            response = requests.post(endpoint, headers=headers, json=payload, timeout=config.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            status_code = e.response.status_code if e.response is not None else None
            if status_code in (401, 403):
                logger.error(f"Gemini rejected the API key ({status_code}). Check GEMINI_API_KEY.")
                raise APIError(f"Gemini API unauthorized ({status_code})") from e
            if status_code == 429:
                logger.debug("Gemini rate limit (429). Retrying after delay...")
                time.sleep(2 * (attempt + 1))
            else:
                logger.error(f"Gemini request failed [Status {status_code or 'Unknown'}]: {e}")
                if attempt < config.max_retries:
                    time.sleep(1)
            last_error = str(e)
            continue

        usage = data.get("usageMetadata")
        if usage:
            tracker.add_usage(
                target_model,
                usage.get("promptTokenCount", 0),
                usage.get("candidatesTokenCount", 0),
            )

        text = _response_text(data)
        if not text:
            logger.error(f"Unexpected Gemini response format: {list(data.keys())}")
            last_error = "empty response"
            continue

        if response_schema is None:
            return clean_ai_response(text)

        parsed = extract_json(text)
        if parsed is not None:
            return parsed
        last_error = "response JSON parse failed"
        logger.debug(f"Gemini JSON parse failed (Attempt {attempt+1}/{config.max_retries+1})")

    raise APIError(f"Gemini did not return valid data: {last_error}")


def test_ai_connection(config=None) -> bool:
    """Connectivity self-test: any failure here counts as 'not working'."""
    try:
        call_gemini("ping", config=config)
        return True
    except Exception as e:
        logger.error(f"Gemini Connection Test Failed: {e}")
        return False
