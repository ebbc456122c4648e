from __future__ import annotations

import http.client
import json
import time
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any


class GenerationError(RuntimeError):
    pass


class GenerationNotConfigured(GenerationError):
    pass


@dataclass(frozen=True)
class GeminiClient:
    api_key: str
    base_url: str = "https://generativelanguage.googleapis.com"
    timeout_seconds: int = 60

    def _url(self, model: str) -> str:
        return self.base_url.rstrip("/") + f"/v1beta/models/{urllib.parse.quote(model)}:generateContent"

    def request_json(self, model: str, body: dict[str, Any], *, retries: int = 2) -> Any:
        if not self.api_key:
            raise GenerationNotConfigured("GEMINI_API_KEY is not set")
        data = json.dumps(body).encode("utf-8")

        last_err: Exception | None = None
        for attempt in range(retries + 1):
            try:
                req = urllib.request.Request(self._url(model), data=data, method="POST")
                req.add_header("x-goog-api-key", self.api_key)
                req.add_header("Content-Type", "application/json")
                req.add_header("Accept", "application/json")
                with urllib.request.urlopen(req, timeout=self.timeout_seconds) as resp:
                    raw = resp.read()
                    try:
                        return json.loads(raw.decode("utf-8"))
                    except Exception as e:
                        raise GenerationError(f"Invalid JSON envelope from Gemini ({model})") from e
            except urllib.error.HTTPError as e:
                if e.code == 429 or e.code >= 500:
                    time.sleep(min(2 * (attempt + 1), 10))
                    last_err = GenerationError(f"HTTP {e.code} from Gemini")
                    continue
                try:
                    body_text = e.read().decode("utf-8", errors="ignore")
                except Exception:
                    body_text = ""
                raise GenerationError(f"HTTP {e.code} from Gemini: {body_text[:300]}") from e
            except (urllib.error.URLError, OSError, http.client.HTTPException) as e:
                last_err = e
                time.sleep(min(1 * (attempt + 1), 5))
                continue
        raise GenerationError(f"Gemini request failed after retries: {last_err}")

    @staticmethod
    def _text_of(envelope: Any) -> str | None:
        if not isinstance(envelope, dict):
            raise GenerationError("Unexpected Gemini envelope: not a JSON object")
        candidates = envelope.get("candidates") or []
        if not isinstance(candidates, list) or not candidates:
            return None
        first = candidates[0]
        content = first.get("content") if isinstance(first, dict) else None
        if not isinstance(content, dict):
            return None
        parts = content.get("parts") or []
        if not isinstance(parts, list):
            return None
        texts = [p.get("text") for p in parts if isinstance(p, dict) and isinstance(p.get("text"), str)]
        return "".join(texts) or None

    def generate_text(self, model: str, prompt: str) -> str | None:
        envelope = self.request_json(model, {"contents": [{"parts": [{"text": prompt}]}]})
        return self._text_of(envelope)

    def generate_json(self, model: str, prompt: str, schema: dict[str, Any]) -> str | None:
        """Structured mode: the returned text is expected (not guaranteed) to be JSON matching `schema`."""
        envelope = self.request_json(
            model,
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "responseMimeType": "application/json",
                    "responseSchema": schema,
                },
            },
        )
        return self._text_of(envelope)


def gemini_from_config(config: dict) -> GeminiClient:
    return GeminiClient(
        api_key=(config.get("GEMINI_API_KEY") or "").strip(),
        base_url=(config.get("GEMINI_BASE_URL") or "https://generativelanguage.googleapis.com").strip(),
        timeout_seconds=int(config.get("GEMINI_TIMEOUT_SECONDS") or 60),
    )
