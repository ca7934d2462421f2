import os, json, re, logging
from typing import Any, Dict, Optional
from openai import OpenAI
import httpx

log = logging.getLogger("llm")

DEFAULT_MODEL = (os.getenv("OPENAI_MODEL") or "gpt-4o-mini").strip()
OPENAI_API_KEY = (os.getenv("OPENAI_API_KEY") or "").strip()

_client_singleton: Optional[OpenAI] = None

def has_api_key() -> bool:
    return bool(OPENAI_API_KEY)

def _client() -> OpenAI:
    global _client_singleton
    if _client_singleton is None:
        if not OPENAI_API_KEY:
            raise RuntimeError("OPENAI_API_KEY no configurado")
        httpx_client = httpx.Client(timeout=60.0)
        _client_singleton = OpenAI(api_key=OPENAI_API_KEY, http_client=httpx_client)
    return _client_singleton

_FENCE_RE = re.compile(r"^```(?:json)?\s*|\s*```$", re.IGNORECASE)

def parse_json_text(text: str) -> Dict[str, Any]:
    """Acepta JSON pelado o envuelto en ```json ... ```."""
    cleaned = _FENCE_RE.sub("", (text or "").strip())
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError:
        start, end = cleaned.find("{"), cleaned.rfind("}")
        if start == -1 or end <= start:
            raise
        data = json.loads(cleaned[start:end + 1])
    if not isinstance(data, dict):
        raise ValueError("Se esperaba un objeto JSON")
    return data

def generate_json(system: str, user: str, *, schema_hint: Optional[Dict[str, Any]] = None,
                  temperature: float = 0.2, model: Optional[str] = None) -> Dict[str, Any]:
    """Chat completion en modo JSON; devuelve el objeto ya parseado."""
    sys_full = system or ""
    if schema_hint:
        sys_full += "\nResponde sólo con JSON con esta forma: " + json.dumps(schema_hint, ensure_ascii=False)
    resp = _client().chat.completions.create(
        model=model or DEFAULT_MODEL,
        messages=[
            {"role": "system", "content": sys_full},
            {"role": "user", "content": user or ""},
        ],
        temperature=temperature,
        response_format={"type": "json_object"},
    )
    text = (resp.choices[0].message.content or "").strip()
    log.debug("generate_json -> %s", text[:300])
    return parse_json_text(text)
