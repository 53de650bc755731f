"""
Magic fill: suggest a product title and description from a photo.

Stateless proxy to an Azure OpenAI vision-capable chat deployment. The model is asked for
strict JSON with exactly `title` and `description`; the reply is passed through without
further checks on its content.
"""
import json
from typing import Any, Dict

import httpx
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from core.auth import get_uid_from_request
from core.config import (
    AZURE_OPENAI_KEY,
    AZURE_OPENAI_RESOURCE,
    AZURE_OPENAI_DEPLOYMENT,
    AZURE_OPENAI_API_VERSION,
    logger,
)
from core.diagnostics import SUCCESS
from utils.rate_limit import check_processing_rate_limit

router = APIRouter(tags=["analyze"])

SYSTEM_PROMPT = (
    "Eres un experto en marketing digital y copywriting para e-commerce. Tu tarea es analizar "
    "la imagen de un producto y generar un título atractivo y una descripción de venta persuasiva. "
    "Responde EXCLUSIVAMENTE en formato JSON con las claves 'title' y 'description'."
)
USER_PROMPT = (
    "Analiza esta imagen y crea un título corto (máximo 50 caracteres) y una descripción vendedora "
    "de hasta 300 caracteres. Usa texto plano: sin markdown, asteriscos, almohadillas ni viñetas."
)

UPSTREAM_DETAIL_LIMIT = 500


def _endpoint() -> str:
    return (
        f"https://{AZURE_OPENAI_RESOURCE}.cognitiveservices.azure.com/openai/deployments/"
        f"{AZURE_OPENAI_DEPLOYMENT}/chat/completions?api-version={AZURE_OPENAI_API_VERSION}"
    )


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=30.0)


def _build_payload(image_base64: str) -> Dict[str, Any]:
    data_url = image_base64 if image_base64.startswith("data:") else f"data:image/jpeg;base64,{image_base64}"
    return {
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": USER_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}},
                ],
            },
        ],
        "max_tokens": 300,
        "temperature": 0.7,
        "response_format": {"type": "json_object"},
    }


def _error(code: str, details: str, status_code: int) -> JSONResponse:
    return JSONResponse({"error": code, "details": details}, status_code=status_code)


@router.post("/analyze-image")
@router.post("/api/analyze-image")
async def analyze_image(request: Request):
    raw = await request.body()
    try:
        body = json.loads(raw or b"")
    except ValueError as ex:
        return _error("invalid_json", f"Request body is not valid JSON: {ex}", 400)
    if not isinstance(body, dict):
        return _error("invalid_json", "Request body must be a JSON object", 400)

    image_base64 = body.get("imageBase64")
    if not isinstance(image_base64, str) or not image_base64.strip():
        return _error("missing_image", "imageBase64 is required", 400)

    if not AZURE_OPENAI_KEY or not AZURE_OPENAI_RESOURCE:
        logger.error("Falta la clave AZURE_OPENAI_KEY / AZURE_OPENAI_RESOURCE")
        return _error("ai_not_configured", "Error de configuración del servidor (AI)", 500)

    client_id = get_uid_from_request(request) or (request.client.host if request.client else "anonymous")
    allowed, rate_err = check_processing_rate_limit(client_id)
    if not allowed:
        return _error("rate_limited", rate_err, 429)

    try:
        async with _http_client() as client:
            r = await client.post(
                _endpoint(),
                headers={"api-key": AZURE_OPENAI_KEY, "Content-Type": "application/json"},
                json=_build_payload(image_base64.strip()),
            )
    except httpx.HTTPError as ex:
        logger.error(f"Azure OpenAI request failed: {ex}")
        return _error("upstream_unreachable", f"Error analizando imagen: {ex}", 500)

    if not r.is_success:
        text = r.text or ""
        logger.error(f"Azure OpenAI Error: {r.status_code} {text[:200]}")
        return _error("upstream_error", text[:UPSTREAM_DETAIL_LIMIT], r.status_code)

    try:
        data = r.json()
        content = data["choices"][0]["message"]["content"]
        result = json.loads(content)
        if not isinstance(result, dict):
            raise ValueError("model reply is not a JSON object")
    except (ValueError, KeyError, IndexError, TypeError) as ex:
        logger.error(f"Azure OpenAI reply could not be parsed: {ex}")
        return _error("analysis_failed", f"Error analizando imagen: {ex}", 500)

    logger.info("Magic fill completed", extra=SUCCESS)
    return {"title": result.get("title"), "description": result.get("description")}
