"""
Provider API Routes
Model listing and API key checks. Errors from the router surface through the
application's AgentFlowError handler.
"""

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

router = APIRouter(prefix="/api/v1/providers", tags=["providers"])


class ValidateKeyRequest(BaseModel):
    provider: str
    apiKey: str
    verify: bool = False  # Also call the provider when it supports it


def get_provider_router(request: Request):
    provider_router = getattr(request.app.state, 'provider_router', None)
    if not provider_router:
        raise HTTPException(status_code=503, detail="Provider router not initialized")
    return provider_router


@router.get("/models")
async def list_models(request: Request, provider: str = "openai"):
    """List models available for a provider."""
    provider_router = get_provider_router(request)
    models = await provider_router.list_models(provider)
    return {"provider": provider, "models": models}


@router.get("/models/{model}")
async def get_model_info(request: Request, model: str):
    provider_router = get_provider_router(request)
    return {"model": model, **provider_router.get_model_info(model)}


@router.post("/validate-key")
async def validate_key(request: Request, body: ValidateKeyRequest):
    """Check the shape of an API key, optionally verifying it with the provider."""
    provider_router = get_provider_router(request)
    if body.verify:
        valid = await provider_router.verify_api_key(body.provider, body.apiKey)
    else:
        valid = provider_router.validate_api_key(body.provider, body.apiKey)
    return {"provider": body.provider, "valid": valid}
