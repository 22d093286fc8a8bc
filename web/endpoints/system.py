"""System health and model catalog endpoints."""

from fastapi import APIRouter, Request

router = APIRouter(prefix="/api")


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint to verify API is running."""
    manager = request.app.state.debate_manager
    return {
        "isAlive": True,
        "running_debates": len(manager.orchestrator.running_debates()),
    }


@router.get("/models")
async def get_models(request: Request):
    """Get the models each provider can serve agents right now."""
    manager = request.app.state.debate_manager
    models_by_provider = await manager.model_manager.get_available_models()
    return {
        "models": [name for names in models_by_provider.values() for name in names],
        "models_by_provider": models_by_provider,
    }
