"""Configuration API endpoints"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from services.config_manager import ConfigManager, retry_settings_from_config

router = APIRouter()


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    github: dict | None = None
    retry: dict | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    github: dict
    retry: dict


def mask_key(key: str) -> str:
    """Mask all but the first and last four characters of a secret"""
    if not key:
        return ""
    if len(key) <= 8:
        return "*" * len(key)
    return key[:4] + "*" * (len(key) - 8) + key[-4:]


@router.get("", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration"""
    config = ConfigManager.get_instance().get_config()

    github = config.get("github", {}).copy()
    github["token"] = mask_key(github.get("token", ""))

    return ConfigResponse(github=github, retry=config.get("retry", {}))


@router.put("")
async def update_config(request: Request, update: ConfigUpdateRequest) -> dict[str, Any]:
    """Update configuration"""
    config_manager = ConfigManager.get_instance()
    current_config = config_manager.get_config()

    # Update only provided fields
    if update.github:
        current_config["github"] = {**current_config.get("github", {}), **update.github}
    if update.retry:
        current_config["retry"] = {**current_config.get("retry", {}), **update.retry}

    # Reject retry settings the transport could not be built from
    try:
        retry_settings_from_config(current_config)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=f"Invalid retry configuration: {e}")

    config_manager.save_config(current_config)

    # A new token may belong to a different user
    identity_cache = getattr(request.app.state, "identity_cache", None)
    if update.github and identity_cache is not None:
        identity_cache.reset()

    return {"status": "success", "message": "Configuration updated"}
