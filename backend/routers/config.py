"""Configuration API endpoints"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, Field

from services.config_manager import ConfigManager

router = APIRouter()


class ConfigUpdateRequest(BaseModel):
    """Request to update configuration"""

    workspace_root: str | None = None
    backup_dir: str | None = None
    history_file: str | None = None
    strict_mode: bool | None = None
    context_lines: int | None = Field(default=None, ge=0)
    max_diff_cells: int | None = Field(default=None, gt=0)
    backup_retention_days: float | None = Field(default=None, ge=0)
    impact: dict | None = None


class ConfigResponse(BaseModel):
    """Configuration response"""

    workspace_root: str
    backup_dir: str
    history_file: str | None = None
    strict_mode: bool
    context_lines: int
    max_diff_cells: int
    backup_retention_days: float
    impact: dict
    server: dict


@router.get("", response_model=ConfigResponse)
async def get_config() -> ConfigResponse:
    """Get current configuration"""
    config = ConfigManager.get_instance().get_config()
    return ConfigResponse(**{k: v for k, v in config.items() if k in ConfigResponse.model_fields})


@router.put("")
async def update_config(request: ConfigUpdateRequest) -> dict[str, Any]:
    """Update configuration; engine settings take effect on the next start"""
    config_manager = ConfigManager.get_instance()
    current_config = config_manager.get_config()

    # Update only provided fields
    updates = request.model_dump(exclude_none=True)
    if "impact" in updates:
        updates["impact"] = {**current_config.get("impact", {}), **updates["impact"]}
    current_config.update(updates)

    config_manager.save_config(current_config)

    return {"status": "success", "message": "Configuration updated", "updated": sorted(updates)}
